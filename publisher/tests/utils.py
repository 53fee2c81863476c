import json
from functools import wraps
from secrets import token_hex
from unittest.mock import MagicMock

import requests
from django.contrib.auth import get_user_model
from django.core.cache import caches
from django.core.files.base import ContentFile
from django.utils.text import slugify

from publisher.models import Category, Document, DocumentStatus, MediaAsset, Tag

User = get_user_model()

KOALA_IMAGE_URL = "https://koala.sh/api/image/abc123.png"

PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"
    b"\x08\x06\x00\x00\x00\x1f\x15\xc4\x89"
)


def ensure_slug(original_function):
    @wraps(original_function)
    def inner(*args, **kwargs):
        title = kwargs.get("title")
        slug = kwargs.get("slug")
        if title and slug is None:
            kwargs["slug"] = slugify(title, allow_unicode=True)

        return original_function(*args, **kwargs)

    return inner


def clear_caches():
    for alias in ("default", "configuration_cache"):
        caches[alias].clear()


@ensure_slug
def create_document(
    *,
    title="Test Document",
    slug="test-document",
    body="<p>Test body</p>",
    status=DocumentStatus.DRAFT,
    post_type="post",
    do_save=True,
    **kwargs,
):
    """
    Drafts are the default so that creating a document never imports images
    """
    document = Document(
        title=title,
        slug=slug,
        body=body,
        status=status,
        post_type=post_type,
        **kwargs,
    )
    document.full_clean()
    if do_save:
        document.save()
    return document


def create_category(*, name="Test Category", slug=None, **kwargs):
    slug = slug or slugify(name, allow_unicode=True)
    return Category.objects.create(name=name, slug=slug, **kwargs)


def create_tag(*, name="Test Tag", slug=None, **kwargs):
    slug = slug or slugify(name, allow_unicode=True)
    return Tag.objects.create(name=name, slug=slug, **kwargs)


def create_media_asset(
    *,
    filename="test.png",
    content=PNG_BYTES,
    mime_type="image/png",
    title="Test image",
    alt_text="",
    original_url=None,
    **kwargs,
):
    asset = MediaAsset(title=title, mime_type=mime_type, alt_text=alt_text, **kwargs)
    asset.file.save(filename, ContentFile(content), save=True)
    if original_url:
        asset.set_attribute("original_url", original_url)
    return asset


def koala_image(url=KOALA_IMAGE_URL, alt="A koala"):
    return f'<img src="{url}" alt="{alt}">'


def mock_image_response(
    content=PNG_BYTES, content_type="image/png", status_code=200
) -> MagicMock:
    """
    Build a stand-in for a streamed ``requests`` response
    """
    resp = MagicMock()
    resp.status_code = status_code
    resp.headers = {"Content-Type": content_type} if content_type else {}
    resp.iter_content.return_value = [content] if content else []
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(
            f"{status_code} Error", response=resp
        )
    else:
        resp.raise_for_status.return_value = None
    return resp


class JSONAssertMixin(object):
    def assertValidJSON(self, response, expected_status=200):
        """
        Assert that a response contains valid JSON and return the decoded JSON
        """
        self.assertEqual(response.status_code, expected_status)

        try:
            data = json.loads(response.content.decode("utf-8"))
        except json.JSONDecodeError as exc:
            self.fail(msg=f"response content failed to decode: {exc}")
            raise

        return data


class CreateTestUsers(object):
    def login_user(self, username="tester", **kwargs):
        """
        Create a user and log the user in
        """
        if not hasattr(self, "user") or self.user is None:
            self.user = self.create_test_user(username, **kwargs)

        self.client.login(username=self.user.username, password=self.user._password)

    @classmethod
    def create_user(cls, username, is_active=True, **kwargs):
        if "email" not in kwargs:
            kwargs["email"] = f"{username}@example.com"

        user = User.objects.create_user(username=username, **kwargs)
        fake_pw = token_hex(24)
        user.is_active = is_active
        user.set_password(fake_pw)
        user.save()

        user._password = fake_pw

        return user

    @classmethod
    def create_test_user(cls, username="testuser", **kwargs):
        return cls.create_user(username, is_active=True, **kwargs)

    @classmethod
    def create_staff_user(cls, username="teststaffuser", **kwargs):
        return cls.create_user(username, is_staff=True, is_active=True, **kwargs)

    @classmethod
    def create_super_user(cls, username="testsuperuser", **kwargs):
        return cls.create_user(
            username, is_staff=True, is_superuser=True, is_active=True, **kwargs
        )
