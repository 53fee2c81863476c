"""
Creation of documents submitted by the remote content service

Submissions are loosely typed JSON objects. Every field is normalised to
something the document model accepts instead of being rejected, because the
remote side cannot correct a submission after the fact. Only a submission
which cannot produce a valid document at all is skipped.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, time
from logging import getLogger
from typing import Any, Iterable, Optional

import nh3
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime
from django.utils.html import strip_tags
from django.utils.text import slugify

from importer.stores import DocumentStore
from publisher.logging import PublisherLogger
from publisher.models import Category, DocumentStatus, MediaAsset, Tag

logger = getLogger(__name__)
structured_logger = PublisherLogger.get_logger(__name__)

ACCEPTED_STATES = {
    DocumentStatus.PUBLISH.value,
    DocumentStatus.DRAFT.value,
    DocumentStatus.PENDING.value,
    DocumentStatus.PRIVATE.value,
}

DEFAULT_POST_TYPE = "post"

BODY_ALLOWED_TAGS = {
    "a",
    "abbr",
    "b",
    "blockquote",
    "br",
    "caption",
    "code",
    "div",
    "em",
    "figcaption",
    "figure",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "hr",
    "i",
    "img",
    "li",
    "ol",
    "p",
    "pre",
    "span",
    "strong",
    "table",
    "tbody",
    "td",
    "th",
    "thead",
    "tr",
    "ul",
}

BODY_ALLOWED_ATTRIBUTES = {
    "a": {"class", "id", "href", "title", "target"},
    "abbr": {"title"},
    "div": {"class", "id"},
    "figure": {"class", "id"},
    "img": {"src", "alt", "title", "width", "height", "class", "loading"},
    "p": {"class", "id"},
    "span": {"class", "id"},
    "td": {"colspan", "rowspan"},
    "th": {"colspan", "rowspan", "scope"},
}

WHITESPACE_RE = re.compile(r"\s+")


@dataclass
class PublishReport:
    published: int = 0
    permalinks: dict = field(default_factory=dict)
    skipped: int = 0

    @property
    def success(self) -> bool:
        return self.published > 0


def clean_text(value: Any) -> str:
    """
    Reduce a value to a single line of plain text
    """
    if value is None:
        return ""
    return WHITESPACE_RE.sub(" ", strip_tags(str(value))).strip()


def clean_body(value: Any) -> str:
    if not value:
        return ""
    return nh3.clean(
        str(value),
        tags=BODY_ALLOWED_TAGS,
        attributes=BODY_ALLOWED_ATTRIBUTES,
    )


def split_terms(value: Any) -> list[str]:
    """
    Accept either a list or a comma-separated string of term ids or names
    """
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        items = [value]

    terms = []
    for item in items:
        item = clean_text(item)
        if item:
            terms.append(item)
    return terms


def parse_submission_date(value: Any) -> datetime:
    """
    Parse an ISO 8601 date or date-time. Anything unparseable becomes now.
    """
    if not value:
        return timezone.now()

    value = str(value).strip()
    try:
        parsed = parse_datetime(value)
        if parsed is None:
            parsed_date = parse_date(value)
            if parsed_date is not None:
                parsed = datetime.combine(parsed_date, time.min)
    except ValueError:
        parsed = None

    if parsed is None:
        logger.info("Unable to parse submitted date %r; using the current time", value)
        return timezone.now()

    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def parse_positive_int(value: Any) -> Optional[int]:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def unique_slug(model, name: str) -> str:
    base = slugify(name, allow_unicode=True)[:190] or "term"
    slug = base
    suffix = 2
    while model.objects.filter(slug=slug).exists():
        slug = f"{base}-{suffix}"
        suffix += 1
    return slug


def resolve_terms(model, value: Any) -> list:
    """
    Turn term ids or names into saved terms, creating unknown names
    """
    terms = []
    for item in split_terms(value):
        term = None
        if item.isdigit():
            term = model.objects.filter(pk=int(item)).first()
        if term is None:
            term = model.objects.filter(name__iexact=item).first()
        if term is None:
            term = model.objects.create(name=item[:200], slug=unique_slug(model, item))
            logger.info("Created %s %r", model._meta.verbose_name, term.name)
        if term not in terms:
            terms.append(term)
    return terms


def default_author():
    """
    The first active superuser, else user 1, else nobody
    """
    User = get_user_model()
    admin = (
        User.objects.filter(is_superuser=True, is_active=True).order_by("pk").first()
    )
    if admin is not None:
        return admin
    return User.objects.filter(pk=1).first()


class PublishIngestor:
    def __init__(self, documents=None):
        self.documents = documents or DocumentStore()
        self._default_author = None

    def publish(self, submissions: Iterable[Any]) -> PublishReport:
        report = PublishReport()

        for index, submission in enumerate(submissions):
            if not isinstance(submission, dict):
                report.skipped += 1
                structured_logger.warning(
                    "Skipped a submission which is not an object.",
                    event_code="publish_submission_skipped",
                    reason=f"Submission {index} is a {type(submission).__name__}",
                    reason_code="invalid_submission",
                )
                continue

            try:
                with transaction.atomic():
                    document = self.create_document(submission)
            except (ValidationError, DatabaseError, ValueError, TypeError) as exc:
                report.skipped += 1
                structured_logger.warning(
                    "Skipped a submission which could not be stored.",
                    event_code="publish_submission_skipped",
                    reason=str(exc),
                    reason_code="invalid_submission",
                    submission_index=index,
                )
                continue

            report.published += 1
            report.permalinks[document.pk] = self.documents.permalink(document)
            document.logger.info(
                "Published submitted document.",
                event_code="publish_document_created",
                status=document.status,
            )

        return report

    def create_document(self, submission: dict):
        published_on = parse_submission_date(submission.get("date"))
        status = self.normalize_status(submission.get("state"), published_on)

        title = clean_text(submission.get("title"))[:1000]
        slug = slugify(
            clean_text(submission.get("slug")) or title, allow_unicode=True
        )[:200]

        body = clean_body(submission.get("content"))
        excerpt = clean_text(submission.get("excerpt"))
        if not (title or body or excerpt):
            raise ValueError("Title, content and excerpt are all empty")

        fields = {
            "title": title,
            "slug": slug,
            "body": body,
            "excerpt": excerpt,
            "status": status,
            "post_type": self.normalize_post_type(submission.get("post_type")),
            "published_on": published_on,
            "author": self.resolve_author(submission.get("author")),
            "categories": resolve_terms(Category, submission.get("categories")),
            "tags": resolve_terms(Tag, submission.get("tags")),
        }

        featured = self.resolve_featured_media(submission.get("featured_media"))
        if featured is not None:
            fields["primary_asset"] = featured

        return self.documents.create(**fields)

    @staticmethod
    def normalize_status(state: Any, published_on: datetime) -> str:
        if not isinstance(state, str) or state not in ACCEPTED_STATES:
            return DocumentStatus.DRAFT
        if state == DocumentStatus.PUBLISH and published_on > timezone.now():
            return DocumentStatus.FUTURE
        return state

    @staticmethod
    def normalize_post_type(post_type: Any) -> str:
        if isinstance(post_type, str) and post_type in settings.DOCUMENT_POST_TYPES:
            return post_type
        return DEFAULT_POST_TYPE

    def resolve_author(self, author: Any):
        author_id = parse_positive_int(author)
        if author_id is not None:
            user = get_user_model().objects.filter(pk=author_id).first()
            if user is not None:
                return user

        if self._default_author is None:
            self._default_author = default_author()
        return self._default_author

    @staticmethod
    def resolve_featured_media(value: Any) -> Optional[MediaAsset]:
        asset_id = parse_positive_int(value)
        if asset_id is None:
            return None
        return MediaAsset.objects.images().filter(pk=asset_id).first()
