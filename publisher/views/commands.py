"""
Command endpoint used by the remote content service

Every request is a JSON object ``{"command": ..., "data": {...}}`` where
``data`` carries the shared secret as ``uuid``. Responses always use the
envelope ``{"success": bool, "data": {...}}``.
"""

import enum
import json
import logging
import os
from tempfile import NamedTemporaryFile
from typing import Any, Callable

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import SuspiciousFileOperation
from django.db.models import Count, Q
from django.http import HttpRequest, JsonResponse
from django.utils.text import get_valid_filename
from django.views.decorators.csrf import csrf_exempt

from importer.exceptions import FetchFailed, ImageImportFailure
from importer.resolver import download_to_file, guess_mime_type, normalize_url
from importer.stores import MediaStore
from publisher import connection
from publisher.exceptions import (
    AuthFailed,
    CommandBoundaryError,
    CommandError,
    InvalidRequest,
)
from publisher.ingest import PublishIngestor, clean_text
from publisher.logging import PublisherLogger
from publisher.models import Category, Tag

logger = logging.getLogger(__name__)
structured_logger = PublisherLogger.get_logger(__name__)


class Command(enum.Enum):
    CONNECT = "connect"
    DISCONNECT = "disconnect"
    CHECK_CONNECTION_STATUS = "check_connection_status"
    PUBLISH_POSTS = "publish_posts"
    GET_AUTHORS = "get_authors"
    GET_POST_TYPES = "get_post_types"
    GET_CATEGORIES = "get_categories"
    GET_TAGS = "get_tags"
    UPLOAD_MEDIA = "upload_media"


def success(data: dict, status: int = 200) -> JsonResponse:
    return JsonResponse({"success": True, "data": data}, status=status)


def failure(message: str, status: int = 400, **extra: Any) -> JsonResponse:
    return JsonResponse(
        {"success": False, "data": {"message": message, **extra}}, status=status
    )


def parse_command_request(request: HttpRequest) -> tuple[Command, dict]:
    """
    Validate the envelope and the secret of a command request

    Raises:
        InvalidRequest: For malformed JSON, a missing command, non-object
            data or an unknown command.
        AuthFailed: When the secret is missing or wrong, or when the site is
            disconnected and the command is not ``connect``.
    """
    try:
        payload = json.loads(request.body or b"")
    except (ValueError, UnicodeDecodeError) as exc:
        raise InvalidRequest("Invalid JSON format.") from exc

    if (
        not isinstance(payload, dict)
        or not isinstance(payload.get("command"), str)
        or not isinstance(payload.get("data"), dict)
    ):
        raise InvalidRequest("Invalid request format. Command and data required.")

    command_name = clean_text(payload["command"])
    data = payload["data"]

    is_connect = command_name == Command.CONNECT.value
    if not is_connect and not connection.is_connected():
        raise AuthFailed("Invalid secret token or site is disconnected")
    if not connection.check_secret_token(data.get("uuid")):
        raise AuthFailed("Invalid secret token or site is disconnected")

    try:
        command = Command(command_name)
    except ValueError as exc:
        raise InvalidRequest("Invalid command.") from exc

    return command, data


@csrf_exempt
def execute_command(request: HttpRequest) -> JsonResponse:
    if request.method != "POST":
        response = failure("Invalid request method. Only POST allowed.", status=405)
        response["Allow"] = "POST"
        return response

    try:
        command, data = parse_command_request(request)
    except CommandBoundaryError as exc:
        structured_logger.warning(
            "Rejected command request.",
            event_code="command_rejected",
            reason=exc.message,
            reason_code=type(exc).__name__,
        )
        return failure(exc.message, status=exc.status_code)

    handler = COMMAND_HANDLERS[command]
    try:
        data = handler(data)
    except CommandError as exc:
        structured_logger.warning(
            "Command failed.",
            event_code="command_failed",
            reason=exc.message,
            reason_code=command.value,
        )
        return failure(exc.message, status=exc.status_code, **(exc.details or {}))

    structured_logger.info(
        "Command executed.", event_code="command_executed", command=command.value
    )
    return success(data)


def handle_connect(data: dict) -> dict:
    integration_id = clean_text(data.get("integration_id"))
    connection.connect(integration_id)
    return {"message": "Connected successfully", "integration_id": integration_id}


def handle_disconnect(data: dict) -> dict:
    connection.disconnect()
    return {"message": "successfully disconnected"}


def handle_check_connection_status(data: dict) -> dict:
    current = connection.get_connection()
    return {
        "message": "Connected" if current else "Disconnected",
        "integration_id": current.get("integration_id"),
    }


def handle_publish_posts(data: dict) -> dict:
    posts = data.get("posts")
    if not isinstance(posts, list) or not posts:
        raise CommandError("No posts in request")

    report = PublishIngestor().publish(posts)
    if not report.success:
        raise CommandError("No posts updated")

    return {
        "message": f"Posts published: {report.published}",
        "posts_permalinks": {
            str(pk): permalink for pk, permalink in report.permalinks.items()
        },
    }


def handle_get_authors(data: dict) -> dict:
    User = get_user_model()
    users = User.objects.filter(is_active=True).order_by(
        "first_name", "last_name", User.USERNAME_FIELD
    )

    search = clean_text(data.get("search"))
    if search:
        users = users.filter(
            Q(first_name__icontains=search)
            | Q(last_name__icontains=search)
            | Q(**{f"{User.USERNAME_FIELD}__icontains": search})
        )

    authors = [
        {"id": user.pk, "name": user.get_full_name() or user.get_username()}
        for user in users
    ]
    if not authors:
        raise CommandError("No authors found")
    return {"message": f"Authors found: {len(authors)}", "authors": authors}


def handle_get_post_types(data: dict) -> dict:
    post_types = [
        {"name": name, "label": label, "description": ""}
        for name, label in settings.DOCUMENT_POST_TYPES.items()
    ]
    if not post_types:
        raise CommandError("No post types found")
    return {
        "message": "Post types retrieved successfully",
        "post_types": post_types,
    }


def _terms(model, data: dict):
    qs = model.objects.annotate(count=Count("document")).order_by("name")

    search = clean_text(data.get("search"))
    if search:
        qs = qs.filter(name__icontains=search)

    if data.get("hide_empty") in (True, "true"):
        qs = qs.filter(count__gt=0)
    return qs


def handle_get_categories(data: dict) -> dict:
    categories = [
        {
            "id": category.pk,
            "name": category.name,
            "slug": category.slug,
            "description": category.description,
            "count": category.count,
            "parent": category.parent_id or 0,
        }
        for category in _terms(Category, data)
    ]
    if not categories:
        raise CommandError("No categories found")
    return {"message": "Categories retrieved successfully", "categories": categories}


def handle_get_tags(data: dict) -> dict:
    tags = [
        {
            "id": tag.pk,
            "name": tag.name,
            "slug": tag.slug,
            "description": tag.description,
            "count": tag.count,
        }
        for tag in _terms(Tag, data)
    ]
    if not tags:
        raise CommandError("No tags found")
    return {"message": "Tags retrieved successfully", "tags": tags}


def handle_upload_media(data: dict) -> dict:
    image_data = data.get("image_data")
    if not isinstance(image_data, dict) or not image_data:
        raise CommandError("No image data provided")

    image_url = image_data.get("url")
    if not isinstance(image_url, str):
        raise CommandError("Invalid image URL")
    try:
        normalize_url(image_url)
    except ImageImportFailure as exc:
        raise CommandError("Invalid image URL") from exc

    filename = image_data.get("filename")
    try:
        filename = get_valid_filename(str(filename)) if filename else ""
    except SuspiciousFileOperation:
        filename = ""
    if not filename:
        filename = "koala-image.jpg"

    alt_text = clean_text(image_data.get("alt"))
    media = MediaStore()

    with NamedTemporaryFile(mode="w+b") as temp_file:
        try:
            content_type = download_to_file(image_url, temp_file)
        except FetchFailed as exc:
            raise CommandError(f"Failed to download image: {exc}") from exc

        try:
            asset = media.store_from_temp(
                temp_file,
                filename,
                mime_type=guess_mime_type(filename, content_type),
                title=os.path.splitext(filename)[0],
                alt_text=alt_text,
            )
        except Exception as exc:
            logger.exception("Unable to store uploaded image %s", image_url)
            raise CommandError(
                f"Failed to add image to media library: {exc}", status_code=500
            ) from exc

    url = media.asset_url(asset)
    return {
        "message": "Image uploaded successfully",
        "attachment": {
            "id": asset.pk,
            "url": url,
            "title": asset.title,
            "alt": asset.alt_text,
            "sizes": {},
            "media_details": {"sizes": {"full": {"source_url": url}}},
        },
    }


COMMAND_HANDLERS: dict[Command, Callable[[dict], dict]] = {
    Command.CONNECT: handle_connect,
    Command.DISCONNECT: handle_disconnect,
    Command.CHECK_CONNECTION_STATUS: handle_check_connection_status,
    Command.PUBLISH_POSTS: handle_publish_posts,
    Command.GET_AUTHORS: handle_get_authors,
    Command.GET_POST_TYPES: handle_get_post_types,
    Command.GET_CATEGORIES: handle_get_categories,
    Command.GET_TAGS: handle_get_tags,
    Command.UPLOAD_MEDIA: handle_upload_media,
}
