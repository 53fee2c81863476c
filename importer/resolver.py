import mimetypes
import os
from dataclasses import dataclass
from logging import getLogger
from tempfile import NamedTemporaryFile
from typing import Optional
from urllib.parse import parse_qsl, unquote, urlencode, urlsplit, urlunsplit

import requests
from django.conf import settings
from django.core.exceptions import SuspiciousFileOperation
from django.utils.text import get_valid_filename

from importer.exceptions import FetchFailed, MalformedReference, StoreFailed
from importer.scanner import ImageReference
from importer.stores import MediaStore
from publisher.logging import PublisherLogger

logger = getLogger(__name__)
structured_logger = PublisherLogger.get_logger(__name__)

#: Asset attribute holding the normalised URL an asset was copied from
ORIGINAL_URL_ATTRIBUTE = "original_url"

DEFAULT_EXTENSION = "jpg"
DEFAULT_FILENAME = "image"
DOWNLOAD_CHUNK_SIZE = 256 * 1024

MIME_TYPE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/svg+xml": "svg",
}

EXTENSION_MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
}


@dataclass(frozen=True)
class ImportedAsset:
    local_id: int
    local_url: str
    origin_url: str
    alt_text: str = ""


def normalize_url(url: str) -> str:
    """
    Reduce a URL to scheme, host, port and path

    Two references which only differ in their query string or fragment
    resolve to the same asset.
    """
    try:
        parts = urlsplit(url.strip())
        # Accessing port validates it
        parts.port
    except ValueError as exc:
        raise MalformedReference(f"Unable to parse image URL {url!r}") from exc

    if parts.scheme.lower() not in ("http", "https") or not parts.hostname:
        raise MalformedReference(f"{url!r} is not an absolute http(s) URL")

    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), parts.path, "", ""))


def add_fast_parameter(url: str) -> str:
    """
    Append the origin's fast-path query parameter, replacing any existing value
    """
    parameter = settings.IMAGE_IMPORT_FAST_PARAMETER
    if not parameter:
        return url

    name, value = parameter
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True)]
    query = [(k, v) for k, v in query if k != name] + [(name, value)]
    return urlunsplit(parts._replace(query=urlencode(query)))


def request_headers():
    return {"User-Agent": settings.IMAGE_IMPORT_USER_AGENT}


def detect_extension(url: str) -> str:
    """
    Ask the origin for the content type of ``url`` and map it to an extension

    Anything other than a 200 response with a known image type falls back to
    ``jpg``.
    """
    try:
        resp = requests.head(
            url,
            timeout=settings.IMAGE_IMPORT_PROBE_TIMEOUT,
            headers=request_headers(),
            allow_redirects=True,
        )
    except requests.RequestException:
        logger.warning("Unable to detect the content type of %s", url, exc_info=True)
        return DEFAULT_EXTENSION

    if resp.status_code != 200:
        return DEFAULT_EXTENSION

    content_type = resp.headers.get("Content-Type", "")
    content_type = content_type.split(";", 1)[0].strip().lower()
    return MIME_TYPE_EXTENSIONS.get(content_type, DEFAULT_EXTENSION)


def download_to_file(url: str, temp_file) -> Optional[str]:
    """
    Stream ``url`` into ``temp_file`` and return the response's content type

    Raises:
        FetchFailed: On network errors, timeouts, non-2xx responses or an
            empty response body.
    """
    try:
        resp = requests.get(
            url,
            stream=True,
            timeout=settings.IMAGE_IMPORT_FETCH_TIMEOUT,
            headers=request_headers(),
        )
        resp.raise_for_status()

        size = 0
        for chunk in resp.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
            if chunk:
                temp_file.write(chunk)
                size += len(chunk)
    except requests.RequestException as exc:
        raise FetchFailed(f"Unable to download {url}: {exc}") from exc

    if not size:
        raise FetchFailed(f"Downloading {url} returned an empty response")

    content_type = resp.headers.get("Content-Type")
    if isinstance(content_type, str):
        return content_type.split(";", 1)[0].strip().lower()
    return None


def derive_filename(origin_url: str, source_url: str) -> str:
    """
    Build a safe local filename from the path of ``origin_url``

    When the path has no extension the origin is asked for the content type
    of ``source_url``.
    """
    basename = unquote(os.path.basename(urlsplit(origin_url).path))
    try:
        filename = get_valid_filename(basename)
    except SuspiciousFileOperation:
        filename = DEFAULT_FILENAME

    stem, extension = os.path.splitext(filename)
    if not stem:
        stem, extension = DEFAULT_FILENAME, extension

    if not extension.lstrip("."):
        extension = "." + detect_extension(source_url)

    return f"{stem}{extension}"


def guess_mime_type(filename: str, content_type: Optional[str] = None) -> str:
    if content_type and content_type.startswith("image/"):
        return content_type

    extension = os.path.splitext(filename)[1].lstrip(".").lower()
    if extension in EXTENSION_MIME_TYPES:
        return EXTENSION_MIME_TYPES[extension]

    return mimetypes.guess_type(filename)[0] or "image/jpeg"


class AssetResolver:
    """
    Turns an image reference into a locally stored media asset

    Each remote image is stored at most once: the normalised origin URL is
    saved on the asset and checked before anything is downloaded.
    """

    def __init__(self, media=None):
        self.media = media or MediaStore()

    def resolve(self, reference: ImageReference, owner_id=None) -> ImportedAsset:
        """
        Return the local asset for ``reference``, importing it if necessary

        Raises:
            MalformedReference: The source is not an absolute http(s) URL.
            FetchFailed: The image could not be downloaded.
            StoreFailed: The download could not be saved as an asset.
        """
        origin_url = normalize_url(reference.source_url)

        existing = self.media.find_by_attribute(ORIGINAL_URL_ATTRIBUTE, origin_url)
        if existing is not None:
            logger.debug("Reusing asset %s for %s", existing.pk, origin_url)
            return self._imported(existing, origin_url, reference.alt_text)

        filename = derive_filename(origin_url, reference.source_url)
        download_url = add_fast_parameter(reference.source_url)

        # We'll download the remote file to a temporary file and only create
        # the asset once that completes successfully. The temporary file is
        # removed when the block exits, whatever happens.
        with NamedTemporaryFile(mode="w+b") as temp_file:
            content_type = download_to_file(download_url, temp_file)
            mime_type = guess_mime_type(filename, content_type)

            try:
                asset = self.media.store_from_temp(
                    temp_file,
                    filename,
                    mime_type=mime_type,
                    owner_id=owner_id,
                    title=reference.alt_text or os.path.splitext(filename)[0],
                    alt_text=reference.alt_text,
                )
                self.media.set_attribute(asset, ORIGINAL_URL_ATTRIBUTE, origin_url)
            except Exception as exc:
                logger.exception("Unable to store %s as %s", origin_url, filename)
                raise StoreFailed(
                    f"Unable to store {origin_url} as {filename}: {exc}"
                ) from exc

        structured_logger.info(
            "Imported remote image.",
            event_code="image_import_stored",
            asset=asset,
            origin_url=origin_url,
        )
        return self._imported(asset, origin_url, reference.alt_text)

    def _imported(self, asset, origin_url, alt_text):
        return ImportedAsset(
            local_id=asset.pk,
            local_url=self.media.asset_url(asset),
            origin_url=origin_url,
            alt_text=alt_text or asset.alt_text,
        )
