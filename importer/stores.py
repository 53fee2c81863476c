"""
Adapters between the import pipeline and the rest of the site

The pipeline components never touch the ORM, the cache or Celery directly.
They are handed one of these objects instead, which keeps them easy to test
with fakes and keeps the persistence rules in one place.
"""

import time
from collections.abc import Generator
from contextlib import contextmanager
from logging import getLogger
from typing import Iterable, Optional
from urllib.parse import urljoin

from django.conf import settings
from django.core.cache import cache
from django.core.files import File
from django.db import transaction
from django.utils import timezone

from importer.exceptions import DocumentNotFound
from importer.models import ImportRun
from publisher.models import Document, MediaAsset
from publisher.utils.celery import get_registered_task

logger = getLogger(__name__)

ORDER_NEWEST_FIRST = "newest"
ORDER_OLDEST_FIRST = "oldest"

DOCUMENT_LOCK_DURATION = 60 * 10  # 10 minutes


class DocumentStore:
    def get(self, document_id) -> Document:
        try:
            return Document.objects.get(pk=document_id)
        except Document.DoesNotExist as exc:
            raise DocumentNotFound(f"Document {document_id} does not exist") from exc

    def create(self, **fields) -> Document:
        categories = fields.pop("categories", None)
        tags = fields.pop("tags", None)

        document = Document(**fields)
        document.full_clean()
        document.save()

        if categories:
            document.categories.set(categories)
        if tags:
            document.tags.set(tags)
        return document

    def update(self, document_id, **fields) -> int:
        """
        Write the given fields without sending ``post_save``

        Rewritten bodies are stored this way so that saving them does not
        trigger another import of the same document.
        """
        fields.setdefault("modified", timezone.now())
        return Document.objects.filter(pk=document_id).update(**fields)

    def update_body(self, document_id, body) -> int:
        return self.update(document_id, body=body)

    def query_ids(
        self,
        post_types: Iterable[str],
        status: Optional[str] = None,
        exclude_ids: Iterable[int] = (),
        limit: Optional[int] = None,
        order: str = ORDER_NEWEST_FIRST,
    ) -> list[int]:
        qs = Document.objects.of_post_types(post_types)
        if status is not None:
            qs = qs.filter(status=status)

        exclude_ids = list(exclude_ids)
        if exclude_ids:
            qs = qs.exclude(pk__in=exclude_ids)

        if order == ORDER_NEWEST_FIRST:
            qs = qs.newest_first()
        else:
            qs = qs.order_by("published_on", "pk")

        ids = qs.values_list("pk", flat=True)
        if limit is not None:
            ids = ids[:limit]
        return list(ids)

    def permalink(self, document) -> str:
        return urljoin(settings.SITE_URL, document.get_absolute_url())


class MediaStore:
    def get(self, asset_id) -> Optional[MediaAsset]:
        return MediaAsset.objects.filter(pk=asset_id).first()

    def find_by_attribute(self, key, value) -> Optional[MediaAsset]:
        return MediaAsset.objects.with_attribute(key, value).order_by("pk").first()

    def store_from_temp(
        self,
        temp_file,
        filename,
        *,
        mime_type="",
        owner_id=None,
        title="",
        alt_text="",
    ) -> MediaAsset:
        """
        Save an already downloaded file as a new media asset

        The storage backend may change ``filename`` to avoid overwriting an
        existing file, so callers must use the returned asset's URL.
        """
        temp_file.flush()
        temp_file.seek(0)

        asset = MediaAsset(
            title=title[:255],
            mime_type=mime_type,
            alt_text=alt_text[:1000],
            owner_id=owner_id,
        )
        asset.file.save(filename, File(temp_file, name=filename), save=True)
        return asset

    def asset_url(self, asset) -> str:
        return asset.url

    def set_attribute(self, asset, key, value):
        asset.set_attribute(key, value)

    def has_primary_asset(self, document_id) -> bool:
        return Document.objects.filter(
            pk=document_id, primary_asset__isnull=False
        ).exists()

    def set_primary_asset(self, document_id, asset_id) -> int:
        return Document.objects.filter(pk=document_id).update(
            primary_asset_id=asset_id, modified=timezone.now()
        )


class ImportRunStore:
    """
    Persistence for ``ImportRun`` records

    Ticks, single document imports and the REST batch endpoint all append to
    the same row from different processes. Every write re-reads the row with
    ``select_for_update`` and only saves the fields it changed, so entries
    added by one writer are never replaced by another writer's stale copy.
    """

    def current(self) -> Optional[ImportRun]:
        return ImportRun.objects.current()

    def create(self) -> ImportRun:
        return ImportRun.objects.create()

    def record_update(self, document_id, title) -> Optional[ImportRun]:
        """
        Append a rewritten document to the current run's history, if there
        is a run at all
        """
        with transaction.atomic():
            run = ImportRun.objects.select_for_update().current()
            if run is None:
                return None
            run.record_update(document_id, title)
            run.save(update_fields=["updated_entries"])
        return run

    def save_progress(self, run, document_ids, updates=()) -> ImportRun:
        """
        Add the documents a tick visited, and the ones it rewrote, to ``run``

        ``updates`` holds ``(document_id, title)`` pairs. ``run`` is refreshed
        with the merged values.
        """
        with transaction.atomic():
            locked = ImportRun.objects.select_for_update().get(pk=run.pk)
            locked.mark_processed(document_ids)
            for document_id, title in updates:
                locked.record_update(document_id, title)
            locked.last_run = timezone.now()
            locked.save(update_fields=["processed_ids", "updated_entries", "last_run"])
        self._copy_progress(locked, run)
        return run

    def complete(self, run) -> ImportRun:
        with transaction.atomic():
            locked = ImportRun.objects.select_for_update().get(pk=run.pk)
            locked.mark_completed()
            locked.save(update_fields=["status", "completed"])
        self._copy_progress(locked, run)
        return run

    @staticmethod
    def _copy_progress(source, target):
        for field in (
            "status",
            "processed_ids",
            "updated_entries",
            "last_run",
            "completed",
        ):
            setattr(target, field, getattr(source, field))


class RunLock:
    """
    Cache-based flag which is held for the whole lifetime of a bulk import

    The lock spans many ticks, each running in its own task, so unlike a
    context manager it is acquired and released explicitly. Its value is the
    id of the run which owns it; ticks queued for any other run do nothing.

    The lock expires ``IMAGE_IMPORT_LOCK_TIMEOUT`` seconds after the last
    ``refresh``, so only a run whose ticks have stopped can lose it.
    """

    cache_key = "image-import-run-lock"

    def __init__(self, timeout=None):
        self.timeout = timeout or settings.IMAGE_IMPORT_LOCK_TIMEOUT

    def acquire(self, owner="image-import") -> bool:
        # cache.add does nothing and returns False if the key already exists
        return cache.add(self.cache_key, owner, self.timeout)

    def hand_over(self, owner):
        cache.set(self.cache_key, owner, self.timeout)

    def owner(self):
        return cache.get(self.cache_key)

    def is_held(self) -> bool:
        return self.owner() is not None

    def is_held_by(self, owner) -> bool:
        return owner is not None and self.owner() == owner

    def refresh(self) -> bool:
        return cache.touch(self.cache_key, self.timeout)

    def release(self):
        cache.delete(self.cache_key)


@contextmanager
def document_lock(
    document_id, lock_duration: int = DOCUMENT_LOCK_DURATION
) -> Generator[bool, None, None]:
    """
    Mark a document as being processed for the duration of the block.

    Yields True if the marker was set by this call and False if another
    process already holds it. The marker is only removed by the holder, and
    only if it has not expired in the meantime.
    """
    lock_id = document_lock_key(document_id)
    status = False
    try:
        timeout_at = time.monotonic() + lock_duration
        status = cache.add(lock_id, "processing", lock_duration)
        yield status
    finally:
        if status and time.monotonic() < timeout_at:
            cache.delete(lock_id)


def document_lock_key(document_id) -> str:
    return f"image-import-document-{document_id}"


def is_document_locked(document_id) -> bool:
    return cache.get(document_lock_key(document_id)) is not None


class TaskScheduler:
    """
    Enqueues Celery tasks by name

    ``schedule_once`` leaves a marker in the cache so that the same task with
    the same arguments is not queued twice while one is still pending. The
    task is expected to call ``clear`` when it starts.
    """

    marker_prefix = "scheduled-task"

    def __init__(self, marker_timeout=None):
        self.marker_timeout = marker_timeout or settings.IMAGE_IMPORT_LOCK_TIMEOUT

    def _marker_key(self, task_name, args):
        return ":".join([self.marker_prefix, task_name, *(str(i) for i in args)])

    def schedule(self, task_name, delay=0, args=()):
        task = get_registered_task(task_name)
        return task.apply_async(args=list(args), countdown=delay)

    def schedule_once(self, task_name, delay=0, args=()) -> bool:
        key = self._marker_key(task_name, args)
        if not cache.add(key, True, delay + self.marker_timeout):
            logger.info("%s%r is already scheduled", task_name, tuple(args))
            return False

        try:
            self.schedule(task_name, delay=delay, args=args)
        except Exception:
            cache.delete(key)
            raise
        return True

    def is_scheduled(self, task_name, args=()) -> bool:
        return cache.get(self._marker_key(task_name, args)) is not None

    def clear(self, task_name, args=()):
        cache.delete(self._marker_key(task_name, args))
