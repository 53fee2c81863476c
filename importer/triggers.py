import enum
from functools import partial
from logging import getLogger

from django.db import transaction

from importer.config import PROCESSING_MODE_IMMEDIATE, ImportConfig
from importer.rewriter import ContentRewriter, process_document
from importer.stores import ImportRunStore, TaskScheduler, is_document_locked
from publisher.logging import PublisherLogger
from publisher.models import DocumentStatus

logger = getLogger(__name__)
structured_logger = PublisherLogger.get_logger(__name__)

DOCUMENT_TASK_NAME = "importer.tasks.documents.process_document_images_task"


class Decision(enum.Enum):
    SKIP = "skip"
    IMMEDIATE = "immediate"
    DEFERRED = "deferred"


def should_process(document, config: ImportConfig) -> Decision:
    """
    Decide what a save of ``document`` should do about its remote images
    """
    if not config.auto_import_enabled:
        return Decision.SKIP
    if document.post_type not in config.eligible_post_types:
        return Decision.SKIP
    if document.status != DocumentStatus.PUBLISH:
        return Decision.SKIP

    if config.processing_mode == PROCESSING_MODE_IMMEDIATE:
        return Decision.IMMEDIATE
    return Decision.DEFERRED


def handle_document_saved(document, config=None, scheduler=None, runs=None):
    """
    Import or queue the import of a saved document's remote images

    Returns the decision which was taken.
    """
    config = config or ImportConfig.load()

    if is_document_locked(document.pk):
        # The save came from the importer itself, or raced with it
        return Decision.SKIP

    decision = should_process(document, config)

    if decision is Decision.IMMEDIATE:
        updated = process_document(document.pk, rewriter=ContentRewriter(config))
        if updated is not None:
            (runs or ImportRunStore()).record_update(updated.pk, updated.title)
            # Keep the caller's instance consistent with what was stored
            document.body = updated.body
    elif decision is Decision.DEFERRED:
        # A worker must be able to read the document when the task starts
        transaction.on_commit(
            partial(queue_document_import, document, scheduler or TaskScheduler())
        )

    return decision


def queue_document_import(document, scheduler):
    if scheduler.schedule_once(DOCUMENT_TASK_NAME, args=(document.pk,)):
        document.logger.info(
            "Queued remote image import.",
            event_code="image_import_queued",
        )
