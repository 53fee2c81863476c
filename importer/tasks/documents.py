from logging import getLogger

from importer.exceptions import DocumentNotFound
from importer.rewriter import process_document
from importer.stores import ImportRunStore, TaskScheduler
from importer.triggers import DOCUMENT_TASK_NAME
from publisher.celery import app
from publisher.logging import PublisherLogger

logger = getLogger(__name__)
structured_logger = PublisherLogger.get_logger(__name__)


@app.task(bind=True, ignore_result=True)
def process_document_images_task(self, document_id):
    # Saves made from now on may queue another import of this document
    TaskScheduler().clear(DOCUMENT_TASK_NAME, args=(document_id,))

    try:
        document = process_document(document_id)
    except DocumentNotFound as exc:
        structured_logger.warning(
            "Queued image import for a document which no longer exists.",
            event_code="image_import_document_missing",
            reason=str(exc),
            reason_code="document_not_found",
            document_id=document_id,
        )
        return False

    if document is None:
        return False

    ImportRunStore().record_update(document.pk, document.title)
    return True
