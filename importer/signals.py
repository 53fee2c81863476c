from logging import getLogger
from typing import Any

from django.db.models.signals import post_save
from django.dispatch import receiver

from importer.triggers import handle_document_saved
from publisher.models import Document

logger = getLogger(__name__)


@receiver(post_save, sender=Document)
def import_remote_images(
    sender: type[Document],
    *,
    instance: Document,
    raw: bool = False,
    **kwargs: Any,
) -> None:
    """
    Import the remote images of a document when it is saved.

    Fixture loading (``raw``) is ignored. Whether anything happens, and
    whether it happens inline or in a Celery task, is decided by
    ``importer.triggers.should_process``.
    """
    if raw:
        return

    decision = handle_document_saved(instance)
    logger.debug("Document %s saved; image import: %s", instance.pk, decision.value)
