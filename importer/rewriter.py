from dataclasses import dataclass, field
from logging import getLogger
from typing import Optional

from django.utils.html import escape

from importer.config import ImportConfig
from importer.exceptions import ImageImportFailure
from importer.resolver import AssetResolver, ImportedAsset
from importer.scanner import scan
from importer.stores import DocumentStore, MediaStore, document_lock
from publisher.logging import PublisherLogger

logger = getLogger(__name__)
structured_logger = PublisherLogger.get_logger(__name__)


@dataclass(frozen=True)
class RewriteResult:
    body: str
    first_asset: Optional[ImportedAsset] = None
    imported: tuple = field(default_factory=tuple)
    failed: int = 0


class ContentRewriter:
    """
    Rewrites the in-scope image references of a body to local copies

    References which cannot be imported are logged and left exactly as they
    were so that a later run can try again.
    """

    def __init__(self, config: ImportConfig, resolver=None, media=None):
        self.config = config
        self.media = media or MediaStore()
        self.resolver = resolver or AssetResolver(media=self.media)

    def rewrite(self, body: str, document_id=None) -> RewriteResult:
        references = scan(body, self.config.origin_prefix)
        if not references:
            return RewriteResult(body=body)

        first_asset = None
        imported = []
        failed = 0
        seen_tags = set()

        for reference in references:
            if reference.raw_tag in seen_tags:
                continue
            seen_tags.add(reference.raw_tag)

            try:
                asset = self.resolver.resolve(reference, owner_id=document_id)
            except ImageImportFailure as exc:
                failed += 1
                structured_logger.warning(
                    "Remote image could not be imported.",
                    event_code="image_import_failed",
                    reason=str(exc),
                    reason_code=exc.reason,
                    document_id=document_id,
                    source_url=reference.source_url,
                )
                continue

            # Every identical tag is replaced, so repeated images in one body
            # are only resolved once
            new_tag = reference.with_source(escape(asset.local_url))
            body = body.replace(reference.raw_tag, new_tag)

            imported.append(asset)
            if first_asset is None:
                first_asset = asset

        if (
            first_asset is not None
            and document_id is not None
            and self.config.first_image_as_featured
            and not self.media.has_primary_asset(document_id)
        ):
            self.media.set_primary_asset(document_id, first_asset.local_id)
            logger.info(
                "Asset %s is now the primary asset of document %s",
                first_asset.local_id,
                document_id,
            )

        return RewriteResult(
            body=body,
            first_asset=first_asset,
            imported=tuple(imported),
            failed=failed,
        )


def process_document(document_id, *, rewriter=None, documents=None):
    """
    Import the remote images of one document and store the rewritten body.

    The document is marked as in progress while this runs so that saves made
    in the meantime do not start a second import of it.

    Args:
        document_id: Primary key of the document to process.
        rewriter (ContentRewriter): Uses the current configuration if omitted.
        documents (DocumentStore): Uses the ORM-backed store if omitted.

    Returns:
        The document, with its new body, when the body was rewritten. None
        when nothing changed or another process is working on the document.

    Raises:
        DocumentNotFound: If the document does not exist.
    """
    documents = documents or DocumentStore()
    rewriter = rewriter or ContentRewriter(ImportConfig.load())

    with document_lock(document_id) as acquired:
        if not acquired:
            logger.info("Document %s is already being processed", document_id)
            return None

        document = documents.get(document_id)
        result = rewriter.rewrite(document.body, document.pk)
        if result.body == document.body:
            return None

        documents.update_body(document.pk, result.body)
        document.body = result.body

        structured_logger.info(
            "Document body rewritten to local images.",
            event_code="image_import_document_rewritten",
            document=document,
            imported=len(result.imported),
            failed=result.failed,
        )
        return document
