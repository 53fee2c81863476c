from datetime import datetime
from typing import Optional

from django.http import HttpRequest
from ninja import NinjaAPI, Router

from importer.config import ImportConfig
from importer.coordinator import BatchCoordinator
from importer.exceptions import AlreadyRunning, DocumentNotFound
from importer.rewriter import ContentRewriter, process_document
from importer.stores import DocumentStore, ImportRunStore
from publisher.logging import PublisherLogger

from .schemas import CamelSchema

structured_logger = PublisherLogger.get_logger(__name__)

api = NinjaAPI(version=None, urls_namespace="api")


def staff_user(request: HttpRequest):
    """
    Authentication callback which only admits active staff users
    """
    user = getattr(request, "user", None)
    if user is not None and user.is_authenticated and user.is_active and user.is_staff:
        return user
    return None


class PostIdsOut(CamelSchema):
    post_ids: list[int]


class BatchIn(CamelSchema):
    post_ids: list[int]


class BatchResult(CamelSchema):
    post_id: int
    updated: bool


class BatchOut(CamelSchema):
    results: list[BatchResult]
    updated_count: int
    batch_size: int


class UpdatedEntryOut(CamelSchema):
    document_id: int
    title: str
    time: str


class RunOut(CamelSchema):
    id: int  # noqa: A003
    status: str
    created: datetime
    last_run: Optional[datetime]
    completed: Optional[datetime]
    processed_count: int
    updated_count: int
    updated_entries: list[UpdatedEntryOut]


class StatusOut(CamelSchema):
    running: bool
    lock_held: bool
    run: Optional[RunOut]


class ErrorOut(CamelSchema):
    detail: str
    run: Optional[RunOut] = None


def serialize_run(run) -> Optional[RunOut]:
    if run is None:
        return None
    return RunOut(
        id=run.pk,
        status=run.status,
        created=run.created,
        last_run=run.last_run,
        completed=run.completed,
        processed_count=run.processed_count,
        updated_count=run.updated_count,
        updated_entries=[
            UpdatedEntryOut(**entry) for entry in run.updated_entries[-50:]
        ],
    )


image_import = Router(tags=["image-import"], auth=staff_user)


@image_import.get("/post-ids", response=PostIdsOut, by_alias=True)
def post_ids(request: HttpRequest):
    """GET /image-import/post-ids – every document the importer would visit."""
    config = ImportConfig.load()
    ids = DocumentStore().query_ids(post_types=config.eligible_post_types)
    return PostIdsOut(post_ids=ids)


@image_import.post("/batch", response=BatchOut, by_alias=True)
def process_batch(request: HttpRequest, payload: BatchIn):
    """
    Import the remote images of the given documents right away.

    Used by the admin page which walks all documents in small batches from
    the browser. Unknown ids are reported as not updated.
    """
    config = ImportConfig.load()
    rewriter = ContentRewriter(config)
    documents = DocumentStore()
    runs = ImportRunStore()

    results = []
    for post_id in payload.post_ids:
        try:
            document = process_document(
                post_id, rewriter=rewriter, documents=documents
            )
        except DocumentNotFound:
            results.append(BatchResult(post_id=post_id, updated=False))
            continue

        if document is not None:
            runs.record_update(document.pk, document.title)
        results.append(BatchResult(post_id=post_id, updated=document is not None))

    updated_count = sum(1 for result in results if result.updated)
    structured_logger.info(
        "Processed image import batch.",
        event_code="image_import_batch_processed",
        user=request.user,
        batch_size=len(payload.post_ids),
        updated_count=updated_count,
    )
    return BatchOut(
        results=results,
        updated_count=updated_count,
        batch_size=len(payload.post_ids),
    )


@image_import.post("/start", response={202: RunOut, 409: ErrorOut}, by_alias=True)
def start(request: HttpRequest):
    """POST /image-import/start – begin a background bulk import."""
    try:
        run = BatchCoordinator().start()
    except AlreadyRunning as exc:
        structured_logger.warning(
            "Bulk image import start refused.",
            event_code="image_import_start_refused",
            reason=str(exc),
            reason_code="already_running",
            user=request.user,
        )
        return 409, ErrorOut(detail=str(exc), run=serialize_run(exc.run))

    # Reload: with eager Celery the first tick has already run
    run.refresh_from_db()
    structured_logger.info(
        "Bulk image import started from the API.",
        event_code="image_import_start_requested",
        user=request.user,
        run=run,
    )
    return 202, serialize_run(run)


@image_import.get("/status", response=StatusOut, by_alias=True)
def status(request: HttpRequest):
    """GET /image-import/status – summary of the current bulk import."""
    current = BatchCoordinator().status()
    return StatusOut(
        running=current.is_running,
        lock_held=current.lock_held,
        run=serialize_run(current.run),
    )


@image_import.post("/cancel", response=StatusOut, by_alias=True)
def cancel(request: HttpRequest):
    """POST /image-import/cancel – stop the current bulk import."""
    coordinator = BatchCoordinator()
    coordinator.cancel()
    current = coordinator.status()
    return StatusOut(
        running=current.is_running,
        lock_held=current.lock_held,
        run=serialize_run(current.run),
    )


api.add_router("/image-import", image_import)
