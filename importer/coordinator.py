from dataclasses import dataclass
from logging import getLogger
from typing import Optional

from django.conf import settings
from django.db import DatabaseError

from importer.config import ImportConfig
from importer.exceptions import AlreadyRunning, DocumentNotFound
from importer.models import ImportRun
from importer.rewriter import ContentRewriter, process_document
from importer.stores import DocumentStore, ImportRunStore, RunLock, TaskScheduler
from publisher.logging import PublisherLogger

logger = getLogger(__name__)
structured_logger = PublisherLogger.get_logger(__name__)

TICK_TASK_NAME = "importer.tasks.batch.process_image_import_task"


@dataclass(frozen=True)
class ImportStatus:
    run: Optional[ImportRun]
    lock_held: bool

    @property
    def is_running(self):
        return bool(self.run and self.run.is_running and self.lock_held)


class BatchCoordinator:
    """
    Drives a bulk image import across every eligible document

    A run is processed in ticks. Each tick handles one slice of at most
    ``batch_size`` unvisited documents, newest first, saves its progress on
    the ``ImportRun`` and queues the next tick while work remains. A run over
    K documents completes after ceil(K / batch_size) ticks.

    Clearing the run lock cancels the run: the next tick finds the lock
    missing and does nothing.
    """

    def __init__(
        self,
        documents=None,
        runs=None,
        lock=None,
        scheduler=None,
        rewriter_factory=None,
        config=None,
        batch_size=None,
        tick_delay=None,
    ):
        self.documents = documents or DocumentStore()
        self.runs = runs or ImportRunStore()
        self.lock = lock or RunLock()
        self.scheduler = scheduler or TaskScheduler()
        self.rewriter_factory = rewriter_factory or ContentRewriter
        self.config = config or ImportConfig.load()
        self.batch_size = batch_size or settings.IMAGE_IMPORT_BATCH_SIZE
        if tick_delay is None:
            tick_delay = settings.IMAGE_IMPORT_TICK_DELAY
        self.tick_delay = tick_delay

    def start(self) -> ImportRun:
        """
        Begin a new bulk import and queue its first tick

        Returns the new run without processing any document.

        Raises:
            AlreadyRunning: If another bulk import holds the run lock. The
                existing run is left untouched.
        """
        if not self.lock.acquire():
            raise AlreadyRunning(run=self.runs.current())

        try:
            run = self.runs.create()
            self.lock.hand_over(run.pk)
            self.scheduler.schedule(TICK_TASK_NAME, delay=0, args=(run.pk,))
        except Exception:
            self.lock.release()
            raise

        run.logger.info("Bulk image import started.", event_code="image_import_started")
        return run

    def status(self) -> ImportStatus:
        return ImportStatus(run=self.runs.current(), lock_held=self.lock.is_held())

    def cancel(self) -> Optional[ImportRun]:
        """
        Stop the current run before its next tick

        The run keeps the ``running`` status so that it is clear it did not
        finish.
        """
        self.lock.release()
        return self.runs.current()

    def tick(self, run_id) -> Optional[ImportRun]:
        """
        Process the next slice of run ``run_id``

        Ticks left over from an earlier run do nothing: the run must be the
        current one and must still own the run lock.
        """
        run = self.runs.current()
        if run is None or not run.is_running:
            logger.debug("No running image import; nothing to do")
            return run

        if run.pk != run_id:
            logger.info(
                "Ignoring tick for image import %s; %s is the current run",
                run_id,
                run.pk,
            )
            return None

        if not self.lock.is_held_by(run.pk):
            run.logger.info(
                "Bulk image import lock is gone; not processing further.",
                event_code="image_import_cancelled",
            )
            return run

        try:
            document_ids = self._next_slice(run.processed_ids, self.batch_size)
        except DatabaseError as exc:
            run.logger.error(
                "Unable to select documents for the bulk image import.",
                event_code="image_import_tick_failed",
                reason=str(exc),
                reason_code="query_failed",
            )
            return run

        if not document_ids:
            self._complete(run)
            return run

        rewriter = self.rewriter_factory(self.config)
        visited = []
        updates = []

        for document_id in document_ids:
            try:
                document = process_document(
                    document_id, rewriter=rewriter, documents=self.documents
                )
            except DocumentNotFound:
                # Deleted since the slice was selected
                logger.info("Document %s disappeared during the run", document_id)
                visited.append(document_id)
                continue
            except Exception as exc:
                run.logger.exception(
                    "Bulk image import stopped on a failing document.",
                    event_code="image_import_tick_failed",
                    reason=str(exc),
                    reason_code="document_failed",
                    document_id=document_id,
                )
                self._save_progress(run, visited, updates)
                return run

            visited.append(document_id)
            if document is not None:
                updates.append((document.pk, document.title))

        self._save_progress(run, visited, updates)
        self.lock.refresh()

        try:
            remaining = self._next_slice(run.processed_ids, 1)
        except DatabaseError as exc:
            run.logger.error(
                "Unable to check for remaining documents.",
                event_code="image_import_tick_failed",
                reason=str(exc),
                reason_code="query_failed",
            )
            return run

        if remaining:
            self.scheduler.schedule(
                TICK_TASK_NAME, delay=self.tick_delay, args=(run.pk,)
            )
        else:
            self._complete(run)

        return run

    def _next_slice(self, processed_ids, limit):
        return self.documents.query_ids(
            post_types=self.config.eligible_post_types,
            exclude_ids=processed_ids,
            limit=limit,
        )

    def _save_progress(self, run, visited, updates):
        self.runs.save_progress(run, visited, updates)
        logger.info(
            "Image import %s visited %d documents (%d total)",
            run.pk,
            len(visited),
            run.processed_count,
        )

    def _complete(self, run):
        self.runs.complete(run)
        self.lock.release()
        run.logger.info(
            "Bulk image import completed.",
            event_code="image_import_completed",
            processed=run.processed_count,
            updated=run.updated_count,
        )
