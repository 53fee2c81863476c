from logging import getLogger

from importer.coordinator import BatchCoordinator
from importer.exceptions import AlreadyRunning
from publisher.celery import app

logger = getLogger(__name__)


@app.task(bind=True, ignore_result=True)
def process_image_import_task(self, run_id):
    """
    Process one slice of bulk import ``run_id`` and queue the next tick
    """
    run = BatchCoordinator().tick(run_id)
    if run is not None:
        logger.info(
            "Image import tick %s finished for run %s (%s)",
            self.request.id,
            run.pk,
            run.status,
        )
    return run.pk if run else None


@app.task(bind=True)
def start_image_import_task(self):
    """
    Start a bulk import from a worker

    Returns the id of the new run, or None if a run was already in progress.
    """
    try:
        run = BatchCoordinator().start()
    except AlreadyRunning:
        logger.warning(
            "Image import requested by task %s is already running", self.request.id
        )
        return None
    return run.pk
