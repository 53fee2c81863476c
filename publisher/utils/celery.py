from celery import Task

from publisher.celery import app as publisher_celery_app


def get_registered_task(name: str) -> Task:
    """
    Retrieve a Celery task by its fully qualified name.

    This looks the task up in the Celery app task registry so callers can
    enqueue a task without importing it directly, which avoids circular
    imports. Unlike `app.send_task`, the returned task honours settings such
    as `CELERY_TASK_ALWAYS_EAGER`.

    Args:
        name (str): Fully qualified task name, for example
            "importer.tasks.batch.process_image_import_task".

    Returns:
        Task: The registered Celery task object.

    Raises:
        RuntimeError: If the task name is not found in the registry.
    """
    try:
        return publisher_celery_app.tasks[name]
    except KeyError as err:
        raise RuntimeError(f"Task {name} is not registered. Did you typo it?") from err
