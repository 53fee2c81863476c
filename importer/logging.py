import logging

from celery import current_task


class CeleryTaskIDFilter(logging.Filter):
    """
    Adds a ``task_id`` attribute to every record so the ``celery`` formatter
    can show which task wrote it. Records written outside a task get an empty
    string.
    """

    def filter(self, record):
        task = current_task
        if task and task.request.id:
            record.task_id = f"/[{task.request.id}]"
        else:
            record.task_id = ""
        # Never discard the record
        return True
