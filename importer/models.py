"""
See the package docstring for implementation details
"""

from logging import getLogger

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils import timezone
from django.utils.functional import cached_property

from publisher.logging import PublisherLogger

logger = getLogger(__name__)
structured_logger = PublisherLogger.get_logger(__name__)


class ImportRunQuerySet(models.QuerySet):
    def current(self):
        return self.order_by("-created", "-pk").first()


class ImportRun(models.Model):
    """
    Progress of one bulk image import

    A new record is created every time a bulk import is started; the newest
    one is the current run. ``processed_ids`` holds every document id which a
    tick has visited so that an interrupted run resumes where it stopped.
    """

    class Status(models.TextChoices):
        RUNNING = "running", "Running"
        COMPLETED = "completed", "Completed"

    objects = ImportRunQuerySet.as_manager()

    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.RUNNING,
        db_index=True,
    )
    processed_ids = models.JSONField(
        help_text="Ids of the documents visited so far",
        encoder=DjangoJSONEncoder,
        default=list,
        blank=True,
    )
    updated_entries = models.JSONField(
        help_text="Documents whose body was rewritten, with the time it happened",
        encoder=DjangoJSONEncoder,
        default=list,
        blank=True,
    )

    created = models.DateTimeField(default=timezone.now, db_index=True)
    last_run = models.DateTimeField(
        help_text="Last time a tick finished processing a slice",
        null=True,
        blank=True,
    )
    completed = models.DateTimeField(
        help_text="Time when no unprocessed documents were left",
        null=True,
        blank=True,
    )

    class Meta:
        get_latest_by = "created"

    def __str__(self):
        return f"Image import {self.pk} ({self.get_status_display()})"

    @cached_property
    def logger(self):
        return structured_logger.bind(run=self)

    @property
    def processed_count(self):
        return len(self.processed_ids)

    @property
    def updated_count(self):
        return len(self.updated_entries)

    @property
    def is_running(self):
        return self.status == self.Status.RUNNING

    def mark_processed(self, document_ids):
        seen = set(self.processed_ids)
        for document_id in document_ids:
            if document_id not in seen:
                seen.add(document_id)
                self.processed_ids.append(document_id)

    def record_update(self, document_id, title, when=None):
        self.updated_entries.append(
            {
                "document_id": document_id,
                "title": title,
                "time": (when or timezone.now()).isoformat(),
            }
        )

    def mark_completed(self, when=None):
        self.status = self.Status.COMPLETED
        self.completed = when or timezone.now()
