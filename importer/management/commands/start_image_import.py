"""
Start a bulk image import, or report on the current one.

Usage:
    python manage.py start_image_import
    python manage.py start_image_import --status
    python manage.py start_image_import --cancel

The import itself runs in Celery workers; this command only takes the run
lock and queues the first tick.
"""

from argparse import ArgumentParser

from django.core.management.base import BaseCommand, CommandError

from importer.coordinator import BatchCoordinator
from importer.exceptions import AlreadyRunning


class Command(BaseCommand):
    help = "Start a bulk import of remote images into local storage"  # NOQA: A003

    def add_arguments(self, parser: ArgumentParser) -> None:
        group = parser.add_mutually_exclusive_group()
        group.add_argument(
            "--status",
            action="store_true",
            help="Report on the current import instead of starting one",
        )
        group.add_argument(
            "--cancel",
            action="store_true",
            help="Stop the running import before its next slice",
        )

    def handle(self, *, status: bool, cancel: bool, **options) -> None:
        coordinator = BatchCoordinator()

        if status:
            self.report(coordinator)
            return

        if cancel:
            run = coordinator.cancel()
            if run is None:
                self.stdout.write("No image import has been run")
            else:
                self.stdout.write(f"Image import {run.pk} will stop")
            return

        try:
            run = coordinator.start()
        except AlreadyRunning as exc:
            raise CommandError(str(exc)) from exc

        self.stdout.write(self.style.SUCCESS(f"Started image import {run.pk}"))

    def report(self, coordinator: BatchCoordinator) -> None:
        current = coordinator.status()
        run = current.run
        if run is None:
            self.stdout.write("No image import has been run")
            return

        self.stdout.write(f"Image import {run.pk}: {run.get_status_display()}")
        self.stdout.write(f"Started: {run.created.isoformat()}")
        if run.last_run:
            self.stdout.write(f"Last slice: {run.last_run.isoformat()}")
        if run.completed:
            self.stdout.write(f"Completed: {run.completed.isoformat()}")
        self.stdout.write(f"Documents visited: {run.processed_count}")
        self.stdout.write(f"Documents updated: {run.updated_count}")
        if run.is_running and not current.lock_held:
            self.stdout.write(self.style.WARNING("The run lock is not held"))
