from datetime import timedelta

from django.test import TestCase
from django.utils import timezone

from importer.models import ImportRun


class ImportRunTests(TestCase):
    def test_str(self):
        run = ImportRun.objects.create()
        self.assertEqual(str(run), f"Image import {run.pk} (Running)")

    def test_current(self):
        self.assertIsNone(ImportRun.objects.current())

        now = timezone.now()
        ImportRun.objects.create(created=now - timedelta(hours=1))
        newest = ImportRun.objects.create(created=now)
        self.assertEqual(ImportRun.objects.current(), newest)

    def test_mark_processed(self):
        run = ImportRun()
        run.mark_processed([3, 2])
        run.mark_processed([2, 1])
        self.assertEqual(run.processed_ids, [3, 2, 1])
        self.assertEqual(run.processed_count, 3)

    def test_record_update(self):
        run = ImportRun()
        when = timezone.now()
        run.record_update(4, "Koalas", when=when)
        self.assertEqual(
            run.updated_entries,
            [{"document_id": 4, "title": "Koalas", "time": when.isoformat()}],
        )
        self.assertEqual(run.updated_count, 1)

    def test_mark_completed(self):
        run = ImportRun.objects.create()
        self.assertTrue(run.is_running)

        run.mark_completed()
        run.save()

        run.refresh_from_db()
        self.assertFalse(run.is_running)
        self.assertIsNotNone(run.completed)
