from datetime import timedelta
from unittest import mock

from django.test import TestCase
from django.utils import timezone

from importer.models import ImportRun
from importer.stores import RunLock
from publisher.models import Document

from .utils import (
    KOALA_IMAGE_URL,
    CreateTestUsers,
    JSONAssertMixin,
    clear_caches,
    create_document,
    koala_image,
    mock_image_response,
)


class ImageImportAPITestCase(JSONAssertMixin, CreateTestUsers, TestCase):
    def setUp(self):
        clear_caches()
        self.staff = self.create_staff_user()
        self.client.force_login(self.staff)

        now = timezone.now()
        self.older = create_document(
            title="Older",
            body=f"<p>{koala_image()}</p>",
            published_on=now - timedelta(days=2),
        )
        self.newer = create_document(
            title="Newer", published_on=now - timedelta(days=1)
        )
        create_document(title="Product", post_type="product")


class AuthenticationTests(ImageImportAPITestCase):
    def test_anonymous_rejected(self):
        self.client.logout()
        response = self.client.get("/api/image-import/post-ids")
        self.assertEqual(response.status_code, 401)

    def test_non_staff_rejected(self):
        self.client.force_login(self.create_test_user())
        for method, path in (
            ("get", "/api/image-import/status"),
            ("post", "/api/image-import/start"),
            ("post", "/api/image-import/cancel"),
        ):
            with self.subTest(path=path):
                response = getattr(self.client, method)(path)
                self.assertEqual(response.status_code, 401)
        self.assertFalse(ImportRun.objects.exists())


class PostIdsTests(ImageImportAPITestCase):
    def test_post_ids(self):
        data = self.assertValidJSON(self.client.get("/api/image-import/post-ids"))
        self.assertEqual(data, {"postIds": [self.newer.pk, self.older.pk]})


@mock.patch("importer.resolver.requests.get")
class BatchTests(ImageImportAPITestCase):
    def test_batch(self, mock_get):
        mock_get.return_value = mock_image_response()

        response = self.client.post(
            "/api/image-import/batch",
            data={"postIds": [self.older.pk, self.newer.pk, 999]},
            content_type="application/json",
        )
        data = self.assertValidJSON(response)

        self.assertEqual(
            data["results"],
            [
                {"postId": self.older.pk, "updated": True},
                {"postId": self.newer.pk, "updated": False},
                {"postId": 999, "updated": False},
            ],
        )
        self.assertEqual(data["updatedCount"], 1)
        self.assertEqual(data["batchSize"], 3)

        self.older.refresh_from_db()
        self.assertNotIn(KOALA_IMAGE_URL, self.older.body)
        mock_get.assert_called_once()

    def test_invalid_payload(self, mock_get):
        response = self.client.post(
            "/api/image-import/batch",
            data={"postIds": "all"},
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 422)
        mock_get.assert_not_called()


@mock.patch("importer.resolver.requests.get")
class BulkImportTests(ImageImportAPITestCase):
    def test_start_runs_to_completion(self, mock_get):
        mock_get.return_value = mock_image_response()

        response = self.client.post("/api/image-import/start")
        data = self.assertValidJSON(response, expected_status=202)

        # Celery runs eagerly in tests, so every tick has already happened
        self.assertEqual(data["status"], ImportRun.Status.COMPLETED)
        self.assertEqual(data["processedCount"], 2)
        self.assertEqual(data["updatedCount"], 1)
        self.assertEqual(data["updatedEntries"][0]["documentId"], self.older.pk)
        self.assertFalse(RunLock().is_held())

        self.assertNotIn(
            KOALA_IMAGE_URL, Document.objects.get(pk=self.older.pk).body
        )

    def test_start_while_running(self, mock_get):
        run = ImportRun.objects.create()
        RunLock().acquire()

        response = self.client.post("/api/image-import/start")
        data = self.assertValidJSON(response, expected_status=409)

        self.assertEqual(data["detail"], "An image import is already running")
        self.assertEqual(data["run"]["id"], run.pk)
        self.assertEqual(ImportRun.objects.count(), 1)
        run.refresh_from_db()
        self.assertEqual(run.processed_ids, [])
        mock_get.assert_not_called()

    def test_status(self, mock_get):
        data = self.assertValidJSON(self.client.get("/api/image-import/status"))
        self.assertEqual(data, {"running": False, "lockHeld": False, "run": None})

        run = ImportRun.objects.create(processed_ids=[self.newer.pk])
        RunLock().acquire()

        data = self.assertValidJSON(self.client.get("/api/image-import/status"))
        self.assertTrue(data["running"])
        self.assertTrue(data["lockHeld"])
        self.assertEqual(data["run"]["id"], run.pk)
        self.assertEqual(data["run"]["processedCount"], 1)
        self.assertIsNone(data["run"]["completed"])

    def test_cancel(self, mock_get):
        run = ImportRun.objects.create()
        RunLock().acquire()

        data = self.assertValidJSON(self.client.post("/api/image-import/cancel"))

        self.assertFalse(data["running"])
        self.assertFalse(data["lockHeld"])
        self.assertEqual(data["run"]["status"], ImportRun.Status.RUNNING)
        self.assertEqual(data["run"]["id"], run.pk)
        self.assertFalse(RunLock().is_held())
