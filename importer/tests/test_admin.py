from unittest import mock

from django.contrib import messages
from django.test import TestCase
from django.urls import reverse

from importer.models import ImportRun
from importer.stores import RunLock
from publisher.tests.utils import (
    KOALA_IMAGE_URL,
    CreateTestUsers,
    clear_caches,
    create_document,
    create_media_asset,
    koala_image,
    mock_image_response,
)


class AdminTestCase(CreateTestUsers, TestCase):
    def setUp(self):
        clear_caches()
        self.client.force_login(self.create_super_user())

    def messages_of(self, response):
        return [str(i) for i in messages.get_messages(response.wsgi_request)]


class ImportRunAdminTests(AdminTestCase):
    def setUp(self):
        super().setUp()
        self.changelist = reverse("admin:importer_importrun_changelist")

    def test_changelist(self):
        ImportRun.objects.create(processed_ids=[1, 2, 3])
        ImportRun.objects.create(status=ImportRun.Status.COMPLETED)

        response = self.client.get(self.changelist)
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "Documents visited")

        response = self.client.get(self.changelist, {"completed": "null"})
        self.assertEqual(response.context["cl"].result_count, 2)

    def test_no_add_permission(self):
        response = self.client.get(reverse("admin:importer_importrun_add"))
        self.assertEqual(response.status_code, 403)

    def test_start_action(self):
        create_document()
        run = ImportRun.objects.create(status=ImportRun.Status.COMPLETED)

        response = self.client.post(
            self.changelist,
            {"action": "start_bulk_import", "_selected_action": [run.pk]},
            follow=True,
        )

        new_run = ImportRun.objects.current()
        self.assertNotEqual(new_run, run)
        self.assertIn(
            f"Started image import {new_run.pk}", self.messages_of(response)
        )

    def test_start_action_while_running(self):
        run = ImportRun.objects.create()
        RunLock().acquire()

        response = self.client.post(
            self.changelist,
            {"action": "start_bulk_import", "_selected_action": [run.pk]},
            follow=True,
        )

        self.assertEqual(ImportRun.objects.count(), 1)
        self.assertIn(
            "An image import is already running", self.messages_of(response)
        )

    def test_cancel_action(self):
        run = ImportRun.objects.create()
        RunLock().acquire()

        self.client.post(
            self.changelist,
            {"action": "cancel_bulk_import", "_selected_action": [run.pk]},
        )

        self.assertFalse(RunLock().is_held())


@mock.patch("importer.resolver.requests.get")
class PublisherAdminTests(AdminTestCase):
    def test_import_remote_images_action(self, mock_get):
        mock_get.return_value = mock_image_response()
        with_image = create_document(title="With image", body=koala_image())
        without_image = create_document(title="Without image")

        response = self.client.post(
            reverse("admin:publisher_document_changelist"),
            {
                "action": "import_remote_images",
                "_selected_action": [with_image.pk, without_image.pk],
            },
            follow=True,
        )

        self.assertIn("Rewrote 1 of 2 documents", self.messages_of(response))
        with_image.refresh_from_db()
        self.assertNotIn(KOALA_IMAGE_URL, with_image.body)

    def test_media_asset_changelist(self, mock_get):
        asset = create_media_asset(alt_text="Sleepy koala")

        response = self.client.get(reverse("admin:publisher_mediaasset_changelist"))

        self.assertContains(response, f'src="{asset.url}"')
        self.assertContains(response, 'alt="Sleepy koala"')

    def test_document_change_view(self, mock_get):
        document = create_document()
        response = self.client.get(
            reverse("admin:publisher_document_change", args=[document.pk])
        )
        self.assertContains(response, document.title)
