from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from configuration.models import Configuration


class TestConfigurationAdmin(TestCase):
    def setUp(self):
        self.superuser = get_user_model().objects.create_superuser(
            username="admin",
            email="admin@example.com",
            password="adminpass",  # nosec
        )
        self.client.force_login(self.superuser)

        self.config = Configuration.objects.create(
            key="test-key",
            value="Initial value",
            data_type=Configuration.DataType.TEXT,
            description="Initial description",
        )
        self.url = reverse(
            "admin:configuration_configuration_change", args=[self.config.pk]
        )

    def test_change_view_initial_get(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "test-key")
        self.assertContains(response, "Initial value")

    def test_change_view_shows_interpreted_value(self):
        self.config.data_type = Configuration.DataType.NUMBER
        self.config.value = "12"
        self.config.save()

        response = self.client.get(self.url)
        self.assertContains(response, "This is the interpreted value")
        self.assertContains(response, "<div>12</div>", html=False)

    def test_invalid_json_is_reported(self):
        self.config.data_type = Configuration.DataType.JSON
        self.config.value = "not json"
        self.config.save()

        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "Invalid value:")

    def test_save_updates_object(self):
        response = self.client.post(
            self.url,
            {
                "key": self.config.key,
                "value": "true",
                "data_type": Configuration.DataType.BOOLEAN,
                "description": "Updated description",
            },
        )
        self.assertRedirects(
            response, reverse("admin:configuration_configuration_changelist")
        )
        self.config.refresh_from_db()
        self.assertEqual(self.config.description, "Updated description")
        self.assertIs(self.config.get_value(), True)

    def test_changelist_search(self):
        response = self.client.get(
            reverse("admin:configuration_configuration_changelist"), {"q": "test"}
        )
        self.assertContains(response, "test-key")
