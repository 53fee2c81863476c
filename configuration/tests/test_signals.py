from django.core.cache import caches
from django.test import TestCase

from configuration.models import Configuration
from configuration.utils import configuration_value
from importer.config import PROCESSING_MODE_IMMEDIATE, ImportConfig


class TestConfigurationSignal(TestCase):
    def setUp(self):
        self.config_cache = caches["configuration_cache"]
        self.config_cache.clear()

    def update(self, key, value):
        config = Configuration.objects.get(key=key)
        config.value = value
        config.save()

    def test_saving_refreshes_cached_value(self):
        self.update("image_auto_import", "true")
        self.assertIs(self.config_cache.get("config_image_auto_import"), True)

        self.update("image_auto_import", "false")

        self.assertIs(configuration_value("image_auto_import"), False)
        self.assertFalse(ImportConfig.load().auto_import_enabled)

    def test_saved_values_reach_the_importer(self):
        self.update("image_processing_mode", PROCESSING_MODE_IMMEDIATE)
        self.update("image_import_post_types", '["post", "recipe"]')

        config = ImportConfig.load()

        self.assertEqual(config.processing_mode, PROCESSING_MODE_IMMEDIATE)
        self.assertEqual(config.eligible_post_types, ("post", "recipe"))

    def test_invalid_value_is_not_cached(self):
        self.update("image_import_post_types", "[post")
        self.assertIsNone(self.config_cache.get("config_image_import_post_types"))

    def test_new_key_is_cached(self):
        Configuration.objects.create(
            key="signal-key",
            value="42",
            data_type=Configuration.DataType.NUMBER,
        )
        self.assertEqual(self.config_cache.get("config_signal-key"), 42)
