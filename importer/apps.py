from django.apps import AppConfig


class ImporterConfig(AppConfig):
    name = "importer"
    verbose_name = "Image importer"

    def ready(self):
        from . import signals  # NOQA
