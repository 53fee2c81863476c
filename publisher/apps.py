from django.apps.config import AppConfig


class PublisherAppConfig(AppConfig):
    name = "publisher"
    verbose_name = "Publisher"
