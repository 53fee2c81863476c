import os
from logging import getLogger

from django.conf import settings
from django.db import models
from django.urls import reverse
from django.utils import timezone
from django.utils.functional import cached_property

from publisher.logging import PublisherLogger
from publisher.storage import ASSET_STORAGE

logger = getLogger(__name__)
structured_logger = PublisherLogger.get_logger(__name__)


class Category(models.Model):
    name = models.CharField(max_length=200, unique=True)
    slug = models.SlugField(max_length=200, unique=True, allow_unicode=True)
    description = models.TextField(blank=True)
    parent = models.ForeignKey(
        "self", null=True, blank=True, on_delete=models.SET_NULL, related_name="+"
    )

    class Meta:
        verbose_name_plural = "categories"
        ordering = ("name",)

    def __str__(self):
        return self.name


class Tag(models.Model):
    name = models.CharField(max_length=200, unique=True)
    slug = models.SlugField(max_length=200, unique=True, allow_unicode=True)
    description = models.TextField(blank=True)

    class Meta:
        ordering = ("name",)

    def __str__(self):
        return self.name


class DocumentStatus(models.TextChoices):
    PUBLISH = "publish", "Published"
    FUTURE = "future", "Scheduled"
    DRAFT = "draft", "Draft"
    PENDING = "pending", "Pending review"
    PRIVATE = "private", "Private"


class DocumentQuerySet(models.QuerySet):
    def published(self):
        return self.filter(status=DocumentStatus.PUBLISH)

    def of_post_types(self, post_types):
        return self.filter(post_type__in=list(post_types))

    def newest_first(self):
        return self.order_by("-published_on", "-pk")


class Document(models.Model):
    """
    A piece of authored content: a post, a page or any other registered
    post type
    """

    objects = DocumentQuerySet.as_manager()

    title = models.CharField(max_length=1000, blank=True)
    slug = models.SlugField(max_length=200, allow_unicode=True, blank=True)
    body = models.TextField(blank=True)
    excerpt = models.TextField(blank=True)

    status = models.CharField(
        max_length=10,
        choices=DocumentStatus.choices,
        default=DocumentStatus.DRAFT,
        db_index=True,
    )
    post_type = models.CharField(max_length=20, default="post", db_index=True)

    author = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL
    )
    published_on = models.DateTimeField(default=timezone.now, db_index=True)

    categories = models.ManyToManyField(Category, blank=True)
    tags = models.ManyToManyField(Tag, blank=True)

    primary_asset = models.ForeignKey(
        "MediaAsset",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
        help_text="Representative image used for listings and social previews",
    )

    created = models.DateTimeField(auto_now_add=True)
    modified = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(
                fields=["post_type", "published_on"],
                name="document_type_published_idx",
            )
        ]

    def __str__(self):
        return self.title

    def get_absolute_url(self):
        return reverse(
            "document-detail", kwargs={"pk": self.pk, "slug": self.slug or "-"}
        )

    @cached_property
    def logger(self):
        return structured_logger.bind(document=self)


def get_media_storage_path(instance, filename):
    return os.path.join(timezone.now().strftime("uploads/%Y/%m"), filename)


class MediaAssetQuerySet(models.QuerySet):
    def images(self):
        return self.filter(mime_type__startswith="image/")

    def with_attribute(self, key, value):
        return self.filter(attributes__key=key, attributes__value=value)


class MediaAsset(models.Model):
    """
    A binary file owned by this site, usually an image copied from a remote
    host or uploaded through the command API
    """

    objects = MediaAssetQuerySet.as_manager()

    title = models.CharField(max_length=255, blank=True)
    file = models.FileField(
        upload_to=get_media_storage_path, storage=ASSET_STORAGE, max_length=255
    )
    mime_type = models.CharField(max_length=100, blank=True)
    alt_text = models.CharField(max_length=1000, blank=True)

    owner = models.ForeignKey(
        Document,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="attached_media",
    )

    created = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.title or os.path.basename(self.file.name)

    @property
    def url(self):
        return self.file.url

    @property
    def is_image(self):
        return self.mime_type.startswith("image/")

    def get_attribute(self, key, default=None):
        attribute = self.attributes.filter(key=key).first()
        if attribute is None:
            return default
        return attribute.value

    def set_attribute(self, key, value):
        self.attributes.update_or_create(key=key, defaults={"value": value})


class MediaAssetAttribute(models.Model):
    """
    Free-form key/value metadata attached to a media asset, such as the
    remote URL an imported image was copied from
    """

    asset = models.ForeignKey(
        MediaAsset, on_delete=models.CASCADE, related_name="attributes"
    )
    key = models.CharField(max_length=255)
    value = models.CharField(max_length=2000, blank=True)

    class Meta:
        unique_together = (("asset", "key"),)
        indexes = [
            models.Index(fields=["key", "value"], name="asset_attribute_key_idx")
        ]

    def __str__(self):
        return f"{self.key}={self.value}"
