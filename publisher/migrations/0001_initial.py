import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import publisher.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Category",
            fields=[
                (
                    "id",
                    models.AutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("name", models.CharField(max_length=200, unique=True)),
                (
                    "slug",
                    models.SlugField(allow_unicode=True, max_length=200, unique=True),
                ),
                ("description", models.TextField(blank=True)),
                (
                    "parent",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="publisher.category",
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "categories",
                "ordering": ("name",),
            },
        ),
        migrations.CreateModel(
            name="Tag",
            fields=[
                (
                    "id",
                    models.AutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("name", models.CharField(max_length=200, unique=True)),
                (
                    "slug",
                    models.SlugField(allow_unicode=True, max_length=200, unique=True),
                ),
                ("description", models.TextField(blank=True)),
            ],
            options={
                "ordering": ("name",),
            },
        ),
        migrations.CreateModel(
            name="Document",
            fields=[
                (
                    "id",
                    models.AutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("title", models.CharField(max_length=1000)),
                (
                    "slug",
                    models.SlugField(allow_unicode=True, blank=True, max_length=200),
                ),
                ("body", models.TextField(blank=True)),
                ("excerpt", models.TextField(blank=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("publish", "Published"),
                            ("future", "Scheduled"),
                            ("draft", "Draft"),
                            ("pending", "Pending review"),
                            ("private", "Private"),
                        ],
                        db_index=True,
                        default="draft",
                        max_length=10,
                    ),
                ),
                (
                    "post_type",
                    models.CharField(db_index=True, default="post", max_length=20),
                ),
                (
                    "published_on",
                    models.DateTimeField(
                        db_index=True, default=django.utils.timezone.now
                    ),
                ),
                ("created", models.DateTimeField(auto_now_add=True)),
                ("modified", models.DateTimeField(auto_now=True)),
                (
                    "author",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "categories",
                    models.ManyToManyField(blank=True, to="publisher.category"),
                ),
                ("tags", models.ManyToManyField(blank=True, to="publisher.tag")),
            ],
        ),
        migrations.CreateModel(
            name="MediaAsset",
            fields=[
                (
                    "id",
                    models.AutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("title", models.CharField(blank=True, max_length=255)),
                (
                    "file",
                    models.FileField(
                        max_length=255,
                        upload_to=publisher.models.get_media_storage_path,
                    ),
                ),
                ("mime_type", models.CharField(blank=True, max_length=100)),
                ("alt_text", models.CharField(blank=True, max_length=1000)),
                ("created", models.DateTimeField(auto_now_add=True)),
                (
                    "owner",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="attached_media",
                        to="publisher.document",
                    ),
                ),
            ],
        ),
        migrations.AddField(
            model_name="document",
            name="primary_asset",
            field=models.ForeignKey(
                blank=True,
                help_text="Representative image used for listings and social previews",
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to="publisher.mediaasset",
            ),
        ),
        migrations.AddIndex(
            model_name="document",
            index=models.Index(
                fields=["post_type", "published_on"],
                name="document_type_published_idx",
            ),
        ),
        migrations.CreateModel(
            name="MediaAssetAttribute",
            fields=[
                (
                    "id",
                    models.AutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("key", models.CharField(max_length=255)),
                ("value", models.CharField(blank=True, max_length=2000)),
                (
                    "asset",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="attributes",
                        to="publisher.mediaasset",
                    ),
                ),
            ],
            options={
                "unique_together": {("asset", "key")},
            },
        ),
        migrations.AddIndex(
            model_name="mediaassetattribute",
            index=models.Index(
                fields=["key", "value"], name="asset_attribute_key_idx"
            ),
        ),
    ]
