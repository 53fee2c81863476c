from django.contrib import admin, messages
from django.db.models import QuerySet
from django.http import HttpRequest
from django.utils.html import format_html

from importer.rewriter import process_document

from .models import Category, Document, MediaAsset, MediaAssetAttribute, Tag


@admin.action(description="Import remote images now")
def import_remote_images(
    modeladmin: admin.ModelAdmin,
    request: HttpRequest,
    queryset: QuerySet[Document],
) -> None:
    """
    Run the image import inline for the selected documents.
    """
    updated = 0
    for pk in queryset.values_list("pk", flat=True):
        if process_document(pk) is not None:
            updated += 1
    messages.add_message(
        request, messages.INFO, f"Rewrote {updated} of {queryset.count()} documents"
    )


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "parent")
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}


@admin.register(Tag)
class TagAdmin(admin.ModelAdmin):
    list_display = ("name", "slug")
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}


@admin.register(Document)
class DocumentAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "title",
        "post_type",
        "status",
        "author",
        "published_on",
        "modified",
    )
    list_display_links = ("id", "title")
    list_filter = ("status", "post_type", "categories")
    search_fields = ("title", "slug")
    date_hierarchy = "published_on"
    raw_id_fields = ("author", "primary_asset")
    filter_horizontal = ("categories", "tags")
    readonly_fields = ("created", "modified")
    actions = (import_remote_images,)


class MediaAssetAttributeInline(admin.TabularInline):
    model = MediaAssetAttribute
    extra = 0


@admin.register(MediaAsset)
class MediaAssetAdmin(admin.ModelAdmin):
    list_display = ("id", "__str__", "mime_type", "owner", "created", "preview")
    list_filter = ("mime_type",)
    search_fields = ("title", "file", "attributes__value")
    raw_id_fields = ("owner",)
    readonly_fields = ("created", "preview")
    inlines = (MediaAssetAttributeInline,)

    @admin.display(description="Preview")
    def preview(self, obj):
        if not obj.file or not obj.is_image:
            return ""
        return format_html(
            '<img src="{}" alt="{}" style="max-height: 64px">', obj.url, obj.alt_text
        )
