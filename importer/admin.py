from django.contrib import admin, messages
from django.contrib.humanize.templatetags.humanize import naturaltime
from django.db.models import QuerySet
from django.http import HttpRequest

from importer.coordinator import BatchCoordinator
from importer.exceptions import AlreadyRunning

from .models import ImportRun


class CompletedFilter(admin.SimpleListFilter):
    """Filter by whether a run has a 'completed' timestamp."""

    title = "Completed"
    parameter_name = "completed"

    def lookups(self, request, model_admin):
        return (("null", "Incomplete"), ("not-null", "Completed"))

    def queryset(self, request, queryset):
        if self.value() == "null":
            return queryset.filter(completed__isnull=True)
        elif self.value() == "not-null":
            return queryset.exclude(completed__isnull=True)
        return queryset


@admin.action(description="Start a new bulk image import")
def start_bulk_import(
    modeladmin: admin.ModelAdmin,
    request: HttpRequest,
    queryset: QuerySet[ImportRun],
) -> None:
    """
    Start a bulk import regardless of which rows were selected.
    """
    try:
        run = BatchCoordinator().start()
    except AlreadyRunning:
        messages.add_message(
            request, messages.WARNING, "An image import is already running"
        )
        return
    messages.add_message(request, messages.INFO, f"Started image import {run.pk}")


@admin.action(description="Stop the running bulk image import")
def cancel_bulk_import(
    modeladmin: admin.ModelAdmin,
    request: HttpRequest,
    queryset: QuerySet[ImportRun],
) -> None:
    BatchCoordinator().cancel()
    messages.add_message(
        request, messages.INFO, "The image import will stop before its next slice"
    )


@admin.register(ImportRun)
class ImportRunAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "status",
        "display_created",
        "display_last_run",
        "display_completed",
        "processed_count",
        "updated_count",
    )
    list_filter = ("status", CompletedFilter)
    readonly_fields = (
        "status",
        "created",
        "last_run",
        "completed",
        "processed_ids",
        "updated_entries",
    )
    actions = (start_bulk_import, cancel_bulk_import)
    date_hierarchy = "created"

    @admin.display(description="Created", ordering="created")
    def display_created(self, obj):
        return naturaltime(obj.created)

    @admin.display(description="Last run", ordering="last_run")
    def display_last_run(self, obj):
        return naturaltime(obj.last_run) if obj.last_run else None

    @admin.display(description="Completed", ordering="completed")
    def display_completed(self, obj):
        return naturaltime(obj.completed) if obj.completed else None

    @admin.display(description="Documents visited")
    def processed_count(self, obj):
        return obj.processed_count

    @admin.display(description="Documents updated")
    def updated_count(self, obj):
        return obj.updated_count

    def has_add_permission(self, request):
        return False
