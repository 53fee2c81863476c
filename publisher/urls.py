from django.conf import settings
from django.contrib import admin
from django.urls import path
from django.urls.converters import register_converter

from . import converters, views
from .api.api import api as publisher_api

register_converter(converters.UnicodeSlugConverter, "uslug")

urlpatterns = [
    path(
        "koala-ai/",
        views.commands.execute_command,
        name="koala-command",
    ),
    path(
        "documents/<int:pk>/",
        views.documents.document_by_id,
        name="document-shortlink",
    ),
    path(
        "documents/<int:pk>/<uslug:slug>/",
        views.documents.DocumentDetailView.as_view(),
        name="document-detail",
    ),
    path("api/", publisher_api.urls),
    path("admin/", admin.site.urls),
]

if settings.DEBUG:
    from django.conf.urls.static import static

    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
