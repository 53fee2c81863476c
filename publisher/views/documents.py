from django.http import Http404, HttpRequest
from django.shortcuts import get_object_or_404, redirect
from django.views.generic import DetailView

from publisher.models import Document, DocumentStatus


class DocumentDetailView(DetailView):
    """
    Public permalink target for a published document

    The slug in the URL is informational; a request with an outdated slug is
    redirected to the current one.
    """

    model = Document
    template_name = "publisher/document_detail.html"
    context_object_name = "document"

    def get_queryset(self):
        return Document.objects.published().select_related(
            "author", "primary_asset"
        )

    def get_object(self, queryset=None):
        queryset = queryset if queryset is not None else self.get_queryset()
        return get_object_or_404(queryset, pk=self.kwargs["pk"])

    def get(self, request: HttpRequest, *args, **kwargs):
        self.object = self.get_object()
        expected_slug = self.object.slug or "-"
        if kwargs.get("slug") != expected_slug:
            return redirect(self.object, permanent=True)
        context = self.get_context_data(object=self.object)
        return self.render_to_response(context)


def document_by_id(request: HttpRequest, pk: int):
    document = Document.objects.filter(pk=pk).first()
    if document is None or document.status != DocumentStatus.PUBLISH:
        raise Http404("No such document")
    return redirect(document, permanent=False)
