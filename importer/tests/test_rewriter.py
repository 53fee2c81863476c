from unittest import mock

from django.core.cache import cache
from django.test import TestCase

from importer.config import ImportConfig
from importer.exceptions import DocumentNotFound, FetchFailed
from importer.resolver import ImportedAsset
from importer.rewriter import ContentRewriter, process_document
from importer.stores import document_lock_key
from publisher.models import Document, MediaAsset
from publisher.tests.utils import (
    clear_caches,
    create_document,
    create_media_asset,
    koala_image,
    mock_image_response,
)

A_URL = "https://koala.sh/api/image/a.png"
B_URL = "https://koala.sh/api/image/b.png"


class FakeResolver:
    """
    Resolves every URL to /media/<name>, failing for URLs in ``failing``
    """

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.calls = []

    def resolve(self, reference, owner_id=None):
        self.calls.append(reference.source_url)
        if reference.source_url in self.failing:
            raise FetchFailed(f"Unable to download {reference.source_url}")
        name = reference.source_url.rsplit("/", 1)[-1]
        return ImportedAsset(
            local_id=len(self.calls),
            local_url=f"/media/{name}",
            origin_url=reference.source_url,
            alt_text=reference.alt_text,
        )


class ContentRewriterTests(TestCase):
    def setUp(self):
        clear_caches()
        self.media = mock.MagicMock()
        self.media.has_primary_asset.return_value = False

    def rewriter(self, resolver, **config):
        return ContentRewriter(
            ImportConfig(**config), resolver=resolver, media=self.media
        )

    def test_rewrite(self):
        body = (
            f"<p>{koala_image(A_URL)}</p>"
            '<img src="https://example.com/c.png">'
            f"<p>{koala_image(B_URL, alt='B')}</p>"
        )
        result = self.rewriter(FakeResolver()).rewrite(body, document_id=1)

        self.assertEqual(
            result.body,
            '<p><img src="/media/a.png" alt="A koala"></p>'
            '<img src="https://example.com/c.png">'
            '<p><img src="/media/b.png" alt="B"></p>',
        )
        self.assertEqual(len(result.imported), 2)
        self.assertEqual(result.first_asset.local_url, "/media/a.png")
        self.assertEqual(result.failed, 0)
        self.media.set_primary_asset.assert_not_called()

    def test_rewriting_is_idempotent(self):
        rewriter = self.rewriter(FakeResolver())
        once = rewriter.rewrite(koala_image(A_URL)).body
        twice = rewriter.rewrite(once)

        self.assertEqual(twice.body, once)
        self.assertEqual(twice.imported, ())

    def test_failed_reference_is_left_alone(self):
        resolver = FakeResolver(failing=[A_URL])
        body = koala_image(A_URL) + koala_image(B_URL)

        with mock.patch("importer.rewriter.structured_logger") as structured_logger:
            result = self.rewriter(resolver).rewrite(body, document_id=1)

        kwargs = structured_logger.warning.call_args.kwargs
        self.assertEqual(kwargs["reason_code"], "fetch_failed")
        self.assertEqual(kwargs["source_url"], A_URL)

        self.assertEqual(
            result.body,
            koala_image(A_URL) + '<img src="/media/b.png" alt="A koala">',
        )
        self.assertEqual(result.failed, 1)
        self.assertEqual(result.first_asset.origin_url, B_URL)

    def test_repeated_tags_are_resolved_once(self):
        resolver = FakeResolver()
        body = koala_image(A_URL) + "<br>" + koala_image(A_URL)

        result = self.rewriter(resolver).rewrite(body)

        self.assertEqual(resolver.calls, [A_URL])
        self.assertEqual(result.body.count('src="/media/a.png"'), 2)

    def test_local_url_is_escaped(self):
        resolver = mock.MagicMock()
        resolver.resolve.return_value = ImportedAsset(
            local_id=1, local_url="/media/a.png?x=1&y=2", origin_url=A_URL
        )

        result = self.rewriter(resolver).rewrite(koala_image(A_URL))

        self.assertIn('src="/media/a.png?x=1&amp;y=2"', result.body)

    def test_no_references(self):
        resolver = FakeResolver()
        result = self.rewriter(resolver).rewrite("<p>Plain</p>", document_id=1)
        self.assertEqual(result.body, "<p>Plain</p>")
        self.assertIsNone(result.first_asset)
        self.assertEqual(resolver.calls, [])

    def test_custom_origin(self):
        resolver = FakeResolver()
        body = koala_image("https://cdn.example.com/x.png") + koala_image(A_URL)

        rewriter = self.rewriter(resolver, origin_prefix="https://cdn.example.com/")
        result = rewriter.rewrite(body)

        self.assertEqual(resolver.calls, ["https://cdn.example.com/x.png"])
        self.assertIn(koala_image(A_URL), result.body)

    def test_first_image_becomes_primary(self):
        rewriter = self.rewriter(FakeResolver(), first_image_as_featured=True)
        rewriter.rewrite(koala_image(A_URL) + koala_image(B_URL), document_id=5)
        self.media.set_primary_asset.assert_called_once_with(5, 1)

    def test_existing_primary_asset_is_kept(self):
        self.media.has_primary_asset.return_value = True
        rewriter = self.rewriter(FakeResolver(), first_image_as_featured=True)
        rewriter.rewrite(koala_image(A_URL), document_id=5)
        self.media.set_primary_asset.assert_not_called()


@mock.patch("importer.resolver.requests.get")
class ProcessDocumentTests(TestCase):
    def setUp(self):
        clear_caches()

    def test_process_document(self, mock_get):
        mock_get.return_value = mock_image_response()
        document = create_document(body=f"<p>{koala_image(A_URL)}</p>")

        with mock.patch("importer.signals.handle_document_saved") as handler:
            updated = process_document(document.pk)

        asset = MediaAsset.objects.get()
        self.assertEqual(updated.pk, document.pk)
        self.assertEqual(
            updated.body, f'<p><img src="{asset.url}" alt="A koala"></p>'
        )
        self.assertEqual(Document.objects.get(pk=document.pk).body, updated.body)
        self.assertEqual(asset.owner_id, document.pk)
        # Storing the new body does not look like a save of the document
        handler.assert_not_called()
        self.assertIsNone(cache.get(document_lock_key(document.pk)))

        # Nothing left to do the second time
        self.assertIsNone(process_document(document.pk))
        self.assertEqual(mock_get.call_count, 1)

    def test_featured_image(self, mock_get):
        mock_get.return_value = mock_image_response()
        document = create_document(body=koala_image(A_URL))
        rewriter = ContentRewriter(ImportConfig(first_image_as_featured=True))

        process_document(document.pk, rewriter=rewriter)

        document.refresh_from_db()
        self.assertEqual(document.primary_asset, MediaAsset.objects.get())

    def test_existing_featured_image_is_kept(self, mock_get):
        mock_get.return_value = mock_image_response()
        featured = create_media_asset()
        document = create_document(body=koala_image(A_URL), primary_asset=featured)
        rewriter = ContentRewriter(ImportConfig(first_image_as_featured=True))

        process_document(document.pk, rewriter=rewriter)

        document.refresh_from_db()
        self.assertEqual(document.primary_asset, featured)

    def test_locked_document_is_skipped(self, mock_get):
        document = create_document(body=koala_image(A_URL))
        cache.add(document_lock_key(document.pk), "processing")

        self.assertIsNone(process_document(document.pk))
        mock_get.assert_not_called()

    def test_missing_document(self, mock_get):
        with self.assertRaises(DocumentNotFound):
            process_document(12345)
        self.assertIsNone(cache.get(document_lock_key(12345)))

    def test_failed_download_keeps_body(self, mock_get):
        mock_get.return_value = mock_image_response(status_code=404)
        document = create_document(body=koala_image(A_URL))

        self.assertIsNone(process_document(document.pk))

        document.refresh_from_db()
        self.assertEqual(document.body, koala_image(A_URL))
        self.assertFalse(MediaAsset.objects.exists())
