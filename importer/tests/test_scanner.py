from django.test import SimpleTestCase

from importer.scanner import find_image_references, scan

ORIGIN = "https://koala.sh/api/image/"


class ScannerTests(SimpleTestCase):
    def test_finds_references_in_order(self):
        body = (
            '<p><img src="https://koala.sh/api/image/a.png" alt="First"></p>'
            "<img class='wide' src='https://koala.sh/api/image/b.jpg'>"
        )
        references = scan(body, ORIGIN)

        self.assertEqual(
            [reference.source_url for reference in references],
            ["https://koala.sh/api/image/a.png", "https://koala.sh/api/image/b.jpg"],
        )
        self.assertEqual(references[0].alt_text, "First")
        self.assertEqual(references[1].alt_text, "")
        self.assertEqual(
            references[1].raw_tag,
            "<img class='wide' src='https://koala.sh/api/image/b.jpg'>",
        )

    def test_other_origins_are_ignored(self):
        body = (
            '<img src="https://example.com/a.png">'
            '<img src="/media/uploads/a.png">'
            '<a href="https://koala.sh/api/image/a.png">link</a>'
        )
        self.assertEqual(scan(body, ORIGIN), [])
        self.assertEqual(len(find_image_references(body)), 2)

    def test_case_insensitive_tag(self):
        references = scan('<IMG SRC="https://koala.sh/api/image/a.png">', ORIGIN)
        self.assertEqual(len(references), 1)

    def test_entities_are_decoded_for_fetching(self):
        body = (
            '<img src="https://koala.sh/api/image/a.png?w=1&amp;h=2" '
            'alt="A &amp; B">'
        )
        (reference,) = scan(body, ORIGIN)

        self.assertEqual(
            reference.source_url, "https://koala.sh/api/image/a.png?w=1&h=2"
        )
        self.assertEqual(
            reference.raw_source, "https://koala.sh/api/image/a.png?w=1&amp;h=2"
        )
        self.assertEqual(reference.alt_text, "A & B")

    def test_with_source_replaces_only_the_source(self):
        tag = (
            '<img alt="https://koala.sh/api/image/a.png" '
            'src="https://koala.sh/api/image/a.png" width="10">'
        )
        (reference,) = scan(tag, ORIGIN)

        self.assertEqual(
            reference.with_source("/media/a.png"),
            '<img alt="https://koala.sh/api/image/a.png" '
            'src="/media/a.png" width="10">',
        )

    def test_malformed_markup(self):
        for body in (
            None,
            "",
            "<img",
            '<img src="https://koala.sh/api/image/a.png"',
            "<img src=>",
            "<p>no images</p>",
        ):
            with self.subTest(body=body):
                self.assertEqual(scan(body, ORIGIN), [])

    def test_empty_origin_matches_nothing(self):
        self.assertEqual(scan('<img src="https://koala.sh/api/image/a.png">', ""), [])
