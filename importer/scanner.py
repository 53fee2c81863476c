import html
import re
from dataclasses import dataclass

# Matches tags in malformed HTML too. The greedy attribute run means the last
# ``src=`` in a tag wins.
IMG_TAG_RE = re.compile(r"""<img[^>]+src=['"]([^'"]+)['"][^>]*>""", re.IGNORECASE)
ALT_ATTRIBUTE_RE = re.compile(r"""alt=['"]([^'"]*)['"]""", re.IGNORECASE)


@dataclass(frozen=True)
class ImageReference:
    #: The complete tag, exactly as it appears in the body
    raw_tag: str
    #: The source URL with HTML entities decoded, used for fetching
    source_url: str
    #: The source attribute value exactly as authored
    raw_source: str
    #: Start and end offsets of ``raw_source`` within ``raw_tag``
    source_span: tuple[int, int]
    alt_text: str = ""

    def with_source(self, new_source: str) -> str:
        """
        Return a copy of the tag in which only the source value is replaced
        """
        start, end = self.source_span
        return self.raw_tag[:start] + new_source + self.raw_tag[end:]


def find_image_references(body: str) -> list[ImageReference]:
    """
    Return every ``<img>`` reference in ``body`` in document order
    """
    if not body:
        return []

    references = []
    for match in IMG_TAG_RE.finditer(body):
        raw_tag = match.group(0)
        raw_source = match.group(1)
        start = match.start(1) - match.start(0)

        alt_match = ALT_ATTRIBUTE_RE.search(raw_tag)
        alt_text = html.unescape(alt_match.group(1)) if alt_match else ""

        references.append(
            ImageReference(
                raw_tag=raw_tag,
                source_url=html.unescape(raw_source).strip(),
                raw_source=raw_source,
                source_span=(start, start + len(raw_source)),
                alt_text=alt_text,
            )
        )
    return references


def scan(body: str, origin_prefix: str) -> list[ImageReference]:
    """
    Return the references in ``body`` which point at the image origin

    Anything which is not an ``<img>`` tag, or whose source does not start
    with ``origin_prefix``, is left alone by the importer. Malformed markup
    never raises; it simply produces no references.
    """
    if not origin_prefix:
        return []
    return [
        reference
        for reference in find_image_references(body)
        if reference.source_url.startswith(origin_prefix)
    ]
