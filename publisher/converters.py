from django.urls.converters import SlugConverter


class UnicodeSlugConverter(SlugConverter):
    # Document slugs may contain any word character; documents without a slug
    # use "-" in their permalink
    regex = r"[-\w]+"
