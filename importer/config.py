"""
Runtime options for the image importer

These are read from the configuration app so that site administrators can
change them without a deploy. Defaults apply when a value has never been
stored.
"""

from dataclasses import dataclass

from configuration.utils import configuration_value

DEFAULT_ORIGIN_PREFIX = "https://koala.sh/api/image/"
DEFAULT_POST_TYPES = ("post", "page")

PROCESSING_MODE_BACKGROUND = "background"
PROCESSING_MODE_IMMEDIATE = "immediate"
PROCESSING_MODES = (PROCESSING_MODE_BACKGROUND, PROCESSING_MODE_IMMEDIATE)


@dataclass(frozen=True)
class ImportConfig:
    auto_import_enabled: bool = True
    eligible_post_types: tuple = DEFAULT_POST_TYPES
    processing_mode: str = PROCESSING_MODE_BACKGROUND
    first_image_as_featured: bool = False
    origin_prefix: str = DEFAULT_ORIGIN_PREFIX

    @classmethod
    def load(cls) -> "ImportConfig":
        post_types = configuration_value(
            "image_import_post_types", list(DEFAULT_POST_TYPES)
        )
        if isinstance(post_types, str):
            post_types = [i.strip() for i in post_types.split(",")]

        processing_mode = configuration_value(
            "image_processing_mode", PROCESSING_MODE_BACKGROUND
        )
        if processing_mode not in PROCESSING_MODES:
            processing_mode = PROCESSING_MODE_BACKGROUND

        return cls(
            auto_import_enabled=bool(configuration_value("image_auto_import", True)),
            eligible_post_types=tuple(i for i in post_types if i),
            processing_mode=processing_mode,
            first_image_as_featured=bool(
                configuration_value("first_image_as_featured", False)
            ),
            origin_prefix=configuration_value(
                "image_origin_prefix", DEFAULT_ORIGIN_PREFIX
            )
            or DEFAULT_ORIGIN_PREFIX,
        )
