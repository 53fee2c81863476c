import warnings
from types import MappingProxyType
from typing import Any, Callable, Optional

import structlog

from publisher.utils.logging import get_logging_user_id

# Default global registry for semantic context extractors
_DEFAULT_EXTRACTORS: dict[str, Callable[[Any], dict[str, Any]]] = {}


def _register_default_extractor(
    context_key: str, extractor_function: Callable[[Any], dict[str, Any]]
):
    _DEFAULT_EXTRACTORS[context_key] = extractor_function


# Built-in extractors
_register_default_extractor("user", lambda user: {"user_id": get_logging_user_id(user)})

_register_default_extractor(
    "document",
    lambda document: {
        "document_id": getattr(document, "pk", None),
        "post_type": getattr(document, "post_type", None),
    },
)

# asset depends on document, so it must be registered after it
_register_default_extractor(
    "asset",
    lambda asset: {
        **_DEFAULT_EXTRACTORS["document"](getattr(asset, "owner", None)),
        "asset_id": getattr(asset, "pk", None),
    },
)

_register_default_extractor(
    "run",
    lambda run: {
        "run_id": getattr(run, "pk", None),
        "run_status": getattr(run, "status", None),
    },
)

# Freeze default extractors to prevent mutation
_DEFAULT_EXTRACTORS = MappingProxyType(_DEFAULT_EXTRACTORS)


class PublisherLogger:
    """
    A structured logging wrapper around structlog that enforces consistent
    logging conventions across the publisher and importer applications.

    Features:
        - Requires 'message' and 'event_code' for all logs, and
          'reason'/'reason_code' for warnings/errors.
        - Automatically extracts common context from objects like Document,
          MediaAsset, ImportRun and User.
        - Allows semantic binding of objects (e.g., document=self) which are
          expanded at log time.

    Usage:
    -----

    Create a logger:
        ```python
        structured_logger = PublisherLogger.get_logger(__name__)
        ```

    Log an info-level event:
        ```python
        structured_logger.info(
            "Imported remote image.",
            event_code="image_import_stored",
            asset=media_asset,
        )
        ```

    Log a warning with reason:
        ```python
        structured_logger.warning(
            "Remote image could not be downloaded.",
            event_code="image_import_failed",
            reason="HTTP 404 from origin",
            reason_code="fetch_failed",
            document=document,
        )
        ```

    Bind a logger for repeated use:
        ```python
        document_logger = structured_logger.bind(document=document)
        document_logger.info("Body rewritten.", event_code="document_rewritten")
        ```

    Special Context Expansion:
    --------------------------

    - `user` -> `user_id`
    - `document` -> `document_id`, `post_type`
    - `asset` -> `asset_id` and the owning document's fields
    - `run` -> `run_id`, `run_status`

    Explicit values passed (e.g., `document_id=...`) override extracted ones.
    Fields with `None` values are omitted from the final log output.

    Note:
        Chained extractors (`asset` -> `document`) always use the default
        global extractors, so overriding `document` on one logger does not
        change what `asset` extracts.
    """

    def __init__(self, logger, context: Optional[dict[str, Any]] = None):
        self._logger = logger
        self._context = context or {}
        self._extractors = _DEFAULT_EXTRACTORS.copy()

    @classmethod
    def get_logger(cls, name: str) -> "PublisherLogger":
        """
        Factory method to create a PublisherLogger from a given logger name.

        Args:
            name (str): The logger name, usually the module's `__name__`.

        Returns:
            PublisherLogger: A logger instance with enriched behavior.
        """
        return cls(structlog.get_logger(f"structlog.{name}"))

    def register_extractor(
        self, key: str, extractor: Callable[[Any], dict[str, Any]]
    ) -> None:
        """
        Register a custom context extractor for this logger instance only.

        Args:
            key (str): The context key to extract (e.g., "category").
            extractor (Callable): A function that returns a dict of fields to log.
        """
        self._extractors[key] = extractor
        if key in _DEFAULT_EXTRACTORS:
            warnings.warn(
                f"Extractor for '{key}' registered but default extractors may still "
                f"call the built-in extractor through chaining. Overriding it "
                f"here will not affect those chained uses.",
                UserWarning,
                stacklevel=2,
            )

    def unregister_extractor(self, key: str) -> None:
        self._extractors.pop(key, None)

    def log(
        self,
        level: str,
        message: str,
        *,
        event_code: str,
        reason: Optional[str] = None,
        reason_code: Optional[str] = None,
        **context: Any,
    ) -> None:
        """
        Emit structured logs with standardized context. Use one of the level
        methods (debug, info, warning, error, exception) instead of calling
        this directly.

        Raises:
            ValueError: If required fields are missing for the given log level.
        """
        if not message:
            raise ValueError("Log message is required.")
        if not event_code:
            raise ValueError("Structured logs must include an 'event_code' field.")
        if level in ("warning", "error", "exception") and (
            not reason or not reason_code
        ):
            raise ValueError(
                "Warnings and errors must include both 'reason' and 'reason_code'."
            )

        context_data = {"event_code": event_code}
        if reason:
            context_data["reason"] = reason
        if reason_code:
            context_data["reason_code"] = reason_code

        bound_context = self._context

        # Extract data from provided context, falling back to the bound context
        for context_key, extractor_function in self._extractors.items():
            context_object = context.pop(context_key, bound_context.get(context_key))
            if context_object:
                extracted_fields = extractor_function(context_object)
                for key, value in extracted_fields.items():
                    if value is not None:
                        context_data.setdefault(key, value)

        for key, value in bound_context.items():
            if key not in self._extractors and key not in context and value is not None:
                context_data[key] = value

        # Explicit values win over extracted and bound ones
        for key, value in context.items():
            if value is not None:
                context_data[key] = value

        getattr(self._logger, level)(message, **context_data)

    def debug(self, message: str, *, event_code: str, **kwargs):
        self.log("debug", message, event_code=event_code, **kwargs)

    def info(self, message: str, *, event_code: str, **kwargs):
        self.log("info", message, event_code=event_code, **kwargs)

    def warning(
        self, message: str, *, event_code: str, reason: str, reason_code: str, **kwargs
    ):
        """Emit a warning-level structured log. Requires reason and reason_code."""
        self.log(
            "warning",
            message,
            event_code=event_code,
            reason=reason,
            reason_code=reason_code,
            **kwargs,
        )

    def error(
        self, message: str, *, event_code: str, reason: str, reason_code: str, **kwargs
    ):
        """Emit an error-level structured log. Requires reason and reason_code."""
        self.log(
            "error",
            message,
            event_code=event_code,
            reason=reason,
            reason_code=reason_code,
            **kwargs,
        )

    def exception(
        self, message: str, *, event_code: str, reason: str, reason_code: str, **kwargs
    ):
        """Emit an error-level structured log with the active exception attached."""
        self.log(
            "exception",
            message,
            event_code=event_code,
            reason=reason,
            reason_code=reason_code,
            **kwargs,
        )

    def bind(self, **kwargs: Any) -> "PublisherLogger":
        """
        Return a new PublisherLogger with additional context permanently bound.

        Objects with registered extractors are expanded into structured
        fields at log time.
        """
        new_context = self._context.copy()
        new_context.update(kwargs)
        return PublisherLogger(self._logger, context=new_context)
