from typing import Any

from django.conf import settings
from django.core.cache import caches

from configuration.models import Configuration

CONFIGURATION_KEY_PREFIX = "config"

_MISSING = object()


def configuration_value(key: str, default: Any = _MISSING) -> Any:
    """
    Retrieve a configuration value by key with caching and type casting.

    Behavior:
        - Look up the value in the ``configuration_cache`` using a namespaced
          cache key.
        - If the value is missing, delegate to
          ``cache_configuration_value(key)`` to fetch, cast, cache, and return
          the value.
        - If the key is not stored at all, return ``default`` when one was
          given.

    Args:
        key (str): The configuration key to resolve.
        default (Any): Value returned when no ``Configuration`` row exists.

    Returns:
        Any: The resolved and type-cast configuration value.

    Raises:
        Configuration.DoesNotExist: If the key is not present in the database
            and no default was given.
    """
    config_cache = caches["configuration_cache"]
    cache_key = f"{CONFIGURATION_KEY_PREFIX}_{key}"
    value = config_cache.get(cache_key)

    if value is None:
        try:
            value = cache_configuration_value(key)
        except Configuration.DoesNotExist:
            if default is _MISSING:
                raise
            return default

    return value


def cache_configuration_value(key: str, value: Any | None = None) -> Any:
    """
    Populate or refresh the cached value for a configuration key.

    If ``value`` is ``None``, the ``Configuration`` row is fetched and cast
    via ``get_value()``; otherwise ``value`` is cached directly.

    Raises:
        Configuration.DoesNotExist: If ``value`` is ``None`` and there is no
            ``Configuration`` row with the given key.
    """
    config_cache = caches["configuration_cache"]
    cache_key = f"{CONFIGURATION_KEY_PREFIX}_{key}"

    if value is None:
        config = Configuration.objects.get(key=key)
        value = config.get_value()

    config_cache.set(cache_key, value, timeout=settings.CONFIGURATION_CACHE_TIMEOUT)
    return value


def set_configuration_value(
    key: str, value: Any, description: str | None = None
) -> Configuration:
    """
    Store a configuration value, choosing the data type from the Python type.

    The post_save receiver in ``configuration.signals`` refreshes the cached
    value, so readers see the new value immediately.
    """
    data_type = Configuration.data_type_for(value)
    defaults = {
        "data_type": data_type,
        "value": Configuration.serialize(value, data_type),
    }
    if description is not None:
        defaults["description"] = description

    config, _ = Configuration.objects.update_or_create(key=key, defaults=defaults)
    return config
