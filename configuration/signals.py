from django.db.models.signals import post_save
from django.dispatch import receiver

from configuration.models import Configuration
from configuration.utils import cache_configuration_value


@receiver(post_save, sender=Configuration)
def update_cached_configuration_value(
    sender: type[Configuration], *, instance: Configuration, **kwargs
) -> None:
    """
    Refresh the cached value whenever a Configuration row is saved.

    Values which cannot be parsed for their data type are left out of the
    cache so readers keep failing loudly on the stored row instead of seeing
    a stale value.
    """
    try:
        value = instance.get_value()
    except ValueError:
        return
    cache_configuration_value(instance.key, value)
