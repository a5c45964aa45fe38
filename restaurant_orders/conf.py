from django.conf import settings

from .module import SETTINGS


def get_setting(name):
    """Module default for ``name``, overridden by ``settings.RESTAURANT_ORDERS``."""
    overrides = getattr(settings, 'RESTAURANT_ORDERS', None) or {}
    if name in overrides:
        return overrides[name]
    return SETTINGS[name]
