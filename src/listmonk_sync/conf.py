"""Settings access for the listmonk_sync application."""

import copy

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

EMAIL_CHANGE_DELETE = "delete"
EMAIL_CHANGE_PASSIVE = "passive"
EMAIL_CHANGE_POLICIES = (EMAIL_CHANGE_DELETE, EMAIL_CHANGE_PASSIVE)

DEFAULTS = {
    "BACKEND": "listmonk_sync.backends.listmonk.ListmonkBackend",
    "PARAMETERS": {},
    "PRECONFIRM_SUBSCRIPTIONS": True,
    "DEFAULT_LISTS": [],
    "PASSIVE_LIST_ID": None,
    "EMAIL_CHANGE_POLICY": EMAIL_CHANGE_DELETE,
    "QUEUE": {
        "ENABLED": True,
        "QUEUE": None,
        "DELAY": 0,
        "TRIES": 3,
        "BACKOFF": "10,30,60",
        "DEAD_LETTER_CALLBACK": None,
    },
    "RATE_LIMIT": {
        "ENABLED": False,
        "MAX_ATTEMPTS": 60,
        "DECAY_SECONDS": 60,
        "KEY": "listmonk_sync:rate_limit",
        "CACHE": "default",
    },
    "LOCK": {
        "ENABLED": True,
        "TIMEOUT": 30,
        "WAIT": 10,
        "CACHE": "default",
    },
}


def _merge(defaults, overrides):
    merged = copy.deepcopy(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def get_settings(overrides=None):
    """
    Return the LISTMONK_SYNC settings merged over the defaults.

    Args:
        overrides: optional dict structured like settings.LISTMONK_SYNC, used
            instead of the Django settings

    Raises:
        ImproperlyConfigured: if settings.LISTMONK_SYNC is not a dict

    """
    if overrides is None:
        overrides = getattr(settings, "LISTMONK_SYNC", None)
    if overrides is None:
        overrides = {}
    if not isinstance(overrides, dict):
        raise ImproperlyConfigured("settings.LISTMONK_SYNC must be a dict")
    return _merge(DEFAULTS, overrides)


def get_setting(name, overrides=None):
    """Return a single top level LISTMONK_SYNC setting."""
    return get_settings(overrides)[name]
