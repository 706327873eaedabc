"""Listmonk synchronization application configuration."""

from django.apps import AppConfig
from django.core.signals import setting_changed


def _reset_backend(setting, **kwargs):
    """Rebuild the backend when settings.LISTMONK_SYNC changes (tests)."""
    if setting == "LISTMONK_SYNC":
        from listmonk_sync import reset_backend  # noqa: PLC0415

        reset_backend()


class ListmonkSyncConfig(AppConfig):
    """Declare the listmonk_sync application."""

    name = "listmonk_sync"
    verbose_name = "Listmonk synchronization"

    def ready(self):
        """Register the system checks."""
        from listmonk_sync import checks  # noqa: F401, PLC0415

        setting_changed.connect(_reset_backend, dispatch_uid="listmonk_sync.reset_backend")
