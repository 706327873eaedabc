"""Scoped switch suspending the newsletter synchronization."""

import contextlib
from contextvars import ContextVar

_sync_enabled: ContextVar[bool] = ContextVar("listmonk_sync_enabled", default=True)


def sync_enabled() -> bool:
    """Tell whether lifecycle events should reach the remote service in this context."""
    return _sync_enabled.get()


@contextlib.contextmanager
def without_sync():
    """
    Suspend lifecycle synchronization inside the block.

    The switch is a context variable: it only applies to the current thread or
    asyncio task, so a bulk import can run without syncing while other requests
    keep syncing.

        with without_sync():
            User.objects.create(email="bulk@example.com")
    """
    token = _sync_enabled.set(False)
    try:
        yield
    finally:
        _sync_enabled.reset(token)
