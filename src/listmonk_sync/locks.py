"""Per email mutual exclusion around remote reconciliation."""

import contextlib
import hashlib
import time
import uuid
from contextvars import ContextVar
from logging import getLogger

from django.core.cache import caches

from listmonk_sync.conf import get_setting
from listmonk_sync.exceptions import SubscriberLockedError

logger = getLogger(__name__)

# Keys already held by the current thread or task, so nested operations on the
# same email do not wait on themselves.
_held_keys: ContextVar[frozenset] = ContextVar("listmonk_sync_held_locks", default=frozenset())


class EmailLock:
    """
    Cache backed lock serializing the fetch, decide and write steps per email.

    Two workers syncing the same new email would otherwise both find no remote
    record and both create one. The lock token is stored with ``cache.add`` which
    only succeeds for one caller, and expires after ``timeout`` seconds so a
    crashed worker cannot hold an email forever. It only serializes workers
    sharing the same cache, so production setups need Redis or Memcached.

    Release compares the token then deletes the key in two cache calls, the
    Django cache API has no atomic compare and delete. A lock expiring between
    the two calls can be taken by another worker and then deleted, so
    ``timeout`` must stay well above the duration of one remote operation.
    """

    poll_interval = 0.1

    def __init__(self, enabled: bool = True, timeout: int = 30, wait: int = 10, cache: str = "default"):
        """Configure the lock."""
        self.enabled = enabled
        self.timeout = timeout
        self.wait = wait
        self.cache_alias = cache

    @classmethod
    def from_settings(cls, overrides=None):
        """Build the lock from the LOCK settings."""
        config = get_setting("LOCK", overrides)
        return cls(
            enabled=bool(config["ENABLED"]),
            timeout=int(config["TIMEOUT"]),
            wait=int(config["WAIT"]),
            cache=config["CACHE"],
        )

    @staticmethod
    def key(email: str) -> str:
        """Return the cache key guarding an email."""
        digest = hashlib.sha256(email.encode("utf-8")).hexdigest()
        return f"listmonk_sync:lock:{digest}"

    def _acquire(self, cache, key, token, email):
        deadline = time.monotonic() + self.wait
        while not cache.add(key, token, timeout=self.timeout):
            if time.monotonic() >= deadline:
                raise SubscriberLockedError(f"Subscriber {email!r} is locked by another worker")
            time.sleep(self.poll_interval)

    @contextlib.contextmanager
    def __call__(self, email: str):
        """
        Hold the lock of the email for the duration of the block.

        Raises:
            SubscriberLockedError: if the lock is not released within ``wait`` seconds

        """
        key = self.key(email)
        if not self.enabled or key in _held_keys.get():
            yield
            return

        cache = caches[self.cache_alias]
        token = uuid.uuid4().hex
        self._acquire(cache, key, token, email)
        held = _held_keys.set(_held_keys.get() | {key})
        try:
            yield
        finally:
            _held_keys.reset(held)
            if cache.get(key) == token:
                cache.delete(key)
            else:
                logger.warning("Lock of %s expired before the operation finished", email)
