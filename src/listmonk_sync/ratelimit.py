"""Outbound rate limiting for the remote directory."""

from logging import getLogger

from django.core.cache import caches

from listmonk_sync.conf import get_setting
from listmonk_sync.exceptions import RateLimitExceeded

logger = getLogger(__name__)


class RateLimiter:
    """
    Fixed window limiter shared by every engine call.

    The counter lives in a Django cache under a fixed key. The window starts when
    the key is created and ends when the cache entry expires after
    ``decay_seconds``. ``cache.add`` and ``cache.incr`` are atomic on shared
    caches (Redis, Memcached) so concurrent workers can hit the same counter.
    """

    def __init__(
        self,
        enabled: bool = False,
        max_attempts: int = 60,
        decay_seconds: int = 60,
        key: str = "listmonk_sync:rate_limit",
        cache: str = "default",
    ):
        """Configure the limiter."""
        self.enabled = enabled
        self.max_attempts = max_attempts
        self.decay_seconds = decay_seconds
        self.key = key
        self.cache_alias = cache

    @classmethod
    def from_settings(cls, overrides=None):
        """Build the limiter from the RATE_LIMIT settings."""
        config = get_setting("RATE_LIMIT", overrides)
        return cls(
            enabled=bool(config["ENABLED"]),
            max_attempts=int(config["MAX_ATTEMPTS"]),
            decay_seconds=int(config["DECAY_SECONDS"]),
            key=config["KEY"],
            cache=config["CACHE"],
        )

    @property
    def cache(self):
        """Return the cache holding the counter."""
        return caches[self.cache_alias]

    def _increment(self):
        cache = self.cache
        cache.add(self.key, 0, timeout=self.decay_seconds)
        try:
            return cache.incr(self.key)
        except ValueError:
            # The window expired between add and incr.
            if cache.add(self.key, 1, timeout=self.decay_seconds):
                return 1
            return cache.incr(self.key)

    def hit(self):
        """
        Count one outbound operation.

        Raises:
            RateLimitExceeded: if the window already holds max_attempts calls

        """
        if not self.enabled:
            return None
        attempts = self._increment()
        if attempts > self.max_attempts:
            logger.warning(
                "Listmonk rate limit exceeded for %s (%s calls per %ss)",
                self.key,
                self.max_attempts,
                self.decay_seconds,
            )
            raise RateLimitExceeded(self.key, self.max_attempts, self.decay_seconds)
        return attempts

    def remaining(self) -> int:
        """Return the number of calls left in the current window."""
        return max(self.max_attempts - (self.cache.get(self.key) or 0), 0)

    def reset(self):
        """Close the current window."""
        self.cache.delete(self.key)
