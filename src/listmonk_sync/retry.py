"""Queueing and retry parameters of newsletter jobs."""

from dataclasses import dataclass

from django.utils.module_loading import import_string

from listmonk_sync.conf import get_setting


def parse_backoff(backoff) -> tuple[int, ...]:
    """
    Parse a backoff schedule.

    Accepts a comma separated string ("10,30,60") or a sequence of numbers.
    Blank, zero and negative entries are dropped.
    """
    if backoff is None:
        return ()
    if isinstance(backoff, str):
        backoff = [value.strip() for value in backoff.split(",")]
    delays = []
    for value in backoff:
        if value in ("", None):
            continue
        delay = int(value)
        if delay > 0:
            delays.append(delay)
    return tuple(delays)


@dataclass(frozen=True)
class RetryPolicy:
    """How a queued newsletter job is scheduled and retried."""

    max_attempts: int = 3
    backoff: tuple[int, ...] = (10, 30, 60)
    initial_delay: int = 0
    queue: str | None = None
    dead_letter_callback: str | None = None

    @classmethod
    def from_settings(cls, overrides=None):
        """Build the policy from the QUEUE settings."""
        config = get_setting("QUEUE", overrides)
        return cls(
            max_attempts=max(int(config["TRIES"] or 1), 1),
            backoff=parse_backoff(config["BACKOFF"]),
            initial_delay=max(int(config["DELAY"] or 0), 0),
            queue=config["QUEUE"] or None,
            dead_letter_callback=config["DEAD_LETTER_CALLBACK"],
        )

    @property
    def max_retries(self) -> int:
        """Celery counts retries, not attempts."""
        return self.max_attempts - 1

    def countdown(self, retries: int) -> int:
        """Return the delay before the retry following ``retries`` previous retries."""
        if not self.backoff:
            return 0
        return self.backoff[min(retries, len(self.backoff) - 1)]

    def is_exhausted(self, retries: int) -> bool:
        """Tell whether the attempt that just failed was the last one."""
        return retries >= self.max_retries

    def apply_async_options(self) -> dict:
        """Return the options routing and delaying the first attempt."""
        options = {}
        if self.queue:
            options["queue"] = self.queue
        if self.initial_delay:
            options["countdown"] = self.initial_delay
        return options

    def dead_letter(self, task_name, arguments, error):
        """Hand an exhausted job to the configured callback."""
        if not self.dead_letter_callback:
            return
        callback = import_string(self.dead_letter_callback)
        callback(task_name=task_name, arguments=arguments, error=error)
