"""Fixtures for the test suite."""

import pytest
from django.core.cache import cache

from listmonk_sync import reset_backend
from listmonk_sync.backends import locmem


@pytest.fixture(autouse=True)
def reset_newsletter_state():
    """
    Start every test with an empty remote directory.

    The in-memory directory, the cache holding locks and rate limit counters,
    and the lazily instantiated backend are process wide.
    """
    locmem.reset()
    cache.clear()
    reset_backend()
    yield
    locmem.reset()
    cache.clear()
    reset_backend()


@pytest.fixture(name="remote_calls")
def fixture_remote_calls():
    """Return the calls made to the in-memory backend."""
    return locmem.calls


@pytest.fixture(name="remote_subscribers")
def fixture_remote_subscribers():
    """Return the records of the in-memory backend."""
    return locmem.subscribers
