"""Listmonk newsletter synchronization module."""

from django.utils.functional import LazyObject, empty

from .handler import NewsletterHandler


class DefaultNewsletterBackend(LazyObject):
    """Lazy object to handle the newsletter backend."""

    def _setup(self):
        """Configure the newsletter backend."""
        self._wrapped = newsletter_handler()


def reset_backend():
    """Drop the configured backend so that it is rebuilt from the settings."""
    newsletter_handler.reset()
    newsletter._wrapped = empty


newsletter_handler = NewsletterHandler()
newsletter = DefaultNewsletterBackend()
