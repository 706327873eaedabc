"""Newsletter backend handler."""

from django.utils.functional import cached_property
from django.utils.module_loading import import_string

from listmonk_sync.conf import get_settings
from listmonk_sync.exceptions import NewsletterInvalidBackendError


class NewsletterHandler:
    """Newsletter handler managing the backend instantiation."""

    def __init__(self, backend=None):
        """Initialize the newsletter handler."""
        # backend is an optional dict of backend definitions
        # (structured like settings.LISTMONK_SYNC).
        self._backend = backend
        self._newsletter = None

    @cached_property
    def backend(self):
        """Put in cache the backend properties from the settings."""
        if self._backend is None:
            self._backend = get_settings()
        return self._backend

    def __call__(self):
        """Create if not existing the backend and then return it."""
        if self._newsletter is None:
            self._newsletter = self.create_backend(self.backend)
        return self._newsletter

    def reset(self):
        """Forget the backend, the next call reads the settings again."""
        self.__dict__.pop("backend", None)
        self._backend = None
        self._newsletter = None

    def create_backend(self, params):
        """Instantiate and configure the newsletter backend."""
        params = params.copy()
        backend = params.pop("BACKEND")
        parameters = params.pop("PARAMETERS", None) or {}
        try:
            klass = import_string(backend)
        except ImportError as e:
            raise NewsletterInvalidBackendError(f"Could not find backend {backend!r}: {e}") from e
        return klass(**parameters)
