"""
django-configurations integration.

Projects using django-configurations can build ``LISTMONK_SYNC`` from the
environment by mixing ``ListmonkConfigurationMixin`` in their configuration:

    class Base(ListmonkConfigurationMixin, Configuration):
        ...

The API token can be read from a file (docker secrets) by setting
``LISTMONK_API_TOKEN_FILE`` instead of ``LISTMONK_API_TOKEN``.
"""

import os

from configurations import values


class SecretFileValue(values.Value):
    """
    Value read from the file named by ``{name}_FILE`` or from ``{name}``.

    Same lookup order as ``SecretFileValue`` of django-lasuite: the file wins
    over the plain variable, which wins over the default. API tokens never
    contain whitespace, so the whole trailing whitespace of the file is dropped
    (``\\r\\n`` of secrets edited on Windows included) and an empty file is an
    error instead of an empty token failing at the first API call.
    """

    file_suffix = "FILE"

    def __init__(self, *args, file_suffix=None, **kwargs):
        """Initialize the value."""
        super().__init__(*args, **kwargs)
        if file_suffix:
            self.file_suffix = file_suffix

    def _read_file(self, filename):
        if not os.path.exists(filename):
            raise ValueError(f"Path {filename!r} does not exist.")
        try:
            with open(filename) as file:
                content = file.read().rstrip()
        except OSError as err:
            raise ValueError(f"Path {filename!r} cannot be read: {err!r}") from err
        if not content:
            raise ValueError(f"Path {filename!r} is empty.")
        return content

    def setup(self, name):
        """Get the value from the environment."""
        value = self.default
        if self.environ:
            environ_name = self.full_environ_name(name)
            file_environ_name = f"{environ_name}_{self.file_suffix}"
            if file_environ_name in os.environ:
                value = self.to_python(self._read_file(os.environ[file_environ_name]))
            elif environ_name in os.environ:
                value = self.to_python(os.environ[environ_name])
            elif self.environ_required:
                raise ValueError(
                    f"Value {name!r} is required to be set as the environment "
                    f"variable {file_environ_name!r} or {environ_name!r}"
                )
        self.value = value
        return value


class ListmonkConfigurationMixin:
    """Settings of listmonk_sync read from LISTMONK_* environment variables."""

    LISTMONK_BASE_URL = values.Value("http://localhost:9000", environ_prefix=None)
    LISTMONK_API_USER = values.Value(None, environ_prefix=None)
    LISTMONK_API_TOKEN = SecretFileValue(None, environ_prefix=None)
    LISTMONK_TIMEOUT = values.PositiveIntegerValue(10, environ_prefix=None)
    LISTMONK_PRECONFIRM_SUBSCRIPTIONS = values.BooleanValue(True, environ_prefix=None)
    LISTMONK_DEFAULT_LISTS = values.ListValue([], converter=int, environ_prefix=None)
    LISTMONK_PASSIVE_LIST_ID = values.IntegerValue(None, environ_prefix=None)
    LISTMONK_EMAIL_CHANGE_POLICY = values.Value("delete", environ_prefix=None)

    LISTMONK_QUEUE_ENABLED = values.BooleanValue(True, environ_prefix=None)
    LISTMONK_QUEUE_NAME = values.Value(None, environ_prefix=None)
    LISTMONK_QUEUE_DELAY = values.PositiveIntegerValue(0, environ_prefix=None)
    LISTMONK_QUEUE_TRIES = values.PositiveIntegerValue(3, environ_prefix=None)
    LISTMONK_QUEUE_BACKOFF = values.Value("10,30,60", environ_prefix=None)
    LISTMONK_QUEUE_DEAD_LETTER_CALLBACK = values.Value(None, environ_prefix=None)

    LISTMONK_RATE_LIMIT_ENABLED = values.BooleanValue(False, environ_prefix=None)
    LISTMONK_RATE_LIMIT_MAX_ATTEMPTS = values.PositiveIntegerValue(60, environ_prefix=None)
    LISTMONK_RATE_LIMIT_DECAY_SECONDS = values.PositiveIntegerValue(60, environ_prefix=None)

    LISTMONK_LOCK_ENABLED = values.BooleanValue(True, environ_prefix=None)

    @property
    def LISTMONK_SYNC(self):  # noqa: N802
        """Assemble the settings dict read by listmonk_sync."""
        return {
            "BACKEND": "listmonk_sync.backends.listmonk.ListmonkBackend",
            "PARAMETERS": {
                "base_url": self.LISTMONK_BASE_URL,
                "api_user": self.LISTMONK_API_USER,
                "api_token": self.LISTMONK_API_TOKEN,
                "timeout": self.LISTMONK_TIMEOUT,
            },
            "PRECONFIRM_SUBSCRIPTIONS": self.LISTMONK_PRECONFIRM_SUBSCRIPTIONS,
            "DEFAULT_LISTS": list(self.LISTMONK_DEFAULT_LISTS),
            "PASSIVE_LIST_ID": self.LISTMONK_PASSIVE_LIST_ID,
            "EMAIL_CHANGE_POLICY": self.LISTMONK_EMAIL_CHANGE_POLICY,
            "QUEUE": {
                "ENABLED": self.LISTMONK_QUEUE_ENABLED,
                "QUEUE": self.LISTMONK_QUEUE_NAME,
                "DELAY": self.LISTMONK_QUEUE_DELAY,
                "TRIES": self.LISTMONK_QUEUE_TRIES,
                "BACKOFF": self.LISTMONK_QUEUE_BACKOFF,
                "DEAD_LETTER_CALLBACK": self.LISTMONK_QUEUE_DEAD_LETTER_CALLBACK,
            },
            "RATE_LIMIT": {
                "ENABLED": self.LISTMONK_RATE_LIMIT_ENABLED,
                "MAX_ATTEMPTS": self.LISTMONK_RATE_LIMIT_MAX_ATTEMPTS,
                "DECAY_SECONDS": self.LISTMONK_RATE_LIMIT_DECAY_SECONDS,
            },
            "LOCK": {
                "ENABLED": self.LISTMONK_LOCK_ENABLED,
            },
        }
