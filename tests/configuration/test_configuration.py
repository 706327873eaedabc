"""Tests for the django-configurations integration."""

import pytest

from listmonk_sync.configuration import ListmonkConfigurationMixin, SecretFileValue
from listmonk_sync.conf import get_settings

ENVIRONMENT = (
    "LISTMONK_API_TOKEN",
    "LISTMONK_API_TOKEN_FILE",
    "LISTMONK_API_TOKEN_PATH",
    "LISTMONK_TIMEOUT",
    "LISTMONK_DEFAULT_LISTS",
)


@pytest.fixture(autouse=True)
def _mock_clear_env(monkeypatch):
    """Reset environment variables."""
    for name in ENVIRONMENT:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(name="token_file")
def fixture_token_file(tmp_path):
    """Write an API token in a docker secret like file."""
    path = tmp_path / "listmonk_token"
    path.write_text("TokenInFile\n")
    return str(path)


def test_secret_default():
    """Test call with no environment variable."""
    value = SecretFileValue("DefaultToken", environ_prefix=None)
    assert value.setup("LISTMONK_API_TOKEN") == "DefaultToken"


def test_secret_in_env(monkeypatch):
    """Test call with the token environment variable."""
    monkeypatch.setenv("LISTMONK_API_TOKEN", "TokenInEnv")
    value = SecretFileValue("DefaultToken", environ_prefix=None)
    assert value.setup("LISTMONK_API_TOKEN") == "TokenInEnv"


def test_secret_in_file(monkeypatch, token_file):
    """The file wins over the plain variable, without its trailing newline."""
    monkeypatch.setenv("LISTMONK_API_TOKEN", "TokenInEnv")
    monkeypatch.setenv("LISTMONK_API_TOKEN_FILE", token_file)
    value = SecretFileValue("DefaultToken", environ_prefix=None)
    assert value.setup("LISTMONK_API_TOKEN") == "TokenInFile"


def test_secret_in_file_suffix(monkeypatch, token_file):
    """Test call with a non default `file_suffix`."""
    monkeypatch.setenv("LISTMONK_API_TOKEN_PATH", token_file)
    value = SecretFileValue("DefaultToken", environ_prefix=None, file_suffix="PATH")
    assert value.setup("LISTMONK_API_TOKEN") == "TokenInFile"


def test_secret_missing_file(monkeypatch, tmp_path):
    """A file variable pointing nowhere is an error."""
    monkeypatch.setenv("LISTMONK_API_TOKEN_FILE", str(tmp_path / "missing"))
    value = SecretFileValue("DefaultToken", environ_prefix=None)
    with pytest.raises(ValueError, match="does not exist"):
        value.setup("LISTMONK_API_TOKEN")


def test_secret_in_file_trailing_whitespace(monkeypatch, tmp_path):
    """A secret saved with Windows line endings keeps only the token."""
    path = tmp_path / "listmonk_token"
    path.write_bytes(b"TokenInFile \r\n")
    monkeypatch.setenv("LISTMONK_API_TOKEN_FILE", str(path))
    value = SecretFileValue("DefaultToken", environ_prefix=None)
    assert value.setup("LISTMONK_API_TOKEN") == "TokenInFile"


def test_secret_empty_file(monkeypatch, tmp_path):
    """An empty secret file is an error rather than an empty token."""
    path = tmp_path / "listmonk_token"
    path.write_text("\n")
    monkeypatch.setenv("LISTMONK_API_TOKEN_FILE", str(path))
    value = SecretFileValue("DefaultToken", environ_prefix=None)
    with pytest.raises(ValueError, match="is empty"):
        value.setup("LISTMONK_API_TOKEN")


def test_secret_required():
    """A required value must be set."""
    value = SecretFileValue(environ_prefix=None, environ_required=True)
    with pytest.raises(ValueError, match="LISTMONK_API_TOKEN_FILE"):
        value.setup("LISTMONK_API_TOKEN")


def test_mixin_values_from_environment(monkeypatch):
    """The mixin values read the unprefixed LISTMONK_* variables."""
    monkeypatch.setenv("LISTMONK_TIMEOUT", "30")
    monkeypatch.setenv("LISTMONK_DEFAULT_LISTS", "1,4")

    assert ListmonkConfigurationMixin.LISTMONK_TIMEOUT.setup("LISTMONK_TIMEOUT") == 30
    assert ListmonkConfigurationMixin.LISTMONK_DEFAULT_LISTS.setup("LISTMONK_DEFAULT_LISTS") == [1, 4]


class ResolvedSettings(ListmonkConfigurationMixin):
    """Mixin with the values a Configuration class would have resolved."""

    LISTMONK_BASE_URL = "https://listmonk.example.com"
    LISTMONK_API_USER = "api"
    LISTMONK_API_TOKEN = "secret"  # noqa: S105
    LISTMONK_TIMEOUT = 30
    LISTMONK_PRECONFIRM_SUBSCRIPTIONS = False
    LISTMONK_DEFAULT_LISTS = (1, 4)
    LISTMONK_PASSIVE_LIST_ID = 9
    LISTMONK_EMAIL_CHANGE_POLICY = "passive"
    LISTMONK_QUEUE_ENABLED = True
    LISTMONK_QUEUE_NAME = "newsletter"
    LISTMONK_QUEUE_DELAY = 0
    LISTMONK_QUEUE_TRIES = 5
    LISTMONK_QUEUE_BACKOFF = "5,10"
    LISTMONK_QUEUE_DEAD_LETTER_CALLBACK = None
    LISTMONK_RATE_LIMIT_ENABLED = True
    LISTMONK_RATE_LIMIT_MAX_ATTEMPTS = 100
    LISTMONK_RATE_LIMIT_DECAY_SECONDS = 60
    LISTMONK_LOCK_ENABLED = False


def test_mixin_assembles_listmonk_sync():
    """The LISTMONK_SYNC dict is built from the flat values."""
    config = ResolvedSettings().LISTMONK_SYNC

    assert config["BACKEND"] == "listmonk_sync.backends.listmonk.ListmonkBackend"
    assert config["PARAMETERS"] == {
        "base_url": "https://listmonk.example.com",
        "api_user": "api",
        "api_token": "secret",
        "timeout": 30,
    }
    assert config["DEFAULT_LISTS"] == [1, 4]
    assert config["QUEUE"]["QUEUE"] == "newsletter"
    assert config["RATE_LIMIT"] == {"ENABLED": True, "MAX_ATTEMPTS": 100, "DECAY_SECONDS": 60}

    merged = get_settings(config)
    assert merged["PRECONFIRM_SUBSCRIPTIONS"] is False
    assert merged["EMAIL_CHANGE_POLICY"] == "passive"
    assert merged["RATE_LIMIT"]["KEY"] == "listmonk_sync:rate_limit"
    assert merged["LOCK"] == {"ENABLED": False, "TIMEOUT": 30, "WAIT": 10, "CACHE": "default"}
