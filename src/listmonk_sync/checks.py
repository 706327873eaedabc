"""System checks of the listmonk_sync settings."""

from urllib.parse import urlparse

from django.core import checks
from django.core.exceptions import ImproperlyConfigured

from listmonk_sync.conf import EMAIL_CHANGE_POLICIES, get_settings


def _is_listmonk_backend(backend):
    return backend.endswith(".ListmonkBackend")


def _positive_int(value):
    try:
        value = int(value)
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


@checks.register()
def check_settings(app_configs=None, **kwargs):
    """Validate settings.LISTMONK_SYNC."""
    errors = []
    try:
        config = get_settings()
    except ImproperlyConfigured as err:
        return [checks.Error(str(err), id="listmonk_sync.E001")]

    parameters = config["PARAMETERS"] or {}
    if _is_listmonk_backend(config["BACKEND"]):
        base_url = parameters.get("base_url")
        parsed = urlparse(base_url or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            errors.append(
                checks.Error(
                    f"Invalid Listmonk base URL: {base_url!r}",
                    hint="Set LISTMONK_SYNC['PARAMETERS']['base_url'].",
                    id="listmonk_sync.E002",
                )
            )
        if not parameters.get("api_user") or not parameters.get("api_token"):
            errors.append(
                checks.Error(
                    "Listmonk API credentials are not configured.",
                    hint="Set LISTMONK_SYNC['PARAMETERS']['api_user'] and ['api_token'].",
                    id="listmonk_sync.E003",
                )
            )

    if not isinstance(config["PRECONFIRM_SUBSCRIPTIONS"], bool):
        errors.append(checks.Error("PRECONFIRM_SUBSCRIPTIONS must be a boolean.", id="listmonk_sync.E004"))

    if not isinstance(config["DEFAULT_LISTS"], list | tuple):
        errors.append(checks.Error("DEFAULT_LISTS must be a list of list ids.", id="listmonk_sync.E005"))

    if config["EMAIL_CHANGE_POLICY"] not in EMAIL_CHANGE_POLICIES:
        errors.append(
            checks.Error(
                f"EMAIL_CHANGE_POLICY must be one of {', '.join(EMAIL_CHANGE_POLICIES)}.",
                id="listmonk_sync.E006",
            )
        )
    elif config["EMAIL_CHANGE_POLICY"] == "passive" and config["PASSIVE_LIST_ID"] is None:
        errors.append(
            checks.Warning(
                "EMAIL_CHANGE_POLICY is 'passive' but no PASSIVE_LIST_ID is set, old emails will be deleted.",
                id="listmonk_sync.W001",
            )
        )

    queue = config["QUEUE"]
    if not isinstance(queue["ENABLED"], bool):
        errors.append(checks.Error("QUEUE['ENABLED'] must be a boolean.", id="listmonk_sync.E007"))
    if _positive_int(queue["TRIES"]) is None:
        errors.append(checks.Error("QUEUE['TRIES'] must be a positive integer.", id="listmonk_sync.E008"))

    rate_limit = config["RATE_LIMIT"]
    if rate_limit["ENABLED"] and (
        _positive_int(rate_limit["MAX_ATTEMPTS"]) is None or _positive_int(rate_limit["DECAY_SECONDS"]) is None
    ):
        errors.append(
            checks.Error(
                "RATE_LIMIT['MAX_ATTEMPTS'] and ['DECAY_SECONDS'] must be positive.",
                id="listmonk_sync.E009",
            )
        )
    return errors
