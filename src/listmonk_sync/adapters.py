"""Adapters exposing local models as newsletter subscribers."""

from typing import Protocol, runtime_checkable

from listmonk_sync.conf import get_setting

SNAPSHOT_ATTRIBUTE = "_listmonk_sync_snapshot"


@runtime_checkable
class NewsletterSubscriber(Protocol):
    """Capabilities the reconciliation engine needs from a local subscriber."""

    def get_email(self) -> str:
        """Return the email keying the remote record."""

    def get_name(self) -> str:
        """Return the display name."""

    def get_attributes(self) -> dict:
        """Return the custom attributes sent along the subscriber."""

    def get_lists(self) -> list[int]:
        """Return the ids of the lists the subscriber should belong to."""

    def get_email_column(self) -> str:
        """Return the name of the local email column."""

    def get_name_column(self) -> str:
        """Return the name of the local display name column."""

    def get_passive_list_id(self) -> int | None:
        """Return the list used to demote the subscriber, if any."""


def describe(subscriber) -> str:
    """Return a label identifying a subscriber in the logs."""
    return getattr(subscriber, "identity", None) or repr(subscriber)


class SubscriberAdapter:
    """
    Wrap a model instance to expose it to the reconciliation engine.

    Subclass it for each registered model and override the class attributes, or
    the getters for computed values:

        class UserSubscriber(SubscriberAdapter):
            name_field = "full_name"
            list_ids = [1, 4]
            soft_delete_field = "deleted_at"

            def get_attributes(self):
                return {"plan": self.instance.plan}

    An instance can opt out of synchronization by setting the attribute named by
    ``sync_opt_out_attribute`` to a truthy value.
    """

    email_field = "email"
    name_field = "name"
    # Other columns whose change should trigger a synchronization.
    tracked_fields: tuple[str, ...] = ()
    # None falls back to settings.LISTMONK_SYNC["DEFAULT_LISTS"].
    list_ids: list[int] | None = None
    # None falls back to settings.LISTMONK_SYNC["PASSIVE_LIST_ID"].
    passive_list_id: int | None = None
    # Nullable column set when the instance is soft deleted.
    soft_delete_field: str | None = None
    sync_opt_out_attribute = "skip_newsletter_sync"

    def __init__(self, instance):
        """Wrap the instance."""
        self.instance = instance

    def __repr__(self):
        """Represent the adapter with the wrapped instance identity."""
        return f"<{self.__class__.__name__} {self.identity}>"

    @property
    def identity(self) -> str:
        """Return ``app_label.Model:pk`` for model instances."""
        meta = getattr(self.instance, "_meta", None)
        label = meta.label if meta is not None else type(self.instance).__name__
        return f"{label}:{getattr(self.instance, 'pk', None)}"

    def get_email(self) -> str:
        """Return the value of the email column."""
        return getattr(self.instance, self.email_field, None) or ""

    def get_name(self) -> str:
        """Return the value of the name column."""
        name = getattr(self.instance, self.name_field, None)
        return "" if name is None else str(name)

    def get_attributes(self) -> dict:
        """No custom attribute by default."""
        return {}

    def get_lists(self) -> list[int]:
        """Return the adapter lists or the default lists from the settings."""
        if self.list_ids is not None:
            return list(self.list_ids)
        return list(get_setting("DEFAULT_LISTS") or [])

    def get_email_column(self) -> str:
        """Return the email column name."""
        return self.email_field

    def get_name_column(self) -> str:
        """Return the name column name."""
        return self.name_field

    def get_tracked_columns(self) -> tuple[str, ...]:
        """Return the extra columns watched for changes."""
        return tuple(self.tracked_fields)

    def get_passive_list_id(self) -> int | None:
        """Return the adapter passive list or the one from the settings."""
        if self.passive_list_id is not None:
            return self.passive_list_id
        return get_setting("PASSIVE_LIST_ID")

    def should_sync(self) -> bool:
        """Instance level opt-out."""
        return not getattr(self.instance, self.sync_opt_out_attribute, False)

    def is_soft_deleted(self) -> bool:
        """Tell whether the soft delete column is set."""
        if not self.soft_delete_field:
            return False
        return bool(getattr(self.instance, self.soft_delete_field, None))

    # Change tracking

    def _watched_columns(self):
        columns = [self.email_field, self.name_field, *self.get_tracked_columns()]
        if self.soft_delete_field:
            columns.append(self.soft_delete_field)
        return list(dict.fromkeys(columns))

    def _deferred_columns(self):
        get_deferred_fields = getattr(self.instance, "get_deferred_fields", None)
        return get_deferred_fields() if get_deferred_fields is not None else set()

    def take_snapshot(self):
        """
        Remember the current value of the watched columns on the instance.

        Deferred columns (``.only()``, ``.defer()``) are left out: reading them
        would load the instance again and send a new ``post_init``. A column
        missing from the snapshot is considered unchanged.
        """
        deferred = self._deferred_columns()
        snapshot = {
            column: getattr(self.instance, column, None)
            for column in self._watched_columns()
            if column not in deferred
        }
        setattr(self.instance, SNAPSHOT_ATTRIBUTE, snapshot)

    def _snapshot(self):
        return getattr(self.instance, SNAPSHOT_ATTRIBUTE, None) or {}

    def get_original(self, column):
        """Return the value the column had when the snapshot was taken."""
        snapshot = self._snapshot()
        if column in snapshot:
            return snapshot[column]
        return getattr(self.instance, column, None)

    def was_changed(self, column) -> bool:
        """Tell whether the column differs from the snapshot."""
        snapshot = self._snapshot()
        if column not in snapshot:
            return False
        return snapshot[column] != getattr(self.instance, column, None)

    def get_changed_columns(self) -> list[str]:
        """Return the watched columns that differ from the snapshot."""
        return [column for column in self._watched_columns() if self.was_changed(column)]
