"""Lifecycle dispatcher mapping local model events to newsletter operations."""

import logging

from django.db import transaction

from listmonk_sync.adapters import describe
from listmonk_sync.conf import get_setting
from listmonk_sync.context import sync_enabled
from listmonk_sync.engine import get_manager
from listmonk_sync.retry import RetryPolicy

logger = logging.getLogger(__name__)


class LifecycleDispatcher:
    """
    Decide which newsletter operation a lifecycle event of a subscriber needs.

    Every event is guarded by ``should_sync``: the subscriber opt-out and the
    scoped switch of ``listmonk_sync.context.without_sync`` (or the explicit
    ``enabled`` keyword). Operations run directly on the engine, or as Celery
    tasks once the current transaction commits when the queue is enabled.
    """

    def __init__(self, manager=None, queue_enabled=None, retry_policy=None):
        """Use the settings for everything not given."""
        self._manager = manager
        self._queue_enabled = queue_enabled
        self._retry_policy = retry_policy

    @property
    def manager(self):
        """Return the reconciliation engine."""
        return self._manager if self._manager is not None else get_manager()

    @property
    def queue_enabled(self) -> bool:
        """Tell whether operations are queued."""
        if self._queue_enabled is not None:
            return self._queue_enabled
        return bool(get_setting("QUEUE")["ENABLED"])

    @property
    def retry_policy(self) -> RetryPolicy:
        """Return the policy of queued operations."""
        return self._retry_policy if self._retry_policy is not None else RetryPolicy.from_settings()

    def should_sync(self, subscriber, enabled=None) -> bool:
        """Check the scoped switch and the subscriber opt-out."""
        if enabled is None:
            enabled = sync_enabled()
        if not enabled:
            return False
        should_sync = getattr(subscriber, "should_sync", None)
        return should_sync() if should_sync is not None else True

    # Operations

    def _enqueue(self, task, *args):
        options = self.retry_policy.apply_async_options()
        transaction.on_commit(lambda: task.apply_async(args=args, **options))

    @staticmethod
    def _reference(subscriber):
        instance = subscriber.instance
        return instance._meta.label, instance.pk  # noqa: SLF001

    def _sync(self, subscriber):
        if self.queue_enabled:
            from listmonk_sync import tasks  # noqa: PLC0415

            self._enqueue(tasks.sync_subscriber, *self._reference(subscriber))
            return
        self.manager.sync(subscriber)

    def _update_partial(self, subscriber, fields):
        if self.queue_enabled:
            from listmonk_sync import tasks  # noqa: PLC0415

            self._enqueue(tasks.update_subscriber, *self._reference(subscriber), list(fields))
            return
        self.manager.update_partial(subscriber, fields)

    def _demote(self, subscriber):
        passive_list_id = subscriber.get_passive_list_id()
        if self.queue_enabled:
            from listmonk_sync import tasks  # noqa: PLC0415

            if passive_list_id is None:
                self._enqueue(tasks.unsubscribe_by_email, subscriber.get_email())
            else:
                self._enqueue(tasks.move_to_passive_list_by_email, subscriber.get_email(), passive_list_id)
            return
        self.manager.move_to_passive_list(subscriber, passive_list_id)

    # Events

    def created(self, subscriber, *, enabled=None):
        """Subscribe a new instance."""
        if not self.should_sync(subscriber, enabled):
            return
        logger.debug("Newsletter created event for %s (%s)", describe(subscriber), subscriber.get_email())
        self._sync(subscriber)

    def updated(self, subscriber, changed_columns=None, old_email=None, *, enabled=None):
        """
        Propagate changes of the watched columns.

        An email change is delegated to ``handle_email_change``. A name change is
        patched with ``update_partial``. A change of another tracked column needs
        the lists and attributes again and triggers a full sync. Nothing happens
        when no watched column changed.
        """
        if not self.should_sync(subscriber, enabled):
            return
        if changed_columns is None:
            changed_columns = subscriber.get_changed_columns()

        email_column = subscriber.get_email_column()
        if email_column in changed_columns:
            if old_email is None:
                old_email = subscriber.get_original(email_column)
            self.handle_email_change(subscriber, old_email)
            return

        name_changed = subscriber.get_name_column() in changed_columns
        tracked_columns = getattr(subscriber, "get_tracked_columns", tuple)()
        tracked_changed = any(column in changed_columns for column in tracked_columns)
        if not name_changed and not tracked_changed:
            return

        logger.debug(
            "Newsletter updated event for %s (%s), changed columns: %s",
            describe(subscriber),
            subscriber.get_email(),
            changed_columns,
        )
        if tracked_changed:
            self._sync(subscriber)
        else:
            self._update_partial(subscriber, ["name"])

    def handle_email_change(self, subscriber, old_email):
        """Release the old email record then sync the new email, as one operation."""
        logger.info(
            "Newsletter email changed for %s from %s to %s",
            describe(subscriber),
            old_email,
            subscriber.get_email(),
        )
        if self.queue_enabled:
            from listmonk_sync import tasks  # noqa: PLC0415

            self._enqueue(tasks.change_subscriber_email, *self._reference(subscriber), old_email)
            return
        self.manager.change_email(subscriber, old_email)

    def soft_deleted(self, subscriber, *, enabled=None):
        """Move to the passive list, or unsubscribe without passive list."""
        if not self.should_sync(subscriber, enabled):
            return
        logger.debug("Newsletter soft deleted event for %s (%s)", describe(subscriber), subscriber.get_email())
        self._demote(subscriber)

    def force_deleted(self, subscriber, *, enabled=None):
        """Same as a soft delete, the remote record is kept on the passive list."""
        if not self.should_sync(subscriber, enabled):
            return
        logger.debug("Newsletter force deleted event for %s (%s)", describe(subscriber), subscriber.get_email())
        self._demote(subscriber)

    def restored(self, subscriber, *, enabled=None):
        """Subscribe a restored instance again."""
        if not self.should_sync(subscriber, enabled):
            return
        logger.debug("Newsletter restored event for %s (%s)", describe(subscriber), subscriber.get_email())
        self._sync(subscriber)

    def saved(self, subscriber, created):
        """Route a post_save of a registered model."""
        if created:
            self.created(subscriber)
            return

        soft_delete_field = getattr(subscriber, "soft_delete_field", None)
        if soft_delete_field and subscriber.was_changed(soft_delete_field):
            if subscriber.is_soft_deleted():
                self.soft_deleted(subscriber)
            else:
                self.restored(subscriber)
            return

        self.updated(subscriber)


dispatcher = LifecycleDispatcher()
