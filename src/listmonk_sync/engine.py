"""
Reconciliation of local subscribers with the remote directory.

The remote service is the source of truth for list membership and knows
subscribers only by email, so every operation looks the email up first and then
decides whether to create, update, demote or delete the remote record. Records
are fetched again by each operation and never reused.
"""

import contextlib
import logging
from dataclasses import dataclass, field
from enum import StrEnum

from django.core.exceptions import ImproperlyConfigured

from listmonk_sync import newsletter, signals
from listmonk_sync.adapters import describe
from listmonk_sync.backends import RemoteSubscriber, SubscriberPayload, SubscriberStatus
from listmonk_sync.conf import EMAIL_CHANGE_PASSIVE, EMAIL_CHANGE_POLICIES, get_setting
from listmonk_sync.exceptions import EmailChangeError
from listmonk_sync.locks import EmailLock
from listmonk_sync.ratelimit import RateLimiter
from listmonk_sync.tools.email import is_valid_subscriber_email, validate_subscriber_email

logger = logging.getLogger(__name__)

PARTIAL_FIELDS = ("email", "name")


class OutcomeKind(StrEnum):
    """Result of a reconciliation."""

    CREATED = "created"
    UPDATED = "updated"
    FAILED = "failed"


@dataclass
class SyncOutcome:
    """Result of a sync, carrying either the remote record or the error."""

    kind: OutcomeKind
    subscriber: object
    record: RemoteSubscriber | None = None
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        """Tell whether the remote record was written."""
        return self.kind != OutcomeKind.FAILED


@dataclass
class SyncFailure:
    """One failed subscriber of a batch."""

    email: str
    subscriber: object
    error: Exception


@dataclass
class SyncReport:
    """Summary of a batch synchronization."""

    succeeded: int = 0
    failed: int = 0
    failures: list[SyncFailure] = field(default_factory=list)


def merge_lists(existing, new) -> list:
    """Return the union of two list id sequences, existing ids first, without duplicates."""
    return list(dict.fromkeys([*existing, *new]))


def _sender(subscriber):
    return type(getattr(subscriber, "instance", subscriber))


class NewsletterManager:
    """
    Reconciliation engine between local subscribers and the remote directory.

    Operations are keyed by email and idempotent: running them twice leaves the
    remote directory in the same state. Errors are logged, announced through
    ``subscriber_sync_failed`` when a subscriber is involved and raised again so
    that a queue can retry the whole operation.
    """

    def __init__(self, backend=None, rate_limiter=None, lock=None, preconfirm_subscriptions=None):
        """Use the configured backend, limiter and lock unless given."""
        self.backend = backend if backend is not None else newsletter
        self.rate_limiter = rate_limiter if rate_limiter is not None else RateLimiter.from_settings()
        self.lock = lock if lock is not None else EmailLock.from_settings()
        if preconfirm_subscriptions is None:
            preconfirm_subscriptions = get_setting("PRECONFIRM_SUBSCRIPTIONS")
        self.preconfirm_subscriptions = bool(preconfirm_subscriptions)

    @contextlib.contextmanager
    def _guard(self, email):
        """Count the operation against the rate limit and hold the email lock."""
        self.rate_limiter.hit()
        with self.lock(email):
            yield

    def _build_payload(self, email, name, lists, attributes, status=SubscriberStatus.ENABLED):
        return SubscriberPayload(
            email=email,
            name=name or "",
            lists=list(lists),
            attributes=dict(attributes or {}),
            status=status,
            preconfirm_subscriptions=self.preconfirm_subscriptions,
        )

    def _sync_locked(self, subscriber, email) -> SyncOutcome:
        remote = self.backend.find_by_email(email)

        if remote is None:
            payload = self._build_payload(
                email=email,
                name=subscriber.get_name(),
                lists=merge_lists([], subscriber.get_lists()),
                attributes=subscriber.get_attributes(),
            )
            return SyncOutcome(OutcomeKind.CREATED, subscriber, record=self.backend.create(payload))

        payload = self._build_payload(
            email=email,
            name=subscriber.get_name(),
            lists=merge_lists(remote.lists, subscriber.get_lists()),
            attributes=subscriber.get_attributes(),
        )
        return SyncOutcome(OutcomeKind.UPDATED, subscriber, record=self.backend.update(remote.id, payload))

    def _reconcile(self, subscriber) -> SyncOutcome:
        try:
            email = validate_subscriber_email(subscriber.get_email())
            with self._guard(email):
                return self._sync_locked(subscriber, email)
        except Exception as err:  # noqa: BLE001
            return SyncOutcome(OutcomeKind.FAILED, subscriber, error=err)

    def _announce(self, outcome: SyncOutcome):
        subscriber = outcome.subscriber
        if outcome.kind == OutcomeKind.FAILED:
            logger.error(
                "Listmonk sync failed for %s (%s): %s",
                subscriber.get_email(),
                describe(subscriber),
                outcome.error,
                exc_info=outcome.error,
            )
            signals.subscriber_sync_failed.send(sender=_sender(subscriber), subscriber=subscriber, error=outcome.error)
            return

        signal = signals.subscriber_created if outcome.kind == OutcomeKind.CREATED else signals.subscriber_updated
        logger.info(
            "Listmonk subscriber %s %s for %s (%s)",
            outcome.record.id,
            outcome.kind,
            outcome.record.email,
            describe(subscriber),
        )
        signal.send(sender=_sender(subscriber), subscriber=subscriber, response=outcome.record.raw)

    def _fail(self, subscriber, error):
        self._announce(SyncOutcome(OutcomeKind.FAILED, subscriber, error=error))

    def sync(self, subscriber) -> SyncOutcome:
        """
        Create or update the remote record of the subscriber.

        When a record exists its lists are merged with the subscriber lists,
        never removed, and its name and attributes are replaced.

        Returns:
            SyncOutcome: with kind CREATED or UPDATED

        Raises:
            NewsletterError: any validation, limiter, lock or remote failure

        """
        outcome = self._reconcile(subscriber)
        self._announce(outcome)
        if outcome.error is not None:
            raise outcome.error
        return outcome

    def update_partial(self, subscriber, fields=PARTIAL_FIELDS) -> SyncOutcome:
        """
        Update only the given fields of the remote record.

        ``fields`` is a subset of ("email", "name"). Status, lists and attributes
        are copied from the remote record. Without a remote record there is
        nothing to patch and a full sync is made instead.
        """
        try:
            email = validate_subscriber_email(subscriber.get_email())
            with self._guard(email):
                remote = self.backend.find_by_email(email)
                if remote is None:
                    outcome = self._sync_locked(subscriber, email)
                else:
                    payload = self._build_payload(
                        email=email if "email" in fields else remote.email,
                        name=subscriber.get_name() if "name" in fields else remote.name,
                        lists=remote.lists,
                        attributes=remote.attributes,
                        status=remote.status,
                    )
                    outcome = SyncOutcome(
                        OutcomeKind.UPDATED, subscriber, record=self.backend.update(remote.id, payload)
                    )
        except Exception as err:
            self._fail(subscriber, err)
            raise

        self._announce(outcome)
        return outcome

    def _unsubscribe_by_email(self, email) -> bool:
        validate_subscriber_email(email)
        with self._guard(email):
            remote = self.backend.find_by_email(email)
            if remote is None:
                logger.debug("No Listmonk subscriber to delete for %s", email)
                return False
            return self.backend.delete(remote.id)

    def unsubscribe_by_email(self, email) -> bool:
        """
        Delete the remote record of the email.

        Returns:
            bool: whether a record was removed, an absent record is not an error

        """
        try:
            return self._unsubscribe_by_email(email)
        except Exception as err:
            logger.error("Listmonk unsubscribe failed for %s: %s", email, err, exc_info=err)
            raise

    def unsubscribe(self, subscriber) -> bool:
        """Delete the remote record of the subscriber and announce it."""
        try:
            removed = self._unsubscribe_by_email(subscriber.get_email())
        except Exception as err:
            self._fail(subscriber, err)
            raise

        if removed:
            logger.info("Listmonk subscriber %s (%s) unsubscribed", subscriber.get_email(), describe(subscriber))
            signals.subscriber_unsubscribed.send(sender=_sender(subscriber), subscriber=subscriber)
        return removed

    def _move_to_passive_list_by_email(self, email, passive_list_id) -> bool:
        validate_subscriber_email(email)
        with self._guard(email):
            remote = self.backend.find_by_email(email)
            if remote is None:
                logger.debug("No Listmonk subscriber to move to the passive list for %s", email)
                return False
            # Replace, not merge: the demoted subscriber leaves every active list.
            payload = self._build_payload(
                email=remote.email,
                name=remote.name,
                lists=[passive_list_id],
                attributes=remote.attributes,
                status=remote.status,
            )
            self.backend.update(remote.id, payload)
            logger.info("Listmonk subscriber %s moved to passive list %s", email, passive_list_id)
            return True

    def move_to_passive_list_by_email(self, email, passive_list_id) -> bool:
        """
        Replace the lists of the remote record with the passive list only.

        Returns:
            bool: whether a record was found and moved

        """
        try:
            return self._move_to_passive_list_by_email(email, passive_list_id)
        except Exception as err:
            logger.error("Listmonk move to passive list failed for %s: %s", email, err, exc_info=err)
            raise

    def move_to_passive_list(self, subscriber, passive_list_id=None) -> bool:
        """Demote the subscriber, or unsubscribe it when no passive list is configured."""
        if passive_list_id is None:
            passive_list_id = subscriber.get_passive_list_id()
        if passive_list_id is None:
            return self.unsubscribe(subscriber)

        try:
            return self._move_to_passive_list_by_email(subscriber.get_email(), passive_list_id)
        except Exception as err:
            self._fail(subscriber, err)
            raise

    def sync_many(self, subscribers) -> SyncReport:
        """Sync subscribers one after the other, collecting failures instead of stopping."""
        report = SyncReport()
        for subscriber in subscribers:
            try:
                self.sync(subscriber)
            except Exception as err:  # noqa: BLE001
                report.failed += 1
                report.failures.append(SyncFailure(email=subscriber.get_email(), subscriber=subscriber, error=err))
            else:
                report.succeeded += 1
        return report

    def change_email(self, subscriber, old_email, policy=None) -> SyncOutcome:
        """
        Release the record of the old email and sync the subscriber under the new one.

        ``policy`` is "delete" (drop the old record) or "passive" (move it to the
        passive list, deleting it when no passive list is configured). The two
        steps are not atomic: if the sync fails once the old record is released,
        the subscriber has no active record at all and ``EmailChangeError`` is
        raised.
        """
        policy = policy or get_setting("EMAIL_CHANGE_POLICY")
        if policy not in EMAIL_CHANGE_POLICIES:
            raise ImproperlyConfigured(f"Unknown email change policy {policy!r}")

        new_email = subscriber.get_email()
        logger.info("Listmonk subscriber %s changes email from %s to %s", describe(subscriber), old_email, new_email)

        try:
            validate_subscriber_email(new_email)
        except Exception as err:
            self._fail(subscriber, err)
            raise

        if old_email == new_email or not is_valid_subscriber_email(old_email):
            return self.sync(subscriber)

        passive_list_id = subscriber.get_passive_list_id()
        try:
            if policy == EMAIL_CHANGE_PASSIVE and passive_list_id is not None:
                self._move_to_passive_list_by_email(old_email, passive_list_id)
            else:
                self._unsubscribe_by_email(old_email)
        except Exception as err:
            self._fail(subscriber, err)
            raise

        try:
            return self.sync(subscriber)
        except Exception as err:
            logger.critical(
                "Listmonk subscriber %s released %s but could not be synced as %s, "
                "it has no active record anymore",
                describe(subscriber),
                old_email,
                new_email,
                exc_info=err,
            )
            raise EmailChangeError(old_email, new_email) from err


def get_manager() -> NewsletterManager:
    """Return an engine configured from the current settings."""
    return NewsletterManager()
