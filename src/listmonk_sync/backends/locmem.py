"""
In-memory newsletter backend.

Records live in the module level ``subscribers`` dict, and every call made to
the backend is appended to ``calls`` so tests can assert on the remote traffic,
the same way Django's locmem email backend exposes ``mail.outbox``.
"""

import itertools
import threading

from listmonk_sync.backends import RemoteSubscriber, SubscriberPayload

from .base import BaseBackend

subscribers: dict[int, RemoteSubscriber] = {}
calls: list[tuple] = []

_lock = threading.Lock()
_ids = itertools.count(1)


def reset():
    """Empty the in-memory directory and the call log."""
    global _ids  # noqa: PLW0603
    with _lock:
        subscribers.clear()
        calls.clear()
        _ids = itertools.count(1)


def add(email, name="", lists=None, attributes=None, status="enabled", subscriber_id=None):
    """Seed a record in the directory, as if it was created in the remote service."""
    with _lock:
        subscriber_id = subscriber_id if subscriber_id is not None else next(_ids)
        subscriber = RemoteSubscriber(
            id=subscriber_id,
            email=email,
            name=name,
            status=status,
            lists=list(lists or []),
            attributes=dict(attributes or {}),
        )
        subscribers[subscriber_id] = subscriber
        return subscriber


class LocMemBackend(BaseBackend):
    """Backend keeping subscriber records in process memory."""

    def _record(self, subscriber_id, payload):
        subscriber = RemoteSubscriber(
            id=subscriber_id,
            email=payload.email,
            name=payload.name,
            status=payload.status,
            lists=list(payload.lists),
            attributes=dict(payload.attributes),
        )
        subscriber.raw = {
            "id": subscriber.id,
            "email": subscriber.email,
            "name": subscriber.name,
            "status": str(subscriber.status),
            "lists": [{"id": list_id} for list_id in subscriber.lists],
            "attribs": subscriber.attributes,
        }
        return subscriber

    def find_by_email(self, email: str) -> RemoteSubscriber | None:
        """Return the oldest record with exactly this email."""
        with _lock:
            calls.append(("find_by_email", email))
            for subscriber_id in sorted(subscribers):
                if subscribers[subscriber_id].email == email:
                    found = subscribers[subscriber_id]
                    return RemoteSubscriber(
                        id=found.id,
                        email=found.email,
                        name=found.name,
                        status=found.status,
                        lists=list(found.lists),
                        attributes=dict(found.attributes),
                    )
        return None

    def create(self, payload: SubscriberPayload) -> RemoteSubscriber:
        """Store a new record."""
        with _lock:
            calls.append(("create", payload))
            subscriber = self._record(next(_ids), payload)
            subscribers[subscriber.id] = subscriber
            return subscriber

    def update(self, subscriber_id, payload: SubscriberPayload) -> RemoteSubscriber:
        """Replace a stored record."""
        with _lock:
            calls.append(("update", subscriber_id, payload))
            subscriber = self._record(subscriber_id, payload)
            subscribers[subscriber_id] = subscriber
            return subscriber

    def delete(self, subscriber_id) -> bool:
        """Drop a stored record."""
        with _lock:
            calls.append(("delete", subscriber_id))
            return subscribers.pop(subscriber_id, None) is not None
