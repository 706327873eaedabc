"""Dummy newsletter backend."""

from listmonk_sync.backends import RemoteSubscriber, SubscriberPayload

from .base import BaseBackend


class DummyBackend(BaseBackend):
    """Dummy backend finding nothing and storing nothing."""

    def find_by_email(self, email: str) -> RemoteSubscriber | None:
        """Never find anything."""
        return None

    def create(self, payload: SubscriberPayload) -> RemoteSubscriber:
        """Echo the payload."""
        return RemoteSubscriber(
            id=0,
            email=payload.email,
            name=payload.name,
            status=payload.status,
            lists=list(payload.lists),
            attributes=dict(payload.attributes),
        )

    def update(self, subscriber_id, payload: SubscriberPayload) -> RemoteSubscriber:
        """Echo the payload."""
        subscriber = self.create(payload)
        subscriber.id = subscriber_id
        return subscriber

    def delete(self, subscriber_id) -> bool:
        """Nothing to delete."""
        return False
