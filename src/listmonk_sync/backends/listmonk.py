"""Listmonk newsletter integration."""

import logging

import requests

from listmonk_sync.backends import RemoteSubscriber, SubscriberPayload
from listmonk_sync.client import ListmonkClient
from listmonk_sync.exceptions import RemoteApiError

from .base import BaseBackend

logger = logging.getLogger(__name__)


class ListmonkBackend(BaseBackend):
    """
    Listmonk subscribers API integration.

    Handles:
    - Subscriber lookup by email through the SQL query filter
    - Subscriber creation, replacement and deletion
    - Health check of the Listmonk instance

    The whole API stays reachable through the ``subscribers`` and ``lists``
    resources of the underlying client.
    """

    def __init__(self, base_url: str = "", api_user: str = "", api_token: str = "", timeout: int = 10):
        """Configure the Listmonk backend."""
        self.client = ListmonkClient(base_url, api_user, api_token, timeout=timeout)

    @property
    def base_url(self):
        """Listmonk root URL without trailing slash."""
        return self.client.base_url

    @property
    def timeout(self):
        """Timeout of each API call, in seconds."""
        return self.client.timeout

    @property
    def subscribers(self):
        """Subscribers resource of the Listmonk API."""
        return self.client.subscribers

    @property
    def lists(self):
        """Lists resource of the Listmonk API."""
        return self.client.lists

    @staticmethod
    def _serialize(payload: SubscriberPayload) -> dict:
        return {
            "email": payload.email,
            "name": payload.name,
            "status": str(payload.status),
            "lists": list(payload.lists),
            "attribs": payload.attributes,
            "preconfirm_subscriptions": payload.preconfirm_subscriptions,
        }

    def find_by_email(self, email: str) -> RemoteSubscriber | None:
        """Find a subscriber with an exact match query on the email column."""
        escaped_email = email.replace("'", "''")
        page = self.subscribers.get(query=f"subscribers.email = '{escaped_email}'", per_page=1)
        results = (page or {}).get("results") or []
        if not results:
            return None
        return RemoteSubscriber.from_api(results[0])

    def create(self, payload: SubscriberPayload) -> RemoteSubscriber:
        """POST /api/subscribers."""
        subscriber = RemoteSubscriber.from_api(self.subscribers.create(self._serialize(payload)))
        logger.info("Listmonk subscriber %s created for %s", subscriber.id, payload.email)
        return subscriber

    def update(self, subscriber_id, payload: SubscriberPayload) -> RemoteSubscriber:
        """PUT /api/subscribers/{id}."""
        subscriber = RemoteSubscriber.from_api(self.subscribers.update(subscriber_id, self._serialize(payload)))
        logger.info("Listmonk subscriber %s updated for %s", subscriber_id, payload.email)
        return subscriber

    def delete(self, subscriber_id) -> bool:
        """DELETE /api/subscribers/{id}."""
        try:
            self.subscribers.delete(subscriber_id)
        except RemoteApiError as err:
            if err.status_code == requests.codes.not_found:
                return False
            raise
        logger.info("Listmonk subscriber %s deleted", subscriber_id)
        return True

    def health(self) -> bool:
        """GET /api/health."""
        return self.client.health()
