"""Remote directory backend base module."""

from abc import ABC, abstractmethod

from listmonk_sync.backends import RemoteSubscriber, SubscriberPayload


class BaseBackend(ABC):
    """Base class for all remote directory backends."""

    @abstractmethod
    def find_by_email(self, email: str) -> RemoteSubscriber | None:
        """
        Find the subscriber record matching exactly the email.

        Returns:
            RemoteSubscriber | None: the record, or None when absent

        Raises:
            RemoteApiError: If the service answers with an error
            RemoteConnectionError: If the service cannot be reached

        """

    @abstractmethod
    def create(self, payload: SubscriberPayload) -> RemoteSubscriber:
        """Create a subscriber record."""

    @abstractmethod
    def update(self, subscriber_id, payload: SubscriberPayload) -> RemoteSubscriber:
        """Replace the subscriber record identified by subscriber_id."""

    @abstractmethod
    def delete(self, subscriber_id) -> bool:
        """
        Delete the subscriber record identified by subscriber_id.

        Returns:
            bool: False if the record was already gone

        """

    def health(self) -> bool:
        """Tell whether the remote service is reachable."""
        return True
