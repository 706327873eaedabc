"""Listmonk REST API client."""

import requests
from django.core.exceptions import ImproperlyConfigured

from listmonk_sync.exceptions import RemoteApiError, RemoteConnectionError

LIST_ACTIONS = ("add", "remove", "unsubscribe")


def _params(**params):
    return {key: value for key, value in params.items() if value is not None}


class ListmonkClient:
    """
    Listmonk API user client.

    Gives access to the ``subscribers`` and ``lists`` resources, each operation
    returning the ``data`` member of the Listmonk answer.
    """

    def __init__(self, base_url: str, api_user: str, api_token: str, timeout: int = 10):
        """Configure the client."""
        if not base_url or not api_user or not api_token:
            raise ImproperlyConfigured(
                f"Could not instantiate {self.__class__.__name__}, base_url, api_user and api_token are required."
            )
        self.base_url = base_url.rstrip("/")
        self._api_user = api_user
        self._api_token = api_token
        self.timeout = timeout
        self.subscribers = Subscribers(self)
        self.lists = Lists(self)

    @property
    def _headers(self):
        """Listmonk API user token authentication."""
        return {
            "Authorization": f"token {self._api_user}:{self._api_token}",
            "Accept": "application/json",
        }

    def request(self, method, path, operation, **kwargs):
        """
        Execute an API call with unified error handling.

        Args:
            method: HTTP method
            path: path below the base URL, starting with a slash
            operation: what the call does, used in error messages
            **kwargs: passed to ``requests.request``

        Raises:
            RemoteApiError: If Listmonk answers with a non-success status
            RemoteConnectionError: If Listmonk cannot be reached

        """
        try:
            response = requests.request(
                method,
                f"{self.base_url}{path}",
                headers=self._headers,
                timeout=self.timeout,
                **kwargs,
            )
        except requests.Timeout as err:
            raise RemoteConnectionError(
                "Request timed out while connecting to Listmonk API. "
                "Please check network connectivity or increase timeout."
            ) from err
        except requests.ConnectionError as err:
            raise RemoteConnectionError(f"Cannot connect to Listmonk API: {err}") from err
        except requests.RequestException as err:
            raise RemoteApiError(f"Unexpected error during {operation}: {err}") from err

        if not response.ok:
            raise RemoteApiError(
                f"Failed to {operation}: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )
        return response

    def fetch(self, method, path, operation, **kwargs):
        """Execute an API call and return the ``data`` member of the answer."""
        response = self.request(method, path, operation, **kwargs)
        try:
            return response.json()["data"]
        except (ValueError, KeyError, TypeError) as err:
            raise RemoteApiError(
                f"Unexpected response during {operation}: {response.text}",
                status_code=response.status_code,
                body=response.text,
            ) from err

    def health(self) -> bool:
        """GET /api/health."""
        self.request("GET", "/api/health", "check health")
        return True


class Subscribers:
    """Subscribers resource."""

    def __init__(self, client: ListmonkClient):
        """Bind the resource to the client."""
        self.client = client

    def get(
        self,
        query: str | None = None,
        list_id: int | None = None,
        subscription_status: str | None = None,
        order_by: str = "id",
        order: str = "desc",
        page: int = 1,
        per_page: int = 20,
    ) -> dict:
        """
        GET /api/subscribers.

        Args:
            query: SQL expression on the ``subscribers`` table
            list_id: only subscribers of this list
            subscription_status: only subscriptions in this status
            order_by: sort column
            order: ``asc`` or ``desc``
            page: page number, starting at 1
            per_page: page size

        Returns:
            dict: the page, with ``results``, ``total``, ``page`` and ``per_page``

        """
        params = _params(
            query=query,
            list_id=list_id,
            subscription_status=subscription_status,
            order_by=order_by,
            order=order,
            page=page,
            per_page=per_page,
        )
        return self.client.fetch("GET", "/api/subscribers", "fetch subscribers", params=params)

    def find(self, subscriber_id) -> dict:
        """GET /api/subscribers/{id}."""
        return self.client.fetch("GET", f"/api/subscribers/{subscriber_id}", "find subscriber")

    def create(self, data: dict) -> dict:
        """POST /api/subscribers."""
        return self.client.fetch("POST", "/api/subscribers", "create subscriber", json=data)

    def update(self, subscriber_id, data: dict) -> dict:
        """PUT /api/subscribers/{id}, replacing the whole record."""
        return self.client.fetch("PUT", f"/api/subscribers/{subscriber_id}", "update subscriber", json=data)

    def delete(self, subscriber_id):
        """DELETE /api/subscribers/{id}."""
        self.client.request("DELETE", f"/api/subscribers/{subscriber_id}", "delete subscriber")

    def delete_many(self, subscriber_ids):
        """DELETE /api/subscribers?id=..&id=.."""
        self.client.request(
            "DELETE", "/api/subscribers", "delete subscribers", params={"id": list(subscriber_ids)}
        )

    def update_lists(self, subscriber_ids, list_ids, action: str = "add", status: str | None = None):
        """
        PUT /api/subscribers/lists.

        Args:
            subscriber_ids: subscribers to change
            list_ids: lists to add, remove or unsubscribe
            action: one of ``add``, ``remove`` or ``unsubscribe``
            status: subscription status for ``add``, ``confirmed`` when omitted

        Raises:
            ValueError: If the action is unknown

        """
        if action not in LIST_ACTIONS:
            raise ValueError(f"Unknown list action {action!r}, expected one of {', '.join(LIST_ACTIONS)}.")
        body = {"ids": list(subscriber_ids), "target_list_ids": list(list_ids), "action": action}
        if action == "add":
            body["status"] = status or "confirmed"
        self.client.request("PUT", "/api/subscribers/lists", "update subscriber lists", json=body)

    def blocklist(self, subscriber_id):
        """PUT /api/subscribers/{id}/blocklist."""
        self.client.request("PUT", f"/api/subscribers/{subscriber_id}/blocklist", "blocklist subscriber")

    def export(self, subscriber_id) -> dict:
        """GET /api/subscribers/{id}/export, all the data kept on the subscriber."""
        return self.client.fetch("GET", f"/api/subscribers/{subscriber_id}/export", "export subscriber")

    def bounces(self, subscriber_id) -> list:
        """GET /api/subscribers/{id}/bounces."""
        return self.client.fetch("GET", f"/api/subscribers/{subscriber_id}/bounces", "fetch subscriber bounces")

    def delete_bounces(self, subscriber_id):
        """DELETE /api/subscribers/{id}/bounces."""
        self.client.request("DELETE", f"/api/subscribers/{subscriber_id}/bounces", "delete subscriber bounces")

    def send_optin(self, subscriber_id):
        """POST /api/subscribers/{id}/optin."""
        self.client.request("POST", f"/api/subscribers/{subscriber_id}/optin", "send optin")


class Lists:
    """Lists resource."""

    def __init__(self, client: ListmonkClient):
        """Bind the resource to the client."""
        self.client = client

    def get(
        self,
        query: str | None = None,
        status: str | None = None,
        tags=None,
        order_by: str = "id",
        order: str = "desc",
        page: int = 1,
        per_page: int = 20,
        minimal: bool = False,
    ) -> dict:
        """
        GET /api/lists.

        ``tags`` is a list of tag names sent comma separated. ``minimal`` asks for
        every list without subscriber counts.
        """
        params = _params(
            query=query,
            status=status,
            tags=",".join(tags) if tags else None,
            order_by=order_by,
            order=order,
            page=page,
            per_page=per_page,
            minimal="true" if minimal else None,
        )
        return self.client.fetch("GET", "/api/lists", "fetch lists", params=params)

    def find(self, list_id) -> dict:
        """GET /api/lists/{id}."""
        return self.client.fetch("GET", f"/api/lists/{list_id}", "find list")

    def create(self, data: dict) -> dict:
        """POST /api/lists."""
        return self.client.fetch("POST", "/api/lists", "create list", json=data)

    def update(self, list_id, data: dict) -> dict:
        """PUT /api/lists/{id}."""
        return self.client.fetch("PUT", f"/api/lists/{list_id}", "update list", json=data)

    def delete(self, list_id):
        """DELETE /api/lists/{id}."""
        self.client.request("DELETE", f"/api/lists/{list_id}", "delete list")
