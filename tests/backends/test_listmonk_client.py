"""Test the Listmonk API client resources."""

import pytest
import responses
from django.core.exceptions import ImproperlyConfigured
from responses import matchers

from listmonk_sync.backends.listmonk import ListmonkBackend
from listmonk_sync.client import ListmonkClient
from listmonk_sync.exceptions import RemoteApiError

BASE_URL = "https://listmonk.example.com"
AUTH_HEADERS = {"Authorization": "token api-user:api-token", "Accept": "application/json"}


@pytest.fixture(name="listmonk_client")
def fixture_listmonk_client():
    """Generate a Listmonk client."""
    return ListmonkClient(base_url=BASE_URL, api_user="api-user", api_token="api-token")


def test_client_requires_credentials():
    """Missing parameters are a configuration error."""
    with pytest.raises(ImproperlyConfigured):
        ListmonkClient(base_url=BASE_URL, api_user="api-user", api_token="")


def test_backend_exposes_resources():
    """The backend gives access to the client resources."""
    backend = ListmonkBackend(base_url=BASE_URL, api_user="api-user", api_token="api-token")

    assert backend.subscribers is backend.client.subscribers
    assert backend.lists is backend.client.lists


@responses.activate
def test_subscribers_get(listmonk_client):
    """Filters left to None are not sent."""
    responses.add(
        responses.GET,
        f"{BASE_URL}/api/subscribers",
        json={"data": {"results": [{"id": 1}], "total": 1, "page": 2, "per_page": 50}},
        status=200,
        match=[
            matchers.header_matcher(AUTH_HEADERS),
            matchers.query_param_matcher(
                {"list_id": "3", "order_by": "email", "order": "asc", "page": "2", "per_page": "50"}
            ),
        ],
    )

    page = listmonk_client.subscribers.get(list_id=3, order_by="email", order="asc", page=2, per_page=50)

    assert page["total"] == 1
    assert page["results"] == [{"id": 1}]


@responses.activate
def test_subscribers_find(listmonk_client):
    """A subscriber is read by id."""
    responses.add(responses.GET, f"{BASE_URL}/api/subscribers/9", json={"data": {"id": 9}}, status=200)

    assert listmonk_client.subscribers.find(9) == {"id": 9}


@responses.activate
def test_subscribers_find_missing(listmonk_client):
    """An unknown id is an API error with its status."""
    responses.add(responses.GET, f"{BASE_URL}/api/subscribers/9", json={"message": "not found"}, status=404)

    with pytest.raises(RemoteApiError, match="Failed to find subscriber") as excinfo:
        listmonk_client.subscribers.find(9)

    assert excinfo.value.status_code == 404


@responses.activate
def test_subscribers_delete_many(listmonk_client):
    """Ids are sent as repeated query parameters."""
    responses.add(
        responses.DELETE,
        f"{BASE_URL}/api/subscribers",
        json={"data": True},
        status=200,
        match=[matchers.query_string_matcher("id=3&id=4")],
    )

    assert listmonk_client.subscribers.delete_many([3, 4]) is None


@responses.activate
def test_subscribers_add_to_lists(listmonk_client):
    """Adding subscriptions sends a status, confirmed by default."""
    responses.add(
        responses.PUT,
        f"{BASE_URL}/api/subscribers/lists",
        json={"data": True},
        status=200,
        match=[
            matchers.json_params_matcher(
                {"ids": [3, 4], "target_list_ids": [1], "action": "add", "status": "confirmed"}
            )
        ],
    )

    listmonk_client.subscribers.update_lists([3, 4], [1])

    assert len(responses.calls) == 1


@pytest.mark.parametrize("action", ["remove", "unsubscribe"])
@responses.activate
def test_subscribers_leave_lists(listmonk_client, action):
    """Removing and unsubscribing do not send a status."""
    responses.add(
        responses.PUT,
        f"{BASE_URL}/api/subscribers/lists",
        json={"data": True},
        status=200,
        match=[matchers.json_params_matcher({"ids": [3], "target_list_ids": [1, 2], "action": action})],
    )

    listmonk_client.subscribers.update_lists([3], [1, 2], action=action, status="unconfirmed")

    assert len(responses.calls) == 1


def test_subscribers_unknown_list_action(listmonk_client):
    """Unknown actions are refused before any call."""
    with responses.RequestsMock() as mocked:
        with pytest.raises(ValueError, match="Unknown list action 'move'"):
            listmonk_client.subscribers.update_lists([3], [1], action="move")

        assert len(mocked.calls) == 0


@responses.activate
def test_subscribers_single_record_actions(listmonk_client):
    """Blocklist, bounces, export and opt-in work on one subscriber."""
    responses.add(responses.PUT, f"{BASE_URL}/api/subscribers/9/blocklist", json={"data": True}, status=200)
    responses.add(
        responses.GET,
        f"{BASE_URL}/api/subscribers/9/export",
        json={"data": {"profile": [{"email": "a@x.com"}], "subscriptions": []}},
        status=200,
    )
    responses.add(
        responses.GET,
        f"{BASE_URL}/api/subscribers/9/bounces",
        json={"data": [{"id": 1, "type": "hard"}]},
        status=200,
    )
    responses.add(responses.DELETE, f"{BASE_URL}/api/subscribers/9/bounces", json={"data": True}, status=200)
    responses.add(responses.POST, f"{BASE_URL}/api/subscribers/9/optin", json={"data": True}, status=200)

    listmonk_client.subscribers.blocklist(9)
    export = listmonk_client.subscribers.export(9)
    bounces = listmonk_client.subscribers.bounces(9)
    listmonk_client.subscribers.delete_bounces(9)
    listmonk_client.subscribers.send_optin(9)

    assert export["profile"][0]["email"] == "a@x.com"
    assert bounces == [{"id": 1, "type": "hard"}]
    assert [(call.request.method, call.request.path_url) for call in responses.calls] == [
        ("PUT", "/api/subscribers/9/blocklist"),
        ("GET", "/api/subscribers/9/export"),
        ("GET", "/api/subscribers/9/bounces"),
        ("DELETE", "/api/subscribers/9/bounces"),
        ("POST", "/api/subscribers/9/optin"),
    ]


@responses.activate
def test_lists_get(listmonk_client):
    """Tags are joined and minimal is sent as a string."""
    responses.add(
        responses.GET,
        f"{BASE_URL}/api/lists",
        json={"data": {"results": [{"id": 1, "name": "News"}], "total": 1}},
        status=200,
        match=[
            matchers.query_param_matcher(
                {
                    "query": "news",
                    "status": "active",
                    "tags": "weekly,fr",
                    "order_by": "id",
                    "order": "desc",
                    "page": "1",
                    "per_page": "20",
                    "minimal": "true",
                }
            )
        ],
    )

    page = listmonk_client.lists.get(query="news", status="active", tags=["weekly", "fr"], minimal=True)

    assert page["results"][0]["name"] == "News"


@responses.activate
def test_lists_get_defaults(listmonk_client):
    """Without filters only the paging is sent."""
    responses.add(
        responses.GET,
        f"{BASE_URL}/api/lists",
        json={"data": {"results": []}},
        status=200,
        match=[matchers.query_param_matcher({"order_by": "id", "order": "desc", "page": "1", "per_page": "20"})],
    )

    assert listmonk_client.lists.get() == {"results": []}


@responses.activate
def test_lists_crud(listmonk_client):
    """Lists are created, read, replaced and deleted by id."""
    new_list = {"name": "News", "type": "public", "optin": "double", "tags": ["weekly"]}
    responses.add(
        responses.POST,
        f"{BASE_URL}/api/lists",
        json={"data": {"id": 5, **new_list}},
        status=200,
        match=[matchers.json_params_matcher(new_list)],
    )
    responses.add(responses.GET, f"{BASE_URL}/api/lists/5", json={"data": {"id": 5, **new_list}}, status=200)
    responses.add(
        responses.PUT,
        f"{BASE_URL}/api/lists/5",
        json={"data": {"id": 5, **new_list, "name": "Weekly news"}},
        status=200,
        match=[matchers.json_params_matcher({**new_list, "name": "Weekly news"})],
    )
    responses.add(responses.DELETE, f"{BASE_URL}/api/lists/5", json={"data": True}, status=200)

    assert listmonk_client.lists.create(new_list)["id"] == 5
    assert listmonk_client.lists.find(5)["name"] == "News"
    assert listmonk_client.lists.update(5, {**new_list, "name": "Weekly news"})["name"] == "Weekly news"
    assert listmonk_client.lists.delete(5) is None


@responses.activate
def test_lists_delete_error(listmonk_client):
    """Errors of void operations are raised too."""
    responses.add(responses.DELETE, f"{BASE_URL}/api/lists/5", json={"message": "forbidden"}, status=403)

    with pytest.raises(RemoteApiError, match="Failed to delete list"):
        listmonk_client.lists.delete(5)
