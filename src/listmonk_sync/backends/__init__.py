"""Remote directory backends module."""

from dataclasses import dataclass, field
from enum import StrEnum


class SubscriberStatus(StrEnum):
    """Status of a remote subscriber record."""

    ENABLED = "enabled"
    DISABLED = "disabled"
    BLOCKLISTED = "blocklisted"


def extract_list_ids(lists) -> list[int]:
    """Return list ids from either list objects or plain ids, keeping order."""
    list_ids = []
    for item in lists or []:
        list_id = item.get("id") if isinstance(item, dict) else item
        if list_id is not None and list_id not in list_ids:
            list_ids.append(list_id)
    return list_ids


@dataclass
class SubscriberPayload:
    """Data sent to the remote service on create and update."""

    email: str
    name: str
    lists: list[int]
    attributes: dict = field(default_factory=dict)
    status: str = SubscriberStatus.ENABLED
    preconfirm_subscriptions: bool = True


@dataclass
class RemoteSubscriber:
    """Request scoped copy of a subscriber record held by the remote service."""

    id: int
    email: str
    name: str = ""
    status: str = SubscriberStatus.ENABLED
    lists: list[int] = field(default_factory=list)
    attributes: dict = field(default_factory=dict)
    raw: dict = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_api(cls, data: dict) -> "RemoteSubscriber":
        """Build a record from a Listmonk subscriber object."""
        return cls(
            id=data["id"],
            email=data.get("email", ""),
            name=data.get("name") or "",
            status=data.get("status") or SubscriberStatus.ENABLED,
            lists=extract_list_ids(data.get("lists")),
            attributes=data.get("attribs") or {},
            raw=data,
        )
