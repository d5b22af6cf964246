# subscriber_sync/models/domain/subscriber_domain.py
"""
Subscriber Domain Models
Domain models for the local subscriber records and their Mailchimp counterparts.
Used by services for internal processing and by routes for response building.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

from subscriber_sync.security.hashing import subscriber_hash


def is_valid_email(email: str | None) -> bool:
    """
    Rudimentary email check: non-empty and contains both "@" and ".".
    Deliberately permissive, not RFC 5322.
    """
    if not email or not isinstance(email, str):
        return False
    return "@" in email and "." in email


class SubscriberRecord(BaseModel):
    """Locally persisted subscriber, keyed by normalized email."""

    model_config = ConfigDict(extra="allow")

    email: str


class RemoteList:
    """Domain model for a Mailchimp list (audience)."""

    def __init__(self, data: dict):
        self.id = data.get("id")
        self.name = data.get("name", "")
        self.member_count = data.get("stats", {}).get("member_count", 0)
        self.raw_data = data


class RemoteInterestCategory:
    """Domain model for a Mailchimp interest category (a "group title")."""

    def __init__(self, data: dict):
        self.id = data.get("id")
        self.list_id = data.get("list_id")
        self.title = data.get("title", "")
        self.type = data.get("type", "hidden")
        self.raw_data = data


class RemoteInterest:
    """Domain model for a single interest (group) inside a category."""

    def __init__(self, data: dict):
        self.id = data.get("id")
        self.category_id = data.get("category_id")
        self.list_id = data.get("list_id")
        self.name = data.get("name", "")
        self.raw_data = data


class RemoteMember:
    """Domain model for a Mailchimp list member."""

    def __init__(self, data: dict):
        self.email_address = data.get("email_address", "")
        self.id = data.get("id") or subscriber_hash(self.email_address)
        self.status = data.get("status", "")
        self.list_id = data.get("list_id")
        self.interests = data.get("interests", {}) or {}
        self.tags = [tag.get("name") for tag in data.get("tags", []) or [] if tag.get("name")]
        self.raw_data = data

    def is_subscribed(self) -> bool:
        return self.status == "subscribed"

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email_address": self.email_address,
            "status": self.status,
            "list_id": self.list_id,
            "tags": list(self.tags),
            "interests": dict(self.interests),
        }


@dataclass
class UpsertResult:
    """
    Outcome of a subscribe-then-tag sequence.

    The two remote calls are not atomic: when tagging fails the member stays
    subscribed and ``tag_error`` carries the failure.
    """

    member: RemoteMember
    tags_requested: list[str] = field(default_factory=list)
    tags_applied: bool = True
    tag_error: Exception | None = None

    @property
    def partial(self) -> bool:
        return not self.tags_applied


class SubscriberOutcome(str, Enum):
    SUCCESS = "success"
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    STORAGE_FAILURE = "storage_failure"
    REMOTE_FAILURE = "remote_failure"
    CRITICAL_INCONSISTENCY = "critical_inconsistency"


@dataclass
class LifecycleResult:
    """Result of a subscriber lifecycle operation."""

    email: str | None
    operation: str
    outcome: SubscriberOutcome
    message: str
    error: Exception | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.outcome is SubscriberOutcome.SUCCESS


@dataclass
class RemoteStatus:
    """Read-through view of an email's membership in the Mailchimp list."""

    email: str
    is_member: bool
    member: RemoteMember | None = None
