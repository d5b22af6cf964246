import re

import pytest

from subscriber_sync.config import Settings
from subscriber_sync.security.hashing import subscriber_hash
from subscriber_sync.services.mailchimp.client import (
    MailchimpError,
    MailchimpNotFoundError,
)
from subscriber_sync.services.record_store import RecordStore
from subscriber_sync.services.redis_client import RedisClientError
from subscriber_sync.services.subscriber_lifecycle import SubscriberLifecycle
from subscriber_sync.services.subscription_service import SubscriptionService

LIST_NAME = "MailingList"


class FakeRedis:
    """In-memory stand-in for RedisClient's hash commands."""

    def __init__(self):
        self.hashes: dict[str, dict[str, str]] = {}
        self.failing: set[str] = set()

    def fail(self, *operations: str) -> None:
        self.failing.update(operations)

    def _check(self, operation: str) -> None:
        if operation in self.failing:
            raise RedisClientError(f"{operation} unavailable", operation=operation)

    async def ping(self) -> bool:
        return "ping" not in self.failing

    async def hget(self, name: str, key: str) -> str | None:
        self._check("hget")
        return self.hashes.get(name, {}).get(key)

    async def hset(self, name: str, key: str, value: str) -> bool:
        self._check("hset")
        self.hashes.setdefault(name, {})[key] = value
        return True

    async def hdel(self, name: str, key: str) -> bool:
        self._check("hdel")
        return self.hashes.get(name, {}).pop(key, None) is not None

    async def hgetall(self, name: str) -> dict[str, str]:
        self._check("hgetall")
        return dict(self.hashes.get(name, {}))


class FakeMailchimp:
    """
    In-memory stand-in for MailchimpClient.

    Implements just the resources the subscription service touches and
    records every call as (method, path).
    """

    def __init__(self):
        self.lists: list[dict] = []
        self.categories: dict[str, list[dict]] = {}
        self.interests: dict[str, list[dict]] = {}
        self.members: dict[tuple[str, str], dict] = {}
        self.calls: list[tuple[str, str]] = []
        self.failures: list[tuple[str, str, Exception]] = []
        self._next_id = 0

    # -- setup helpers -------------------------------------------------

    def _new_id(self, prefix: str) -> str:
        self._next_id += 1
        return f"{prefix}{self._next_id}"

    def add_list(self, name: str) -> str:
        list_id = self._new_id("list")
        self.lists.append({"id": list_id, "name": name, "stats": {"member_count": 0}})
        self.categories[list_id] = []
        return list_id

    def add_group(self, list_id: str, title: str, interest_name: str | None = None) -> str:
        category_id = self._new_id("cat")
        self.categories[list_id].append(
            {"id": category_id, "list_id": list_id, "title": title, "type": "hidden"}
        )
        interest_id = self._new_id("int")
        self.interests[category_id] = [
            {
                "id": interest_id,
                "category_id": category_id,
                "list_id": list_id,
                "name": interest_name or title,
            }
        ]
        return interest_id

    def fail(self, method: str, path_pattern: str, error: Exception) -> None:
        self.failures.append((method, path_pattern, error))

    def count(self, method: str, path_pattern: str) -> int:
        return sum(1 for m, p in self.calls if m == method and re.search(path_pattern, p))

    # -- MailchimpClient interface ------------------------------------

    def _record(self, method: str, path: str) -> None:
        self.calls.append((method, path))
        for fail_method, pattern, error in self.failures:
            if fail_method == method and re.search(pattern, path):
                raise error

    def _not_found(self, what: str) -> MailchimpNotFoundError:
        return MailchimpNotFoundError(
            f"{what} not found", status_code=404, title="Resource Not Found"
        )

    async def get(self, path: str, params: dict | None = None) -> dict:
        self._record("GET", path)
        if path == "/lists":
            return {"lists": list(self.lists)}
        if path == "/ping":
            return {"health_status": "Everything's Chimpy!"}

        match = re.fullmatch(r"/lists/([^/]+)/interest-categories", path)
        if match:
            return {"list_id": match.group(1), "categories": self.categories.get(match.group(1), [])}

        match = re.fullmatch(r"/lists/([^/]+)/interest-categories/([^/]+)/interests", path)
        if match:
            if match.group(2) not in self.interests:
                raise self._not_found("Interest category")
            return {"interests": self.interests[match.group(2)]}

        match = re.fullmatch(r"/lists/([^/]+)/members/([^/]+)", path)
        if match:
            member = self.members.get((match.group(1), match.group(2)))
            if member is None:
                raise self._not_found("Member")
            return dict(member)

        raise self._not_found(path)

    async def put(self, path: str, payload: dict) -> dict:
        self._record("PUT", path)
        match = re.fullmatch(r"/lists/([^/]+)/members/([^/]+)", path)
        if not match:
            raise self._not_found(path)

        key = (match.group(1), match.group(2))
        member = self.members.get(key, {"tags": [], "interests": {}})
        member.update(
            {
                "id": match.group(2),
                "list_id": match.group(1),
                "email_address": payload["email_address"],
                "status": payload.get("status", "subscribed"),
            }
        )
        member["interests"] = {**member["interests"], **payload.get("interests", {})}
        self.members[key] = member
        return dict(member)

    async def post(self, path: str, payload: dict, *, retry: bool = True) -> dict:
        self._record("POST", path)
        if path == "/lists":
            list_id = self.add_list(payload["name"])
            return next(item for item in self.lists if item["id"] == list_id)

        match = re.fullmatch(r"/lists/([^/]+)/interest-categories", path)
        if match:
            category_id = self._new_id("cat")
            category = {"id": category_id, "list_id": match.group(1), **payload}
            self.categories.setdefault(match.group(1), []).append(category)
            self.interests[category_id] = []
            return category

        match = re.fullmatch(r"/lists/([^/]+)/members/([^/]+)/tags", path)
        if match:
            member = self.members.get((match.group(1), match.group(2)))
            if member is None:
                raise self._not_found("Member")
            names = {tag["name"] for tag in member["tags"]}
            for tag in payload["tags"]:
                if tag["status"] == "active" and tag["name"] not in names:
                    member["tags"].append({"id": len(member["tags"]) + 1, "name": tag["name"]})
            return {}

        raise self._not_found(path)

    async def delete(self, path: str) -> dict:
        self._record("DELETE", path)
        match = re.fullmatch(r"/lists/([^/]+)/members/([^/]+)", path)
        if not match or self.members.pop((match.group(1), match.group(2)), None) is None:
            raise self._not_found("Member")
        return {}

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


@pytest.fixture
def settings():
    return Settings(
        MAILCHIMP_API_KEY="test-key-us6",
        MAILCHIMP_LIST_NAME=LIST_NAME,
        MAILCHIMP_MAX_RETRIES=1,
        MAILCHIMP_BACKOFF_FACTOR=0,
        UNSUBSCRIBE_ON_REMOVE=False,
    )


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def fake_mailchimp():
    mailchimp = FakeMailchimp()
    list_id = mailchimp.add_list(LIST_NAME)
    mailchimp.add_group(list_id, "General")
    return mailchimp


@pytest.fixture
def record_store(fake_redis, settings):
    return RecordStore(fake_redis, collection=settings.SUBSCRIBER_COLLECTION)


@pytest.fixture
def subscription_service(fake_mailchimp, settings):
    return SubscriptionService(fake_mailchimp, settings)


@pytest.fixture
def lifecycle(record_store, subscription_service, settings):
    return SubscriberLifecycle(record_store, subscription_service, settings)


@pytest.fixture
def member_id():
    return subscriber_hash


@pytest.fixture
def remote_error():
    return MailchimpError("Mailchimp is down", status_code=503, title="Service Unavailable")
