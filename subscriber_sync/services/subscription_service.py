"""
Subscription Service for Mailchimp list membership.
Resolves lists and groups by name, creates them, and manages members and tags.

Lists and groups are resolved by name on every call; nothing is cached, so a
renamed or recreated list is picked up immediately at the cost of an extra
round trip per operation.
"""

from typing import Any

from subscriber_sync.config import Settings
from subscriber_sync.infrastructure.observability.logging import get_logger
from subscriber_sync.models.domain.subscriber_domain import (
    RemoteInterest,
    RemoteInterestCategory,
    RemoteList,
    RemoteMember,
    UpsertResult,
)
from subscriber_sync.security.hashing import normalize_email, subscriber_hash
from subscriber_sync.services.mailchimp.client import (
    MailchimpClient,
    MailchimpError,
    MailchimpNotFoundError,
)

logger = get_logger(__name__)


class ListNotFoundError(MailchimpNotFoundError):
    """No Mailchimp list with the requested name."""

    def __init__(self, list_name: str):
        super().__init__(f"List {list_name!r} was not found", status_code=404)
        self.list_name = list_name


class GroupNotFoundError(MailchimpNotFoundError):
    """No interest category or interest with the requested name."""

    def __init__(self, list_name: str, group_name: str, stage: str):
        super().__init__(
            f"Group {group_name!r} not found in list {list_name!r} ({stage})", status_code=404
        )
        self.list_name = list_name
        self.group_name = group_name
        self.stage = stage


def _member_path(list_id: str, email: str) -> str:
    return f"/lists/{list_id}/members/{subscriber_hash(email)}"


def _active_tags(tags: list[str]) -> dict[str, Any]:
    return {"tags": [{"name": tag, "status": "active"} for tag in tags]}


class SubscriptionService:
    """
    Mailchimp-side half of the subscriber lifecycle.

    Every method raises a MailchimpError subclass on failure; callers decide
    whether a MailchimpNotFoundError is an error or an expected answer.
    """

    def __init__(self, client: MailchimpClient, settings: Settings):
        self._client = client
        self.settings = settings

    async def resolve_list(self, name: str) -> RemoteList:
        """
        Find a list by exact name.

        Duplicate names are not detected: the first match wins.

        Raises:
            ListNotFoundError: If no list has this name
        """
        data = await self._client.get("/lists", params={"count": self.settings.MAILCHIMP_PAGE_SIZE})

        for item in data.get("lists", []):
            if item.get("name") == name:
                remote_list = RemoteList(item)
                logger.debug("List resolved", list_name=name, list_id=remote_list.id)
                return remote_list

        logger.warning("List not found", list_name=name)
        raise ListNotFoundError(name)

    async def resolve_group(
        self, list_name: str, group_name: str, category_title: str | None = None
    ) -> RemoteInterest:
        """
        Resolve a group (interest) by name.

        Runs list -> interest categories -> interests, in that order, since
        each request needs the id returned by the previous one. The category
        is matched by ``category_title``, defaulting to the group name.

        Raises:
            ListNotFoundError: If the list does not exist
            GroupNotFoundError: If the category or interest does not exist
        """
        category_title = category_title or group_name
        remote_list = await self.resolve_list(list_name)

        categories = await self._client.get(
            f"/lists/{remote_list.id}/interest-categories",
            params={"count": self.settings.MAILCHIMP_PAGE_SIZE},
        )
        category = None
        for item in categories.get("categories", []):
            if item.get("title") == category_title:
                category = RemoteInterestCategory(item)
                break

        if category is None:
            logger.warning(
                "Interest category not found", list_name=list_name, category_title=category_title
            )
            raise GroupNotFoundError(list_name, group_name, stage="category")

        interests = await self._client.get(
            f"/lists/{remote_list.id}/interest-categories/{category.id}/interests",
            params={"count": self.settings.MAILCHIMP_PAGE_SIZE},
        )
        for item in interests.get("interests", []):
            if item.get("name") == group_name:
                interest = RemoteInterest(item)
                logger.debug(
                    "Group resolved",
                    list_name=list_name,
                    group_name=group_name,
                    interest_id=interest.id,
                )
                return interest

        logger.warning("Interest not found", list_name=list_name, group_name=group_name)
        raise GroupNotFoundError(list_name, group_name, stage="interest")

    async def create_list(
        self,
        name: str,
        contact: dict | None = None,
        campaign_defaults: dict | None = None,
        permission_reminder: str | None = None,
    ) -> RemoteList:
        """
        Create a new list from the configured settings template.

        Not idempotent: calling twice creates two lists with the same name,
        so the request is never retried automatically.
        """
        payload = self.settings.get_list_template()
        payload["name"] = name
        if contact:
            payload["contact"] = {**payload["contact"], **contact}
        if campaign_defaults:
            payload["campaign_defaults"] = {**payload["campaign_defaults"], **campaign_defaults}
        if permission_reminder:
            payload["permission_reminder"] = permission_reminder

        logger.info("Creating Mailchimp list", list_name=name)
        data = await self._client.post("/lists", payload, retry=False)

        remote_list = RemoteList(data)
        logger.info("Mailchimp list created", list_name=name, list_id=remote_list.id)
        return remote_list

    async def create_group(
        self, list_name: str, title: str, group_type: str = "hidden"
    ) -> RemoteInterestCategory:
        """Create an interest category in the named list."""
        remote_list = await self.resolve_list(list_name)

        logger.info("Creating interest category", list_name=list_name, title=title)
        data = await self._client.post(
            f"/lists/{remote_list.id}/interest-categories",
            {"title": title, "type": group_type},
            retry=False,
        )
        return RemoteInterestCategory(data)

    async def upsert_member(
        self,
        list_name: str,
        email: str,
        tags: list[str] | None = None,
        interest_ids: list[str] | None = None,
    ) -> UpsertResult:
        """
        Subscribe an email, creating or updating the member, then tag it.

        The PUT is an idempotent create-or-update keyed by the subscriber
        hash. Tagging is a second, separate call: if it fails the member is
        still subscribed and the result is marked partial.

        Raises:
            MailchimpError: If list resolution or the subscribe call fails
        """
        remote_list = await self.resolve_list(list_name)
        path = _member_path(remote_list.id, email)

        payload: dict[str, Any] = {
            "email_address": normalize_email(email),
            "status_if_new": "subscribed",
            "status": "subscribed",
        }
        if interest_ids:
            payload["interests"] = {interest_id: True for interest_id in interest_ids}

        data = await self._client.put(path, payload)
        member = RemoteMember(data)
        logger.info("Member subscribed", list_name=list_name, member_id=member.id)

        result = UpsertResult(member=member, tags_requested=list(tags or []))
        if not tags:
            return result

        try:
            await self._client.post(f"{path}/tags", _active_tags(tags))
        except MailchimpError as e:
            logger.warning(
                "Member subscribed but tagging failed",
                list_name=list_name,
                member_id=member.id,
                tags=tags,
                error=str(e),
            )
            result.tags_applied = False
            result.tag_error = e
            return result

        for tag in tags:
            if tag not in member.tags:
                member.tags.append(tag)
        return result

    async def add_tag(self, list_name: str, email: str, tag: str) -> None:
        """
        Tag a member, subscribing them first if Mailchimp does not know them.

        Only a not-found answer triggers the repair: the member is upserted
        and the tag call retried exactly once. Any other failure, or a
        failure of the retry, propagates.
        """
        remote_list = await self.resolve_list(list_name)
        path = f"{_member_path(remote_list.id, email)}/tags"

        try:
            await self._client.post(path, _active_tags([tag]))
            logger.info("Member tagged", list_name=list_name, tag=tag)
            return
        except MailchimpNotFoundError:
            logger.info(
                "Member missing while tagging, subscribing and retrying",
                list_name=list_name,
                tag=tag,
            )

        await self.upsert_member(list_name, email)
        await self._client.post(path, _active_tags([tag]))
        logger.info("Member tagged after resubscribe", list_name=list_name, tag=tag)

    async def get_member(self, list_name: str, email: str) -> RemoteMember:
        """
        Fetch a member by subscriber hash.

        Raises:
            MailchimpNotFoundError: If the email was never subscribed
        """
        remote_list = await self.resolve_list(list_name)
        data = await self._client.get(_member_path(remote_list.id, email))
        return RemoteMember(data)

    async def unsubscribe(self, list_name: str, email: str) -> None:
        """
        Delete a member from the list.

        Raises:
            MailchimpNotFoundError: If the member is already absent
        """
        remote_list = await self.resolve_list(list_name)
        await self._client.delete(_member_path(remote_list.id, email))
        logger.info("Member removed from list", list_name=list_name)

    async def ping(self) -> bool:
        return await self._client.ping()
