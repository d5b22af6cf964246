"""
Subscriber lifecycle orchestration.

Coordinates the local RecordStore and the Mailchimp SubscriptionService so the
two never diverge silently. Adding a subscriber writes locally first and
subscribes remotely second; if the remote step fails the local write is
undone. When the undo itself fails the result is CRITICAL_INCONSISTENCY,
which callers must surface to an operator rather than treat as an ordinary
failure.
"""

from subscriber_sync.config import Settings
from subscriber_sync.infrastructure.observability.logging import get_logger
from subscriber_sync.models.domain.subscriber_domain import (
    LifecycleResult,
    RemoteStatus,
    SubscriberOutcome,
    SubscriberRecord,
    is_valid_email,
)
from subscriber_sync.security.hashing import normalize_email
from subscriber_sync.services.mailchimp.client import MailchimpError, MailchimpNotFoundError
from subscriber_sync.services.record_store import RecordStore, StorageError
from subscriber_sync.services.subscription_service import (
    ListNotFoundError,
    SubscriptionService,
)

logger = get_logger(__name__)


class SubscriberLifecycle:
    """Add/remove subscribers across the record store and Mailchimp."""

    def __init__(
        self,
        record_store: RecordStore,
        subscription_service: SubscriptionService,
        settings: Settings,
    ):
        self.record_store = record_store
        self.subscriptions = subscription_service
        self.list_name = settings.MAILCHIMP_LIST_NAME
        self.default_tags = list(settings.MAILCHIMP_DEFAULT_TAGS)
        self.unsubscribe_on_remove = settings.UNSUBSCRIBE_ON_REMOVE

    async def add_subscriber(self, email: str, group_name: str | None = None) -> LifecycleResult:
        """
        Store a subscriber locally, then subscribe them in Mailchimp.

        Outcomes:
            INVALID_INPUT: email failed validation, nothing was written
            STORAGE_FAILURE: local write failed, Mailchimp untouched
            SUCCESS: both sides hold the subscriber
            REMOTE_FAILURE: Mailchimp failed, local record removed again
            CRITICAL_INCONSISTENCY: Mailchimp failed and the local record
                could not be removed
        """
        email = normalize_email(email)
        if not is_valid_email(email):
            logger.info("Rejected invalid email", email=email)
            return LifecycleResult(
                email=email,
                operation="add",
                outcome=SubscriberOutcome.INVALID_INPUT,
                message="Invalid email provided",
            )

        try:
            await self.record_store.add(SubscriberRecord(email=email))
        except StorageError as e:
            logger.error("Storing subscriber failed", email=email, error=str(e))
            return LifecycleResult(
                email=email,
                operation="add",
                outcome=SubscriberOutcome.STORAGE_FAILURE,
                message="Add to mailing list failed on database",
                error=e,
            )

        try:
            interest_ids = None
            if group_name:
                interest = await self.subscriptions.resolve_group(self.list_name, group_name)
                interest_ids = [interest.id]

            upsert = await self.subscriptions.upsert_member(
                self.list_name, email, tags=self.default_tags, interest_ids=interest_ids
            )
        except MailchimpError as remote_error:
            return await self._compensate_add(email, remote_error)

        warnings = []
        if upsert.partial:
            warnings.append(f"Subscribed without tags {upsert.tags_requested}: {upsert.tag_error}")

        logger.info(
            "Subscriber added",
            email=email,
            group_name=group_name,
            member_id=upsert.member.id,
            tags_applied=upsert.tags_applied,
        )
        return LifecycleResult(
            email=email,
            operation="add",
            outcome=SubscriberOutcome.SUCCESS,
            message="Email successfully added to mailing list",
            warnings=warnings,
        )

    async def _compensate_add(self, email: str, remote_error: MailchimpError) -> LifecycleResult:
        logger.warning(
            "Mailchimp subscribe failed, removing local record",
            email=email,
            error=str(remote_error),
        )

        try:
            await self.record_store.remove(email)
        except StorageError as e:
            logger.critical(
                "Compensation failed, record store and Mailchimp disagree",
                email=email,
                remote_error=str(remote_error),
                storage_error=str(e),
            )
            return LifecycleResult(
                email=email,
                operation="add",
                outcome=SubscriberOutcome.CRITICAL_INCONSISTENCY,
                message=(
                    "CRITICAL: Subscribing to Mailchimp failed and removing the email from "
                    "the database also failed. Data mismatch requires manual reconciliation."
                ),
                error=remote_error,
                warnings=[f"Compensation error: {e}"],
            )

        return LifecycleResult(
            email=email,
            operation="add",
            outcome=SubscriberOutcome.REMOTE_FAILURE,
            message=(
                "Subscribing to Mailchimp failed. Email also removed from database. "
                f"Reason: {remote_error}"
            ),
            error=remote_error,
        )

    async def remove_subscriber(self, email: str) -> LifecycleResult:
        """
        Delete a subscriber from the record store.

        The optional Mailchimp unsubscribe runs after the local delete and
        never changes the outcome; its failures are returned as warnings.
        """
        email = normalize_email(email)
        try:
            existing = await self.record_store.get_by_key(email)
            if existing is None:
                return LifecycleResult(
                    email=email,
                    operation="delete",
                    outcome=SubscriberOutcome.NOT_FOUND,
                    message="Email not found",
                )
            await self.record_store.remove(email)
        except StorageError as e:
            logger.error("Removing subscriber failed", email=email, error=str(e))
            return LifecycleResult(
                email=email,
                operation="delete",
                outcome=SubscriberOutcome.STORAGE_FAILURE,
                message="Delete from mailing list failed on database",
                error=e,
            )

        warnings = []
        if self.unsubscribe_on_remove:
            try:
                await self.subscriptions.unsubscribe(self.list_name, email)
            except ListNotFoundError as e:
                logger.warning("Mailchimp unsubscribe failed", email=email, error=str(e))
                warnings.append(f"Mailchimp unsubscribe failed: {e}")
            except MailchimpNotFoundError:
                logger.debug("Member already absent from Mailchimp", email=email)
            except MailchimpError as e:
                logger.warning("Mailchimp unsubscribe failed", email=email, error=str(e))
                warnings.append(f"Mailchimp unsubscribe failed: {e}")

        logger.info("Subscriber removed", email=email)
        return LifecycleResult(
            email=email,
            operation="delete",
            outcome=SubscriberOutcome.SUCCESS,
            message="Email successfully deleted",
            warnings=warnings,
        )

    async def lookup_remote_status(self, email: str) -> RemoteStatus:
        """Read-through to Mailchimp; an unknown email is a normal answer."""
        email = normalize_email(email)
        try:
            member = await self.subscriptions.get_member(self.list_name, email)
        except ListNotFoundError:
            raise
        except MailchimpNotFoundError:
            return RemoteStatus(email=email, is_member=False)
        return RemoteStatus(email=email, is_member=True, member=member)

    async def tag_subscriber(self, email: str, tag: str) -> LifecycleResult:
        email = normalize_email(email)
        if not is_valid_email(email):
            return LifecycleResult(
                email=email,
                operation="tag",
                outcome=SubscriberOutcome.INVALID_INPUT,
                message="Invalid email provided",
            )

        try:
            await self.subscriptions.add_tag(self.list_name, email, tag)
        except MailchimpError as e:
            return LifecycleResult(
                email=email,
                operation="tag",
                outcome=SubscriberOutcome.REMOTE_FAILURE,
                message=f"Tagging in Mailchimp failed. Reason: {e}",
                error=e,
            )

        return LifecycleResult(
            email=email,
            operation="tag",
            outcome=SubscriberOutcome.SUCCESS,
            message=f"Tag {tag!r} added",
        )
