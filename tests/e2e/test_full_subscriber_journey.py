import pytest

from subscriber_sync.models.domain.subscriber_domain import SubscriberOutcome


@pytest.mark.asyncio
async def test_full_subscriber_journey(lifecycle, record_store, member_id):
    added = await lifecycle.add_subscriber("a@b.com", "General")
    assert added.outcome is SubscriberOutcome.SUCCESS

    record = await record_store.get_by_key("a@b.com")
    assert record is not None
    assert record.email == "a@b.com"

    remote = await lifecycle.lookup_remote_status("a@b.com")
    assert remote.is_member is True
    assert remote.member.id == member_id("a@b.com")
    assert remote.member.has_tag("newsletter")

    removed = await lifecycle.remove_subscriber("a@b.com")
    assert removed.outcome is SubscriberOutcome.SUCCESS

    assert await record_store.get_by_key("a@b.com") is None
