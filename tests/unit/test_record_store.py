import pytest

from subscriber_sync.models.domain.subscriber_domain import SubscriberRecord
from subscriber_sync.services.record_store import (
    InvalidEmailError,
    RecordNotFoundError,
    StorageError,
)


async def _seed(store, count: int) -> None:
    for i in range(count):
        await store.add(SubscriberRecord(email=f"user{i}@example.com"))


@pytest.mark.asyncio
async def test_add_then_get_by_key(record_store):
    assert await record_store.add(SubscriberRecord(email="a@b.com")) is True

    record = await record_store.get_by_key("a@b.com")

    assert record is not None
    assert record.email == "a@b.com"


@pytest.mark.asyncio
async def test_add_overwrites_existing_key(record_store):
    await record_store.add(SubscriberRecord(email="a@b.com", source="form"))
    await record_store.add(SubscriberRecord(email="a@b.com", source="import"))

    records = await record_store.get_all()

    assert len(records) == 1
    assert records[0].model_dump()["source"] == "import"


@pytest.mark.parametrize("email", ["", "no-at-sign.com", "no-dot@localhost"])
@pytest.mark.asyncio
async def test_add_rejects_invalid_email(record_store, fake_redis, email):
    with pytest.raises(InvalidEmailError):
        await record_store.add(SubscriberRecord(email=email))

    assert fake_redis.hashes == {}


@pytest.mark.asyncio
async def test_add_raises_storage_error_when_backend_down(record_store, fake_redis):
    fake_redis.fail("hset")

    with pytest.raises(StorageError) as exc:
        await record_store.add(SubscriberRecord(email="a@b.com"))

    assert exc.value.operation == "add"


@pytest.mark.asyncio
async def test_get_by_key_missing_returns_none(record_store):
    assert await record_store.get_by_key("nobody@example.com") is None


@pytest.mark.asyncio
async def test_get_all_limit_is_inclusive_upper_bound(record_store):
    await _seed(record_store, 5)

    assert len(await record_store.get_all(3)) == 3
    assert len(await record_store.get_all(5)) == 5
    assert len(await record_store.get_all(10)) == 5


@pytest.mark.asyncio
async def test_get_all_zero_returns_everything(record_store):
    await _seed(record_store, 5)

    records = await record_store.get_all(0)

    assert [r.email for r in records] == [f"user{i}@example.com" for i in range(5)]


@pytest.mark.asyncio
async def test_get_all_rejects_negative_limit(record_store):
    with pytest.raises(ValueError):
        await record_store.get_all(-1)


@pytest.mark.asyncio
async def test_remove_is_idempotent(record_store):
    await record_store.add(SubscriberRecord(email="a@b.com"))

    assert await record_store.remove("a@b.com") is True
    assert await record_store.remove("a@b.com") is False
    assert await record_store.get_by_key("a@b.com") is None


@pytest.mark.asyncio
async def test_update_merges_fields(record_store):
    await record_store.add(SubscriberRecord(email="a@b.com"))

    updated = await record_store.update("a@b.com", {"name": "Ada", "email": "other@b.com"})

    assert updated.email == "a@b.com"
    stored = await record_store.get_by_key("a@b.com")
    assert stored.model_dump() == {"email": "a@b.com", "name": "Ada"}


@pytest.mark.asyncio
async def test_update_missing_key_raises(record_store):
    with pytest.raises(RecordNotFoundError):
        await record_store.update("nobody@example.com", {"name": "Nobody"})


@pytest.mark.asyncio
async def test_corrupt_record_raises_storage_error(record_store, fake_redis, settings):
    fake_redis.hashes[settings.SUBSCRIBER_COLLECTION] = {"a@b.com": "not-json"}

    with pytest.raises(StorageError):
        await record_store.get_by_key("a@b.com")


@pytest.mark.asyncio
async def test_keys_are_normalized_email(record_store, fake_redis, settings):
    await record_store.add(SubscriberRecord(email="  Ada@Example.COM "))

    assert list(fake_redis.hashes[settings.SUBSCRIBER_COLLECTION]) == ["ada@example.com"]
    record = await record_store.get_by_key("ADA@example.com")
    assert record.email == "ada@example.com"

    await record_store.update("Ada@Example.com", {"name": "Ada"})
    assert await record_store.remove(" ada@EXAMPLE.com") is True
    assert await record_store.get_all() == []
