"""
Subscriber record store.
Persists SubscriberRecords in a Redis hash keyed by normalized email address.
"""

import json
from typing import Any

from pydantic import ValidationError

from subscriber_sync.infrastructure.observability.logging import get_logger
from subscriber_sync.models.domain.subscriber_domain import SubscriberRecord, is_valid_email
from subscriber_sync.security.hashing import normalize_email
from subscriber_sync.services.redis_client import RedisClient, RedisClientError

logger = get_logger(__name__)


class RecordStoreError(Exception):
    """Base exception for record store operations."""

    def __init__(self, message: str, key: str | None = None, operation: str = "unknown"):
        super().__init__(message)
        self.key = key
        self.operation = operation


class StorageError(RecordStoreError):
    """The backing store is unavailable or rejected the command."""


class RecordNotFoundError(RecordStoreError):
    """Raised by update() when the record does not exist."""


class InvalidEmailError(RecordStoreError):
    """Raised when a record's email fails validation."""


class RecordStore:
    """
    Key-value persistence for subscriber records.

    Not-found is a normal outcome for reads (None); only update() treats a
    missing key as an error. Removal is idempotent.
    """

    def __init__(self, redis_client: RedisClient, collection: str = "mailing_list"):
        self._redis = redis_client
        self.collection = collection

    async def add(self, record: SubscriberRecord) -> bool:
        """
        Insert or overwrite a record by its email.

        The email is stored normalized, so spellings that differ only in case
        or surrounding whitespace share one record.

        Raises:
            InvalidEmailError: If the email is empty or malformed
            StorageError: If the backend is unavailable
        """
        email = normalize_email(record.email)
        if not is_valid_email(email):
            raise InvalidEmailError(f"Invalid email: {record.email!r}", key=email, operation="add")
        record = record.model_copy(update={"email": email})

        try:
            await self._redis.hset(self.collection, email, record.model_dump_json())
        except RedisClientError as e:
            raise StorageError(
                f"Failed to store record: {e}", key=email, operation="add"
            ) from e

        logger.info("Subscriber record stored", email=email, collection=self.collection)
        return True

    async def get_by_key(self, key: str) -> SubscriberRecord | None:
        key = normalize_email(key)
        try:
            raw = await self._redis.hget(self.collection, key)
        except RedisClientError as e:
            raise StorageError(f"Failed to read record: {e}", key=key, operation="get") from e

        if raw is None:
            logger.debug("Subscriber record not found", email=key, collection=self.collection)
            return None
        return self._decode(key, raw)

    async def get_all(self, limit: int = 0) -> list[SubscriberRecord]:
        """
        Return at most ``limit`` records, or every record when ``limit`` is 0.

        Records are ordered by email so repeated calls are stable.
        """
        if limit < 0:
            raise ValueError("limit must be >= 0")

        try:
            raw_records = await self._redis.hgetall(self.collection)
        except RedisClientError as e:
            raise StorageError(f"Failed to list records: {e}", operation="get_all") from e

        records = []
        for key in sorted(raw_records):
            if limit and len(records) >= limit:
                break
            records.append(self._decode(key, raw_records[key]))

        logger.debug("Subscriber records listed", count=len(records), limit=limit)
        return records

    async def remove(self, key: str) -> bool:
        """
        Delete a record. Removing a missing key is not an error.

        Returns:
            bool: True if a record was deleted, False if it was already absent
        """
        key = normalize_email(key)
        try:
            removed = await self._redis.hdel(self.collection, key)
        except RedisClientError as e:
            raise StorageError(f"Failed to remove record: {e}", key=key, operation="remove") from e

        logger.info("Subscriber record removed", email=key, existed=removed)
        return removed

    async def update(self, key: str, partial: dict[str, Any]) -> SubscriberRecord:
        """
        Merge ``partial`` into an existing record. The email key is immutable.

        Raises:
            RecordNotFoundError: If no record exists for ``key``
        """
        key = normalize_email(key)
        existing = await self.get_by_key(key)
        if existing is None:
            raise RecordNotFoundError(f"Record not found: {key}", key=key, operation="update")

        merged = {**existing.model_dump(), **partial, "email": existing.email}
        record = SubscriberRecord(**merged)

        try:
            await self._redis.hset(self.collection, key, record.model_dump_json())
        except RedisClientError as e:
            raise StorageError(f"Failed to update record: {e}", key=key, operation="update") from e

        logger.info("Subscriber record updated", email=key, fields=sorted(partial))
        return record

    async def ping(self) -> bool:
        return await self._redis.ping()

    def _decode(self, key: str, raw: str) -> SubscriberRecord:
        try:
            return SubscriberRecord(**json.loads(raw))
        except (ValueError, ValidationError) as e:
            logger.error("Corrupt subscriber record", email=key, error=str(e))
            raise StorageError(f"Corrupt record for {key}: {e}", key=key, operation="decode") from e
