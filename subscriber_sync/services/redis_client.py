# subscriber_sync/services/redis_client.py
import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import RedisError

from subscriber_sync.config import Settings
from subscriber_sync.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class RedisClientError(Exception):
    """Raised when Redis is unreachable or a command fails."""

    def __init__(self, message: str, operation: str = "unknown"):
        super().__init__(message)
        self.operation = operation


class RedisClient:
    """Pooled async Redis client for hash-backed collections.

    Unlike a cache, the record store needs to know when a write did not
    happen, so command failures are raised as RedisClientError instead of
    being turned into None/False.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.pool = None
        self.client = None
        self._initialized = False

    async def initialize(self):
        """Initialize connection pool on startup"""
        if self._initialized:
            return

        try:
            logger.info("Attempting Redis connection", url_preview=self.settings.REDIS_URL[:30])

            self.pool = ConnectionPool.from_url(
                self.settings.REDIS_URL,
                max_connections=self.settings.REDIS_MAX_CONNECTIONS,
                retry_on_timeout=True,
                socket_connect_timeout=self.settings.REDIS_SOCKET_TIMEOUT,
                socket_timeout=self.settings.REDIS_SOCKET_TIMEOUT,
                health_check_interval=30,
                decode_responses=True,  # Auto-decode strings
            )

            self.client = redis.Redis(connection_pool=self.pool)

            # Test connection
            result = await self.client.ping()
            logger.info("Redis ping successful", result=result)

            self._initialized = True
            logger.info(
                "Redis client initialized successfully",
                max_connections=self.settings.REDIS_MAX_CONNECTIONS,
            )

        except Exception as e:
            logger.error("Failed to initialize Redis client", error=str(e))
            self._initialized = False
            raise RedisClientError("Redis initialization failed", operation="initialize") from e

    async def close(self):
        """Clean shutdown"""
        try:
            if self.client:
                await self.client.aclose()
            if self.pool:
                await self.pool.disconnect()
            self._initialized = False
            logger.info("Redis client closed")
        except Exception as e:
            logger.error("Error closing Redis client", error=str(e))

    async def _ensure_initialized(self):
        if not self._initialized:
            logger.warning("Redis not initialized, attempting to initialize")
            await self.initialize()

    async def ping(self) -> bool:
        """Test Redis connection"""
        try:
            await self._ensure_initialized()
            result = await self.client.ping()
            return bool(result)
        except Exception as e:
            logger.error("Redis ping failed", error=str(e))
            return False

    async def hget(self, name: str, key: str) -> str | None:
        await self._ensure_initialized()
        try:
            return await self.client.hget(name, key)
        except RedisError as e:
            logger.error("Redis HGET failed", name=name, key=key[:30], error=str(e))
            raise RedisClientError(f"HGET failed: {e}", operation="hget") from e

    async def hset(self, name: str, key: str, value: str) -> bool:
        """Insert or overwrite a single field. Returns True once written."""
        await self._ensure_initialized()
        try:
            await self.client.hset(name, key, value)
            return True
        except RedisError as e:
            logger.error("Redis HSET failed", name=name, key=key[:30], error=str(e))
            raise RedisClientError(f"HSET failed: {e}", operation="hset") from e

    async def hdel(self, name: str, key: str) -> bool:
        """Delete a field. Returns True if it existed."""
        await self._ensure_initialized()
        try:
            removed = await self.client.hdel(name, key)
            return removed > 0
        except RedisError as e:
            logger.error("Redis HDEL failed", name=name, key=key[:30], error=str(e))
            raise RedisClientError(f"HDEL failed: {e}", operation="hdel") from e

    async def hgetall(self, name: str) -> dict[str, str]:
        await self._ensure_initialized()
        try:
            return await self.client.hgetall(name)
        except RedisError as e:
            logger.error("Redis HGETALL failed", name=name, error=str(e))
            raise RedisClientError(f"HGETALL failed: {e}", operation="hgetall") from e
