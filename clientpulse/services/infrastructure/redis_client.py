import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from clientpulse.config import settings
from clientpulse.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

# KEYS[1]=delayed zset, KEYS[2]=ready list, ARGV[1]=now, ARGV[2]=limit
PROMOTE_DUE_SCRIPT = """
local due = redis.call("ZRANGEBYSCORE", KEYS[1], "-inf", ARGV[1], "LIMIT", 0, ARGV[2])
for _, value in ipairs(due) do
    redis.call("ZREM", KEYS[1], value)
    redis.call("LPUSH", KEYS[2], value)
end
return #due
"""

# KEYS[1]=in-flight list, KEYS[2]=delayed zset, ARGV[1]=value, ARGV[2]=due epoch
DELAY_FROM_INFLIGHT_SCRIPT = """
if redis.call("LREM", KEYS[1], 1, ARGV[1]) > 0 then
    redis.call("ZADD", KEYS[2], ARGV[2], ARGV[1])
    return 1
end
return 0
"""

# KEYS[1]=key, ARGV[1]=expected value
DELETE_IF_EQUALS_SCRIPT = """
if redis.call("GET", KEYS[1]) == ARGV[1] then
    return redis.call("DEL", KEYS[1])
end
return 0
"""


class FastRedisClient:
    """Pooled async Redis client used for the note job queue and per-note leases."""

    def __init__(self):
        self.pool = None
        self.client = None
        self._initialized = False

    async def initialize(self):
        """Initialize connection pool on startup"""
        if self._initialized:
            return

        try:
            redis_url = settings.redis_url()
            logger.info("Attempting Redis connection", url_preview=redis_url[:20] + "...")

            self.pool = ConnectionPool.from_url(
                redis_url,
                max_connections=20,
                retry_on_timeout=True,
                retry_on_error=[redis.ConnectionError, redis.TimeoutError],
                socket_connect_timeout=10,
                # Must exceed the blocking pop timeout used by the consumer
                socket_timeout=settings.NOTE_QUEUE_POLL_SECONDS + 10,
                health_check_interval=30,
                decode_responses=True,
            )

            self.client = redis.Redis(connection_pool=self.pool)

            result = await self.client.ping()
            logger.info("Redis ping successful", result=result)

            self._initialized = True

        except Exception as e:
            logger.error("Failed to initialize Redis client", error=str(e))
            self._initialized = False
            raise RuntimeError("Redis initialization failed") from e

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
            if not self._initialized:
                raise ConnectionError("Redis client not available")

    async def set_if_absent(self, key: str, value: str, ttl_s: int) -> bool:
        """SET NX with expiry. Returns True when this caller now owns the key."""
        try:
            await self._ensure_initialized()
            result = await self.client.set(key, value, nx=True, ex=ttl_s)
            return bool(result)
        except Exception as e:
            logger.error("Redis SET NX failed", key=key[:40], error=str(e))
            return False

    async def delete_if_equals(self, key: str, value: str) -> bool:
        """Delete a key only while it still holds the given value."""
        try:
            await self._ensure_initialized()
            result = await self.client.eval(DELETE_IF_EQUALS_SCRIPT, 1, key, value)
            return int(result) > 0
        except Exception as e:
            logger.error("Redis compare-and-delete failed", key=key[:40], error=str(e))
            return False

    async def push_to_list(self, key: str, value: str, left: bool = True) -> bool:
        """Push a value onto a Redis list used as the ready queue."""
        try:
            await self._ensure_initialized()
            if left:
                result = await self.client.lpush(key, value)
            else:
                result = await self.client.rpush(key, value)
            return result > 0
        except Exception as e:
            logger.error(
                "Redis LIST push failed", key=key[:40], value_preview=value[:30], error=str(e)
            )
            return False

    async def add_delayed(self, key: str, value: str, due_at: float) -> bool:
        """Schedule a value in a sorted set scored by its due epoch time."""
        try:
            await self._ensure_initialized()
            await self.client.zadd(key, {value: due_at})
            return True
        except Exception as e:
            logger.error(
                "Redis ZADD failed", key=key[:40], value_preview=value[:30], error=str(e)
            )
            return False

    async def promote_due(self, delayed_key: str, ready_key: str, now: float, limit: int = 100) -> int:
        """
        Move due members of a delayed sorted set onto the ready list.

        Runs as one server-side script: a member either moves to the ready
        list or stays scheduled, and concurrent workers never promote the
        same member twice.
        """
        try:
            await self._ensure_initialized()
            promoted = await self.client.eval(
                PROMOTE_DUE_SCRIPT, 2, delayed_key, ready_key, now, limit
            )
            return int(promoted)
        except Exception as e:
            logger.error("Redis delayed promotion failed", key=delayed_key[:40], error=str(e))
            return 0

    async def pop_to_inflight(
        self, source_key: str, inflight_key: str, timeout: int = 0
    ) -> str | None:
        """
        Pop a value from a list and push to an in-flight list (acked queue).

        Uses BRPOPLPUSH for blocking behavior to avoid losing jobs on worker crash.
        """
        try:
            await self._ensure_initialized()
            if timeout > 0:
                return await self.client.brpoplpush(source_key, inflight_key, timeout=timeout)
            return await self.client.rpoplpush(source_key, inflight_key)
        except Exception as e:
            logger.error(
                "Redis LIST inflight pop failed",
                source_key=source_key[:40],
                inflight_key=inflight_key[:40],
                error=str(e),
            )
            return None

    async def ack_from_inflight(self, inflight_key: str, value: str) -> bool:
        """Remove a processed item from the in-flight list."""
        try:
            await self._ensure_initialized()
            removed = await self.client.lrem(inflight_key, 1, value)
            return removed > 0
        except Exception as e:
            logger.error(
                "Redis inflight ack failed",
                inflight_key=inflight_key[:40],
                value_preview=value[:30],
                error=str(e),
            )
            return False

    async def requeue_from_inflight(
        self, inflight_key: str, destination_key: str, value: str
    ) -> bool:
        """Move an item from the in-flight list back to the main queue."""
        try:
            await self._ensure_initialized()
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.lrem(inflight_key, 1, value)
                pipe.lpush(destination_key, value)
                results = await pipe.execute()
            return bool(results and results[-1] is not None)
        except Exception as e:
            logger.error(
                "Redis inflight requeue failed",
                inflight_key=inflight_key[:40],
                destination_key=destination_key[:40],
                value_preview=value[:30],
                error=str(e),
            )
            return False

    async def delay_from_inflight(
        self, inflight_key: str, delayed_key: str, value: str, due_at: float
    ) -> bool:
        """Move an item from the in-flight list into a delayed sorted set."""
        try:
            await self._ensure_initialized()
            moved = await self.client.eval(
                DELAY_FROM_INFLIGHT_SCRIPT, 2, inflight_key, delayed_key, value, due_at
            )
            return int(moved) > 0
        except Exception as e:
            logger.error(
                "Redis inflight delay failed",
                inflight_key=inflight_key[:40],
                delayed_key=delayed_key[:40],
                value_preview=value[:30],
                error=str(e),
            )
            return False

    async def list_range(self, key: str, start: int = 0, end: int = -1) -> list[str]:
        """Return a range of values from a list."""
        try:
            await self._ensure_initialized()
            result = await self.client.lrange(key, start, end)
            return [str(item) for item in result] if result else []
        except Exception as e:
            logger.error("Redis LRANGE failed", key=key[:40], error=str(e))
            return []


# Global instance
fast_redis = FastRedisClient()
