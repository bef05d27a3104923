"""
Redis-backed at-least-once queue for note processing jobs.

Layout under ``NOTE_QUEUE_PREFIX``:
    <prefix>:ready               list of job messages ready for delivery
    <prefix>:delayed             sorted set of job messages scored by due epoch
    <prefix>:inflight:<worker>   list of messages reserved by one worker
    <prefix>:lease:<note_id>     short-lived per-note processing lease

Redelivery delay is carried by the sorted-set score; nothing sleeps on a job.
"""

import time

from clientpulse.config import settings
from clientpulse.features.note_intelligence.domain import ProcessNoteJob
from clientpulse.features.note_intelligence.errors import QueueError
from clientpulse.infrastructure.observability.logging import get_logger
from clientpulse.services.infrastructure.redis_client import FastRedisClient, fast_redis

logger = get_logger(__name__)


class NoteJobQueue:
    def __init__(
        self,
        redis_client: FastRedisClient = fast_redis,
        prefix: str | None = None,
        worker_id: str | None = None,
    ):
        self.redis = redis_client
        self.prefix = prefix or settings.NOTE_QUEUE_PREFIX
        self.worker_id = worker_id or settings.NOTE_WORKER_ID

    @property
    def ready_key(self) -> str:
        return f"{self.prefix}:ready"

    @property
    def delayed_key(self) -> str:
        return f"{self.prefix}:delayed"

    @property
    def inflight_key(self) -> str:
        return f"{self.prefix}:inflight:{self.worker_id}"

    def lease_key(self, note_id: str) -> str:
        return f"{self.prefix}:lease:{note_id}"

    async def enqueue(self, job: ProcessNoteJob, delay_seconds: int = 0) -> None:
        payload = job.to_message()
        if delay_seconds > 0:
            ok = await self.redis.add_delayed(self.delayed_key, payload, time.time() + delay_seconds)
        else:
            ok = await self.redis.push_to_list(self.ready_key, payload)

        if not ok:
            raise QueueError(f"Failed to enqueue job for note {job.note_id}")

        logger.info(
            "Note job enqueued",
            note_id=job.note_id,
            attempt=job.attempt,
            provider=str(job.provider),
            delay_seconds=delay_seconds,
        )

    async def promote_due(self, now: float | None = None) -> int:
        promoted = await self.redis.promote_due(
            self.delayed_key, self.ready_key, now if now is not None else time.time()
        )
        if promoted:
            logger.debug("Promoted delayed note jobs", count=promoted)
        return promoted

    async def reserve(self, timeout: int = 0) -> str | None:
        """Move the next ready message into this worker's in-flight list."""
        return await self.redis.pop_to_inflight(self.ready_key, self.inflight_key, timeout=timeout)

    async def ack(self, payload: str) -> bool:
        acked = await self.redis.ack_from_inflight(self.inflight_key, payload)
        if not acked:
            logger.warning("In-flight message not found on ack", inflight_key=self.inflight_key)
        return acked

    async def delay_inflight(self, payload: str, delay_seconds: int) -> bool:
        """Move a reserved message back to the delayed set for redelivery after ``delay_seconds``."""
        moved = await self.redis.delay_from_inflight(
            self.inflight_key, self.delayed_key, payload, time.time() + delay_seconds
        )
        if not moved:
            logger.warning("Could not delay in-flight message", inflight_key=self.inflight_key)
        return moved

    async def reclaim_inflight(self) -> int:
        """Return messages left in flight by a previous run of this worker to the ready list."""
        stranded = await self.redis.list_range(self.inflight_key)
        reclaimed = 0
        for payload in stranded:
            if await self.redis.requeue_from_inflight(self.inflight_key, self.ready_key, payload):
                reclaimed += 1
        if reclaimed:
            logger.warning("Reclaimed in-flight note jobs", count=reclaimed, worker_id=self.worker_id)
        return reclaimed

    async def acquire_lease(self, note_id: str, ttl_s: int | None = None) -> bool:
        return await self.redis.set_if_absent(
            self.lease_key(note_id), self.worker_id, ttl_s or settings.NOTE_LEASE_SECONDS
        )

    async def release_lease(self, note_id: str) -> bool:
        """Drop the lease only while this worker still holds it."""
        return await self.redis.delete_if_equals(self.lease_key(note_id), self.worker_id)


note_job_queue = NoteJobQueue()
