"""
Note processing consumer.

Long-running loop that promotes due delayed jobs, reserves messages into
this worker's in-flight list and hands them to the processor with bounded
concurrency. A message is acknowledged once the processor returns. If the
handler itself raises, the message moves to the delayed set and is
redelivered after NOTE_CRASH_RETRY_DELAY_SECONDS; when even that move
fails it stays in flight and is reclaimed on the next start.
"""

import asyncio

from clientpulse.config import settings
from clientpulse.features.note_intelligence.services.job_queue import NoteJobQueue, note_job_queue
from clientpulse.features.note_intelligence.services.note_processor import (
    JobOutcome,
    NoteProcessor,
    default_note_processor,
)
from clientpulse.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class NoteProcessingConsumer:
    def __init__(
        self,
        queue: NoteJobQueue = note_job_queue,
        processor: NoteProcessor = default_note_processor,
        concurrency: int | None = None,
        poll_seconds: int | None = None,
        crash_retry_delay_seconds: int | None = None,
    ):
        self.queue = queue
        self.processor = processor
        self.concurrency = concurrency or settings.NOTE_WORKER_CONCURRENCY
        self.poll_seconds = poll_seconds or settings.NOTE_QUEUE_POLL_SECONDS
        self.crash_retry_delay_seconds = (
            crash_retry_delay_seconds or settings.NOTE_CRASH_RETRY_DELAY_SECONDS
        )
        self._tasks: set[asyncio.Task] = set()

    async def run(self, stop_event: asyncio.Event | None = None) -> None:
        stop_event = stop_event or asyncio.Event()
        semaphore = asyncio.Semaphore(self.concurrency)
        loop = asyncio.get_running_loop()

        await self.queue.reclaim_inflight()
        logger.info(
            "Note processing consumer started",
            worker_id=self.queue.worker_id,
            concurrency=self.concurrency,
        )

        try:
            while not stop_event.is_set():
                await self.queue.promote_due()

                await semaphore.acquire()
                started = loop.time()
                payload = await self.queue.reserve(timeout=self.poll_seconds)
                if payload is None:
                    semaphore.release()
                    # An empty blocking pop has already waited; a Redis error returns early.
                    await self._idle(stop_event, self.poll_seconds - (loop.time() - started))
                    continue

                task = asyncio.create_task(self._run_one(payload, semaphore))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
        finally:
            if self._tasks:
                logger.info("Waiting for in-progress note jobs", count=len(self._tasks))
                await asyncio.gather(*self._tasks, return_exceptions=True)
            logger.info("Note processing consumer stopped", worker_id=self.queue.worker_id)

    async def run_once(self) -> JobOutcome | None:
        """Promote, reserve and handle at most one message without blocking."""
        await self.queue.promote_due()
        payload = await self.queue.reserve(timeout=0)
        if payload is None:
            return None
        return await self.consume(payload)

    @staticmethod
    async def _idle(stop_event: asyncio.Event, seconds: float) -> None:
        if seconds <= 0:
            return
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _run_one(self, payload: str, semaphore: asyncio.Semaphore) -> None:
        try:
            await self.consume(payload)
        finally:
            semaphore.release()

    async def consume(self, payload: str) -> JobOutcome | None:
        try:
            outcome = await self.processor.handle_message(payload)
        except Exception as e:
            logger.error(
                "Note job handler crashed, scheduling redelivery",
                error=str(e),
                error_type=type(e).__name__,
                payload_preview=payload[:80],
                delay_seconds=self.crash_retry_delay_seconds,
            )
            await self.queue.delay_inflight(payload, self.crash_retry_delay_seconds)
            return None

        await self.queue.ack(payload)
        return outcome


async def start_note_processing_worker() -> None:
    """Entry point for the note processing worker."""
    await NoteProcessingConsumer().run()
