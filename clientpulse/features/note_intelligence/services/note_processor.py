"""
Note processing job state machine.

For each delivered job: load the note (skip if missing or already
completed), mark it processing, build the prompt, call the backend chosen
by the job's provider, validate the answer, resolve action item dates,
persist everything in one transaction and refresh the client's health.
Any failure consults the retry table: re-enqueue with a delay, or mark the
note failed once the table is exhausted.
"""

import json
import time
from collections.abc import Callable
from datetime import date
from enum import StrEnum

from pydantic import ValidationError

from clientpulse.config import settings
from clientpulse.db.helpers import execute_transaction
from clientpulse.features.note_intelligence.domain import (
    PROCESS_NOTE,
    NoteForProcessing,
    ProcessNoteJob,
)
from clientpulse.features.note_intelligence.pipeline.action_items import (
    resolve_action_items,
    utc_today,
)
from clientpulse.features.note_intelligence.pipeline.extraction import parse_analysis
from clientpulse.features.note_intelligence.pipeline.health import HealthService, health_service
from clientpulse.features.note_intelligence.pipeline.prompting import build_analysis_prompt
from clientpulse.features.note_intelligence.repository import (
    ClientRepository,
    NoteRepository,
    merge_personal_details,
)
from clientpulse.infrastructure.observability.logging import get_logger, log_job_outcome

from .inference_service import InferenceClient, inference_client
from .job_queue import NoteJobQueue, note_job_queue
from .retry_policy import decide_retry

logger = get_logger(__name__)


class JobOutcome(StrEnum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    RETRIED = "retried"
    FAILED = "failed"
    DEFERRED = "deferred"


class NoteProcessor:
    def __init__(
        self,
        queue: NoteJobQueue = note_job_queue,
        inference: InferenceClient = inference_client,
        health: HealthService = health_service,
        today: Callable[[], date] = utc_today,
        lease_enabled: bool | None = None,
    ):
        self.queue = queue
        self.inference = inference
        self.health = health
        self.today = today
        self.lease_enabled = (
            settings.NOTE_LEASE_ENABLED if lease_enabled is None else lease_enabled
        )

    async def handle_message(self, payload: str) -> JobOutcome:
        """Decode one raw queue message and handle it. Bad messages are skipped."""
        try:
            message_type = json.loads(payload).get("type")
        except (ValueError, AttributeError) as e:
            logger.error("Malformed queue message", error=str(e), payload_preview=payload[:80])
            return JobOutcome.SKIPPED

        if message_type != PROCESS_NOTE:
            logger.warning("Unknown queue message type", message_type=message_type)
            return JobOutcome.SKIPPED

        try:
            job = ProcessNoteJob.from_message(payload)
        except ValidationError as e:
            logger.error(
                "Invalid note job message",
                error_count=e.error_count(),
                payload_preview=payload[:80],
            )
            return JobOutcome.SKIPPED

        return await self.handle(job)

    async def handle(self, job: ProcessNoteJob) -> JobOutcome:
        start = time.perf_counter()
        error: str | None = None

        if self.lease_enabled and not await self.queue.acquire_lease(job.note_id):
            # Another worker holds this note; deliver the same attempt again later.
            await self.queue.enqueue(job, delay_seconds=settings.NOTE_LEASE_RETRY_DELAY_SECONDS)
            outcome = JobOutcome.DEFERRED
            self._log(job, outcome, start)
            return outcome

        try:
            outcome = await self._process(job)
        except Exception as e:
            error = str(e) or type(e).__name__
            outcome = await self._handle_failure(job, error, e)
        finally:
            if self.lease_enabled:
                await self.queue.release_lease(job.note_id)

        self._log(job, outcome, start, error)
        return outcome

    async def _process(self, job: ProcessNoteJob) -> JobOutcome:
        note = await NoteRepository.fetch_for_processing(job.note_id, job.user_id)
        if note is None:
            logger.info("Note not found, skipping job", note_id=job.note_id)
            return JobOutcome.SKIPPED

        if note.is_completed:
            logger.info("Note already processed, skipping job", note_id=job.note_id)
            return JobOutcome.SKIPPED

        await NoteRepository.mark_processing(note.id, note.user_id)

        prompt = build_analysis_prompt(note)
        raw = await self.inference.infer(job.provider, prompt)
        analysis = parse_analysis(raw)
        action_items = resolve_action_items(analysis.action_items, self.today())

        queries = NoteRepository.build_completion_queries(note, analysis, action_items)
        if analysis.personal_details:
            existing = await ClientRepository.fetch_personal_details(note.client_id, note.user_id)
            queries.append(
                ClientRepository.build_personal_details_query(
                    note.client_id,
                    note.user_id,
                    merge_personal_details(existing, analysis.personal_details),
                )
            )

        await execute_transaction(queries)

        logger.info(
            "Note analysis persisted",
            note_id=note.id,
            action_items=len(action_items),
            risk_signals=len(analysis.risk_signals),
            title_generated=not note.title,
        )

        await self._refresh_health(note)
        return JobOutcome.COMPLETED

    async def _refresh_health(self, note: NoteForProcessing) -> None:
        # The note is already completed at this point; the nightly sweep repairs a missed score.
        try:
            await self.health.recalculate_client(note.client_id, note.user_id)
        except Exception as e:
            logger.error(
                "Health recalculation failed after note completion",
                note_id=note.id,
                client_id=note.client_id,
                error=str(e),
                error_type=type(e).__name__,
            )

    async def _handle_failure(
        self, job: ProcessNoteJob, error: str, exc: Exception
    ) -> JobOutcome:
        logger.warning(
            "Note processing attempt failed",
            note_id=job.note_id,
            attempt=job.attempt,
            provider=str(job.provider),
            error=error,
            error_type=type(exc).__name__,
        )

        step = decide_retry(job.attempt, job.provider)
        if step is None:
            await NoteRepository.mark_failed(job.note_id, job.user_id, error)
            return JobOutcome.FAILED

        await self.queue.enqueue(
            job.next(step.next_attempt, step.next_provider), delay_seconds=step.delay_seconds
        )
        return JobOutcome.RETRIED

    @staticmethod
    def _log(
        job: ProcessNoteJob, outcome: JobOutcome, start: float, error: str | None = None
    ) -> None:
        log_job_outcome(
            note_id=job.note_id,
            outcome=outcome.value,
            attempt=job.attempt,
            provider=str(job.provider),
            duration_ms=(time.perf_counter() - start) * 1000,
            error=error,
        )


default_note_processor = NoteProcessor()
