"""
Helpers that put note processing work on the queue.

``enqueue_note_processing`` is called once a note is saved;
``retry_failed_note`` restarts the attempt sequence for a note that
exhausted its automatic retries.
"""

from clientpulse.features.note_intelligence.domain import AiStatus, ProcessNoteJob
from clientpulse.features.note_intelligence.errors import ManualRetryError
from clientpulse.features.note_intelligence.repository import NoteRepository
from clientpulse.infrastructure.observability.logging import get_logger

from .job_queue import NoteJobQueue, note_job_queue

logger = get_logger(__name__)


async def enqueue_note_processing(
    note_id: str, user_id: str, queue: NoteJobQueue = note_job_queue
) -> ProcessNoteJob:
    """Queue the first attempt for a note."""
    job = ProcessNoteJob.first_attempt(note_id, user_id)
    await queue.enqueue(job)
    return job


async def retry_failed_note(
    note_id: str, user_id: str, queue: NoteJobQueue = note_job_queue
) -> ProcessNoteJob:
    """
    Reset a failed note to pending and queue attempt 1 on the primary provider.

    Raises:
        ManualRetryError: note missing, or not in the failed state
    """
    note = await NoteRepository.fetch_for_processing(note_id, user_id)
    if note is None:
        raise ManualRetryError(f"Note {note_id} not found", reason="not_found")

    if note.ai_status != AiStatus.FAILED:
        raise ManualRetryError(
            f"Note {note_id} is {note.ai_status or 'unprocessed'}, only failed notes can be retried",
            reason="not_failed",
        )

    updated = await NoteRepository.reset_for_retry(note_id, user_id)
    if not updated:
        # Status changed between the read and the reset.
        raise ManualRetryError(f"Note {note_id} is no longer failed", reason="not_failed")

    job = await enqueue_note_processing(note_id, user_id, queue)
    logger.info("Manual retry queued", note_id=note_id, user_id=user_id)
    return job
