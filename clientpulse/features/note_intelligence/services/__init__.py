"""
Service layer for the note intelligence feature.
"""

from .inference_service import InferenceClient, inference_client
from .job_queue import NoteJobQueue, note_job_queue
from .note_processor import JobOutcome, NoteProcessor, default_note_processor
from .retry_policy import MAX_ATTEMPTS, RETRY_POLICY, RetryStep, decide_retry
from .scheduler import enqueue_note_processing, retry_failed_note

__all__ = [
    "InferenceClient",
    "inference_client",
    "NoteJobQueue",
    "note_job_queue",
    "JobOutcome",
    "NoteProcessor",
    "default_note_processor",
    "MAX_ATTEMPTS",
    "RETRY_POLICY",
    "RetryStep",
    "decide_retry",
    "enqueue_note_processing",
    "retry_failed_note",
]
