"""
Note intelligence feature package.

Turns saved meeting notes into structured analysis (summary, action items,
risk signals, personal details) through a queued, retried inference
pipeline, and keeps each client's health score current. Domain models,
prompt and response handling, repositories, services and job runners live
side by side in this slice.
"""

# Re-export the primary building blocks for easy access.
from .domain import ProcessNoteJob, Provider  # noqa: F401
from .services.scheduler import enqueue_note_processing, retry_failed_note  # noqa: F401
from .jobs.note_processing_job import start_note_processing_worker  # noqa: F401
from .jobs.health_sweep_job import run_health_sweep  # noqa: F401
