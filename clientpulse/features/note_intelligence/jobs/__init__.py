"""
Job runners for the note intelligence feature.
"""

from .health_sweep_job import HealthSweepMetrics, run_health_sweep
from .note_processing_job import NoteProcessingConsumer, start_note_processing_worker

__all__ = [
    "HealthSweepMetrics",
    "run_health_sweep",
    "NoteProcessingConsumer",
    "start_note_processing_worker",
]
