from .messages import PROCESS_NOTE, ProcessNoteJob
from .models import (
    AiStatus,
    ClientHealthRow,
    HealthSignal,
    NewActionItem,
    NoteForProcessing,
    Provider,
    RecentNoteFactors,
)

__all__ = [
    "AiStatus",
    "ClientHealthRow",
    "HealthSignal",
    "NewActionItem",
    "NoteForProcessing",
    "PROCESS_NOTE",
    "ProcessNoteJob",
    "Provider",
    "RecentNoteFactors",
]
