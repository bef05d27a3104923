"""
Domain models for the note intelligence feature.

Lightweight dataclasses describing the rows the processor reads and the
records it derives. They carry no persistence logic so the pipeline stages
can be exercised without a database.
"""

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from enum import StrEnum
from typing import Literal

ActionOwner = Literal["me", "client"]
Severity = Literal["low", "medium", "high"]
HealthStatus = Literal["healthy", "watch", "attention"]
HealthTrend = Literal["improving", "stable", "declining"]


class Provider(StrEnum):
    """Inference backends in failover order."""

    PRIMARY = "primary"
    FALLBACK = "fallback"


class AiStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(slots=True)
class NoteForProcessing:
    """A notes row joined with its client's display name."""

    id: str
    user_id: str
    client_id: str
    client_name: str
    ai_status: str | None
    title: str | None = None
    note_type: str | None = None
    summary: str | None = None
    discussed: str | None = None
    decisions: str | None = None
    action_items_raw: str | None = None
    concerns: str | None = None
    personal_notes: str | None = None
    next_steps: str | None = None
    mood: str | None = None
    meeting_date: date | None = None
    meeting_type: str | None = None

    @property
    def is_completed(self) -> bool:
        return self.ai_status == AiStatus.COMPLETED


@dataclass(slots=True)
class NewActionItem:
    """An action item extracted from a note, ready to insert."""

    description: str
    owner: ActionOwner
    due_date: date | None
    status: str = "open"


@dataclass(slots=True)
class HealthSignal:
    """Severity-tagged explanation attached to a health score."""

    type: str
    severity: Severity
    title: str
    description: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


@dataclass(slots=True)
class RecentNoteFactors:
    """Health-relevant columns of one recent note."""

    mood: str | None
    ai_sentiment_score: float | None
    ai_risk_signals: list[str] = field(default_factory=list)
    concerns: str | None = None


@dataclass(slots=True)
class ClientHealthRow:
    """Client columns needed to recompute health."""

    id: str
    user_id: str
    last_contact_at: datetime | None
