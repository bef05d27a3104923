"""
Queue message contract for note processing jobs.

Messages travel as camelCase JSON, e.g.
{"type": "PROCESS_NOTE", "noteId": "...", "userId": "...", "attempt": 1,
 "provider": "primary", "timestamp": 1730000000000}
"""

import time
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .models import Provider

PROCESS_NOTE = "PROCESS_NOTE"


def _now_ms() -> int:
    return int(time.time() * 1000)


class ProcessNoteJob(BaseModel):
    """One unit of queued work requesting inference processing for a note."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    type: Literal["PROCESS_NOTE"] = PROCESS_NOTE
    note_id: str = Field(..., alias="noteId", min_length=1)
    user_id: str = Field(..., alias="userId", min_length=1)
    attempt: int = Field(1, ge=1)
    provider: Provider = Provider.PRIMARY
    timestamp: int = Field(default_factory=_now_ms, description="Enqueue time, epoch millis")

    @classmethod
    def first_attempt(cls, note_id: str, user_id: str) -> "ProcessNoteJob":
        return cls(note_id=note_id, user_id=user_id, attempt=1, provider=Provider.PRIMARY)

    def next(self, attempt: int, provider: Provider) -> "ProcessNoteJob":
        """Copy for redelivery with a fresh enqueue timestamp."""
        return self.model_copy(
            update={"attempt": attempt, "provider": provider, "timestamp": _now_ms()}
        )

    def to_message(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_message(cls, payload: str) -> "ProcessNoteJob":
        return cls.model_validate_json(payload)
