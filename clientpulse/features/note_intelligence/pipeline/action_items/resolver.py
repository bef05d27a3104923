"""Turns qualitative due-date hints from model output into calendar dates."""

from collections.abc import Iterable
from datetime import UTC, date, datetime, timedelta

from clientpulse.features.note_intelligence.domain import NewActionItem
from clientpulse.features.note_intelligence.pipeline.extraction import ExtractedActionItem


def utc_today() -> date:
    return datetime.now(UTC).date()


def end_of_week(today: date) -> date:
    """Next Sunday; a Sunday rolls over to the following one."""
    days_since_sunday = today.isoweekday() % 7
    return today + timedelta(days=7 - days_since_sunday)


def resolve_due_hint(hint: str | None, today: date) -> date | None:
    """
    Map a due hint to a concrete date relative to ``today``.

    Unknown hints resolve to no date instead of failing the job.
    """
    if hint == "today":
        return today
    if hint == "this week":
        return end_of_week(today)
    if hint == "next week":
        return today + timedelta(days=7)
    return None


def resolve_action_items(
    items: Iterable[ExtractedActionItem], today: date | None = None
) -> list[NewActionItem]:
    today = today or utc_today()
    return [
        NewActionItem(
            description=item.description,
            owner=item.owner,
            due_date=resolve_due_hint(item.due_hint, today),
        )
        for item in items
    ]
