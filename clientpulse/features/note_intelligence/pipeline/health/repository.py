"""
Repository helpers for client health scoring.
"""

import json
from datetime import date
from typing import TYPE_CHECKING, Any

from psycopg.types.json import Jsonb

from clientpulse.db.helpers import execute_query, fetch_all, fetch_one, fetch_val
from clientpulse.features.note_intelligence.domain import ClientHealthRow, RecentNoteFactors
from clientpulse.infrastructure.observability.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover
    from .service import HealthAssessment

logger = get_logger(__name__)


def _as_string_list(value: Any) -> list[str]:
    """Decode a JSON list column; unreadable values count as no entries."""
    if value is None:
        return []
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            logger.debug("Ignoring unparseable risk signal column", preview=value[:50])
            return []
    if not isinstance(value, list):
        return []
    return [str(item) for item in value]


class HealthRepository:
    """Tenant-scoped reads of health factors and writes of health results."""

    @staticmethod
    async def fetch_client(client_id: str, user_id: str) -> ClientHealthRow | None:
        row = await fetch_one(
            """
            SELECT id, user_id, last_contact_at
            FROM clients
            WHERE id = %s AND user_id = %s
            """,
            (client_id, user_id),
        )
        if not row:
            return None
        return ClientHealthRow(
            id=str(row["id"]), user_id=str(row["user_id"]), last_contact_at=row["last_contact_at"]
        )

    @staticmethod
    async def fetch_active_clients() -> list[ClientHealthRow]:
        rows = await fetch_all(
            """
            SELECT c.id, c.user_id, c.last_contact_at
            FROM clients c
            JOIN users u ON u.id = c.user_id
            WHERE c.status = 'active'
              AND u.status = 'active'
            ORDER BY c.id
            """
        )
        return [
            ClientHealthRow(
                id=str(row["id"]),
                user_id=str(row["user_id"]),
                last_contact_at=row["last_contact_at"],
            )
            for row in rows
        ]

    @staticmethod
    async def count_overdue_actions(client_id: str, user_id: str, today: date) -> int:
        count = await fetch_val(
            """
            SELECT COUNT(*)
            FROM action_items
            WHERE client_id = %s
              AND user_id = %s
              AND owner = 'me'
              AND status = 'open'
              AND due_date < %s
            """,
            (client_id, user_id, today),
        )
        return int(count or 0)

    @staticmethod
    async def fetch_recent_note_factors(
        client_id: str, user_id: str, since: date, limit: int
    ) -> list[RecentNoteFactors]:
        rows = await fetch_all(
            """
            SELECT mood, ai_sentiment_score, ai_risk_signals, concerns
            FROM notes
            WHERE client_id = %s
              AND user_id = %s
              AND meeting_date >= %s
            ORDER BY meeting_date DESC
            LIMIT %s
            """,
            (client_id, user_id, since, limit),
        )
        return [
            RecentNoteFactors(
                mood=row.get("mood"),
                ai_sentiment_score=(
                    float(row["ai_sentiment_score"])
                    if row.get("ai_sentiment_score") is not None
                    else None
                ),
                ai_risk_signals=_as_string_list(row.get("ai_risk_signals")),
                concerns=row.get("concerns"),
            )
            for row in rows
        ]

    @staticmethod
    async def update_client_health(
        client_id: str, user_id: str, assessment: "HealthAssessment"
    ) -> int:
        return await execute_query(
            """
            UPDATE clients
            SET health_score = %s,
                health_status = %s,
                health_signals = %s,
                health_trend = %s,
                health_updated_at = NOW()
            WHERE id = %s AND user_id = %s
            """,
            (
                assessment.score,
                assessment.status,
                Jsonb(assessment.signals_payload()),
                assessment.trend,
                client_id,
                user_id,
            ),
        )

    @staticmethod
    async def insert_health_snapshots(snapshot_date: date) -> int:
        """Snapshot every active client's current health for trend history."""
        inserted = await execute_query(
            """
            INSERT INTO health_snapshots (id, client_id, score, status, signals, snapshot_date)
            SELECT gen_random_uuid(), id, health_score, health_status, health_signals, %s
            FROM clients
            WHERE status = 'active'
            """,
            (snapshot_date,),
        )
        logger.info("Health snapshots created", snapshot_date=str(snapshot_date), count=inserted)
        return inserted
