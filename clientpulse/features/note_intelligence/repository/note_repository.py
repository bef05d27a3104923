"""
Note reads and writes for the processing pipeline.

Every statement is tenant-scoped by ``user_id``.
"""

from collections.abc import Sequence

from psycopg.types.json import Jsonb

from clientpulse.db.helpers import execute_query, fetch_one
from clientpulse.features.note_intelligence.domain import AiStatus, NewActionItem, NoteForProcessing
from clientpulse.features.note_intelligence.pipeline.extraction import NoteAnalysis
from clientpulse.infrastructure.observability.logging import get_logger

from .action_item_repository import ActionItemRepository

logger = get_logger(__name__)

Query = tuple[str, tuple]


class NoteRepository:
    @staticmethod
    async def fetch_for_processing(note_id: str, user_id: str) -> NoteForProcessing | None:
        row = await fetch_one(
            """
            SELECT n.id, n.user_id, n.client_id, n.ai_status, n.title, n.note_type,
                   n.summary, n.discussed, n.decisions, n.action_items_raw, n.concerns,
                   n.personal_notes, n.next_steps, n.mood, n.meeting_date, n.meeting_type,
                   c.name AS client_name
            FROM notes n
            JOIN clients c ON c.id = n.client_id AND c.user_id = n.user_id
            WHERE n.id = %s AND n.user_id = %s
            """,
            (note_id, user_id),
        )
        if not row:
            return None

        return NoteForProcessing(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            client_id=str(row["client_id"]),
            client_name=row.get("client_name") or "",
            ai_status=row.get("ai_status"),
            title=row.get("title"),
            note_type=row.get("note_type"),
            summary=row.get("summary"),
            discussed=row.get("discussed"),
            decisions=row.get("decisions"),
            action_items_raw=row.get("action_items_raw"),
            concerns=row.get("concerns"),
            personal_notes=row.get("personal_notes"),
            next_steps=row.get("next_steps"),
            mood=row.get("mood"),
            meeting_date=row.get("meeting_date"),
            meeting_type=row.get("meeting_type"),
        )

    @staticmethod
    async def mark_processing(note_id: str, user_id: str) -> int:
        return await execute_query(
            "UPDATE notes SET ai_status = %s WHERE id = %s AND user_id = %s",
            (AiStatus.PROCESSING.value, note_id, user_id),
        )

    @staticmethod
    async def mark_failed(note_id: str, user_id: str, error: str) -> int:
        updated = await execute_query(
            "UPDATE notes SET ai_status = %s, ai_error = %s WHERE id = %s AND user_id = %s",
            (AiStatus.FAILED.value, error, note_id, user_id),
        )
        logger.info("Note marked failed", note_id=note_id, updated=updated)
        return updated

    @staticmethod
    async def reset_for_retry(note_id: str, user_id: str) -> int:
        """Move a failed note back to pending. Returns 0 unless the note was failed."""
        return await execute_query(
            """
            UPDATE notes
            SET ai_status = %s, ai_error = NULL
            WHERE id = %s AND user_id = %s AND ai_status = %s
            """,
            (AiStatus.PENDING.value, note_id, user_id, AiStatus.FAILED.value),
        )

    @staticmethod
    def build_completion_queries(
        note: NoteForProcessing,
        analysis: NoteAnalysis,
        action_items: Sequence[NewActionItem],
    ) -> list[Query]:
        """
        Statements that persist an analysis and complete the note.

        The title is only written when the user left it empty.
        """
        assignments = [
            "ai_status = %s",
            "ai_error = NULL",
            "ai_summary = %s",
            "ai_risk_signals = %s",
            "ai_personal_details = %s",
            "ai_sentiment_score = %s",
            "ai_topics = %s",
            "ai_key_insights = %s",
            "ai_relationship_signals = %s",
            "ai_follow_up_recommendations = %s",
            "ai_communication_style = %s",
        ]
        params: list = [
            AiStatus.COMPLETED.value,
            analysis.summary,
            Jsonb(analysis.risk_signals),
            Jsonb(analysis.personal_details),
            analysis.sentiment_score,
            Jsonb(analysis.topics),
            Jsonb(analysis.key_insights),
            Jsonb(analysis.relationship_signals),
            Jsonb(analysis.follow_up_recommendations),
            analysis.communication_style,
        ]

        if not note.title and analysis.title:
            assignments.append("title = %s")
            params.append(analysis.title)

        update_note = (
            f"UPDATE notes SET {', '.join(assignments)} WHERE id = %s AND user_id = %s",
            (*params, note.id, note.user_id),
        )

        return [update_note] + ActionItemRepository.build_insert_queries(note, action_items)
