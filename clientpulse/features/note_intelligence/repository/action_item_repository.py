"""Action item persistence."""

import uuid
from collections.abc import Sequence

from clientpulse.features.note_intelligence.domain import NewActionItem, NoteForProcessing

INSERT_ACTION_ITEM = """
    INSERT INTO action_items (id, user_id, client_id, note_id, description, owner, due_date, status)
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
"""


class ActionItemRepository:
    @staticmethod
    def build_insert_queries(
        note: NoteForProcessing, items: Sequence[NewActionItem]
    ) -> list[tuple[str, tuple]]:
        """One INSERT per extracted item, for use inside the completion transaction."""
        return [
            (
                INSERT_ACTION_ITEM,
                (
                    str(uuid.uuid4()),
                    note.user_id,
                    note.client_id,
                    note.id,
                    item.description,
                    item.owner,
                    item.due_date,
                    item.status,
                ),
            )
            for item in items
        ]
