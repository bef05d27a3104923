"""Client-level facts merged from note analyses."""

import json
from collections.abc import Iterable

from psycopg.types.json import Jsonb

from clientpulse.db.helpers import fetch_val

MAX_PERSONAL_DETAILS = 20


def merge_personal_details(existing: Iterable[str], new: Iterable[str]) -> list[str]:
    """Union preserving first-seen order, capped at MAX_PERSONAL_DETAILS."""
    merged = list(dict.fromkeys([*existing, *new]))
    return merged[:MAX_PERSONAL_DETAILS]


class ClientRepository:
    @staticmethod
    async def fetch_personal_details(client_id: str, user_id: str) -> list[str]:
        value = await fetch_val(
            "SELECT ai_personal_details FROM clients WHERE id = %s AND user_id = %s",
            (client_id, user_id),
        )
        if isinstance(value, str):
            value = json.loads(value or "[]")
        return [str(item) for item in value or []]

    @staticmethod
    def build_personal_details_query(
        client_id: str, user_id: str, details: list[str]
    ) -> tuple[str, tuple]:
        return (
            "UPDATE clients SET ai_personal_details = %s WHERE id = %s AND user_id = %s",
            (Jsonb(details), client_id, user_id),
        )
