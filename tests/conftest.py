import asyncio
from datetime import date

import pytest

from clientpulse.features.note_intelligence.domain import NoteForProcessing
from clientpulse.features.note_intelligence.services.job_queue import NoteJobQueue


class FakeRedis:
    """In-memory stand-in for FastRedisClient's queue and lease methods."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.lists: dict[str, list[str]] = {}
        self.zsets: dict[str, dict[str, float]] = {}

    async def set_if_absent(self, key: str, value: str, ttl_s: int) -> bool:
        if key in self.store:
            return False
        self.store[key] = value
        return True

    async def delete_if_equals(self, key: str, value: str) -> bool:
        if self.store.get(key) != value:
            return False
        del self.store[key]
        return True

    async def push_to_list(self, key: str, value: str, left: bool = True) -> bool:
        items = self.lists.setdefault(key, [])
        if left:
            items.insert(0, value)
        else:
            items.append(value)
        return True

    async def add_delayed(self, key: str, value: str, due_at: float) -> bool:
        self.zsets.setdefault(key, {})[value] = due_at
        return True

    async def promote_due(self, delayed_key: str, ready_key: str, now: float, limit: int = 100) -> int:
        members = self.zsets.get(delayed_key, {})
        due = sorted((score, value) for value, score in members.items() if score <= now)[:limit]
        for _, value in due:
            del members[value]
            await self.push_to_list(ready_key, value)
        return len(due)

    async def pop_to_inflight(self, source_key: str, inflight_key: str, timeout: int = 0) -> str | None:
        # A real blocking pop yields to the event loop.
        await asyncio.sleep(0)
        source = self.lists.get(source_key) or []
        if not source:
            return None
        value = source.pop()
        self.lists.setdefault(inflight_key, []).insert(0, value)
        return value

    async def ack_from_inflight(self, inflight_key: str, value: str) -> bool:
        items = self.lists.get(inflight_key, [])
        if value in items:
            items.remove(value)
            return True
        return False

    async def requeue_from_inflight(self, inflight_key: str, destination_key: str, value: str) -> bool:
        await self.ack_from_inflight(inflight_key, value)
        return await self.push_to_list(destination_key, value)

    async def delay_from_inflight(self, inflight_key: str, delayed_key: str, value: str, due_at: float) -> bool:
        if not await self.ack_from_inflight(inflight_key, value):
            return False
        return await self.add_delayed(delayed_key, value, due_at)

    async def list_range(self, key: str, start: int = 0, end: int = -1) -> list[str]:
        items = self.lists.get(key, [])
        return list(items[start:] if end == -1 else items[start : end + 1])


class FailingRedis(FakeRedis):
    async def push_to_list(self, key: str, value: str, left: bool = True) -> bool:
        return False

    async def add_delayed(self, key: str, value: str, due_at: float) -> bool:
        return False


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def note_queue(fake_redis):
    return NoteJobQueue(redis_client=fake_redis, prefix="test:notes", worker_id="worker-1")


@pytest.fixture
def make_note():
    def _make(**overrides) -> NoteForProcessing:
        data = {
            "id": "note-1",
            "user_id": "user-1",
            "client_id": "client-1",
            "client_name": "Acme Corp",
            "ai_status": "pending",
            "title": None,
            "note_type": "meeting",
            "summary": "Quarterly review with the buying team.",
            "discussed": "Renewal pricing and onboarding of two new teams.",
            "decisions": "Move forward with the annual plan.",
            "action_items_raw": "Send revised proposal.",
            "concerns": None,
            "personal_notes": "Dana just got back from Lisbon.",
            "next_steps": "Follow up next week.",
            "mood": "positive",
            "meeting_date": date(2026, 10, 12),
            "meeting_type": "video",
        }
        data.update(overrides)
        return NoteForProcessing(**data)

    return _make


@pytest.fixture
def failing_redis():
    return FailingRedis()
