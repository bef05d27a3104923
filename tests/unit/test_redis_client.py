from unittest.mock import AsyncMock, Mock

import pytest
import redis.asyncio as redis

from clientpulse.services.infrastructure.redis_client import (
    DELAY_FROM_INFLIGHT_SCRIPT,
    DELETE_IF_EQUALS_SCRIPT,
    PROMOTE_DUE_SCRIPT,
    FastRedisClient,
)


def _client_with(eval_mock: AsyncMock) -> tuple[FastRedisClient, Mock]:
    raw = Mock(spec=["eval"])
    raw.eval = eval_mock
    client = FastRedisClient()
    client.client = raw
    client._initialized = True
    return client, raw


@pytest.mark.asyncio
async def test_promote_due_moves_members_in_one_script_call():
    client, raw = _client_with(AsyncMock(return_value=2))

    promoted = await client.promote_due("q:delayed", "q:ready", now=1_000.0, limit=50)

    assert promoted == 2
    raw.eval.assert_awaited_once_with(PROMOTE_DUE_SCRIPT, 2, "q:delayed", "q:ready", 1_000.0, 50)


@pytest.mark.asyncio
async def test_promote_due_failure_leaves_nothing_half_moved():
    client, raw = _client_with(AsyncMock(side_effect=redis.ConnectionError("connection reset")))

    assert await client.promote_due("q:delayed", "q:ready", now=1_000.0) == 0
    # No separate ZREM/LPUSH round trips that could remove without pushing
    assert [call[0] for call in raw.method_calls] == ["eval"]


@pytest.mark.asyncio
async def test_delete_if_equals_compares_before_deleting():
    client, raw = _client_with(AsyncMock(return_value=0))

    assert await client.delete_if_equals("q:lease:note-1", "worker-1") is False
    raw.eval.assert_awaited_once_with(DELETE_IF_EQUALS_SCRIPT, 1, "q:lease:note-1", "worker-1")


@pytest.mark.asyncio
async def test_delay_from_inflight_reports_moved_message():
    client, raw = _client_with(AsyncMock(return_value=1))

    assert await client.delay_from_inflight("q:inflight:w", "q:delayed", "msg", 1_060.0) is True
    raw.eval.assert_awaited_once_with(
        DELAY_FROM_INFLIGHT_SCRIPT, 2, "q:inflight:w", "q:delayed", "msg", 1_060.0
    )
