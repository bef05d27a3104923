from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

import psycopg
import pytest

from clientpulse.db import helpers
from clientpulse.db.helpers import DatabaseError


class FakeConnection:
    def __init__(self, fail_on: str | None = None):
        self.executed: list[tuple] = []
        self.fail_on = fail_on

    async def execute(self, query, params=()):
        if self.fail_on and self.fail_on in query:
            raise psycopg.OperationalError("server closed the connection")
        self.executed.append((query, params))
        cursor = AsyncMock()
        cursor.rowcount = 1
        return cursor


def _provider(conn):
    @asynccontextmanager
    async def _cm():
        yield conn

    async def _get():
        return _cm()

    return _get


@pytest.mark.asyncio
async def test_execute_transaction_runs_every_statement(monkeypatch):
    conn = FakeConnection()
    monkeypatch.setattr(helpers, "get_db_transaction", _provider(conn))

    assert await helpers.execute_transaction([("UPDATE a", (1,)), ("INSERT b", (2,))]) is True
    assert conn.executed == [("UPDATE a", (1,)), ("INSERT b", (2,))]


@pytest.mark.asyncio
async def test_execute_transaction_wraps_driver_errors(monkeypatch):
    monkeypatch.setattr(helpers, "get_db_transaction", _provider(FakeConnection(fail_on="INSERT")))

    with pytest.raises(DatabaseError) as exc:
        await helpers.execute_transaction([("UPDATE a", ()), ("INSERT b", ())])

    assert exc.value.operation == "transaction"
    assert exc.value.recoverable is True


@pytest.mark.asyncio
async def test_execute_query_returns_rowcount(monkeypatch):
    monkeypatch.setattr(helpers, "get_db_connection", _provider(FakeConnection()))

    assert await helpers.execute_query("UPDATE notes SET ai_status = %s", ("failed",)) == 1
