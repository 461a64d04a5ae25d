import asyncio

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError, OperationalError

from core.errors import ConflictError, StoreFailure
from db.store import SqlInventoryStore, _like_pattern


class _SessionStub:
    """Records calls; commit/execute raise whatever the test asks for."""

    def __init__(self, commit_error=None, execute_error=None):
        self.commit_error = commit_error
        self.execute_error = execute_error
        self.added = []
        self.rolled_back = False
        self.statements = []

    def add(self, obj):
        self.added.append(obj)

    async def commit(self):
        if self.commit_error is not None:
            raise self.commit_error

    async def rollback(self):
        self.rolled_back = True

    async def refresh(self, obj):
        return None

    async def execute(self, stmt):
        self.statements.append(stmt)
        if self.execute_error is not None:
            raise self.execute_error
        raise AssertionError("unexpected execute")


def test_duplicate_name_on_insert_becomes_conflict():
    session = _SessionStub(commit_error=IntegrityError("INSERT", {}, Exception("duplicate key")))
    store = SqlInventoryStore(session)
    with pytest.raises(ConflictError):
        asyncio.run(store.insert({"item_name": "Widget", "stocks_available": 1, "item_img": ""}))
    assert session.rolled_back


def test_driver_failure_on_commit_becomes_store_failure():
    session = _SessionStub(commit_error=OperationalError("UPDATE", {}, Exception("connection lost")))
    store = SqlInventoryStore(session)
    with pytest.raises(StoreFailure, match="connection lost"):
        asyncio.run(store.insert({"item_name": "Widget", "stocks_available": 1, "item_img": ""}))
    assert session.rolled_back


def test_search_failure_surfaces_message():
    session = _SessionStub(execute_error=OperationalError("SELECT", {}, Exception("relation missing")))
    store = SqlInventoryStore(session)
    with pytest.raises(StoreFailure, match="relation missing"):
        asyncio.run(store.search("widget"))


def test_search_statement_covers_every_field():
    session = _SessionStub(execute_error=OperationalError("SELECT", {}, Exception("stop")))
    store = SqlInventoryStore(session)
    with pytest.raises(StoreFailure):
        asyncio.run(store.search("wid"))
    sql = str(session.statements[0].compile(dialect=postgresql.dialect()))
    for column in ("item_name", "item_description", "stocks_available", "item_price", "expire_date", "item_img"):
        assert column in sql
    assert "ILIKE" in sql.upper()
    assert "ts_rank" in sql


def test_empty_batches_skip_the_database():
    session = _SessionStub()
    store = SqlInventoryStore(session)
    assert asyncio.run(store.find_by_ids([])) == []
    assert asyncio.run(store.delete_by_ids([])) == []
    assert session.statements == []


@pytest.mark.parametrize("query, expected", [
    ("widget", "%widget%"),
    ("50%", "%50\\%%"),
    ("a_b", "%a\\_b%"),
])
def test_like_pattern_escapes_wildcards(query, expected):
    assert _like_pattern(query) == expected
