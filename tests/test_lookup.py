from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import psycopg  # type: ignore[import-not-found]
import pytest

from graphid import config
from graphid.errors import LookupFailureError
from graphid.lookup import InMemoryEntityResolver, PostgresEntityResolver
from graphid import lookup as lookup_module


class _FakeCursor:
    def __init__(self, row: Optional[Dict[str, Any]]) -> None:
        self.row = row
        self.executed: List[Tuple[object, Tuple[object, ...]]] = []

    async def __aenter__(self) -> "_FakeCursor":
        return self

    async def __aexit__(self, *exc: object) -> None:
        return None

    async def execute(self, query: object, params: Tuple[object, ...]) -> None:
        self.executed.append((query, params))

    async def fetchone(self) -> Optional[Dict[str, Any]]:
        return self.row


class _FakeConnection:
    def __init__(self, cursor: _FakeCursor) -> None:
        self._cursor = cursor
        self.closed = False

    async def __aenter__(self) -> "_FakeConnection":
        return self

    async def __aexit__(self, *exc: object) -> None:
        self.closed = True

    def cursor(self) -> _FakeCursor:
        return self._cursor


def _patch_connect(monkeypatch: pytest.MonkeyPatch, cursor: _FakeCursor) -> List[str]:
    dsns: List[str] = []

    async def fake_connect(dsn: str, **kwargs: Any) -> _FakeConnection:
        dsns.append(dsn)
        return _FakeConnection(cursor)

    monkeypatch.setattr(lookup_module.psycopg.AsyncConnection, "connect", fake_connect)
    return dsns


@pytest.fixture(autouse=True)
def clear_settings_cache():
    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()


@pytest.mark.asyncio
async def test_postgres_lookup_returns_entity(monkeypatch: pytest.MonkeyPatch) -> None:
    cursor = _FakeCursor(
        {
            "internal_id": "4f1c",
            "standard_id": "ipv4-addr--11111111-1111-5111-8111-111111111111",
            "entity_type": "IPv4-Addr",
        }
    )
    dsns = _patch_connect(monkeypatch, cursor)
    resolver = PostgresEntityResolver("postgresql://graph@localhost:5432/graph")

    entity = await resolver.lookup_by_id("4f1c")

    assert entity is not None
    assert entity.standard_id == "ipv4-addr--11111111-1111-5111-8111-111111111111"
    assert entity.entity_type == "IPv4-Addr"
    assert dsns == ["postgresql://graph@localhost:5432/graph"]
    assert cursor.executed[0][1] == ("4f1c", "4f1c")


@pytest.mark.asyncio
async def test_postgres_lookup_returns_none_when_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_connect(monkeypatch, _FakeCursor(None))
    resolver = PostgresEntityResolver("postgresql://graph@localhost:5432/graph")

    assert await resolver.lookup_by_id("ghost") is None


@pytest.mark.asyncio
async def test_postgres_driver_errors_become_lookup_failures(monkeypatch: pytest.MonkeyPatch) -> None:
    async def failing_connect(dsn: str, **kwargs: Any) -> _FakeConnection:
        raise psycopg.OperationalError("connection refused")

    monkeypatch.setattr(lookup_module.psycopg.AsyncConnection, "connect", failing_connect)
    resolver = PostgresEntityResolver("postgresql://graph@localhost:5432/graph")

    with pytest.raises(LookupFailureError) as excinfo:
        await resolver.lookup_by_id("4f1c")
    assert isinstance(excinfo.value.__cause__, psycopg.OperationalError)


def test_from_settings_requires_dsn(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GRAPHID_DSN", raising=False)

    with pytest.raises(ValueError):
        PostgresEntityResolver.from_settings(config.IdentifierSettings(dsn=None))


def test_from_settings_uses_schema_and_table() -> None:
    settings = config.IdentifierSettings(
        dsn="postgresql://graph@localhost:5432/graph",
        db_schema="kb",
        entities_table="objects",
    )

    resolver = PostgresEntityResolver.from_settings(settings)

    assert resolver.dsn == "postgresql://graph@localhost:5432/graph"
    assert "kb" in repr(resolver.table)
    assert "objects" in repr(resolver.table)


@pytest.mark.asyncio
async def test_in_memory_resolver_accepts_both_ids() -> None:
    resolver = InMemoryEntityResolver()
    resolver.add("internal-1", "label--abc", entity_type="Label")

    by_internal = await resolver.lookup_by_id("internal-1")
    by_standard = await resolver.lookup_by_id("label--abc")

    assert by_internal == by_standard
    assert by_internal is not None and by_internal.entity_type == "Label"
    assert await resolver.lookup_by_id("missing") is None
