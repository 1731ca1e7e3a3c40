from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Callable

import pytest


class FakeResponse:
    def __init__(self, data: list[dict]):
        self.data = data


class FakeQuery:
    """Just enough of the postgrest query builder for the persistence layer."""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.action = "select"
        self.payload: Any = None
        self.filters: list[Callable[[dict], bool]] = []
        self._negate = False
        self._order: tuple[str, bool] | None = None
        self._limit: int | None = None

    def select(self, *_columns, **_kwargs):
        self.action = "select"
        return self

    def insert(self, payload):
        self.action = "insert"
        self.payload = payload
        return self

    def upsert(self, payload, on_conflict: str = "id"):
        self.action = "upsert"
        self.payload = payload
        return self

    def delete(self):
        self.action = "delete"
        return self

    @property
    def not_(self):
        self._negate = True
        return self

    def _filter(self, predicate: Callable[[dict], bool]):
        negate, self._negate = self._negate, False
        self.filters.append((lambda row: not predicate(row)) if negate else predicate)
        return self

    def eq(self, column, value):
        return self._filter(lambda row: row.get(column) == value)

    def neq(self, column, value):
        return self._filter(lambda row: row.get(column) != value)

    def in_(self, column, values):
        allowed = set(values)
        return self._filter(lambda row: row.get(column) in allowed)

    def order(self, column, desc: bool = False):
        self._order = (column, desc)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def _matches(self, row: dict) -> bool:
        return all(predicate(row) for predicate in self.filters)

    def execute(self) -> FakeResponse:
        self.db.calls.append((self.table, self.action))
        if self.action in self.db.fail_on:
            raise RuntimeError(f"{self.action} failed")

        rows = self.db.tables.setdefault(self.table, [])
        if self.action == "select":
            selected = [dict(row) for row in rows if self._matches(row)]
            if self._order:
                column, desc = self._order
                selected.sort(key=lambda row: row.get(column) or "", reverse=desc)
            if self._limit is not None:
                selected = selected[: self._limit]
            return FakeResponse(selected)

        if self.action in ("insert", "upsert"):
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            written = []
            for record in payload:
                record = dict(record)
                existing = next((row for row in rows if row.get("id") == record.get("id")), None)
                if existing is not None and self.action == "upsert":
                    existing.update(record)
                    written.append(dict(existing))
                    continue
                record.setdefault("created_at", self.db.next_timestamp())
                rows.append(record)
                written.append(dict(record))
            return FakeResponse(written)

        deleted = [row for row in rows if self._matches(row)]
        self.db.tables[self.table] = [row for row in rows if not self._matches(row)]
        return FakeResponse(deleted)


class FakeSupabase:
    def __init__(self):
        self.tables: dict[str, list[dict]] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_on: set[str] = set()
        self._clock = datetime(2024, 1, 1, 8, 0, 0)

    def next_timestamp(self) -> str:
        self._clock += timedelta(seconds=1)
        return self._clock.isoformat()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)


@pytest.fixture
def fake_supabase(monkeypatch: pytest.MonkeyPatch) -> FakeSupabase:
    from routedesk.persistence import route_notes as route_notes_module
    from routedesk.persistence import routes as routes_module

    fake = FakeSupabase()
    monkeypatch.setattr(routes_module, "get_supabase_client", lambda: fake)
    monkeypatch.setattr(route_notes_module, "get_supabase_client", lambda: fake)
    return fake
