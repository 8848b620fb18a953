"""Record store that keeps tables in process memory."""

from __future__ import annotations

import copy
from collections import defaultdict
from typing import Any
from uuid import uuid4

from dutyjobs.errors import PersistenceError


class InMemoryRecordStore:
    """Dict-backed record store for development and tests.

    Rows are deep-copied on the way in and out so callers never share state
    with the store.
    """

    def __init__(self, tables: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self._tables: dict[str, list[dict[str, Any]]] = defaultdict(list)
        for table, rows in (tables or {}).items():
            self._tables[table] = [self._with_id(row) for row in rows]

    @staticmethod
    def _with_id(row: dict[str, Any]) -> dict[str, Any]:
        stored = copy.deepcopy(row)
        stored.setdefault("id", str(uuid4()))
        return stored

    def rows(self, table: str) -> list[dict[str, Any]]:
        """All rows of ``table`` (copies)."""
        return copy.deepcopy(self._tables.get(table, []))

    async def insert(self, table: str, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        stored = [self._with_id(row) for row in rows]
        self._tables[table].extend(stored)
        return copy.deepcopy(stored)

    async def update(self, table: str, record_id: str, fields: dict[str, Any]) -> None:
        for row in self._tables.get(table, []):
            if str(row.get("id")) == str(record_id):
                row.update(copy.deepcopy(fields))
                return
        raise PersistenceError(f"No row {record_id!r} in {table}", table=table)

    async def query(
        self, table: str, filters: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        matches = [
            row for row in self._tables.get(table, []) if _matches(row, filters or {})
        ]
        return copy.deepcopy(matches)


def _matches(row: dict[str, Any], filters: dict[str, Any]) -> bool:
    for column, expected in filters.items():
        value = row.get(column)
        if isinstance(expected, (list, tuple, set, frozenset)):
            if value not in expected:
                return False
        elif value != expected:
            return False
    return True
