"""In-memory storage adapter.

Keeps records in a list and pages with numeric offset cursors. Each call
returns at most ``page_size`` records regardless of the requested limit,
which mimics stores that hand back short pages.
"""

from __future__ import annotations

from typing import Any

from dmvc.errors import InvalidCursorError, RecordNotFoundError
from dmvc.storage.adapter import Page


def _matches(record: dict[str, Any], facets: dict[str, Any]) -> bool:
    return all(record.get(name) == value for name, value in facets.items())


def _offset(cursor: str | None) -> int:
    if not cursor:
        return 0
    try:
        offset = int(cursor)
    except ValueError as exc:
        raise InvalidCursorError(f"Invalid cursor: {cursor!r}") from exc
    if offset < 0:
        raise InvalidCursorError(f"Invalid cursor: {cursor!r}")
    return offset


class MemoryAdapter:
    """List-backed adapter for tests and local development.

    With ``key_names`` set, ``put`` replaces the record stored under the
    same key instead of adding a second one.
    """

    def __init__(
        self,
        records: list[dict[str, Any]] | None = None,
        page_size: int = 50,
        indexes: dict[str, list[str]] | None = None,
        key_names: list[str] | None = None,
    ):
        self.records: list[dict[str, Any]] = [dict(r) for r in records or []]
        self.page_size = page_size
        self.indexes = indexes or {}
        self.key_names = list(key_names or [])

    async def get(self, key: dict[str, Any]) -> dict[str, Any] | None:
        index = self._position(key)
        if index is None:
            return None
        return dict(self.records[index])

    async def put(self, record: dict[str, Any]) -> dict[str, Any]:
        index = None
        if self.key_names:
            index = self._position({name: record.get(name) for name in self.key_names})
        if index is None:
            self.records.append(dict(record))
        else:
            self.records[index] = dict(record)
        return dict(record)

    async def patch(
        self, key: dict[str, Any], changes: dict[str, Any]
    ) -> dict[str, Any]:
        index = self._position(key)
        if index is None:
            raise RecordNotFoundError(f"No record matches key {key}")
        updated = {**self.records[index], **changes}
        self.records[index] = updated
        return dict(updated)

    async def delete(self, key: dict[str, Any]) -> dict[str, Any] | None:
        index = self._position(key)
        if index is None:
            return None
        return self.records.pop(index)

    async def scan(self, cursor: str | None = None, limit: int | None = None) -> Page:
        return self._paginate(self.records, cursor, limit)

    async def find(
        self,
        facets: dict[str, Any],
        cursor: str | None = None,
        limit: int | None = None,
    ) -> Page:
        return await self.match(facets, cursor, limit)

    async def match(
        self,
        facets: dict[str, Any],
        cursor: str | None = None,
        limit: int | None = None,
    ) -> Page:
        filtered = [r for r in self.records if _matches(r, facets)]
        return self._paginate(filtered, cursor, limit)

    async def query(
        self,
        index: str,
        facets: dict[str, Any],
        cursor: str | None = None,
        limit: int | None = None,
    ) -> Page:
        if index not in self.indexes:
            raise KeyError(f"Unknown index '{index}'")
        fields = self.indexes[index]
        selected = {name: value for name, value in facets.items() if name in fields}
        filtered = [r for r in self.records if _matches(r, selected)]
        return self._paginate(filtered, cursor, limit)

    def _position(self, key: dict[str, Any]) -> int | None:
        if not key:
            return None
        for index, record in enumerate(self.records):
            if _matches(record, key):
                return index
        return None

    def _paginate(
        self, records: list[dict[str, Any]], cursor: str | None, limit: int | None
    ) -> Page:
        start = _offset(cursor)
        size = min(limit or self.page_size, self.page_size)
        end = start + size
        data = [dict(r) for r in records[start:end]]
        next_cursor = str(end) if end < len(records) else None
        return Page(data=data, cursor=next_cursor)
