"""Query-string driven list and count.

Turns raw query parameters into a QueryIntent and picks a retrieval
strategy on the model:

1. No filters, sort or search and the model names a list index:
   query that index directly.
2. No sort or search: native pagination via match() or list().
3. Otherwise: drain every matching record, then search, sort and slice
   in memory. The cursor is the next page number as a string.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import Any

from dmvc.config import DEFAULT_PAGE_SIZE
from dmvc.model import BaseModel
from dmvc.storage.adapter import Page

logger = logging.getLogger(__name__)

CONTROL_PARAMS = (
    "cursor",
    "pageSize",
    "limit",
    "page",
    "sortField",
    "sortDir",
    "q",
    "search",
    "sort",
    "dir",
)


def _to_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _to_int(value: Any) -> int | None:
    text = _to_str(value)
    if not text:
        return None
    try:
        return int(text.strip())
    except ValueError:
        return None


@dataclass
class QueryIntent:
    """Normalised list/count request.

    Attributes:
        cursor: Resume token from a previous page
        limit: Page size, always > 0
        page: 1-based page number for in-memory paging
        sort_field: Field to sort by, if any
        sort_dir: "asc" or "desc"
        search: Case-insensitive free-text term
        filters: Remaining parameters, used as equality facets
    """

    cursor: str | None = None
    limit: int = DEFAULT_PAGE_SIZE
    page: int = 1
    sort_field: str | None = None
    sort_dir: str = "asc"
    search: str | None = None
    filters: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_params(
        cls, params: dict[str, Any], page_size: int = DEFAULT_PAGE_SIZE
    ) -> QueryIntent:
        requested = _to_int(params.get("limit"))
        if requested is None:
            requested = _to_int(params.get("pageSize"))
        limit = requested if requested is not None and requested > 0 else page_size

        page = _to_int(params.get("page")) or 1

        sort_field = _to_str(params.get("sortField")) or _to_str(params.get("sort"))
        direction = _to_str(params.get("sortDir"))
        if direction is None:
            direction = _to_str(params.get("dir"))

        search = _to_str(params.get("q"))
        if search is None:
            search = _to_str(params.get("search"))

        filters = {
            name: value
            for name, value in params.items()
            if name not in CONTROL_PARAMS and value is not None
        }

        return cls(
            cursor=_to_str(params.get("cursor")) or None,
            limit=limit,
            page=max(page, 1),
            sort_field=sort_field,
            sort_dir="desc" if direction == "desc" else "asc",
            search=search or None,
            filters=filters,
        )

    @property
    def in_memory(self) -> bool:
        """Whether sorting or searching forces a full in-memory pass."""
        return bool(self.sort_field or self.search)


def filter_by_search(records: list[dict[str, Any]], term: str | None) -> list[dict[str, Any]]:
    """Keep records where any field value contains ``term``, ignoring case."""
    if not term:
        return records
    needle = term.lower()
    return [
        record
        for record in records
        if any(
            needle in ("" if value is None else str(value)).lower()
            for value in record.values()
        )
    ]


def sort_records(
    records: list[dict[str, Any]], sort_field: str, sort_dir: str = "asc"
) -> list[dict[str, Any]]:
    """Sort records by one field.

    Missing or None values sort first ascending and last descending.
    Ties keep their relative order. Values that cannot be compared
    directly are compared by their string form.
    """
    ascending = sort_dir != "desc"

    def compare(a: dict[str, Any], b: dict[str, Any]) -> int:
        av = (a or {}).get(sort_field)
        bv = (b or {}).get(sort_field)
        if av is None and bv is None:
            return 0
        if av is None:
            return -1 if ascending else 1
        if bv is None:
            return 1 if ascending else -1
        try:
            if av == bv:
                return 0
            greater = av > bv
        except TypeError:
            if str(av) == str(bv):
                return 0
            greater = str(av) > str(bv)
        if greater:
            return 1 if ascending else -1
        return -1 if ascending else 1

    return sorted(records, key=cmp_to_key(compare))


class QueryService:
    """Dispatches list/count requests to the right model operation."""

    def __init__(self, model: type[BaseModel], page_size: int = DEFAULT_PAGE_SIZE):
        self.model = model
        self.page_size = page_size if page_size and page_size > 0 else DEFAULT_PAGE_SIZE

    def parse(self, params: dict[str, Any]) -> QueryIntent:
        intent = QueryIntent.from_params(params, self.page_size)
        validator = self.model.validator
        if intent.filters and validator is not None:
            intent.filters = validator.coerce_facets(intent.filters)
        return intent

    async def list(self, params: dict[str, Any]) -> Page:
        intent = self.parse(params)
        model = self.model.instance()

        if not intent.filters and not intent.in_memory and self.model.list_index:
            return await model.adapter.query(
                self.model.list_index,
                dict(self.model.list_index_static),
                cursor=intent.cursor,
                limit=intent.limit,
            )

        if not intent.in_memory:
            if intent.filters:
                return await model.match(intent.filters, intent.cursor, intent.limit)
            return await model.list(intent.cursor, intent.limit)

        items = await self._collect(model, intent)
        start = (intent.page - 1) * intent.limit
        end = start + intent.limit
        next_cursor = str(intent.page + 1) if end < len(items) else None
        return Page(data=items[start:end], cursor=next_cursor)

    async def count(self, params: dict[str, Any]) -> dict[str, int]:
        intent = self.parse(params)
        model = self.model.instance()

        if not intent.in_memory:
            return {"total": await model.count(intent.filters)}

        items = await self._collect(model, intent)
        return {"total": len(items)}

    async def _collect(self, model: BaseModel, intent: QueryIntent) -> list[dict[str, Any]]:
        """Drain all matching records, then apply search and sort."""
        logger.debug(
            "In-memory query on %s (sort=%s, search=%s)",
            type(model).__name__,
            intent.sort_field,
            intent.search,
        )
        if intent.filters:
            items = await model.match_all(intent.filters)
        else:
            items = await model.list_all()
        items = filter_by_search(items, intent.search)
        if intent.sort_field:
            items = sort_records(items, intent.sort_field, intent.sort_dir)
        return items
