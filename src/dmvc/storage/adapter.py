"""StorageAdapter Protocol - the contract every model's store must satisfy."""

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass
class Page:
    """One page of records plus the cursor to resume after it.

    cursor is None when the store reports no further data.
    """

    data: list[dict[str, Any]] = field(default_factory=list)
    cursor: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"data": self.data}
        if self.cursor is not None:
            result["cursor"] = self.cursor
        return result


@runtime_checkable
class StorageAdapter(Protocol):
    """Interface all storage adapters must implement.

    Adapters own the records; models hold no record state between calls.
    Cursors are opaque strings: a cursor returned with page N, passed back
    in, resumes the same sequence without duplicates or gaps.
    """

    async def get(self, key: dict[str, Any]) -> dict[str, Any] | None: ...

    async def put(self, record: dict[str, Any]) -> dict[str, Any]: ...

    async def patch(
        self, key: dict[str, Any], changes: dict[str, Any]
    ) -> dict[str, Any]: ...

    async def delete(
        self, key: dict[str, Any]
    ) -> dict[str, Any] | list[dict[str, Any]] | None: ...

    async def scan(
        self, cursor: str | None = None, limit: int | None = None
    ) -> Page: ...

    async def find(
        self,
        facets: dict[str, Any],
        cursor: str | None = None,
        limit: int | None = None,
    ) -> Page: ...

    async def match(
        self,
        facets: dict[str, Any],
        cursor: str | None = None,
        limit: int | None = None,
    ) -> Page: ...

    async def query(
        self,
        index: str,
        facets: dict[str, Any],
        cursor: str | None = None,
        limit: int | None = None,
    ) -> Page: ...
