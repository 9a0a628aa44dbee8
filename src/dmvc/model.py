"""Base model - generic CRUD over one storage adapter.

A concrete model declares its pydantic schemas and builds its adapter:

    class TodoModel(BaseModel):
        schema = TodoSchema
        key_schema = TodoKeySchema

        def create_adapter(self):
            return DynamoDBAdapter("Todo", pk_composite=["todo"])

Each model class lazily builds one instance bound to its StoreConfig.
BaseModel.configure() sets the default config for every model;
Model.configure() overrides it for one class.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, ClassVar

from pydantic import BaseModel as Schema

from dmvc.config import DEFAULT_PAGE_SIZE, StoreConfig
from dmvc.errors import InvalidKeyError
from dmvc.hooks import HookPoint, HookRegistry, run_hooks
from dmvc.storage.adapter import Page, StorageAdapter
from dmvc.validation import RecordValidator

logger = logging.getLogger(__name__)


class BaseModel:
    """Generic CRUD operations with lifecycle hooks."""

    schema: ClassVar[type[Schema] | None] = None
    key_schema: ClassVar[type[Schema] | None] = None

    # Named index used for unfiltered, unsorted list requests
    list_index: ClassVar[str | None] = None
    list_index_static: ClassVar[dict[str, Any]] = {}

    hooks: ClassVar[HookRegistry] = HookRegistry()
    validator: ClassVar[RecordValidator | None] = None

    _config: ClassVar[StoreConfig | None] = None
    _instance: ClassVar[BaseModel | None] = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls.hooks = cls.hooks.copy()
        cls.hooks.collect(vars(cls))
        cls._instance = None
        if cls.schema is not None and cls.key_schema is not None:
            cls.validator = RecordValidator(cls.schema, cls.key_schema)

    def __init__(self, config: StoreConfig):
        if self.validator is None:
            raise TypeError(f"{type(self).__name__} must declare schema and key_schema")
        self.config = config
        self.adapter: StorageAdapter = self.create_adapter()
        bind = getattr(self.adapter, "bind", None)
        if callable(bind):
            bind(config)

    def create_adapter(self) -> StorageAdapter:
        """Build the storage adapter for this model."""
        raise NotImplementedError(f"{type(self).__name__} must implement create_adapter()")

    # --- Configuration ---

    @classmethod
    def configure(
        cls,
        client: Any = None,
        table: str | None = None,
        config: StoreConfig | None = None,
    ) -> None:
        """Replace the store configuration and drop the cached instance.

        Called on BaseModel, this sets the default for every model that has
        not been configured on its own.
        """
        if config is None:
            config = StoreConfig.from_env()
            config.client = client
            if table:
                config.table = table
        cls._config = config
        cls._instance = None

    @classmethod
    def register(cls, *models: type[BaseModel]) -> None:
        """Give other model classes this class's current configuration."""
        for model in models:
            model._config = cls._config
            model._instance = None

    @classmethod
    def instance(cls) -> BaseModel:
        """Return the model's shared instance, building it on first use."""
        if cls.validator is None:
            raise TypeError(f"{cls.__name__} must declare schema and key_schema")
        if BaseModel._config is None:
            # Environment defaults live on BaseModel, like BaseModel.configure()
            BaseModel._config = StoreConfig.from_env()
        config = cls._config or BaseModel._config
        current = cls.__dict__.get("_instance")
        if current is None or current.config is not config:
            logger.debug("Building %s bound to table %s", cls.__name__, config.table)
            cls._instance = cls(config)
        return cls._instance

    @property
    def key_names(self) -> list[str]:
        return self.validator.key_names

    # --- Record operations ---

    async def create(self, data: dict[str, Any]) -> dict[str, Any]:
        record = self.validator.validate(data)
        await run_hooks(self.hooks, HookPoint.BEFORE_CREATE, self, record)
        written = await self.adapter.put(record)
        await run_hooks(self.hooks, HookPoint.AFTER_CREATE, self, written)
        return written

    async def get(self, key: dict[str, Any]) -> dict[str, Any] | None:
        return await self.adapter.get(key)

    async def update(self, changes: dict[str, Any]) -> dict[str, Any]:
        """Merge a partial record into the stored one.

        Key fields address the record; every other field present in
        ``changes`` overwrites the stored value (an explicit None included).
        Fields absent from ``changes`` are left untouched.
        """
        validated = self.validator.validate_partial(changes)
        key, change_set = self.validator.split_key(validated)
        await run_hooks(self.hooks, HookPoint.BEFORE_UPDATE, self, change_set)
        updated = await self.adapter.patch(key, change_set)
        await run_hooks(self.hooks, HookPoint.AFTER_UPDATE, self, updated)
        return updated

    async def delete(self, key: Mapping[str, Any] | str | int) -> Page:
        """Delete by full key, or by bare id when the key has one field.

        Returns:
            Page whose data holds the deleted record(s), empty if none matched.
        """
        if isinstance(key, Mapping):
            key_record = dict(key)
        elif len(self.key_names) == 1:
            key_record = {self.key_names[0]: key}
        else:
            raise InvalidKeyError(
                "Composite key delete requires an object containing all key attributes"
            )

        await run_hooks(self.hooks, HookPoint.BEFORE_DELETE, self, key_record)
        result = await self.adapter.delete(key_record)
        if result is None:
            deleted = []
        elif isinstance(result, list):
            deleted = result
        else:
            deleted = [result]
        await run_hooks(self.hooks, HookPoint.AFTER_DELETE, self, deleted)
        return Page(data=deleted)

    # --- Collection operations ---

    async def list(self, cursor: str | None = None, limit: int = DEFAULT_PAGE_SIZE) -> Page:
        """Scan until ``limit`` records are collected or the store runs out.

        Adapters may return fewer records than asked for per call, so this
        keeps following the cursor.
        """
        items: list[dict[str, Any]] = []
        next_cursor = cursor
        while True:
            remaining = limit - len(items)
            page = await self.adapter.scan(
                cursor=next_cursor, limit=remaining if remaining > 0 else None
            )
            items.extend(page.data)
            next_cursor = page.cursor
            if len(items) >= limit or not next_cursor:
                break
        return Page(data=items[:limit], cursor=next_cursor)

    async def find(
        self,
        facets: dict[str, Any] | None = None,
        cursor: str | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Page:
        return await self.adapter.find(facets or {}, cursor=cursor, limit=limit)

    async def match(
        self,
        facets: dict[str, Any] | None = None,
        cursor: str | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Page:
        return await self.adapter.match(facets or {}, cursor=cursor, limit=limit)

    async def count(self, facets: dict[str, Any] | None = None) -> int:
        total = 0
        cursor: str | None = None
        while True:
            if facets:
                page = await self.adapter.match(facets, cursor=cursor)
            else:
                page = await self.adapter.scan(cursor=cursor)
            total += len(page.data or [])
            cursor = page.cursor
            if not cursor:
                return total

    async def list_all(self) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        cursor: str | None = None
        while True:
            page = await self.list(cursor)
            items.extend(page.data)
            cursor = page.cursor
            if not cursor:
                return items

    async def match_all(self, facets: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        cursor: str | None = None
        while True:
            page = await self.match(facets, cursor)
            items.extend(page.data)
            cursor = page.cursor
            if not cursor:
                return items
