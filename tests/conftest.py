"""Shared schemas and model factories for the test suite."""

import pytest
from pydantic import BaseModel as Schema

from dmvc import BaseModel, MemoryAdapter


class ItemSchema(Schema):
    id: str
    sort: str | None = None
    name: str | None = None
    createdBy: str | None = None


class KeySchema(Schema):
    id: str


class CompositeKeySchema(Schema):
    id: str
    sort: str


def make_model(
    records: list[dict] | None = None,
    keys: type[Schema] = KeySchema,
    page_size: int = 5,
    entity: type[Schema] = ItemSchema,
) -> type[BaseModel]:
    """Build a fresh model class backed by its own MemoryAdapter."""
    seed = records or []

    class ItemModel(BaseModel):
        schema = entity
        key_schema = keys

        def create_adapter(self):
            return MemoryAdapter(seed, page_size=page_size, key_names=list(keys.model_fields))

    return ItemModel


def named(*names: str | None) -> list[dict]:
    return [
        {"id": str(i), "name": name} if name is not None else {"id": str(i)}
        for i, name in enumerate(names, start=1)
    ]


@pytest.fixture(autouse=True)
def auth_enabled(monkeypatch):
    """Run every test with the auth guard active unless a test opts out."""
    monkeypatch.delenv("SKIP_AUTH", raising=False)


@pytest.fixture(autouse=True)
def default_config():
    """Reset the shared store configuration around each test."""
    saved = BaseModel._config
    BaseModel._config = None
    yield
    BaseModel._config = saved
