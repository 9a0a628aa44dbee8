"""Record validation on top of pydantic schemas.

A model declares two pydantic classes:
- an entity schema describing every field of a record
- a key schema holding the subset of fields that address a record

RecordValidator wraps the pair and produces plain dicts ready for storage.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import BaseModel as Schema
from pydantic import TypeAdapter, create_model
from pydantic import ValidationError as PydanticValidationError

from dmvc.errors import RecordValidationError, SchemaDefinitionError

logger = logging.getLogger(__name__)


def _partial_schema(schema: type[Schema]) -> type[Schema]:
    """Derive a schema with every field optional and defaulting to None."""
    fields: dict[str, Any] = {
        name: (Optional[info.rebuild_annotation()], None)
        for name, info in schema.model_fields.items()
    }
    return create_model(f"Partial{schema.__name__}", __base__=schema, **fields)


class RecordValidator:
    """Validates records and keys against a model's schemas."""

    def __init__(self, schema: type[Schema], key_schema: type[Schema]):
        missing = [name for name in key_schema.model_fields if name not in schema.model_fields]
        if missing:
            raise SchemaDefinitionError(
                f"Key fields {missing} of {key_schema.__name__} are not declared "
                f"on {schema.__name__}"
            )
        self.schema = schema
        self.key_schema = key_schema
        self.key_names: list[str] = list(key_schema.model_fields)
        self._partial = _partial_schema(schema)
        self._field_adapters: dict[str, TypeAdapter] = {}

    def validate(self, data: dict[str, Any]) -> dict[str, Any]:
        """Validate a full record, applying schema defaults.

        Optional fields without a default that the input left out are
        omitted from the result rather than stored as None.
        """
        instance = self._parse(self.schema, data)
        dumped = instance.model_dump(mode="json")
        return {
            name: value
            for name, value in dumped.items()
            if name in instance.model_fields_set or value is not None
        }

    def validate_partial(self, data: dict[str, Any]) -> dict[str, Any]:
        """Validate a partial record. Only fields present in the input are returned."""
        instance = self._parse(self._partial, data)
        return instance.model_dump(mode="json", exclude_unset=True)

    def parse_key(self, data: dict[str, Any]) -> dict[str, Any]:
        """Extract and validate the key fields of a record."""
        candidate = {name: data[name] for name in self.key_names if name in data}
        instance = self._parse(self.key_schema, candidate)
        return instance.model_dump(mode="json")

    def split_key(self, data: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
        """Split a partial record into its key and the remaining change-set."""
        key = self.parse_key(data)
        changes = {name: value for name, value in data.items() if name not in key}
        return key, changes

    def coerce_facets(self, facets: dict[str, Any]) -> dict[str, Any]:
        """Coerce raw filter values (usually query strings) to field types.

        Unknown fields and values that fail coercion are passed through as-is.
        """
        coerced: dict[str, Any] = {}
        for name, value in facets.items():
            adapter = self._field_adapter(name)
            if adapter is None:
                coerced[name] = value
                continue
            try:
                coerced[name] = adapter.dump_python(
                    adapter.validate_python(value), mode="json"
                )
            except PydanticValidationError:
                logger.debug("Filter %s=%r left uncoerced", name, value)
                coerced[name] = value
        return coerced

    def _field_adapter(self, name: str) -> TypeAdapter | None:
        if name not in self.schema.model_fields:
            return None
        if name not in self._field_adapters:
            annotation = self.schema.model_fields[name].rebuild_annotation()
            self._field_adapters[name] = TypeAdapter(annotation)
        return self._field_adapters[name]

    @staticmethod
    def _parse(schema: type[Schema], data: dict[str, Any]) -> Schema:
        try:
            return schema.model_validate(data)
        except PydanticValidationError as exc:
            raise RecordValidationError.from_pydantic(exc, schema.__name__) from exc
