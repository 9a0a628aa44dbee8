"""DynamoDB storage adapter (single-table layout).

Every entity shares one table. Records are written with generic key
attributes built from the entity's composite key fields:

    pk = "$<service>#<entity>#<field>_<value>..."
    sk = "$<entity>#<field>_<value>..."

Secondary indexes follow the same scheme with their own attribute names.
boto3 is synchronous, so every table call runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from dmvc.config import StoreConfig
from dmvc.errors import InvalidCursorError, RecordNotFoundError
from dmvc.storage.adapter import Page

logger = logging.getLogger(__name__)

ENTITY_ATTRIBUTE = "__entity"


@dataclass
class IndexSpec:
    """A global secondary index usable by ``query``.

    Attributes:
        index_name: DynamoDB index name (e.g., "gsi1pk-gsi1sk-index")
        pk_field: Attribute holding the index partition key
        pk_composite: Record fields composed into the partition key
        sk_field: Attribute holding the index sort key
        sk_composite: Record fields composed into the sort key
    """

    index_name: str
    pk_field: str
    pk_composite: list[str]
    sk_field: str | None = None
    sk_composite: list[str] = field(default_factory=list)


def to_dynamo(value: Any) -> Any:
    """Convert floats (which boto3 rejects) to Decimal, recursively."""
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_dynamo(v) for v in value]
    return value


def from_dynamo(value: Any) -> Any:
    """Convert Decimal back to int/float, recursively."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamo(v) for v in value]
    return value


def encode_cursor(last_key: dict[str, Any] | None) -> str | None:
    if not last_key:
        return None
    raw = json.dumps(from_dynamo(last_key), sort_keys=True).encode()
    return base64.urlsafe_b64encode(raw).decode()


def decode_cursor(cursor: str | None) -> dict[str, Any] | None:
    """Decode a cursor from ``encode_cursor``.

    Raises:
        InvalidCursorError: The cursor is not base64 JSON of a key object.
    """
    if not cursor:
        return None
    try:
        last_key = json.loads(base64.urlsafe_b64decode(cursor.encode()))
    except ValueError as exc:
        raise InvalidCursorError(f"Invalid cursor: {cursor!r}") from exc
    if not isinstance(last_key, dict):
        raise InvalidCursorError(f"Invalid cursor: {cursor!r}")
    return to_dynamo(last_key)


class DynamoDBAdapter:
    """Storage adapter for one entity in a shared DynamoDB table."""

    def __init__(
        self,
        entity: str,
        pk_composite: list[str],
        sk_composite: list[str] | None = None,
        indexes: dict[str, IndexSpec] | None = None,
        service: str = "app",
        pk_field: str = "pk",
        sk_field: str = "sk",
    ):
        self.entity = entity
        self.pk_composite = list(pk_composite)
        self.sk_composite = list(sk_composite or [])
        self.indexes = indexes or {}
        self.service = service
        self.pk_field = pk_field
        self.sk_field = sk_field
        self._config: StoreConfig | None = None
        self._table: Any = None

    # --- Binding ---

    def bind(self, config: StoreConfig) -> None:
        """Attach the adapter to a client and table."""
        self._config = config
        self._table = config.resolve_client().Table(config.table)

    @property
    def table(self) -> Any:
        if self._table is None:
            raise RuntimeError(f"{self.entity} adapter is not bound to a table")
        return self._table

    # --- Key composition ---

    def _compose(self, prefix: str, names: list[str], record: dict[str, Any]) -> str:
        parts = [prefix]
        for name in names:
            parts.append(f"{name}_{record[name]}")
        return "#".join(parts)

    def _compose_prefix(
        self, prefix: str, names: list[str], record: dict[str, Any]
    ) -> str:
        """Compose as many leading fields as the record provides."""
        parts = [prefix]
        for name in names:
            if name not in record:
                break
            parts.append(f"{name}_{record[name]}")
        return "#".join(parts)

    @property
    def _pk_prefix(self) -> str:
        return f"${self.service}#{self.entity.lower()}"

    @property
    def _sk_prefix(self) -> str:
        return f"${self.entity.lower()}"

    def _primary_key(self, key: dict[str, Any]) -> dict[str, str]:
        return {
            self.pk_field: self._compose(self._pk_prefix, self.pk_composite, key),
            self.sk_field: self._compose(self._sk_prefix, self.sk_composite, key),
        }

    def _index_attributes(self, record: dict[str, Any]) -> dict[str, str]:
        attributes: dict[str, str] = {}
        for spec in self.indexes.values():
            if not all(name in record for name in spec.pk_composite + spec.sk_composite):
                continue
            attributes[spec.pk_field] = self._compose(
                self._pk_prefix, spec.pk_composite, record
            )
            if spec.sk_field:
                attributes[spec.sk_field] = self._compose(
                    self._sk_prefix, spec.sk_composite, record
                )
        return attributes

    def _internal_fields(self) -> set[str]:
        names = {self.pk_field, self.sk_field, ENTITY_ATTRIBUTE}
        for spec in self.indexes.values():
            names.add(spec.pk_field)
            if spec.sk_field:
                names.add(spec.sk_field)
        return names

    def _strip(self, item: dict[str, Any] | None) -> dict[str, Any] | None:
        if item is None:
            return None
        internal = self._internal_fields()
        return from_dynamo({k: v for k, v in item.items() if k not in internal})

    def _filter(self, facets: dict[str, Any]) -> Any:
        condition = Attr(ENTITY_ATTRIBUTE).eq(self.entity)
        for name, value in facets.items():
            condition = condition & Attr(name).eq(to_dynamo(value))
        return condition

    def _sort_condition(
        self, sk_field: str, sk_composite: list[str], facets: dict[str, Any]
    ) -> tuple[Any, list[str]]:
        """Key condition on a sort key, plus the facets it fully covers.

        Every sort field given: exact match. Otherwise a prefix ending on a
        field boundary, with the facets left for the filter.
        """
        if all(name in facets for name in sk_composite):
            value = self._compose(self._sk_prefix, sk_composite, facets)
            return Key(sk_field).eq(value), list(sk_composite)
        prefix = self._compose_prefix(self._sk_prefix, sk_composite, facets)
        return Key(sk_field).begins_with(prefix + "#"), []

    def _key_fields(self, spec: IndexSpec | None = None) -> list[str]:
        names = [self.pk_field, self.sk_field]
        if spec is not None:
            names.append(spec.pk_field)
            if spec.sk_field:
                names.append(spec.sk_field)
        return names

    async def _collect(
        self,
        operation: Any,
        request: dict[str, Any],
        cursor: str | None,
        limit: int | None,
        key_fields: list[str],
    ) -> Page:
        """Run a Scan or Query until ``limit`` items pass the filter.

        DynamoDB applies Limit before FilterExpression, so no Limit is sent;
        pages are followed instead. When a response holds more items than
        needed, the cursor is the key of the last item returned.
        """
        items: list[dict[str, Any]] = []
        start = decode_cursor(cursor)
        while True:
            kwargs = dict(request)
            if start:
                kwargs["ExclusiveStartKey"] = start
            response = await asyncio.to_thread(operation, **kwargs)
            batch = response.get("Items", [])
            start = response.get("LastEvaluatedKey")
            if limit and len(items) + len(batch) > limit:
                items.extend(batch[: limit - len(items)])
                last = items[-1]
                start = {name: last[name] for name in key_fields if name in last}
                break
            items.extend(batch)
            if not start or (limit and len(items) >= limit):
                break
        return Page(data=[self._strip(item) for item in items], cursor=encode_cursor(start))

    # --- Record operations ---

    async def get(self, key: dict[str, Any]) -> dict[str, Any] | None:
        response = await asyncio.to_thread(
            self.table.get_item, Key=self._primary_key(key)
        )
        return self._strip(response.get("Item"))

    async def put(self, record: dict[str, Any]) -> dict[str, Any]:
        item = {
            **to_dynamo(record),
            **self._primary_key(record),
            **self._index_attributes(record),
            ENTITY_ATTRIBUTE: self.entity,
        }
        await asyncio.to_thread(self.table.put_item, Item=item)
        return dict(record)

    async def patch(
        self, key: dict[str, Any], changes: dict[str, Any]
    ) -> dict[str, Any]:
        if not changes:
            existing = await self.get(key)
            if existing is None:
                raise RecordNotFoundError(f"No {self.entity} matches key {key}")
            return existing

        names = {"#pk": self.pk_field}
        values: dict[str, Any] = {}
        assignments = []
        for position, (name, value) in enumerate(changes.items()):
            names[f"#f{position}"] = name
            values[f":v{position}"] = to_dynamo(value)
            assignments.append(f"#f{position} = :v{position}")

        try:
            response = await asyncio.to_thread(
                self.table.update_item,
                Key=self._primary_key(key),
                UpdateExpression="SET " + ", ".join(assignments),
                ConditionExpression="attribute_exists(#pk)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                raise RecordNotFoundError(f"No {self.entity} matches key {key}") from exc
            raise

        updated = self._strip(response.get("Attributes")) or {}
        if any(
            name in changes
            for spec in self.indexes.values()
            for name in spec.pk_composite + spec.sk_composite
        ):
            await self._refresh_index_attributes(key, updated)
        return updated

    async def _refresh_index_attributes(
        self, key: dict[str, Any], record: dict[str, Any]
    ) -> None:
        attributes = self._index_attributes(record)
        if not attributes:
            return
        names = {f"#i{n}": name for n, name in enumerate(attributes)}
        values = {f":i{n}": value for n, value in enumerate(attributes.values())}
        expression = ", ".join(f"#i{n} = :i{n}" for n in range(len(attributes)))
        await asyncio.to_thread(
            self.table.update_item,
            Key=self._primary_key(key),
            UpdateExpression="SET " + expression,
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=values,
        )

    async def delete(self, key: dict[str, Any]) -> dict[str, Any] | None:
        response = await asyncio.to_thread(
            self.table.delete_item,
            Key=self._primary_key(key),
            ReturnValues="ALL_OLD",
        )
        return self._strip(response.get("Attributes"))

    # --- Collection operations ---

    async def scan(self, cursor: str | None = None, limit: int | None = None) -> Page:
        return await self.match({}, cursor, limit)

    async def match(
        self,
        facets: dict[str, Any],
        cursor: str | None = None,
        limit: int | None = None,
    ) -> Page:
        return await self._collect(
            self.table.scan,
            {"FilterExpression": self._filter(facets)},
            cursor,
            limit,
            self._key_fields(),
        )

    async def find(
        self,
        facets: dict[str, Any],
        cursor: str | None = None,
        limit: int | None = None,
    ) -> Page:
        """Query the primary index when the partition key is known, else scan."""
        if not all(name in facets for name in self.pk_composite):
            return await self.match(facets, cursor, limit)

        sort_condition, covered = self._sort_condition(self.sk_field, self.sk_composite, facets)
        condition = (
            Key(self.pk_field).eq(self._compose(self._pk_prefix, self.pk_composite, facets))
            & sort_condition
        )
        remaining = {
            name: value
            for name, value in facets.items()
            if name not in self.pk_composite and name not in covered
        }
        return await self._collect(
            self.table.query,
            {"KeyConditionExpression": condition, "FilterExpression": self._filter(remaining)},
            cursor,
            limit,
            self._key_fields(),
        )

    async def query(
        self,
        index: str,
        facets: dict[str, Any],
        cursor: str | None = None,
        limit: int | None = None,
    ) -> Page:
        if index not in self.indexes:
            raise KeyError(f"Unknown index '{index}' on {self.entity}")
        spec = self.indexes[index]
        missing = [name for name in spec.pk_composite if name not in facets]
        if missing:
            raise ValueError(f"Index '{index}' requires facets {missing}")

        condition = Key(spec.pk_field).eq(
            self._compose(self._pk_prefix, spec.pk_composite, facets)
        )
        covered: list[str] = []
        if spec.sk_field:
            sort_condition, covered = self._sort_condition(
                spec.sk_field, spec.sk_composite, facets
            )
            condition = condition & sort_condition

        remaining = {
            name: value
            for name, value in facets.items()
            if name not in spec.pk_composite and name not in covered
        }
        return await self._collect(
            self.table.query,
            {
                "IndexName": spec.index_name,
                "KeyConditionExpression": condition,
                "FilterExpression": self._filter(remaining),
            },
            cursor,
            limit,
            self._key_fields(spec),
        )

    # --- Table management ---

    async def create_table(self) -> bool:
        """Create the backing table with this adapter's indexes.

        Returns:
            True if the table was created, False if it already existed.
        """
        if self._config is None:
            raise RuntimeError(f"{self.entity} adapter is not bound to a table")
        resource = self._config.resolve_client()
        client = resource.meta.client
        try:
            await asyncio.to_thread(client.describe_table, TableName=self._config.table)
            return False
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") != "ResourceNotFoundException":
                raise

        attribute_names = [self.pk_field, self.sk_field]
        secondary = []
        for spec in self.indexes.values():
            key_schema = [{"AttributeName": spec.pk_field, "KeyType": "HASH"}]
            attribute_names.append(spec.pk_field)
            if spec.sk_field:
                key_schema.append({"AttributeName": spec.sk_field, "KeyType": "RANGE"})
                attribute_names.append(spec.sk_field)
            secondary.append(
                {
                    "IndexName": spec.index_name,
                    "KeySchema": key_schema,
                    "Projection": {"ProjectionType": "ALL"},
                }
            )

        kwargs: dict[str, Any] = {
            "TableName": self._config.table,
            "KeySchema": [
                {"AttributeName": self.pk_field, "KeyType": "HASH"},
                {"AttributeName": self.sk_field, "KeyType": "RANGE"},
            ],
            "AttributeDefinitions": [
                {"AttributeName": name, "AttributeType": "S"}
                for name in dict.fromkeys(attribute_names)
            ],
            "BillingMode": "PAY_PER_REQUEST",
        }
        if secondary:
            kwargs["GlobalSecondaryIndexes"] = secondary

        await asyncio.to_thread(resource.create_table, **kwargs)
        logger.info("Created DynamoDB table %s", self._config.table)
        return True
