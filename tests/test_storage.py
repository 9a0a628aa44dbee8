"""Tests for the StorageAdapter Protocol, MemoryAdapter, DynamoDBAdapter and StoreConfig."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from dmvc.config import StoreConfig, auth_disabled
from dmvc.errors import InvalidCursorError, RecordNotFoundError
from dmvc.storage import DynamoDBAdapter, IndexSpec, MemoryAdapter, Page, StorageAdapter
from dmvc.storage.dynamodb import decode_cursor, encode_cursor, from_dynamo, to_dynamo


class TestProtocol:
    def test_memory_adapter_is_instance(self):
        assert isinstance(MemoryAdapter(), StorageAdapter)

    def test_dynamodb_adapter_is_instance(self):
        assert isinstance(DynamoDBAdapter("Item", pk_composite=["id"]), StorageAdapter)

    def test_page_to_dict_omits_missing_cursor(self):
        assert Page(data=[{"id": "1"}]).to_dict() == {"data": [{"id": "1"}]}
        assert Page(data=[], cursor="3").to_dict() == {"data": [], "cursor": "3"}


class TestMemoryAdapter:
    @pytest.fixture
    def adapter(self):
        records = [{"id": str(i), "group": "a" if i % 2 else "b"} for i in range(1, 8)]
        return MemoryAdapter(records, page_size=3, indexes={"byGroup": ["group"]})

    @pytest.mark.asyncio
    async def test_scan_caps_pages_at_page_size(self, adapter):
        page = await adapter.scan(limit=10)
        assert [r["id"] for r in page.data] == ["1", "2", "3"]
        assert page.cursor == "3"

    @pytest.mark.asyncio
    async def test_scan_follows_cursor_to_end(self, adapter):
        seen = []
        cursor = None
        while True:
            page = await adapter.scan(cursor=cursor)
            seen.extend(r["id"] for r in page.data)
            cursor = page.cursor
            if not cursor:
                break
        assert seen == [str(i) for i in range(1, 8)]

    @pytest.mark.asyncio
    async def test_match_filters(self, adapter):
        page = await adapter.match({"group": "b"})
        assert [r["id"] for r in page.data] == ["2", "4", "6"]
        assert page.cursor is None

    @pytest.mark.asyncio
    async def test_query_named_index(self, adapter):
        page = await adapter.query("byGroup", {"group": "a"}, limit=2)
        assert [r["id"] for r in page.data] == ["1", "3"]
        assert page.cursor == "2"

    @pytest.mark.asyncio
    async def test_query_unknown_index(self, adapter):
        with pytest.raises(KeyError):
            await adapter.query("missing", {})

    @pytest.mark.asyncio
    async def test_patch_merges(self, adapter):
        updated = await adapter.patch({"id": "1"}, {"name": "x"})
        assert updated == {"id": "1", "group": "a", "name": "x"}
        assert await adapter.get({"id": "1"}) == updated

    @pytest.mark.asyncio
    async def test_patch_missing_record(self, adapter):
        with pytest.raises(RecordNotFoundError):
            await adapter.patch({"id": "99"}, {"name": "x"})

    @pytest.mark.asyncio
    async def test_delete_missing_returns_none(self, adapter):
        assert await adapter.delete({"id": "99"}) is None

    @pytest.mark.asyncio
    async def test_put_replaces_record_with_same_key(self):
        adapter = MemoryAdapter(key_names=["id", "sort"])
        await adapter.put({"id": "1", "sort": "a", "name": "old"})
        await adapter.put({"id": "1", "sort": "b", "name": "other"})
        await adapter.put({"id": "1", "sort": "a", "name": "new"})

        assert await adapter.get({"id": "1", "sort": "a"}) == {"id": "1", "sort": "a", "name": "new"}
        assert len((await adapter.scan()).data) == 2

    @pytest.mark.parametrize("cursor", ["abc", "-1", "1.5"])
    @pytest.mark.asyncio
    async def test_malformed_cursor(self, adapter, cursor):
        with pytest.raises(InvalidCursorError) as exc_info:
            await adapter.scan(cursor=cursor)
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, adapter):
        record = await adapter.get({"id": "1"})
        record["group"] = "changed"
        assert (await adapter.get({"id": "1"}))["group"] == "a"


class TestDynamoConversion:
    def test_floats_round_trip_through_decimal(self):
        converted = to_dynamo({"price": 1.5, "tags": [2.25], "count": 3})
        assert converted == {"price": Decimal("1.5"), "tags": [Decimal("2.25")], "count": 3}
        assert from_dynamo(converted) == {"price": 1.5, "tags": [2.25], "count": 3}

    def test_integral_decimal_becomes_int(self):
        assert from_dynamo(Decimal("4")) == 4
        assert isinstance(from_dynamo(Decimal("4")), int)

    def test_cursor_round_trip(self):
        last_key = {"pk": "$app#item#id_1", "sk": "$item#id_1"}
        cursor = encode_cursor(last_key)
        assert isinstance(cursor, str)
        assert decode_cursor(cursor) == last_key

    def test_empty_cursor(self):
        assert encode_cursor(None) is None
        assert decode_cursor(None) is None


@pytest.fixture
def table():
    return MagicMock()


@pytest.fixture
def dynamo(table):
    resource = MagicMock()
    resource.Table.return_value = table
    adapter = DynamoDBAdapter(
        "Item",
        pk_composite=["id"],
        sk_composite=["sort"],
        indexes={
            "byName": IndexSpec(
                index_name="gsi1pk-gsi1sk-index",
                pk_field="gsi1pk",
                pk_composite=["name"],
                sk_field="gsi1sk",
                sk_composite=["id"],
            )
        },
    )
    adapter.bind(StoreConfig(client=resource, table="items"))
    resource.Table.assert_called_once_with("items")
    return adapter


class TestDynamoDBAdapter:
    def test_unbound_adapter_raises(self):
        adapter = DynamoDBAdapter("Item", pk_composite=["id"])
        with pytest.raises(RuntimeError, match="not bound"):
            adapter.table

    @pytest.mark.asyncio
    async def test_put_writes_keys_and_index_attributes(self, dynamo, table):
        record = {"id": "1", "sort": "A", "name": "widget", "price": 2.5}
        result = await dynamo.put(record)

        assert result == record
        item = table.put_item.call_args.kwargs["Item"]
        assert item["pk"] == "$app#item#id_1"
        assert item["sk"] == "$item#sort_A"
        assert item["gsi1pk"] == "$app#item#name_widget"
        assert item["gsi1sk"] == "$item#id_1"
        assert item["__entity"] == "Item"
        assert item["price"] == Decimal("2.5")

    @pytest.mark.asyncio
    async def test_get_strips_internal_attributes(self, dynamo, table):
        table.get_item.return_value = {
            "Item": {
                "pk": "$app#item#id_1",
                "sk": "$item#sort_A",
                "gsi1pk": "x",
                "__entity": "Item",
                "id": "1",
                "sort": "A",
                "qty": Decimal("3"),
            }
        }
        assert await dynamo.get({"id": "1", "sort": "A"}) == {"id": "1", "sort": "A", "qty": 3}
        assert table.get_item.call_args.kwargs["Key"] == {
            "pk": "$app#item#id_1",
            "sk": "$item#sort_A",
        }

    @pytest.mark.asyncio
    async def test_get_missing(self, dynamo, table):
        table.get_item.return_value = {}
        assert await dynamo.get({"id": "1", "sort": "A"}) is None

    @pytest.mark.asyncio
    async def test_scan_encodes_cursor_without_sending_limit(self, dynamo, table):
        table.scan.return_value = {
            "Items": [{"pk": "p", "sk": "s", "id": "1"}],
            "LastEvaluatedKey": {"pk": "p", "sk": "s"},
        }
        page = await dynamo.scan(limit=1)
        assert page.data == [{"id": "1"}]
        assert decode_cursor(page.cursor) == {"pk": "p", "sk": "s"}
        assert "Limit" not in table.scan.call_args.kwargs

        table.scan.return_value = {"Items": []}
        page = await dynamo.scan(cursor=page.cursor)
        assert table.scan.call_args.kwargs["ExclusiveStartKey"] == {"pk": "p", "sk": "s"}
        assert page.cursor is None

    @pytest.mark.asyncio
    async def test_match_follows_pages_emptied_by_the_filter(self, dynamo, table):
        table.scan.side_effect = [
            {"Items": [], "LastEvaluatedKey": {"pk": "a", "sk": "a"}},
            {"Items": [], "LastEvaluatedKey": {"pk": "b", "sk": "b"}},
            {"Items": [{"pk": "c", "sk": "c", "id": "3"}], "LastEvaluatedKey": {"pk": "c", "sk": "c"}},
        ]
        page = await dynamo.match({"name": "widget"}, limit=1)
        assert page.data == [{"id": "3"}]
        assert decode_cursor(page.cursor) == {"pk": "c", "sk": "c"}
        assert table.scan.call_count == 3
        assert table.scan.call_args.kwargs["ExclusiveStartKey"] == {"pk": "b", "sk": "b"}

    @pytest.mark.asyncio
    async def test_match_cursor_points_at_last_returned_item(self, dynamo, table):
        table.scan.return_value = {
            "Items": [
                {"pk": "p1", "sk": "s1", "id": "1"},
                {"pk": "p2", "sk": "s2", "id": "2"},
                {"pk": "p3", "sk": "s3", "id": "3"},
            ],
            "LastEvaluatedKey": {"pk": "p3", "sk": "s3"},
        }
        page = await dynamo.match({}, limit=2)
        assert [r["id"] for r in page.data] == ["1", "2"]
        assert decode_cursor(page.cursor) == {"pk": "p2", "sk": "s2"}

    @pytest.mark.asyncio
    async def test_unlimited_scan_drains_every_page(self, dynamo, table):
        table.scan.side_effect = [
            {"Items": [{"id": "1"}], "LastEvaluatedKey": {"pk": "a", "sk": "a"}},
            {"Items": [{"id": "2"}]},
        ]
        page = await dynamo.scan()
        assert page.data == [{"id": "1"}, {"id": "2"}]
        assert page.cursor is None

    @pytest.mark.parametrize("cursor", ["not-base64!", "bm90IGpzb24=", "WzEsIDJd"])
    @pytest.mark.asyncio
    async def test_malformed_cursor(self, dynamo, cursor):
        with pytest.raises(InvalidCursorError) as exc_info:
            await dynamo.scan(cursor=cursor)
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_find_queries_when_partition_key_known(self, dynamo, table):
        table.query.return_value = {"Items": [{"id": "1", "sort": "A"}]}
        page = await dynamo.find({"id": "1"}, limit=1)
        assert page.data == [{"id": "1", "sort": "A"}]
        table.query.assert_called_once()
        table.scan.assert_not_called()

    @pytest.mark.asyncio
    async def test_find_falls_back_to_scan(self, dynamo, table):
        table.scan.return_value = {"Items": []}
        await dynamo.find({"name": "widget"})
        table.scan.assert_called_once()
        table.query.assert_not_called()

    @pytest.mark.asyncio
    async def test_find_full_sort_key_is_exact(self, dynamo, table):
        table.query.return_value = {"Items": []}
        await dynamo.find({"id": "1", "sort": "A"})
        kwargs = table.query.call_args.kwargs
        assert kwargs["KeyConditionExpression"] == (
            Key("pk").eq("$app#item#id_1") & Key("sk").eq("$item#sort_A")
        )
        assert kwargs["FilterExpression"] == Attr("__entity").eq("Item")

    @pytest.mark.asyncio
    async def test_find_partial_sort_key_stops_at_field_boundary(self, dynamo, table):
        table.query.return_value = {"Items": []}
        await dynamo.find({"id": "1", "name": "widget"})
        kwargs = table.query.call_args.kwargs
        assert kwargs["KeyConditionExpression"] == (
            Key("pk").eq("$app#item#id_1") & Key("sk").begins_with("$item#")
        )
        assert kwargs["FilterExpression"] == (
            Attr("__entity").eq("Item") & Attr("name").eq("widget")
        )

    @pytest.mark.asyncio
    async def test_query_uses_named_index(self, dynamo, table):
        table.query.return_value = {"Items": []}
        await dynamo.query("byName", {"name": "widget"}, limit=5)
        kwargs = table.query.call_args.kwargs
        assert kwargs["IndexName"] == "gsi1pk-gsi1sk-index"
        assert "Limit" not in kwargs

    @pytest.mark.asyncio
    async def test_query_requires_partition_facets(self, dynamo):
        with pytest.raises(ValueError, match="name"):
            await dynamo.query("byName", {})

    @pytest.mark.asyncio
    async def test_query_unknown_index(self, dynamo):
        with pytest.raises(KeyError):
            await dynamo.query("byColour", {"colour": "red"})

    @pytest.mark.asyncio
    async def test_patch_builds_update_expression(self, dynamo, table):
        table.update_item.return_value = {
            "Attributes": {"pk": "p", "sk": "s", "id": "1", "sort": "A", "qty": Decimal("2")}
        }
        updated = await dynamo.patch({"id": "1", "sort": "A"}, {"qty": 2})

        assert updated == {"id": "1", "sort": "A", "qty": 2}
        kwargs = table.update_item.call_args.kwargs
        assert kwargs["UpdateExpression"] == "SET #f0 = :v0"
        assert kwargs["ExpressionAttributeNames"] == {"#pk": "pk", "#f0": "qty"}
        assert kwargs["ExpressionAttributeValues"] == {":v0": 2}
        assert kwargs["ConditionExpression"] == "attribute_exists(#pk)"
        assert kwargs["ReturnValues"] == "ALL_NEW"

    @pytest.mark.asyncio
    async def test_patch_refreshes_index_attributes(self, dynamo, table):
        table.update_item.return_value = {
            "Attributes": {"id": "1", "sort": "A", "name": "gadget"}
        }
        await dynamo.patch({"id": "1", "sort": "A"}, {"name": "gadget"})
        assert table.update_item.call_count == 2
        refresh = table.update_item.call_args.kwargs
        assert "$app#item#name_gadget" in refresh["ExpressionAttributeValues"].values()

    @pytest.mark.asyncio
    async def test_patch_missing_record(self, dynamo, table):
        table.update_item.side_effect = ClientError(
            {"Error": {"Code": "ConditionalCheckFailedException", "Message": "no"}},
            "UpdateItem",
        )
        with pytest.raises(RecordNotFoundError):
            await dynamo.patch({"id": "9", "sort": "A"}, {"qty": 1})

    @pytest.mark.asyncio
    async def test_patch_other_client_errors_propagate(self, dynamo, table):
        table.update_item.side_effect = ClientError(
            {"Error": {"Code": "ProvisionedThroughputExceededException", "Message": "slow"}},
            "UpdateItem",
        )
        with pytest.raises(ClientError):
            await dynamo.patch({"id": "9", "sort": "A"}, {"qty": 1})

    @pytest.mark.asyncio
    async def test_delete_returns_old_record(self, dynamo, table):
        table.delete_item.return_value = {"Attributes": {"pk": "p", "id": "1", "sort": "A"}}
        assert await dynamo.delete({"id": "1", "sort": "A"}) == {"id": "1", "sort": "A"}
        assert table.delete_item.call_args.kwargs["ReturnValues"] == "ALL_OLD"

    @pytest.mark.asyncio
    async def test_delete_missing(self, dynamo, table):
        table.delete_item.return_value = {}
        assert await dynamo.delete({"id": "1", "sort": "A"}) is None


class TestCreateTable:
    @pytest.mark.asyncio
    async def test_creates_missing_table_with_indexes(self, dynamo):
        resource = dynamo._config.client
        resource.meta.client.describe_table.side_effect = ClientError(
            {"Error": {"Code": "ResourceNotFoundException", "Message": "missing"}},
            "DescribeTable",
        )
        assert await dynamo.create_table() is True
        kwargs = resource.create_table.call_args.kwargs
        assert kwargs["TableName"] == "items"
        assert kwargs["BillingMode"] == "PAY_PER_REQUEST"
        assert kwargs["GlobalSecondaryIndexes"][0]["IndexName"] == "gsi1pk-gsi1sk-index"
        names = [a["AttributeName"] for a in kwargs["AttributeDefinitions"]]
        assert names == ["pk", "sk", "gsi1pk", "gsi1sk"]

    @pytest.mark.asyncio
    async def test_existing_table_is_left_alone(self, dynamo):
        resource = dynamo._config.client
        assert await dynamo.create_table() is False
        resource.create_table.assert_not_called()


class TestStoreConfig:
    def test_from_env_defaults(self, monkeypatch):
        for name in ("AWS_REGION", "AWS_DEFAULT_REGION", "DYNAMODB_ENDPOINT", "DYNAMODB_TABLE_NAME"):
            monkeypatch.delenv(name, raising=False)
        config = StoreConfig.from_env()
        assert config.region == "us-east-1"
        assert config.table == "test"
        assert config.endpoint_url is None
        assert config.client is None

    def test_from_env_values(self, monkeypatch):
        monkeypatch.setenv("AWS_REGION", "eu-west-1")
        monkeypatch.setenv("DYNAMODB_ENDPOINT", "http://localhost:8000")
        monkeypatch.setenv("DYNAMODB_TABLE_NAME", "items")
        config = StoreConfig.from_env()
        assert config.region == "eu-west-1"
        assert config.table == "items"
        assert config.boto3_kwargs() == {
            "region_name": "eu-west-1",
            "endpoint_url": "http://localhost:8000",
        }

    def test_resolve_client_keeps_given_client(self):
        client = object()
        assert StoreConfig(client=client).resolve_client() is client

    @pytest.mark.parametrize("value,expected", [("true", True), ("1", True), ("YES", True), ("false", False), ("", False)])
    def test_auth_disabled(self, monkeypatch, value, expected):
        monkeypatch.setenv("SKIP_AUTH", value)
        assert auth_disabled() is expected
