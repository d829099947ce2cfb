"""
Tests for the user stores. DynamoDB runs against a recording stand-in for the boto3 Table.
"""

from decimal import Decimal

import pytest
from botocore.exceptions import ClientError

from plancraft.config import Settings
from plancraft.storage import InMemoryUserStore, create_user_store
from plancraft.storage.dynamodb import DynamoUserStore, _from_dynamo, _to_dynamo


class RecordingTable:
    """Captures update_item calls; optionally fails the conditional one."""

    def __init__(self, item=None, condition_fails=False):
        self.item = item
        self.condition_fails = condition_fails
        self.calls = []

    def get_item(self, Key):
        return {"Item": self.item} if self.item else {}

    def put_item(self, Item):
        self.calls.append(("put_item", {"Item": Item}))

    def update_item(self, **kwargs):
        self.calls.append(("update_item", kwargs))
        if self.condition_fails and "ConditionExpression" in kwargs:
            raise ClientError(
                {"Error": {"Code": "ConditionalCheckFailedException", "Message": "nope"}},
                "UpdateItem",
            )
        return {"Attributes": {"id": kwargs["Key"]["id"], "progress": Decimal("33")}}

    def delete_item(self, **kwargs):
        return {"Attributes": {"id": kwargs["Key"]["id"]}}


# =============================================================================
# Conversions
# =============================================================================


class TestConversions:
    def test_round_numbers(self):
        assert _to_dynamo({"a": [1.5, 2]}) == {"a": [Decimal("1.5"), 2]}
        assert _from_dynamo({"a": [Decimal("1.5"), Decimal("2")]}) == {"a": [1.5, 2]}

    def test_ints_stay_ints(self):
        value = _from_dynamo(Decimal("100"))
        assert value == 100 and isinstance(value, int)


# =============================================================================
# Store operations
# =============================================================================


class TestDynamoUserStore:
    @pytest.mark.asyncio
    async def test_get(self):
        store = DynamoUserStore("users", table=RecordingTable(item={"id": "u1", "maxProjects": Decimal("5")}))

        assert await store.get("u1") == {"id": "u1", "maxProjects": 5}

    @pytest.mark.asyncio
    async def test_get_missing(self):
        store = DynamoUserStore("users", table=RecordingTable())
        assert await store.get("u1") is None

    @pytest.mark.asyncio
    async def test_update_builds_set_expression(self):
        table = RecordingTable()
        store = DynamoUserStore("users", table=table)

        result = await store.update("u1", {"onboarding": {"progress": 33}, "id": "ignored"})

        _, call = table.calls[0]
        assert call["Key"] == {"id": "u1"}
        assert call["UpdateExpression"] == "SET #a0 = :v0, #a1 = :v1"
        assert call["ExpressionAttributeNames"] == {"#a0": "onboarding", "#a1": "updatedAt"}
        assert call["ReturnValues"] == "ALL_NEW"
        assert result == {"id": "u1", "progress": 33}

    @pytest.mark.asyncio
    async def test_append_unique(self):
        table = RecordingTable()
        store = DynamoUserStore("users", table=table)

        await store.append_unique("u1", "ownedResources", "project", "p1")

        assert len(table.calls) == 2
        _, create_map = table.calls[0]
        assert "if_not_exists(#attr, :empty_map)" in create_map["UpdateExpression"]
        _, append = table.calls[1]
        assert append["ExpressionAttributeNames"]["#key"] == "project"
        assert append["ExpressionAttributeValues"][":values"] == ["p1"]

    @pytest.mark.asyncio
    async def test_append_existing_value_is_noop(self):
        store = DynamoUserStore("users", table=RecordingTable(condition_fails=True))

        await store.append_unique("u1", "ownedResources", "project", "p1")

    @pytest.mark.asyncio
    async def test_other_client_errors_propagate(self):
        class ThrottledTable(RecordingTable):
            def update_item(self, **kwargs):
                raise ClientError(
                    {"Error": {"Code": "ProvisionedThroughputExceededException", "Message": "slow down"}},
                    "UpdateItem",
                )

        store = DynamoUserStore("users", table=ThrottledTable())

        with pytest.raises(ClientError):
            await store.append_unique("u1", "ownedResources", "project", "p1")

    @pytest.mark.asyncio
    async def test_delete(self):
        store = DynamoUserStore("users", table=RecordingTable())
        assert await store.delete("u1") is True


# =============================================================================
# In-memory store
# =============================================================================


class TestInMemoryUserStore:
    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self):
        store = InMemoryUserStore({"u1": {"ownedResources": {"project": ["p1"]}}})

        record = await store.get("u1")
        record["ownedResources"]["project"].append("hijacked")

        assert (await store.get("u1"))["ownedResources"]["project"] == ["p1"]

    @pytest.mark.asyncio
    async def test_save_replaces_record(self):
        store = InMemoryUserStore({"u1": {"role": "pro", "company": "Acme"}})

        await store.save("u1", {"role": "user"})

        record = await store.get("u1")
        assert record["role"] == "user"
        assert "company" not in record
        assert record["id"] == "u1"

    @pytest.mark.asyncio
    async def test_update_merges_top_level(self):
        store = InMemoryUserStore({"u1": {"role": "pro", "company": "Acme"}})

        result = await store.update("u1", {"company": "Initech"})

        assert result["role"] == "pro"
        assert result["company"] == "Initech"
        assert "updatedAt" in result

    @pytest.mark.asyncio
    async def test_delete(self):
        store = InMemoryUserStore({"u1": {}})

        assert await store.delete("u1") is True
        assert await store.delete("u1") is False
        assert await store.get("u1") is None


class TestCreateUserStore:
    def test_memory_backend(self):
        assert isinstance(create_user_store(Settings(storage_backend="memory")), InMemoryUserStore)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_user_store(Settings(storage_backend="postgres"))
