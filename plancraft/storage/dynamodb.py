"""
DynamoDB user store.

One item per user in the users table, keyed by ``id``. boto3 is blocking,
so every call runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Any

import boto3
from botocore.exceptions import ClientError

from plancraft.core.utils import utc_now_iso
from plancraft.storage.base import Attributes, UserStore

logger = logging.getLogger(__name__)


def _to_dynamo(value: Any) -> Any:
    """DynamoDB rejects floats; store them as Decimal."""
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: _to_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_dynamo(v) for v in value]
    return value


def _from_dynamo(value: Any) -> Any:
    """Numbers come back as Decimal; hand plain ints and floats to callers."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_dynamo(v) for v in value]
    return value


class DynamoUserStore(UserStore):
    """User records in a DynamoDB table."""

    def __init__(
        self,
        table_name: str,
        region_name: str = "us-east-1",
        endpoint_url: str | None = None,
        table=None,
    ):
        if table is None:
            dynamodb = boto3.resource(
                "dynamodb",
                region_name=region_name,
                endpoint_url=endpoint_url or None,
            )
            table = dynamodb.Table(table_name)
        self.table = table

    async def get(self, user_id: str) -> dict[str, Any] | None:
        response = await asyncio.to_thread(
            self.table.get_item,
            Key={Attributes.ID: user_id},
        )
        item = response.get("Item")
        return _from_dynamo(item) if item else None

    async def save(self, user_id: str, record: dict[str, Any]) -> None:
        item = {
            **_to_dynamo(record),
            Attributes.ID: user_id,
            Attributes.UPDATED_AT: utc_now_iso(),
        }
        await asyncio.to_thread(self.table.put_item, Item=item)

    async def update(self, user_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        fields = {k: v for k, v in updates.items() if k != Attributes.ID}
        fields[Attributes.UPDATED_AT] = utc_now_iso()

        names: dict[str, str] = {}
        values: dict[str, Any] = {}
        assignments: list[str] = []
        for i, (name, value) in enumerate(fields.items()):
            names[f"#a{i}"] = name
            values[f":v{i}"] = _to_dynamo(value)
            assignments.append(f"#a{i} = :v{i}")

        response = await asyncio.to_thread(
            self.table.update_item,
            Key={Attributes.ID: user_id},
            UpdateExpression="SET " + ", ".join(assignments),
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=values,
            ReturnValues="ALL_NEW",
        )
        return _from_dynamo(response.get("Attributes", {}))

    async def append_unique(
        self,
        user_id: str,
        attribute: str,
        key: str,
        value: str,
    ) -> None:
        # A nested SET fails when the parent map is missing, so create it first
        await asyncio.to_thread(
            self.table.update_item,
            Key={Attributes.ID: user_id},
            UpdateExpression="SET #attr = if_not_exists(#attr, :empty_map)",
            ExpressionAttributeNames={"#attr": attribute},
            ExpressionAttributeValues={":empty_map": {}},
        )

        try:
            await asyncio.to_thread(
                self.table.update_item,
                Key={Attributes.ID: user_id},
                UpdateExpression=(
                    "SET #attr.#key = list_append(if_not_exists(#attr.#key, :empty_list), :values), "
                    "#updated = :now"
                ),
                ConditionExpression="attribute_not_exists(#attr.#key) OR NOT contains(#attr.#key, :value)",
                ExpressionAttributeNames={
                    "#attr": attribute,
                    "#key": key,
                    "#updated": Attributes.UPDATED_AT,
                },
                ExpressionAttributeValues={
                    ":empty_list": [],
                    ":values": [value],
                    ":value": value,
                    ":now": utc_now_iso(),
                },
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") != "ConditionalCheckFailedException":
                raise
            logger.debug("%s already in %s.%s for %s", value, attribute, key, user_id)

    async def delete(self, user_id: str) -> bool:
        response = await asyncio.to_thread(
            self.table.delete_item,
            Key={Attributes.ID: user_id},
            ReturnValues="ALL_OLD",
        )
        return bool(response.get("Attributes"))
