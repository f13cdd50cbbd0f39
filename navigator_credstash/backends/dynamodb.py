"""
DynamoDB secret table.

Items are keyed by ``name`` (HASH) and ``version`` (RANGE), both strings.
Note that DynamoDB orders the RANGE key as a string, so "9" sorts above
"10"; the store re-orders versions numerically after every query.
"""
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Optional

import aioboto3
from boto3.dynamodb.types import Binary, TypeDeserializer, TypeSerializer
from botocore.exceptions import ClientError

from . import ScanPage
from ..exceptions import DuplicateVersionError, TableNotFoundError

logger = logging.getLogger("navigator.credstash")


# ---------------------------------------------------------------------------
# Attribute marshalling
# ---------------------------------------------------------------------------

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()


def _plain(value: Any) -> Any:
    if isinstance(value, Binary):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def serialize_item(item: Mapping[str, Any]) -> dict[str, dict[str, Any]]:
    """Convert a plain item into DynamoDB attribute values.

    None values are left out of the item.
    """
    return {
        key: _serializer.serialize(value)
        for key, value in item.items()
        if value is not None
    }


def deserialize_item(item: Mapping[str, Mapping[str, Any]]) -> dict[str, Any]:
    """Convert DynamoDB attribute values into a plain item.

    Binary values come back as bytes; numbers as Decimal.
    """
    return {
        key: _plain(_deserializer.deserialize(attr))
        for key, attr in item.items()
    }


def _projection(fields: Optional[Sequence[str]]) -> dict[str, Any]:
    # every field goes through a placeholder, "name" is a reserved word
    if not fields:
        return {}
    names = {f"#f{i}": field for i, field in enumerate(fields)}
    return {
        "ProjectionExpression": ", ".join(names),
        "ExpressionAttributeNames": names,
    }


def _error_code(err: ClientError) -> str:
    return err.response.get("Error", {}).get("Code", "")


class DynamoTable:
    """Secret table backed by DynamoDB through aioboto3."""

    def __init__(
        self,
        table: str,
        region: Optional[str] = None,
        endpoint: Optional[str] = None,
        profile: Optional[str] = None,
    ):
        self.table = table
        self._region = region
        self._endpoint = endpoint or None
        self._session = aioboto3.Session(profile_name=profile)

    def _client(self):
        return self._session.client(
            "dynamodb", region_name=self._region, endpoint_url=self._endpoint,
        )

    # ------------------------------------------------------------------
    # Provisioning
    # ------------------------------------------------------------------

    async def check_for_table(self) -> None:
        """Raise TableNotFoundError if the table does not exist."""
        async with self._client() as dynamo:
            try:
                await dynamo.describe_table(TableName=self.table)
            except ClientError as err:
                if _error_code(err) == "ResourceNotFoundException":
                    raise TableNotFoundError(self.table) from err
                raise

    async def ensure_table(self) -> bool:
        """Create the table if missing.

        Returns:
            True if the table was created, False if it already existed.
        """
        try:
            await self.check_for_table()
            return False
        except TableNotFoundError:
            pass
        logger.info("Creating credstash table %s", self.table)
        async with self._client() as dynamo:
            await dynamo.create_table(
                TableName=self.table,
                KeySchema=[
                    {"AttributeName": "name", "KeyType": "HASH"},
                    {"AttributeName": "version", "KeyType": "RANGE"},
                ],
                AttributeDefinitions=[
                    {"AttributeName": "name", "AttributeType": "S"},
                    {"AttributeName": "version", "AttributeType": "S"},
                ],
                BillingMode="PAY_PER_REQUEST",
            )
            waiter = dynamo.get_waiter("table_exists")
            await waiter.wait(TableName=self.table)
        return True

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    async def put(self, item: Mapping[str, Any]) -> None:
        async with self._client() as dynamo:
            try:
                await dynamo.put_item(
                    TableName=self.table,
                    Item=serialize_item(item),
                    ConditionExpression="attribute_not_exists(#name)",
                    ExpressionAttributeNames={"#name": "name"},
                )
            except ClientError as err:
                if _error_code(err) == "ConditionalCheckFailedException":
                    raise DuplicateVersionError(
                        item["name"], item["version"]
                    ) from err
                raise

    async def query(
        self,
        name: str,
        consistent_read: bool = False,
        descending: bool = True,
        projection: Optional[Sequence[str]] = None,
    ) -> list[dict[str, Any]]:
        args = _projection(projection)
        names = dict(args.pop("ExpressionAttributeNames", {}))
        names["#name"] = "name"
        args.update(
            TableName=self.table,
            ConsistentRead=consistent_read,
            ScanIndexForward=not descending,
            KeyConditionExpression="#name = :name",
            ExpressionAttributeNames=names,
            ExpressionAttributeValues={":name": {"S": name}},
        )
        items = []
        async with self._client() as dynamo:
            while True:
                response = await dynamo.query(**args)
                items.extend(deserialize_item(i) for i in response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                args["ExclusiveStartKey"] = last_key
        return items

    async def scan(
        self,
        projection: Optional[Sequence[str]] = None,
        start_key: Optional[Mapping[str, Any]] = None,
    ) -> ScanPage:
        args = _projection(projection)
        args["TableName"] = self.table
        if start_key:
            args["ExclusiveStartKey"] = dict(start_key)
        async with self._client() as dynamo:
            response = await dynamo.scan(**args)
        return ScanPage(
            items=[deserialize_item(i) for i in response.get("Items", [])],
            last_key=response.get("LastEvaluatedKey") or None,
        )

    async def delete(self, name: str, version: str) -> None:
        async with self._client() as dynamo:
            await dynamo.delete_item(
                TableName=self.table,
                Key={"name": {"S": name}, "version": {"S": version}},
            )
