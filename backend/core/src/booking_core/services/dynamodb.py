"""Thin DynamoDB access layer shared by every booking service.

Table names are logical (``"orders"``, ``"parties"``...) and resolved
against ``DYNAMODB_TABLE_PREFIX``. Writes that lose a condition report it
through the return value (``False`` / ``None``) so callers can retry or
treat it as a duplicate. Every other ``ClientError`` propagates.

Multi-item writes are built with ``tx_put`` / ``tx_update`` and committed
together through ``transact_write``.
"""

import os
from typing import Any

import boto3
from boto3.dynamodb.conditions import ConditionBase, Key
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import ClientError
from pydantic import BaseModel

CONDITION_FAILED = "ConditionalCheckFailedException"
TRANSACTION_CANCELLED = "TransactionCanceledException"

_service: "DynamoDBService | None" = None
_serializer = TypeSerializer()


def get_dynamodb_service(environment: str | None = None) -> "DynamoDBService":
    """Return the process-wide service, creating it on first use."""
    global _service
    if _service is None:
        _service = DynamoDBService(environment)
    return _service


def reset_dynamodb_service() -> None:
    """Drop the cached service so the next call builds a fresh client."""
    global _service
    _service = None


def to_item(model: BaseModel) -> dict[str, Any]:
    """Dump a model as a DynamoDB item.

    Unset fields are left out instead of stored as NULL; sparse indexes and
    ``attribute_not_exists`` guards depend on that.
    """
    return model.model_dump(mode="json", exclude_none=True)


def serialize(value: dict[str, Any]) -> dict[str, Any]:
    """Convert a plain mapping to low-level ``{"S": ...}`` attribute values."""
    return {name: _serializer.serialize(attr) for name, attr in value.items()}


def _params(**params: Any) -> dict[str, Any]:
    """Keep only the request parameters that were actually supplied."""
    return {name: value for name, value in params.items() if value}


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


class DynamoDBService:
    """Prefix-aware wrapper around the boto3 resource and client."""

    def __init__(self, environment: str | None = None) -> None:
        self.environment = environment or os.getenv("ENVIRONMENT", "dev")
        self.name_prefix = os.getenv("DYNAMODB_TABLE_PREFIX") or f"booking-{self.environment}"
        self._dynamodb = boto3.resource("dynamodb")
        self._client = boto3.client("dynamodb")

    def table_name(self, table: str) -> str:
        return f"{self.name_prefix}-{table}"

    def _get_table(self, table: str) -> Any:
        return self._dynamodb.Table(self.table_name(table))

    # -- single item ---------------------------------------------------------

    def get_item(
        self, table: str, key: dict[str, Any], consistent_read: bool = True
    ) -> dict[str, Any] | None:
        """Fetch one item by primary key, or None when it does not exist.

        Reads are strongly consistent unless ``consistent_read`` is False;
        catalog lookups opt out.
        """
        response = self._get_table(table).get_item(Key=key, ConsistentRead=consistent_read)
        found: dict[str, Any] | None = response.get("Item")
        return found

    def put_item(
        self,
        table: str,
        item: dict[str, Any],
        condition_expression: str | None = None,
        expression_attribute_values: dict[str, Any] | None = None,
    ) -> bool:
        """Write an item; returns False when ``condition_expression`` fails."""
        request = _params(
            ConditionExpression=condition_expression,
            ExpressionAttributeValues=expression_attribute_values,
        )
        try:
            self._get_table(table).put_item(Item=item, **request)
        except ClientError as e:
            if _error_code(e) == CONDITION_FAILED:
                return False
            raise
        return True

    def update_item(
        self,
        table: str,
        key: dict[str, Any],
        update_expression: str,
        expression_attribute_values: dict[str, Any],
        expression_attribute_names: dict[str, str] | None = None,
        condition_expression: str | None = None,
    ) -> dict[str, Any] | None:
        """Apply an update expression.

        Args:
            table: Logical table name
            key: Primary key of the item
            update_expression: ``SET``/``ADD``/``REMOVE`` clauses
            expression_attribute_values: ``:placeholder`` values
            expression_attribute_names: ``#placeholder`` names for reserved words
            condition_expression: Guard evaluated against the stored item

        Returns:
            The item as stored after the update, or None if the guard failed.
        """
        request = _params(
            ExpressionAttributeNames=expression_attribute_names,
            ConditionExpression=condition_expression,
        )
        try:
            response = self._get_table(table).update_item(
                Key=key,
                UpdateExpression=update_expression,
                ExpressionAttributeValues=expression_attribute_values,
                ReturnValues="ALL_NEW",
                **request,
            )
        except ClientError as e:
            if _error_code(e) == CONDITION_FAILED:
                return None
            raise
        updated: dict[str, Any] = response["Attributes"]
        return updated

    # -- reads over many items ----------------------------------------------

    def query(
        self,
        table: str,
        key_condition: ConditionBase,
        index_name: str | None = None,
        filter_expression: ConditionBase | None = None,
        limit: int | None = None,
        scan_index_forward: bool = True,
    ) -> list[dict[str, Any]]:
        """Run a query against a table or index and collect every page.

        ``limit`` caps the number of items returned, not the page size of
        a single request.
        """
        request: dict[str, Any] = {
            "KeyConditionExpression": key_condition,
            "ScanIndexForward": scan_index_forward,
            **_params(IndexName=index_name, Limit=limit),
        }
        if filter_expression is not None:
            request["FilterExpression"] = filter_expression

        table_resource = self._get_table(table)
        collected: list[dict[str, Any]] = []
        while True:
            page = table_resource.query(**request)
            collected += page.get("Items", [])
            start_key = page.get("LastEvaluatedKey")
            if start_key is None or (limit and len(collected) >= limit):
                break
            request["ExclusiveStartKey"] = start_key
        return collected[:limit] if limit else collected

    def query_by_gsi(
        self,
        table: str,
        index_name: str,
        partition_key_name: str,
        partition_key_value: Any,
        sort_key_condition: ConditionBase | None = None,
        filter_expression: ConditionBase | None = None,
    ) -> list[dict[str, Any]]:
        """Query an index by equality on its partition key."""
        condition = Key(partition_key_name).eq(partition_key_value)
        if sort_key_condition is not None:
            condition &= sort_key_condition
        return self.query(table, condition, index_name=index_name, filter_expression=filter_expression)

    def batch_get(self, table: str, keys: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Fetch several items from one table. Missing keys are omitted."""
        if not keys:
            return []
        name = self.table_name(table)
        response = self._dynamodb.batch_get_item(RequestItems={name: {"Keys": keys}})
        found: list[dict[str, Any]] = response.get("Responses", {}).get(name, [])
        return found

    # -- transactions --------------------------------------------------------

    def transact_write(self, items: list[dict[str, Any]]) -> bool:
        """Commit ``tx_put``/``tx_update`` items atomically.

        Returns False when DynamoDB cancels the transaction, which covers
        any failed condition among the items.
        """
        try:
            self._client.transact_write_items(TransactItems=items)  # type: ignore[arg-type]
        except ClientError as e:
            if _error_code(e) == TRANSACTION_CANCELLED:
                return False
            raise
        return True

    def tx_put(
        self,
        table: str,
        item: dict[str, Any],
        condition_expression: str | None = None,
        expression_attribute_values: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        put = {"TableName": self.table_name(table), "Item": serialize(item)}
        put |= _params(ConditionExpression=condition_expression)
        if expression_attribute_values:
            put["ExpressionAttributeValues"] = serialize(expression_attribute_values)
        return {"Put": put}

    def tx_update(
        self,
        table: str,
        key: dict[str, Any],
        update_expression: str,
        expression_attribute_values: dict[str, Any],
        expression_attribute_names: dict[str, str] | None = None,
        condition_expression: str | None = None,
    ) -> dict[str, Any]:
        update = {
            "TableName": self.table_name(table),
            "Key": serialize(key),
            "UpdateExpression": update_expression,
            "ExpressionAttributeValues": serialize(expression_attribute_values),
        }
        update |= _params(
            ExpressionAttributeNames=expression_attribute_names,
            ConditionExpression=condition_expression,
        )
        return {"Update": update}
