"""DynamoDB table definitions.

Shared by ``scripts/create_tables.py`` and the test fixtures so both create
exactly the same schema. Names here are unprefixed; ``DynamoDBService``
adds the environment prefix.
"""

from typing import Any

CUSTOMERS = "customers"
PARTIES = "parties"
ORDERS = "orders"
ORDER_NUMBERS = "order-numbers"
INVOICES = "invoices"
SAFETY_CHECKLISTS = "safety-checklists"
WEBHOOK_EVENTS = "stripe-webhook-events"
COUNTERS = "counters"
PACKAGES = "packages"
ACTIVITIES = "activities"

# Index names
PARTY_STATUS_INDEX = "status-event_at-index"
ORDER_PAYMENT_INTENT_INDEX = "payment_intent_id-index"
ORDER_FINAL_PAYMENT_INTENT_INDEX = "final_payment_intent_id-index"
ORDER_STATUS_DUE_INDEX = "status-due_date-index"
INVOICE_ORDER_INDEX = "order_id-index"
WEBHOOK_ORDER_INDEX = "order_id-index"


def _gsi(name: str, hash_key: str, range_key: str | None = None) -> dict[str, Any]:
    key_schema = [{"AttributeName": hash_key, "KeyType": "HASH"}]
    if range_key:
        key_schema.append({"AttributeName": range_key, "KeyType": "RANGE"})
    return {
        "IndexName": name,
        "KeySchema": key_schema,
        "Projection": {"ProjectionType": "ALL"},
    }


def _table(
    name: str,
    hash_key: str,
    attributes: list[str] | None = None,
    indexes: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    attribute_names = [hash_key, *(attributes or [])]
    definition: dict[str, Any] = {
        "TableName": name,
        "KeySchema": [{"AttributeName": hash_key, "KeyType": "HASH"}],
        "AttributeDefinitions": [
            {"AttributeName": attr, "AttributeType": "S"} for attr in attribute_names
        ],
        "BillingMode": "PAY_PER_REQUEST",
    }
    if indexes:
        definition["GlobalSecondaryIndexes"] = indexes
    return definition


TABLES: list[dict[str, Any]] = [
    _table(CUSTOMERS, "email"),
    _table(
        PARTIES,
        "party_id",
        attributes=["status", "event_at"],
        indexes=[_gsi(PARTY_STATUS_INDEX, "status", "event_at")],
    ),
    _table(
        ORDERS,
        "order_id",
        attributes=["payment_intent_id", "final_payment_intent_id", "status", "due_date"],
        indexes=[
            _gsi(ORDER_PAYMENT_INTENT_INDEX, "payment_intent_id"),
            _gsi(ORDER_FINAL_PAYMENT_INTENT_INDEX, "final_payment_intent_id"),
            _gsi(ORDER_STATUS_DUE_INDEX, "status", "due_date"),
        ],
    ),
    _table(ORDER_NUMBERS, "order_number"),
    _table(
        INVOICES,
        "invoice_id",
        attributes=["order_id"],
        indexes=[_gsi(INVOICE_ORDER_INDEX, "order_id")],
    ),
    _table(SAFETY_CHECKLISTS, "checklist_id"),
    _table(
        WEBHOOK_EVENTS,
        "event_id",
        attributes=["order_id", "processed_at"],
        indexes=[_gsi(WEBHOOK_ORDER_INDEX, "order_id", "processed_at")],
    ),
    _table(COUNTERS, "counter_id"),
    _table(PACKAGES, "package_id"),
    _table(ACTIVITIES, "activity_id"),
]


def table_definitions(prefix: str) -> list[dict[str, Any]]:
    """Return ``create_table`` kwargs for every table, with names prefixed.

    Args:
        prefix: Table name prefix, e.g. ``booking-dev``

    Returns:
        List of dicts suitable for ``client.create_table(**definition)``
    """
    definitions = []
    for table in TABLES:
        definition = dict(table)
        definition["TableName"] = f"{prefix}-{table['TableName']}"
        definitions.append(definition)
    return definitions
