#!/usr/bin/env python3
"""Create the booking DynamoDB tables.

Uses the same definitions as the test fixtures (``booking_core.services.tables``).
Existing tables are left alone.

Usage:
    python scripts/create_tables.py --env dev
    python scripts/create_tables.py --env dev --endpoint-url http://localhost:8000
"""

import argparse
import os
import sys

import boto3
from botocore.exceptions import ClientError

from booking_core.services.tables import table_definitions


def create_tables(prefix: str, region: str, endpoint_url: str | None = None) -> list[str]:
    """Create every table that does not exist yet.

    Returns:
        Names of the tables that were created
    """
    client = boto3.client("dynamodb", region_name=region, endpoint_url=endpoint_url)
    created = []
    for definition in table_definitions(prefix):
        name = definition["TableName"]
        try:
            client.create_table(**definition)
        except ClientError as e:
            if e.response["Error"]["Code"] == "ResourceInUseException":
                print(f"  = {name} (exists)")
                continue
            raise
        client.get_waiter("table_exists").wait(TableName=name)
        print(f"  + {name}")
        created.append(name)
    return created


def main() -> int:
    """Run the script."""
    parser = argparse.ArgumentParser(description="Create booking DynamoDB tables")
    parser.add_argument(
        "--env",
        choices=["dev", "staging", "prod"],
        default="dev",
        help="Target environment (default: dev)",
    )
    parser.add_argument(
        "--region",
        default=os.environ.get("AWS_DEFAULT_REGION", "eu-central-1"),
        help="AWS region (default: eu-central-1 or AWS_DEFAULT_REGION env var)",
    )
    parser.add_argument(
        "--endpoint-url",
        default=None,
        help="DynamoDB endpoint, e.g. DynamoDB Local",
    )
    args = parser.parse_args()

    prefix = os.environ.get("DYNAMODB_TABLE_PREFIX", f"booking-{args.env}")
    print(f"\nCreating tables with prefix {prefix} (region: {args.region})\n")
    created = create_tables(prefix, args.region, args.endpoint_url)
    print(f"\n✅ {len(created)} table(s) created")
    return 0


if __name__ == "__main__":
    sys.exit(main())
