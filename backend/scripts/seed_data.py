#!/usr/bin/env python3
"""Load the package and activity catalog into DynamoDB.

Bookings are priced from these tables, so a fresh environment needs them
before the booking form works. Prices are in haléře (1 Kč = 100).

Usage:
    python scripts/seed_data.py --env dev
    python scripts/seed_data.py --env dev --clear-first
"""

import argparse
import os
import sys
from collections.abc import Sequence
from typing import Any

import boto3

from booking_core.models.catalog import Activity, Package
from booking_core.services.dynamodb import to_item
from booking_core.services.tables import ACTIVITIES, PACKAGES

PACKAGE_CATALOG = [
    Package(package_id="princess-party-premium", title="Princeznovská párty Premium", price=650000),
    Package(package_id="superhero-adventure", title="Superhrdinské dobrodružství", price=550000),
    Package(package_id="science-lab-party", title="Vědecká laboratoř party", price=480000),
    Package(package_id="dinosaur-safari", title="Dinosauří safari", price=450000),
    Package(package_id="pirate-adventure", title="Pirátská výprava", price=450000),
    Package(package_id="disco-dance-party", title="Disco dance party", price=390000),
]

ACTIVITY_CATALOG = [
    Activity(activity_id="face-painting", title="Malování na obličej", price=150000),
    Activity(activity_id="balloon-animals", title="Balonkové modelování", price=120000),
    Activity(activity_id="treasure-hunt", title="Hledání pokladu", price=180000),
    Activity(activity_id="magic-show", title="Kouzelnické představení", price=250000),
    Activity(activity_id="science-lab", title="Vědecká laboratoř", price=200000),
    Activity(activity_id="storytelling", title="Pohádkové čtení", price=80000),
]

CATALOG: dict[str, Sequence[Package | Activity]] = {
    PACKAGES: PACKAGE_CATALOG,
    ACTIVITIES: ACTIVITY_CATALOG,
}


class CatalogSeeder:
    """Writes catalog rows into the tables of one environment."""

    def __init__(self, env: str, region: str) -> None:
        self.prefix = os.environ.get("DYNAMODB_TABLE_PREFIX", f"booking-{env}")
        self._dynamodb = boto3.resource("dynamodb", region_name=region)

    def table(self, name: str) -> Any:
        return self._dynamodb.Table(f"{self.prefix}-{name}")

    def load(self, name: str, rows: Sequence[Package | Activity]) -> int:
        with self.table(name).batch_writer() as batch:
            for row in rows:
                batch.put_item(Item=to_item(row))
                print(f"  ✓ {row.title} ({row.price // 100} Kč)")
        return len(rows)

    def clear(self, name: str) -> int:
        """Delete every row of a table; returns how many were removed."""
        table = self.table(name)
        key_names = [k["AttributeName"] for k in table.key_schema]
        removed = 0
        request: dict[str, Any] = {"ProjectionExpression": ", ".join(key_names)}
        while True:
            page = table.scan(**request)
            with table.batch_writer() as batch:
                for item in page.get("Items", []):
                    batch.delete_item(Key={k: item[k] for k in key_names})
                    removed += 1
            if "LastEvaluatedKey" not in page:
                return removed
            request["ExclusiveStartKey"] = page["LastEvaluatedKey"]


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--env", choices=["dev", "staging", "prod"], default="dev")
    parser.add_argument("--region", default=os.environ.get("AWS_DEFAULT_REGION", "eu-central-1"))
    parser.add_argument("--clear-first", action="store_true", help="Empty the catalog tables first")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    if args.env == "prod":
        answer = input("⚠️  This writes to PRODUCTION. Type 'yes' to continue: ")
        if answer.strip().lower() != "yes":
            print("Aborted.")
            return 1

    seeder = CatalogSeeder(args.env, args.region)
    print(f"\n🌱 Seeding catalog into {seeder.prefix}-* ({args.region})")

    for name, rows in CATALOG.items():
        print(f"\n{name}:")
        if args.clear_first:
            print(f"  cleared {seeder.clear(name)} existing rows")
        seeder.load(name, rows)

    print("\n✅ Catalog seeded")
    return 0


if __name__ == "__main__":
    sys.exit(main())
