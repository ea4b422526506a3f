"""Catalog lookup for packages and activities.

The catalog is authored elsewhere; this module only reads it.
"""

import logging

from booking_core.models.catalog import Activity, Package

from .dynamodb import DynamoDBService
from .tables import ACTIVITIES, PACKAGES

logger = logging.getLogger(__name__)


class CatalogService:
    """Reads packages and activities from DynamoDB."""

    def __init__(self, db: DynamoDBService) -> None:
        self._db = db

    def get_package(self, package_id: str) -> Package | None:
        """Get an active package by ID, or None."""
        item = self._db.get_item(PACKAGES, {"package_id": package_id}, consistent_read=False)
        if not item:
            return None
        package = Package.model_validate(item)
        return package if package.active else None

    def get_activities(self, activity_ids: list[str]) -> dict[str, Activity]:
        """Resolve activity IDs to active activities.

        Args:
            activity_ids: IDs to look up; duplicates are fetched once

        Returns:
            Mapping of ID to Activity for the IDs that exist and are active
        """
        unique_ids = list(dict.fromkeys(activity_ids))
        items = self._db.batch_get(ACTIVITIES, [{"activity_id": a} for a in unique_ids])
        activities = {}
        for item in items:
            activity = Activity.model_validate(item)
            if activity.active:
                activities[activity.activity_id] = activity
        return activities
