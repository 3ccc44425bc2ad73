from __future__ import annotations

import logging
from typing import Any, Dict

from pymongo.errors import PyMongoError

from src.alerting.db.mongo import MongoManager
from src.alerting.services.errors import DashboardNotFoundError, StorageError

logger = logging.getLogger(__name__)


class MongoDashboardStore:
    """DashboardStore backed by the `dashboards` collection (`{id, orgId, data}` documents)."""

    def __init__(self, mongo: MongoManager):
        self._mongo = mongo

    # PUBLIC_INTERFACE
    def get_by_id(self, dashboard_id: int) -> Dict[str, Any]:
        """Fetch a dashboard document by its numeric id."""
        try:
            doc = self._mongo.collections().dashboards.find_one({"id": dashboard_id}, projection={"_id": 0})
        except PyMongoError as e:
            logger.warning("Dashboard fetch failed dashboardId=%s: %s", dashboard_id, e)
            raise StorageError(f"failed to fetch dashboard {dashboard_id}: {e}", dashboard_id=dashboard_id) from e

        if not doc:
            raise DashboardNotFoundError(f"dashboard {dashboard_id} not found", dashboard_id=dashboard_id)
        return doc
