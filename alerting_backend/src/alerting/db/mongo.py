from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import RLock
from typing import Optional

from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)


DEFAULT_DB_NAME = "alerting"


@dataclass(frozen=True)
class MongoCollections:
    """Convenience wrapper for app collections."""

    dashboards: Collection
    data_sources: Collection


class MongoManager:
    """MongoDB connection manager holding one lazily created MongoClient for the app database."""

    def __init__(self, mongo_uri: str, db_name: str = DEFAULT_DB_NAME):
        self._mongo_uri = mongo_uri
        self._db_name = db_name
        self._client: Optional[MongoClient] = None
        self._lock = RLock()

    def connect(self) -> None:
        """Initialize the Mongo client if needed."""
        with self._lock:
            if self._client is not None:
                return
            # MongoClient is thread-safe and manages internal pooling.
            self._client = MongoClient(self._mongo_uri, connect=True)

    # PUBLIC_INTERFACE
    def ping(self, timeout_ms: int = 1500) -> bool:
        """Ping the configured MongoDB to validate connectivity."""
        try:
            if self._client is None:
                self.connect()
            assert self._client is not None
            self._client.admin.command("ping", maxTimeMS=int(max(250, timeout_ms)))
            return True
        except PyMongoError:
            logger.exception("Mongo ping failed (PyMongoError)")
            return False

    def close(self) -> None:
        with self._lock:
            if self._client is not None:
                try:
                    self._client.close()
                except PyMongoError:
                    logger.exception("Error closing MongoClient")
                self._client = None

    def db(self) -> Database:
        if self._client is None:
            self.connect()
        assert self._client is not None
        return self._client[self._db_name]

    def collections(self) -> MongoCollections:
        db = self.db()
        return MongoCollections(dashboards=db["dashboards"], data_sources=db["data_sources"])

    def init_indexes(self) -> None:
        """Create required indexes (idempotent)."""
        cols = self.collections()
        cols.dashboards.create_index([("id", ASCENDING)], unique=True, name="idx_dashboards_id")
        cols.data_sources.create_index(
            [("orgId", ASCENDING), ("name", ASCENDING)], unique=True, name="idx_data_sources_org_name"
        )
        cols.data_sources.create_index([("id", ASCENDING)], unique=True, name="idx_data_sources_id")
