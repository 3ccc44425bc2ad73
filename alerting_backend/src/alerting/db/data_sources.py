from __future__ import annotations

import logging
import time
from threading import RLock
from typing import Callable, Dict, Tuple

from pydantic import ValidationError
from pymongo.errors import PyMongoError

from src.alerting.db.mongo import MongoManager
from src.alerting.schemas.eval import DataSourceIdentity, SignedInUser
from src.alerting.services.errors import DataSourceNotFoundError, DecodeError, StorageError

logger = logging.getLogger(__name__)


class MongoDataSourceDirectory:
    """
    DataSourceDirectory backed by the `data_sources` collection.

    Resolved identities are cached per (orgId, name) for `cache_ttl_sec` seconds
    (0 disables the cache). `skip_cache` forces a fresh read and refreshes the entry.
    """

    def __init__(self, mongo: MongoManager, cache_ttl_sec: int = 5, clock: Callable[[], float] = time.monotonic):
        self._mongo = mongo
        self._ttl = max(0, int(cache_ttl_sec))
        self._clock = clock
        self._cache: Dict[Tuple[int, str], Tuple[float, DataSourceIdentity]] = {}
        self._lock = RLock()

    def _cached(self, key: Tuple[int, str]) -> DataSourceIdentity | None:
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            expires_at, identity = entry
            if self._clock() >= expires_at:
                self._cache.pop(key, None)
                return None
            return identity

    def _store(self, key: Tuple[int, str], identity: DataSourceIdentity) -> None:
        if self._ttl <= 0:
            return
        with self._lock:
            self._cache[key] = (self._clock() + self._ttl, identity)

    # PUBLIC_INTERFACE
    def resolve(self, name: str, org_id: int, user: SignedInUser, skip_cache: bool = False) -> DataSourceIdentity:
        """Resolve a data source name within an organization to its identity."""
        key = (org_id, name)
        if not skip_cache:
            hit = self._cached(key)
            if hit is not None:
                return hit

        try:
            doc = self._mongo.collections().data_sources.find_one({"orgId": org_id, "name": name}, projection={"_id": 0})
        except PyMongoError as e:
            raise StorageError(f"failed to look up datasource {name!r}: {e}", datasource=name, org_id=org_id) from e

        if not doc:
            raise DataSourceNotFoundError(
                f"datasource {name!r} not found in org {org_id}", datasource=name, org_id=org_id
            )

        try:
            identity = DataSourceIdentity.model_validate(doc)
        except ValidationError as e:
            raise DecodeError(f"invalid datasource document {name!r}", datasource=name, errors=str(e)) from e

        logger.debug("Resolved datasource name=%s orgId=%s id=%s userId=%s", name, org_id, identity.id, user.user_id)
        self._store(key, identity)
        return identity
