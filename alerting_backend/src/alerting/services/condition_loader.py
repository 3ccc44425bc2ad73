from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, Field, ValidationError, field_validator

from src.alerting.schemas.eval import (
    DEFAULT_INTERVAL_MS,
    DEFAULT_MAX_DATA_POINTS,
    DEFAULT_ORG_ID,
    DEFAULT_REF_ID,
    EXPRESSION_DATASOURCE,
    EXPRESSION_DATASOURCE_NAME,
    Condition,
    DataSourceIdentity,
    Query,
    SignedInUser,
)
from src.alerting.services.errors import DecodeError, MissingDataSourceError, PanelNotFoundError
from src.alerting.services.ports import DashboardStore, DataSourceDirectory

logger = logging.getLogger(__name__)

# Target keys mapped onto named Query fields; everything else is engine pass-through.
_NAMED_TARGET_KEYS = ("refId", "datasource", "datasourceId", "orgId", "maxDataPoints", "intervalMs", "queryType")


class _MinimalPanel(BaseModel):
    # Text panels and rows may have no id or null targets; they simply never match.
    id: Optional[int] = None
    datasource: Any = None
    targets: List[Dict[str, Any]] = Field(default_factory=list)

    @field_validator("targets", mode="before")
    @classmethod
    def _null_targets(cls, v: Any) -> Any:
        return [] if v is None else v


class _MinimalDashboard(BaseModel):
    panels: List[_MinimalPanel] = Field(default_factory=list)


class _StoredDashboard(BaseModel):
    id: int
    org_id: int = Field(0, alias="orgId")
    data: _MinimalDashboard


def _is_missing(target: Dict[str, Any], key: str) -> bool:
    return target.get(key) in (None, "")


def _string_field(target: Dict[str, Any], key: str) -> str:
    val = target.get(key)
    return val if isinstance(val, str) else ""


class ConditionLoader:
    """
    Resolves the queries of a stored dashboard panel into an executable Condition.

    The dashboard store and data source directory are injected; the loader keeps no state
    between calls and never caches data sources itself (it only forwards `skip_cache`).
    """

    def __init__(self, store: DashboardStore, directory: DataSourceDirectory):
        self._store = store
        self._directory = directory

    def _fetch_dashboard(self, dashboard_id: int) -> _StoredDashboard:
        # StorageError / DashboardNotFoundError propagate from the store as-is.
        raw = self._store.get_by_id(dashboard_id)
        try:
            return _StoredDashboard.model_validate(raw)
        except ValidationError as e:
            raise DecodeError(
                f"failed to decode dashboard {dashboard_id}: {e.error_count()} validation error(s)",
                dashboard_id=dashboard_id,
                errors=str(e),
            ) from e

    # PUBLIC_INTERFACE
    def load(
        self,
        dashboard_id: int,
        panel_id: int,
        ref_id: str,
        user: SignedInUser,
        skip_cache: bool = False,
    ) -> Condition:
        """Return a Condition built from the targets of panel `panel_id` of dashboard `dashboard_id`."""
        dash = self._fetch_dashboard(dashboard_id)

        panel = next((p for p in dash.data.panels if p.id == panel_id), None)
        if panel is None:
            raise PanelNotFoundError(
                f"panel {panel_id} not found in dashboard {dashboard_id}",
                dashboard_id=dashboard_id,
                panel_id=panel_id,
            )

        ds: Optional[DataSourceIdentity] = None
        seen_ref_ids: Set[str] = set()
        queries: List[Query] = []
        for i, target in enumerate(panel.targets):
            target_ref_id = _string_field(target, "refId") or DEFAULT_REF_ID
            if target_ref_id in seen_ref_ids:
                raise DecodeError(
                    f"duplicate refId {target_ref_id!r} in panel {panel_id}",
                    dashboard_id=dashboard_id,
                    panel_id=panel_id,
                    ref_id=target_ref_id,
                )
            seen_ref_ids.add(target_ref_id)

            query_ds = _string_field(target, "datasource")
            is_expression = query_ds == EXPRESSION_DATASOURCE_NAME

            if i == 0 and not is_expression:
                panel_ds = panel.datasource if isinstance(panel.datasource, str) else ""
                ds_name = query_ds or panel_ds
                if not ds_name:
                    raise MissingDataSourceError(
                        f"no datasource declared for query {target_ref_id!r}",
                        dashboard_id=dashboard_id,
                        panel_id=panel_id,
                        ref_id=target_ref_id,
                    )
                ds = self._directory.resolve(ds_name, dash.org_id, user, skip_cache)

            if is_expression:
                identity = EXPRESSION_DATASOURCE
            elif ds is None:
                raise MissingDataSourceError(
                    f"no datasource reference found for query {target_ref_id!r}",
                    dashboard_id=dashboard_id,
                    panel_id=panel_id,
                    ref_id=target_ref_id,
                )
            else:
                identity = ds

            queries.append(self._build_query(dashboard_id, target, target_ref_id, query_ds, identity))

        logger.info(
            "Loaded condition dashboardId=%s panelId=%s refId=%s queries=%d",
            dashboard_id,
            panel_id,
            ref_id,
            len(queries),
        )
        return Condition(ref_id=ref_id, queries=queries)

    @staticmethod
    def _build_query(
        dashboard_id: int,
        target: Dict[str, Any],
        ref_id: str,
        query_ds: str,
        identity: DataSourceIdentity,
    ) -> Query:
        model = {k: v for k, v in target.items() if k not in _NAMED_TARGET_KEYS}
        doc = {
            "refId": ref_id,
            "datasource": query_ds or identity.name,
            "datasourceId": identity.id if _is_missing(target, "datasourceId") else target["datasourceId"],
            "orgId": DEFAULT_ORG_ID if _is_missing(target, "orgId") else target["orgId"],
            "maxDataPoints": DEFAULT_MAX_DATA_POINTS if _is_missing(target, "maxDataPoints") else target["maxDataPoints"],
            "intervalMs": DEFAULT_INTERVAL_MS if _is_missing(target, "intervalMs") else target["intervalMs"],
            "queryType": _string_field(target, "queryType"),
            "model": model,
            "dataSource": identity,
        }
        try:
            return Query.model_validate(doc)
        except ValidationError as e:
            raise DecodeError(
                f"invalid query {ref_id!r} in dashboard {dashboard_id}: {e.error_count()} validation error(s)",
                dashboard_id=dashboard_id,
                ref_id=ref_id,
                errors=str(e),
            ) from e
