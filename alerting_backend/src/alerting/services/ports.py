"""Port definitions for the collaborators of the condition evaluation core.

Responsibilities:
  - Define interface contracts for dashboard storage, data source resolution and query execution.
Must not:
  - Implement logic; interfaces only.
"""

from __future__ import annotations

from typing import Any, Dict, Protocol

from src.alerting.schemas.eval import DataSourceIdentity, ExecutionRequest, SignedInUser


class DashboardStore(Protocol):
    def get_by_id(self, dashboard_id: int) -> Dict[str, Any]:
        """Return `{"id", "orgId", "data"}` where `data` is the dashboard JSON model."""
        ...


class DataSourceDirectory(Protocol):
    def resolve(self, name: str, org_id: int, user: SignedInUser, skip_cache: bool = False) -> DataSourceIdentity:
        ...


class ExecutionEngine(Protocol):
    async def run(self, request: ExecutionRequest) -> Dict[str, Any]:
        """Execute the request; returns raw sub-results keyed by refId."""
        ...
