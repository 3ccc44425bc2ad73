from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from src.alerting.schemas.eval import ExecutionRequest

logger = logging.getLogger(__name__)

QUERY_PATH = "/api/ds/query"


class HttpExecutionEngine:
    """
    ExecutionEngine that forwards requests to a query/expression engine over HTTP.

    Request body: `{"from": <ms>, "to": <ms>, "queries": [...], "debug": bool}`.
    Response body: `{"results": {<refId>: {"frames": [...]}, ...}}`, where each frame is
    `{"name": str, "fields": [{"name", "type", "labels", "values"}]}` with columnar values
    and `FieldType` tags. This is not Grafana's `schema`/`data` frame encoding.
    """

    def __init__(self, base_url: str, timeout_sec: float = 30.0, client: Optional[httpx.AsyncClient] = None):
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self._base_url, timeout=timeout_sec)

    # PUBLIC_INTERFACE
    async def run(self, request: ExecutionRequest) -> Dict[str, Any]:
        """POST the request to the engine and return its per-refId results map."""
        body = {
            "from": str(request.time_range.from_ms()),
            "to": str(request.time_range.to_ms()),
            "queries": [q.to_engine_json() for q in request.queries],
            "debug": request.debug,
        }
        headers = {"X-Grafana-Org-Id": str(request.user.org_id)}
        if request.user.login:
            headers["X-Grafana-User"] = request.user.login

        logger.debug("Engine request queries=%d from=%s to=%s", len(body["queries"]), body["from"], body["to"])
        res = await self._client.post(QUERY_PATH, json=body, headers=headers)
        res.raise_for_status()

        payload = res.json()
        results = payload.get("results") if isinstance(payload, dict) else None
        if not isinstance(results, dict):
            raise ValueError("execution engine response has no results map")
        return results

    async def aclose(self) -> None:
        await self._client.aclose()
