from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from src.alerting.config import sanitize_mongo_uri
from src.alerting.schemas.common import HealthResponse, utc_now
from src.alerting.state import get_state

router = APIRouter(tags=["Health"])


class MongoConnectivityResponse(BaseModel):
    """Response model for backend↔Mongo connectivity diagnostics."""

    ok: bool = Field(..., description="Whether the backend can successfully ping MongoDB.")
    mongo_uri_sanitized: str = Field(..., description="MongoDB URI with credentials masked.")
    mongo_db_name: str = Field(..., description="Database holding dashboards and data sources.")
    timestamp: str = Field(..., description="UTC timestamp when the check was performed (ISO string).")


class EngineConfigResponse(BaseModel):
    """Execution engine and data source cache settings (no secrets)."""

    engine_url: str = Field(..., description="Base URL of the query/expression engine.")
    engine_timeout_sec: int = Field(..., description="Per-evaluation engine timeout (seconds).")
    datasource_cache_ttl_sec: int = Field(..., description="Data source cache TTL (0 means disabled).")
    eval_debug: bool = Field(..., description="Whether engine requests carry the debug flag.")
    timestamp: Optional[str] = Field(default=None, description="UTC timestamp (ISO string).")


@router.get(
    "/",
    response_model=HealthResponse,
    summary="Health check",
    description="Basic service liveness check.",
    operation_id="health_check",
)
def health_check() -> HealthResponse:
    """Return service liveness status."""
    return HealthResponse(status="ok", timestamp=utc_now())


@router.get(
    "/api/health/mongo",
    response_model=MongoConnectivityResponse,
    summary="Mongo connectivity check",
    description="Pings the backend's configured MongoDB. Credentials are masked.",
    operation_id="mongo_connectivity_check",
)
def mongo_connectivity_check(request: Request) -> MongoConnectivityResponse:
    """Connectivity check endpoint to validate backend↔Mongo."""
    state = get_state(request.app)
    return MongoConnectivityResponse(
        ok=state.mongo.ping(),
        mongo_uri_sanitized=sanitize_mongo_uri(state.config.mongo_uri),
        mongo_db_name=state.config.mongo_db_name,
        timestamp=utc_now().isoformat(),
    )


@router.get(
    "/api/health/engine",
    response_model=EngineConfigResponse,
    summary="Execution engine settings",
    description="Reports the execution engine URL, timeout and data source cache settings.",
    operation_id="engine_config",
)
def engine_config(request: Request) -> EngineConfigResponse:
    """Return execution engine configuration diagnostics."""
    cfg = get_state(request.app).config
    return EngineConfigResponse(
        engine_url=cfg.engine_url,
        engine_timeout_sec=int(cfg.engine_timeout_sec),
        datasource_cache_ttl_sec=int(cfg.datasource_cache_ttl_sec),
        eval_debug=bool(cfg.eval_debug),
        timestamp=utc_now().isoformat(),
    )
