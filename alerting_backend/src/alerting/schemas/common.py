from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from src.alerting.services.errors import AlertingError


class HealthResponse(BaseModel):
    """Liveness of the evaluation service."""

    status: str = Field(..., description="'ok' while the process serves requests.")
    service: str = Field("alert-condition-evaluation", description="Service name.")
    timestamp: datetime = Field(..., description="UTC time of the check.")


class ErrorResponse(BaseModel):
    """Body returned for every failed evaluation."""

    detail: str = Field(..., description="Human-readable error message.")
    code: str = Field(..., description="Error kind, e.g. 'panel_not_found' or 'engine_execution_error'.")
    meta: Dict[str, Any] = Field(
        default_factory=dict, description="Context of the failure (dashboardId, panelId, refId, ...)."
    )

    @classmethod
    def from_error(cls, exc: AlertingError) -> "ErrorResponse":
        return cls(detail=str(exc), code=exc.code, meta=jsonable_encoder(exc.meta))


# PUBLIC_INTERFACE
def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)
