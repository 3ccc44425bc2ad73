from __future__ import annotations

import logging
import os
from typing import List

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.alerting.config import load_config
from src.alerting.routers import alert_definitions, health
from src.alerting.schemas.common import ErrorResponse
from src.alerting.services.errors import (
    AlertingError,
    DecodeError,
    DuplicateInstanceError,
    EngineExecutionError,
    InvalidConditionError,
    InvalidFrameShapeError,
    InvalidFrameTypeError,
    InvalidTimeRangeError,
    MissingDataSourceError,
    MissingResultError,
    NotFoundError,
    StorageError,
)
from src.alerting.state import get_state, init_state

openapi_tags = [
    {"name": "Health", "description": "Service health and diagnostics."},
    {"name": "Alert definitions", "description": "Evaluate alert conditions into per-instance states."},
]

logger = logging.getLogger(__name__)

# Checked in order; the first matching class wins.
_ERROR_STATUS = (
    (NotFoundError, 404),
    (StorageError, 503),
    (EngineExecutionError, 502),
    (MissingResultError, 422),
    (InvalidFrameShapeError, 422),
    (InvalidFrameTypeError, 422),
    (DuplicateInstanceError, 422),
    (MissingDataSourceError, 400),
    (InvalidConditionError, 400),
    (InvalidTimeRangeError, 400),
    (DecodeError, 400),
)


def error_status(exc: AlertingError) -> int:
    """HTTP status code for an evaluation error."""
    for cls, code in _ERROR_STATUS:
        if isinstance(exc, cls):
            return code
    return 500


app = FastAPI(
    title="Alert Condition Evaluation API",
    description=(
        "Resolves dashboard panel queries into alert conditions, executes them through the "
        "query/expression engine and reduces the results into Normal/Alerting instance states."
    ),
    version="0.1.0",
    openapi_tags=openapi_tags,
)

# Initialize typed app state (config + Mongo-backed loader + engine-backed executor)
init_state(app, load_config())


@app.exception_handler(AlertingError)
async def _alerting_error_handler(request: Request, exc: AlertingError) -> JSONResponse:
    status_code = error_status(exc)
    logger.warning("Evaluation failed path=%s code=%s status=%s: %s", request.url.path, exc.code, status_code, exc)
    return JSONResponse(status_code=status_code, content=ErrorResponse.from_error(exc).model_dump())


@app.on_event("startup")
async def _on_startup() -> None:
    """Startup hook: connect to Mongo, validate connectivity and ensure indexes."""
    state = get_state(app)

    # Connect + verify early so misconfigured Mongo doesn't surface as per-request storage errors.
    state.mongo.connect()
    if not state.mongo.ping():
        raise RuntimeError("Mongo connectivity check failed during startup. Verify BACKEND_MONGO_URI.")
    state.mongo.init_indexes()


@app.on_event("shutdown")
async def _on_shutdown() -> None:
    """Shutdown hook: close the engine client and Mongo connections."""
    state = get_state(app)

    aclose = getattr(state.engine, "aclose", None)
    if aclose is not None:
        try:
            await aclose()
        except Exception:
            logger.exception("Error closing execution engine client")

    state.mongo.close()


def _env_cors_origins() -> List[str]:
    # Comma-separated list of allowed frontend origins.
    raw = os.getenv("CORS_ALLOW_ORIGINS") or ""
    return [p.strip() for p in raw.split(",") if p.strip()]


allowed_origins: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
allowed_origins.extend(o for o in _env_cors_origins() if o not in allowed_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(alert_definitions.router)
