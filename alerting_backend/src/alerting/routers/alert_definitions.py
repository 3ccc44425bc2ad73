from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Header, Request

from src.alerting.schemas.alert_definitions import (
    EvalConditionRequest,
    EvalDashboardConditionRequest,
    EvalInstanceOut,
    EvalResponse,
)
from src.alerting.schemas.common import ErrorResponse
from src.alerting.schemas.eval import ExecutionContext, Results, SignedInUser
from src.alerting.schemas.frames import Frame
from src.alerting.services.evaluation import evaluate_condition, evaluate_dashboard_condition
from src.alerting.state import get_state

router = APIRouter(prefix="/api/alert-definitions", tags=["Alert definitions"])

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


def _signed_in_user(org_id: int, user_id: int, login: Optional[str]) -> SignedInUser:
    return SignedInUser(user_id=user_id, org_id=org_id, login=login or "")


def _to_response(results: Results, frame: Frame) -> EvalResponse:
    return EvalResponse(
        instances=[EvalInstanceOut(labels=r.instance, state=r.state) for r in results],
        frame=frame,
    )


@router.post(
    "/eval",
    response_model=EvalResponse,
    responses=_ERROR_RESPONSES,
    summary="Evaluate a dashboard panel condition",
    description=(
        "Loads the queries of a dashboard panel, executes them through the expression engine and "
        "returns the Normal/Alerting state of every instance of the selected RefID."
    ),
    operation_id="eval_dashboard_condition",
)
async def eval_dashboard_condition(
    request: Request,
    payload: EvalDashboardConditionRequest,
    x_org_id: int = Header(1, alias="X-Org-Id"),
    x_user_id: int = Header(0, alias="X-User-Id"),
    x_user_login: Optional[str] = Header(default=None, alias="X-User-Login"),
) -> EvalResponse:
    """Evaluate the condition stored in a dashboard panel."""
    state = get_state(request.app)
    ctx = ExecutionContext(
        user=_signed_in_user(x_org_id, x_user_id, x_user_login),
        timeout_sec=float(state.config.engine_timeout_sec),
    )
    results, frame = await evaluate_dashboard_condition(
        state.loader,
        state.executor,
        payload.dashboard_id,
        payload.panel_id,
        payload.ref_id,
        payload.from_,
        payload.to,
        ctx,
        skip_cache=payload.skip_cache,
    )
    return _to_response(results, frame)


@router.post(
    "/eval-condition",
    response_model=EvalResponse,
    responses=_ERROR_RESPONSES,
    summary="Evaluate an inline condition",
    description="Executes an already resolved condition and returns the state of every instance.",
    operation_id="eval_condition",
)
async def eval_inline_condition(
    request: Request,
    payload: EvalConditionRequest,
    x_org_id: int = Header(1, alias="X-Org-Id"),
    x_user_id: int = Header(0, alias="X-User-Id"),
    x_user_login: Optional[str] = Header(default=None, alias="X-User-Login"),
) -> EvalResponse:
    """Evaluate a condition given in the request body."""
    state = get_state(request.app)
    ctx = ExecutionContext(
        user=_signed_in_user(x_org_id, x_user_id, x_user_login),
        timeout_sec=float(state.config.engine_timeout_sec),
    )
    results, frame = await evaluate_condition(state.executor, payload.condition, payload.from_, payload.to, ctx)
    return _to_response(results, frame)
