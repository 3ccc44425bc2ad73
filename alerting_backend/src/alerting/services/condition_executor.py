from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, TypeVar

from src.alerting.schemas.eval import Condition, ExecutionContext, ExecutionRequest, ExecutionResults
from src.alerting.schemas.frames import decode_frames
from src.alerting.services.errors import (
    DecodeError,
    EngineExecutionError,
    ExecutionError,
    InvalidConditionError,
    MissingResultError,
    ResultDecodeError,
)
from src.alerting.services.ports import ExecutionEngine
from src.alerting.services.time_range import parse_time_range

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=ExecutionError)


class _Cancelled(Exception):
    pass


def _with_results(err: E, ctx: ExecutionContext) -> E:
    """Attach an ExecutionResults carrying `err` so callers can inspect the failed execution."""
    err.results = ExecutionResults(alert_definition_id=ctx.alert_definition_id, error=err)
    return err


class ConditionExecutor:
    """Runs a Condition's queries and expressions through the execution engine, exactly once."""

    def __init__(self, engine: ExecutionEngine, debug: bool = True):
        self._engine = engine
        self._debug = debug

    async def _run_engine(self, request: ExecutionRequest, ctx: ExecutionContext) -> Dict[str, Any]:
        run_task = asyncio.ensure_future(self._engine.run(request))
        waiters = {run_task}
        cancel_task = None
        if ctx.cancel_event is not None:
            cancel_task = asyncio.ensure_future(ctx.cancel_event.wait())
            waiters.add(cancel_task)

        try:
            done, _ = await asyncio.wait(waiters, timeout=ctx.timeout_sec, return_when=asyncio.FIRST_COMPLETED)
        finally:
            pending = [t for t in waiters if not t.done()]
            for t in pending:
                t.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        if run_task in done:
            return run_task.result()
        if cancel_task is not None and cancel_task in done:
            raise _Cancelled()
        raise asyncio.TimeoutError()

    # PUBLIC_INTERFACE
    async def execute(self, condition: Condition, from_str: str, to_str: str, ctx: ExecutionContext) -> ExecutionResults:
        """
        Execute the condition over [from_str, to_str] and return the frames of its output RefID.

        Failures raise an ExecutionError subclass whose `results` attribute holds an
        ExecutionResults with `error` set and no frames.
        """
        if not condition.is_valid():
            raise InvalidConditionError(
                "invalid condition: no queries or expressions",
                ref_id=condition.ref_id,
                alert_definition_id=ctx.alert_definition_id,
            )

        request = ExecutionRequest(
            queries=list(condition.queries),
            time_range=parse_time_range(from_str, to_str),
            user=ctx.user,
            debug=self._debug,
        )

        try:
            resp = await self._run_engine(request, ctx)
        except asyncio.TimeoutError as e:
            raise _with_results(
                EngineExecutionError(
                    f"condition execution timed out after {ctx.timeout_sec}s",
                    ref_id=condition.ref_id,
                    alert_definition_id=ctx.alert_definition_id,
                ),
                ctx,
            ) from e
        except _Cancelled as e:
            raise _with_results(
                EngineExecutionError(
                    "condition execution was cancelled",
                    ref_id=condition.ref_id,
                    alert_definition_id=ctx.alert_definition_id,
                ),
                ctx,
            ) from e
        except Exception as e:
            raise _with_results(
                EngineExecutionError(
                    f"failed to execute condition: {e}",
                    ref_id=condition.ref_id,
                    alert_definition_id=ctx.alert_definition_id,
                ),
                ctx,
            ) from e

        if not isinstance(resp, dict):
            raise _with_results(
                ResultDecodeError(
                    "execution engine returned a malformed response",
                    ref_id=condition.ref_id,
                    alert_definition_id=ctx.alert_definition_id,
                    observed=type(resp).__name__,
                ),
                ctx,
            )

        sub_result = resp.get(condition.ref_id)
        if sub_result is None:
            raise _with_results(
                MissingResultError(
                    f"no results for condition refId {condition.ref_id!r}",
                    ref_id=condition.ref_id,
                    alert_definition_id=ctx.alert_definition_id,
                    available_ref_ids=sorted(resp),
                ),
                ctx,
            )

        try:
            frames = decode_frames(sub_result)
        except DecodeError as e:
            raise _with_results(
                ResultDecodeError(
                    f"failed to decode results for refId {condition.ref_id!r}: {e}",
                    ref_id=condition.ref_id,
                    alert_definition_id=ctx.alert_definition_id,
                    **e.meta,
                ),
                ctx,
            ) from e

        logger.info(
            "Executed condition refId=%s alertDefinitionId=%s queries=%d frames=%d",
            condition.ref_id,
            ctx.alert_definition_id,
            len(request.queries),
            len(frames),
        )
        return ExecutionResults(alert_definition_id=ctx.alert_definition_id, results=frames)
