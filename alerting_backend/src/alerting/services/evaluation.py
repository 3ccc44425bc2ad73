from __future__ import annotations

import asyncio
from typing import Tuple

from src.alerting.schemas.eval import Condition, ExecutionContext, Results
from src.alerting.schemas.frames import Frame
from src.alerting.services.condition_executor import ConditionExecutor
from src.alerting.services.condition_loader import ConditionLoader
from src.alerting.services.result_evaluator import evaluate_execution_result
from src.alerting.services.result_presenter import as_frame


# PUBLIC_INTERFACE
async def evaluate_condition(
    executor: ConditionExecutor,
    condition: Condition,
    from_str: str,
    to_str: str,
    ctx: ExecutionContext,
) -> Tuple[Results, Frame]:
    """Execute, evaluate and present an already resolved condition."""
    exec_results = await executor.execute(condition, from_str, to_str, ctx)
    results = evaluate_execution_result(exec_results)
    return results, as_frame(results)


# PUBLIC_INTERFACE
async def evaluate_dashboard_condition(
    loader: ConditionLoader,
    executor: ConditionExecutor,
    dashboard_id: int,
    panel_id: int,
    ref_id: str,
    from_str: str,
    to_str: str,
    ctx: ExecutionContext,
    skip_cache: bool = False,
) -> Tuple[Results, Frame]:
    """Load the condition of a dashboard panel, then execute, evaluate and present it."""
    # Loader collaborators are blocking (pymongo); keep them off the event loop.
    condition = await asyncio.to_thread(loader.load, dashboard_id, panel_id, ref_id, ctx.user, skip_cache)
    return await evaluate_condition(executor, condition, from_str, to_str, ctx)
