from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field

from src.alerting.schemas.eval import Condition, State
from src.alerting.schemas.frames import Frame


class EvalDashboardConditionRequest(BaseModel):
    """Request model for evaluating the condition stored in a dashboard panel."""

    model_config = ConfigDict(populate_by_name=True)

    dashboard_id: int = Field(..., description="Dashboard holding the queries.", alias="dashboardId")
    panel_id: int = Field(..., description="Panel whose targets form the condition.", alias="panelId")
    ref_id: str = Field(..., min_length=1, description="RefID of the query/expression to evaluate.", alias="refId")
    from_: str = Field("now-5m", description="Range start (now-5m, epoch ms or ISO-8601).", alias="from")
    to: str = Field("now", description="Range end (now, epoch ms or ISO-8601).")
    skip_cache: bool = Field(False, description="Bypass the data source cache.", alias="skipCache")


class EvalConditionRequest(BaseModel):
    """Request model for evaluating an inline, already resolved condition."""

    model_config = ConfigDict(populate_by_name=True)

    condition: Condition = Field(..., description="Resolved queries/expressions and output RefID.")
    from_: str = Field("now-5m", alias="from")
    to: str = Field("now")


class EvalInstanceOut(BaseModel):
    """Evaluated state of one alert instance."""

    labels: Dict[str, str] = Field(default_factory=dict, description="Instance label set.")
    state: State = Field(..., description="Normal or Alerting.")


class EvalResponse(BaseModel):
    """Evaluation outcome: per-instance states plus a display frame."""

    instances: List[EvalInstanceOut] = Field(..., description="Instances in result frame order.")
    frame: Frame = Field(..., description="One bool column per instance (true = alerting).")
