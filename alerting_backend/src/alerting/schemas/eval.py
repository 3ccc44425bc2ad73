from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.alerting.schemas.frames import Frame

# Datasource name that marks a target as an expression run inside the execution engine.
EXPRESSION_DATASOURCE_NAME = "__expr__"
EXPRESSION_DATASOURCE_ID = -100

DEFAULT_REF_ID = "A"
DEFAULT_MAX_DATA_POINTS = 100
DEFAULT_INTERVAL_MS = 1000
DEFAULT_ORG_ID = 0


class DataSourceIdentity(BaseModel):
    """Concrete data source a query runs against."""

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(..., description="Numeric data source id.")
    uid: str = Field("", description="Data source uid.")
    name: str = Field(..., description="Display name.")
    type: str = Field("", description="Plugin type (e.g. 'prometheus').")
    org_id: int = Field(0, description="Owning organization id.", alias="orgId")


EXPRESSION_DATASOURCE = DataSourceIdentity(
    id=EXPRESSION_DATASOURCE_ID,
    uid=EXPRESSION_DATASOURCE_NAME,
    name=EXPRESSION_DATASOURCE_NAME,
    type=EXPRESSION_DATASOURCE_NAME,
)


class Query(BaseModel):
    """
    A fully resolved query or expression.

    Named fields are the ones the evaluation core inspects; everything else from the stored
    target travels untouched in `model` and is handed to the execution engine as-is.
    """

    model_config = ConfigDict(populate_by_name=True)

    ref_id: str = Field(DEFAULT_REF_ID, description="Reference id, unique within a condition.", alias="refId")
    datasource: str = Field(..., description="Declared data source name.")
    datasource_id: int = Field(..., description="Resolved data source id.", alias="datasourceId")
    org_id: int = Field(DEFAULT_ORG_ID, alias="orgId")
    max_data_points: int = Field(DEFAULT_MAX_DATA_POINTS, alias="maxDataPoints")
    interval_ms: int = Field(DEFAULT_INTERVAL_MS, alias="intervalMs")
    query_type: str = Field("", alias="queryType")
    model: Dict[str, Any] = Field(default_factory=dict, description="Engine-specific pass-through parameters.")
    data_source: Optional[DataSourceIdentity] = Field(
        default=None, description="Resolved data source identity.", alias="dataSource"
    )

    def is_expression(self) -> bool:
        return self.datasource == EXPRESSION_DATASOURCE_NAME

    def to_engine_json(self) -> Dict[str, Any]:
        """Merge pass-through parameters with the resolved named fields (named fields win)."""
        doc = dict(self.model)
        doc.update(
            {
                "refId": self.ref_id,
                "datasource": self.datasource,
                "datasourceId": self.datasource_id,
                "orgId": self.org_id,
                "maxDataPoints": self.max_data_points,
                "intervalMs": self.interval_ms,
                "queryType": self.query_type,
            }
        )
        return doc


class Condition(BaseModel):
    """Queries and expressions plus the RefID of the one holding the condition's truth value."""

    model_config = ConfigDict(populate_by_name=True)

    ref_id: str = Field(..., description="RefID of the query/expression to evaluate.", alias="refId")
    queries: List[Query] = Field(default_factory=list, alias="queriesAndExpressions")

    def is_valid(self) -> bool:
        return len(self.queries) != 0


@dataclass(frozen=True)
class SignedInUser:
    """Caller identity forwarded to the data source directory and execution engine."""

    user_id: int = 0
    org_id: int = 1
    login: str = ""


@dataclass(frozen=True)
class TimeRange:
    raw_from: str
    raw_to: str
    from_dt: datetime
    to_dt: datetime

    def from_ms(self) -> int:
        return int(self.from_dt.timestamp() * 1000)

    def to_ms(self) -> int:
        return int(self.to_dt.timestamp() * 1000)


@dataclass(frozen=True)
class ExecutionRequest:
    queries: List[Query]
    time_range: TimeRange
    user: SignedInUser
    debug: bool = True


@dataclass
class ExecutionContext:
    """Context for executing one alert condition."""

    user: SignedInUser
    alert_definition_id: Optional[int] = None
    timeout_sec: Optional[float] = None
    # Setting the event aborts an in-flight engine call.
    cancel_event: Optional[asyncio.Event] = None


@dataclass(frozen=True)
class ExecutionResults:
    """Unevaluated frames produced by executing a condition."""

    alert_definition_id: Optional[int] = None
    error: Optional[Exception] = None
    results: List[Frame] = field(default_factory=list)


class State(str, Enum):
    """Evaluation state of an alert instance."""

    # The condition value was exactly zero.
    normal = "Normal"
    # Anything else: nonzero, missing or unreadable values.
    alerting = "Alerting"


@dataclass(frozen=True)
class Result:
    """Evaluated state of one alert instance, identified by its labels."""

    instance: Dict[str, str]
    state: State


Results = List[Result]
