from __future__ import annotations

from typing import Any, Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from src.alerting.schemas.eval import ExecutionResults


class AlertingError(Exception):
    """
    Base class for every error raised by the condition evaluation pipeline.

    Each error carries a machine-readable `code` and a `meta` dict with the context
    needed to diagnose the failure without re-running the evaluation.
    """

    code = "alerting_error"

    def __init__(self, message: str, **meta: Any):
        super().__init__(message)
        self.message = message
        self.meta: Dict[str, Any] = meta

    def __str__(self) -> str:
        return self.message


class StorageError(AlertingError):
    code = "storage_error"


class DecodeError(AlertingError):
    code = "decode_error"


class NotFoundError(AlertingError):
    code = "not_found"


class DashboardNotFoundError(NotFoundError):
    code = "dashboard_not_found"


class PanelNotFoundError(NotFoundError):
    code = "panel_not_found"


class MissingDataSourceError(AlertingError):
    code = "missing_datasource"


class DataSourceNotFoundError(MissingDataSourceError):
    code = "datasource_not_found"


class InvalidConditionError(AlertingError):
    code = "invalid_condition"


class InvalidTimeRangeError(AlertingError):
    code = "invalid_time_range"


class ExecutionError(AlertingError):
    """Errors raised while executing a condition; `results` keeps partial diagnostics."""

    def __init__(self, message: str, results: Optional["ExecutionResults"] = None, **meta: Any):
        super().__init__(message, **meta)
        self.results = results


class EngineExecutionError(ExecutionError):
    code = "engine_execution_error"


class MissingResultError(ExecutionError):
    code = "missing_result"


class ResultDecodeError(ExecutionError, DecodeError):
    code = "decode_error"


class InvalidFrameShapeError(AlertingError):
    code = "invalid_frame_shape"


class InvalidFrameTypeError(AlertingError):
    code = "invalid_frame_type"


class DuplicateInstanceError(AlertingError):
    code = "duplicate_instance"
