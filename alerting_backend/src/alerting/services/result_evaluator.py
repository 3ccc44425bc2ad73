from __future__ import annotations

import logging
from typing import List, Set

from src.alerting.schemas.eval import ExecutionResults, Result, Results, State
from src.alerting.schemas.frames import Field, FieldType
from src.alerting.services.errors import DuplicateInstanceError, InvalidFrameShapeError, InvalidFrameTypeError

logger = logging.getLogger(__name__)


def _state_of(field: Field) -> State:
    # Missing or unreadable values alert rather than silently resolving to normal.
    try:
        val = field.float_at(0)
    except (ValueError, TypeError, IndexError):
        return State.alerting
    return State.normal if val == 0 else State.alerting


# PUBLIC_INTERFACE
def evaluate_execution_result(results: ExecutionResults) -> Results:
    """
    Reduce execution frames to one Result per alert instance.

    Every frame must hold exactly one row and one nullable float64 field, and every
    field's label set must be unique across the frames. The first violation aborts
    the evaluation; no partial results are returned.
    """
    eval_results: List[Result] = []
    seen_labels: Set[str] = set()

    for frame in results.results:
        try:
            row_len = frame.row_len()
        except ValueError as e:
            raise InvalidFrameShapeError(f"invalid frame {frame.name}: {e}", frame=frame.name) from e
        if row_len != 1:
            raise InvalidFrameShapeError(
                f"invalid frame {frame.name}: row length {row_len}", frame=frame.name, row_length=row_len
            )

        if len(frame.fields) != 1:
            raise InvalidFrameShapeError(
                f"invalid frame {frame.name}: field length {len(frame.fields)}",
                frame=frame.name,
                field_length=len(frame.fields),
            )

        field = frame.fields[0]
        if field.type != FieldType.nullable_float64:
            raise InvalidFrameTypeError(
                f"invalid frame {frame.name}: field type {field.type.value}", frame=frame.name, field_type=field.type.value
            )

        labels_key = field.labels_key()
        if labels_key in seen_labels:
            raise DuplicateInstanceError(
                f"invalid frame {frame.name}: frames cannot uniquely be identified by its labels: {labels_key!r}",
                frame=frame.name,
                labels=labels_key,
            )
        seen_labels.add(labels_key)

        eval_results.append(Result(instance=dict(field.labels), state=_state_of(field)))

    logger.debug(
        "Evaluated alertDefinitionId=%s instances=%d alerting=%d",
        results.alert_definition_id,
        len(eval_results),
        sum(1 for r in eval_results if r.state != State.normal),
    )
    return eval_results
