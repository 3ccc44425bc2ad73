from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, Field as PydanticField, ValidationError

from src.alerting.services.errors import DecodeError


class FieldType(str, Enum):
    """Value type tags for frame fields (wire names used by the execution engine)."""

    float64 = "float64"
    nullable_float64 = "nullable_float64"
    int64 = "int64"
    nullable_int64 = "nullable_int64"
    bool = "bool"
    nullable_bool = "nullable_bool"
    string = "string"
    nullable_string = "nullable_string"
    time = "time"
    nullable_time = "nullable_time"


class Field(BaseModel):
    """A named, labeled column of values."""

    name: str = PydanticField("", description="Field name.")
    type: FieldType = PydanticField(..., description="Value type of the field.")
    labels: Dict[str, str] = PydanticField(default_factory=dict, description="Label set identifying the series.")
    values: List[Any] = PydanticField(default_factory=list, description="Column values.")

    def __len__(self) -> int:
        return len(self.values)

    def labels_key(self) -> str:
        """Canonical string form of the label set: sorted `k=v` pairs joined by `, `."""
        return ", ".join(f"{k}={self.labels[k]}" for k in sorted(self.labels))

    def float_at(self, idx: int) -> float:
        """
        Return the value at idx as a float.

        Raises ValueError when the value is missing or cannot be read as a number.
        """
        raw = self.values[idx]
        if raw is None:
            raise ValueError(f"field {self.name!r} has no value at row {idx}")
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise ValueError(f"field {self.name!r} holds a non-numeric {type(raw).__name__} at row {idx}")
        return float(raw)


class Frame(BaseModel):
    """A named collection of equal-length fields."""

    name: str = PydanticField("", description="Frame name.")
    fields: List[Field] = PydanticField(default_factory=list, description="Frame columns.")

    def row_len(self) -> int:
        """Number of rows; raises ValueError when fields have unequal lengths."""
        if not self.fields:
            return 0
        lengths = {len(f) for f in self.fields}
        if len(lengths) > 1:
            raise ValueError(f"frame {self.name!r} has fields of unequal length {sorted(lengths)}")
        return lengths.pop()


# PUBLIC_INTERFACE
def decode_frames(raw: Any) -> List[Frame]:
    """
    Decode an engine sub-result into frames.

    Accepts either `{"frames": [...]}` or a bare list of frame documents.
    """
    docs = raw.get("frames") if isinstance(raw, dict) else raw
    if docs is None:
        docs = []
    if not isinstance(docs, list):
        raise DecodeError("sub-result frames must be a list", observed=type(docs).__name__)
    try:
        return [Frame.model_validate(d) for d in docs]
    except ValidationError as e:
        raise DecodeError(f"unable to decode result frames: {e.error_count()} validation error(s)", errors=str(e)) from e
