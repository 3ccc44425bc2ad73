from __future__ import annotations

from src.alerting.schemas.eval import Results, State
from src.alerting.schemas.frames import Field, FieldType, Frame


# PUBLIC_INTERFACE
def as_frame(results: Results) -> Frame:
    """
    Project evaluated results into a single frame for display.

    One bool column per alert instance (labels = instance labels, value = whether it is
    alerting), so a table renders one row with a column per instance.
    """
    fields = [
        Field(name="", type=FieldType.bool, labels=dict(r.instance), values=[r.state != State.normal])
        for r in results
    ]
    return Frame(name="", fields=fields)
