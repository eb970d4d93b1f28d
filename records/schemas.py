"""
WorkLedger Record Schemas
=========================
The entities served by the engine.

  work        uid, workstartdate, workenddate, workexperience
              indexed by workstartdate (index "workstartdate~uid");
              transfers change workexperience.

  workrecord  uid (32 chars), workexperience, applyDate, workStartDate,
              workEndDate (14 chars each, YYYYMMDDhhmmss), stamped with
              the writing member and the transaction time;
              indexed by workexperience (index "workexperience~uid");
              transfers change workStartDate.
"""

from typing import Dict

from storage.schema import AUTO_CALLER, AUTO_TIMESTAMP, Field, RecordSchema
from storage.types import DataType


WORK = RecordSchema(
    doc_type="work",
    key_field=Field("uid"),
    fields=[
        Field("workstartdate", lowercase=True),
        Field("workenddate", DataType.INT),
        Field("workexperience", lowercase=True),
    ],
    indexed_field="workstartdate",
    transfer_field="workexperience",
)

WORK_RECORD = RecordSchema(
    doc_type="workrecord",
    key_field=Field("uid", length=32),
    fields=[
        Field("workexperience"),
        Field("applyDate", length=14),
        Field("workStartDate", length=14),
        Field("workEndDate", length=14),
        Field("creator", auto=AUTO_CALLER),
        Field("timestamp", DataType.INT, auto=AUTO_TIMESTAMP),
    ],
    indexed_field="workexperience",
    transfer_field="workStartDate",
)

SCHEMAS: Dict[str, RecordSchema] = {
    WORK.doc_type: WORK,
    WORK_RECORD.doc_type: WORK_RECORD,
}


def get_schema(name: str) -> RecordSchema:
    """Look up a schema by docType. Raises ValueError if unknown."""
    try:
        return SCHEMAS[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown record schema: {name!r}. "
                         f"Available: {sorted(SCHEMAS)}")
