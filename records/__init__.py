"""
WorkLedger Records Module
=========================
Record lifecycle over the ledger substrate.

Components:
  - store: RecordStore (create / read / update_field / delete + index upkeep)
  - schemas: the work and workrecord entity definitions
"""

from records.store import RecordStore
from records.schemas import WORK, WORK_RECORD, SCHEMAS, get_schema

__all__ = ["RecordStore", "WORK", "WORK_RECORD", "SCHEMAS", "get_schema"]
