"""
WorkLedger Record Store
=======================
Record lifecycle on the ledger: create, read, update a field, delete,
with maintenance of one secondary index entry per record.

Write order:
  create → primary entry, then index entry
  delete → read (to recover the indexed value), primary delete,
           then index delete

Neither pair of writes is atomic from the store's point of view; if the
host wraps the invocation in a transaction, that transaction is what
makes them atomic. When the second write fails after the first one
succeeded, the store raises IndexInconsistency. It never attempts a
repair.

Index drift on update:
  update_field does NOT re-key the index entry, even when the updated
  field is the indexed one. After such an update the old index entry
  still points at the record and no entry exists for the new value.
  Pass rekey_index=True to move the index entry along with the value.
"""

import logging
from datetime import datetime
from typing import Any, Dict

from indexing import index_manager, key_encoding
from ledger.context import InvocationContext
from ledger.errors import ErrorKind, LedgerError, invalid_argument, not_found
from storage.schema import AUTO_CALLER, AUTO_TIMESTAMP, Record, RecordSchema
from storage.serializer import deserialize_record, serialize_record

logger = logging.getLogger(__name__)


class RecordStore:
    """
    Owns the primary key space of one record schema.

    Usage:
        store = RecordStore(WORK)
        store.create(ctx, "w1", {"workstartdate": "blue",
                                 "workenddate": "35",
                                 "workexperience": "tom"})
        store.read(ctx, "w1").get("workexperience")   # "tom"
    """

    def __init__(self, schema: RecordSchema, *, rekey_index: bool = False):
        self.schema = schema
        self.rekey_index = rekey_index

    # ─── Create / Read ──────────────────────────────────────────────

    def create(self, ctx: InvocationContext, record_id: str,
               values: Dict[str, Any]) -> Record:
        """
        Create a record and its index entry.
        Raises AlreadyExists if record_id is taken.
        """
        logger.debug("start create %s %s", self.schema.doc_type, record_id)
        doc = self.schema.build(record_id, values, self._auto_values(ctx))
        record = Record(self.schema, doc)
        self._check_primary_key(record.record_id)
        # Fails with InvalidArgument before anything is written
        index_manager.index_key(record)

        if ctx.substrate.get_state(record.record_id) is not None:
            raise LedgerError(ErrorKind.ALREADY_EXISTS,
                              f"This {self.schema.doc_type} already exists: {record.record_id}",
                              record_id=record.record_id)

        ctx.substrate.put_state(record.record_id, serialize_record(record))
        try:
            index_manager.put_index_entry(ctx, record)
        except Exception as e:
            raise LedgerError(
                ErrorKind.INDEX_INCONSISTENCY,
                f"{self.schema.doc_type} {record.record_id} was written but its "
                f"{self.schema.index_name} index entry was not: {e}",
                record_id=record.record_id) from e

        logger.debug("end create %s %s", self.schema.doc_type, record.record_id)
        return record

    def read(self, ctx: InvocationContext, record_id: str) -> Record:
        """Read a record. Raises NotFound if absent."""
        data = ctx.substrate.get_state(record_id)
        if data is None:
            raise not_found(f"{self.schema.doc_type.capitalize()} does not exist: {record_id}",
                            record_id=record_id)
        return deserialize_record(data, self.schema)

    def exists(self, ctx: InvocationContext, record_id: str) -> bool:
        return ctx.substrate.get_state(record_id) is not None

    # ─── Update ─────────────────────────────────────────────────────

    def update_field(self, ctx: InvocationContext, record_id: str,
                     field_name: str, new_value: Any) -> Record:
        """
        Read-modify-write one field of a record.

        The index entry is left alone unless rekey_index is set, so
        updating the indexed field leaves a stale entry behind.
        """
        f = self.schema.get_field(field_name)
        if f is self.schema.key_field or f.auto:
            raise invalid_argument(f"Field '{field_name}' cannot be updated")
        value = f.normalize(new_value)

        old = self.read(ctx, record_id)
        new = old.with_value(field_name, value)
        if field_name == self.schema.indexed_field:
            # Fails with InvalidArgument before anything is written
            index_manager.index_key(new)
        ctx.substrate.put_state(record_id, serialize_record(new))

        if self.rekey_index and field_name == self.schema.indexed_field:
            try:
                index_manager.rekey_index_entry(ctx, old, new)
            except Exception as e:
                raise LedgerError(
                    ErrorKind.INDEX_INCONSISTENCY,
                    f"{self.schema.doc_type} {record_id} was updated but its "
                    f"{self.schema.index_name} index entry was not moved: {e}",
                    record_id=record_id) from e

        logger.debug("updated %s %s: %s=%r", self.schema.doc_type, record_id,
                     field_name, value)
        return new

    # ─── Delete ─────────────────────────────────────────────────────

    def delete(self, ctx: InvocationContext, record_id: str) -> Record:
        """
        Delete a record and its index entry. Returns the deleted record.

        Raises NotFound if absent, IndexInconsistency if the primary entry
        was removed but the index entry could not be.
        """
        record = self.read(ctx, record_id)
        ctx.substrate.del_state(record_id)
        try:
            index_manager.delete_index_entry(ctx, record)
        except Exception as e:
            raise LedgerError(
                ErrorKind.INDEX_INCONSISTENCY,
                f"{self.schema.doc_type} {record_id} was deleted but its "
                f"{self.schema.index_name} index entry remains: {e}",
                record_id=record_id) from e
        logger.debug("deleted %s %s", self.schema.doc_type, record_id)
        return record

    # ─── Helpers ────────────────────────────────────────────────────

    def _auto_values(self, ctx: InvocationContext) -> Dict[str, Any]:
        ts: datetime = ctx.substrate.get_tx_timestamp()
        return {
            AUTO_CALLER: ctx.caller,
            AUTO_TIMESTAMP: int(ts.timestamp()),
        }

    @staticmethod
    def _check_primary_key(record_id: str) -> None:
        if not record_id:
            raise invalid_argument("Record id must be a non-empty string")
        if key_encoding.is_composite(record_id):
            raise invalid_argument(
                f"Record id {record_id!r} collides with the composite key namespace")
