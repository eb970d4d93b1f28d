"""
WorkLedger Index Manager
========================
Secondary index entry lifecycle: derive the index key of a record, write
it, remove it, move it.

An index entry is a normal key/value pair whose key is the composite key
  (index_name, indexed_value, record_id)
and whose value is a one-byte marker. Existence is the only signal; the
marker is never read back. A zero byte is used rather than an empty value
because an empty value would read as a delete on the ledger.

Concurrency: single-writer assumed.
"""

import logging

from indexing import key_encoding
from ledger.context import InvocationContext
from storage.schema import Record

logger = logging.getLogger(__name__)

INDEX_MARKER = b"\x00"


def index_key(record: Record) -> str:
    """Composite key of the index entry for a record's current indexed value."""
    schema = record.schema
    return key_encoding.encode(schema.index_name,
                               [str(record.indexed_value), record.record_id])


def put_index_entry(ctx: InvocationContext, record: Record) -> str:
    """Write the index entry for a record. Returns the index key."""
    key = index_key(record)
    ctx.substrate.put_state(key, INDEX_MARKER)
    logger.debug("indexed %s under %s=%r", record.record_id,
                 record.schema.indexed_field, record.indexed_value)
    return key


def delete_index_entry(ctx: InvocationContext, record: Record) -> str:
    """Remove the index entry for a record. Returns the index key."""
    key = index_key(record)
    ctx.substrate.del_state(key)
    logger.debug("unindexed %s from %s=%r", record.record_id,
                 record.schema.indexed_field, record.indexed_value)
    return key


def rekey_index_entry(ctx: InvocationContext, old: Record, new: Record) -> None:
    """Move a record's index entry from its old indexed value to the new one."""
    if index_key(old) == index_key(new):
        return
    delete_index_entry(ctx, old)
    put_index_entry(ctx, new)
