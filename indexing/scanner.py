"""
WorkLedger Range Scanner
========================
Key-range iteration over records and prefix iteration over a secondary
index, plus the bulk transfer built on top of the index scan.

Scan safety:
  The host re-executes range and prefix scans when it commits, and
  invalidates the transaction if the result set changed in between.
  That makes these scans a safe basis for state-changing operations,
  unlike predicate queries (see query.executor).

Iterators are lazy, finite and one-shot: once consumed, issue the scan
again for another pass.

Bulk transfer is fail-fast and NOT atomic on its own: records updated
before the failing one keep their new value. BulkTransferError tells the
caller how many were transferred and which record failed.
"""

import logging
from typing import Any, Iterator, Sequence, Tuple

from indexing import key_encoding
from ledger.context import InvocationContext
from ledger.errors import BulkTransferError, ErrorKind, LedgerError, invalid_argument
from records.store import RecordStore
from storage.schema import Record
from storage.serializer import deserialize_record

logger = logging.getLogger(__name__)

# Start of the simple-key space: every composite key sorts below it.
SIMPLE_KEY_START = "\x01"


class RangeScanner:
    """
    Scans over the primary key space and the secondary index of one
    RecordStore.
    """

    def __init__(self, store: RecordStore):
        self.store = store

    # ─── Primary range ──────────────────────────────────────────────

    def scan_range(self, ctx: InvocationContext, start_key: str,
                   end_key: str) -> Iterator[Tuple[str, Record]]:
        """
        Yield (key, record) for primary keys in [start_key, end_key),
        ascending. Empty start_key = from the first key, empty end_key =
        unbounded. Composite (index) keys are never yielded.
        """
        for bound in (start_key, end_key):
            if key_encoding.is_composite(bound):
                raise invalid_argument(
                    f"Range bound {bound!r} is a composite key; use an index scan")
        start = start_key or SIMPLE_KEY_START
        return self._scan_range(ctx, start, end_key)

    def _scan_range(self, ctx: InvocationContext, start: str,
                    end: str) -> Iterator[Tuple[str, Record]]:
        for kv in ctx.substrate.get_state_by_range(start, end):
            if key_encoding.is_composite(kv.key):
                continue
            yield kv.key, deserialize_record(kv.value, self.store.schema)

    # ─── Index prefix ───────────────────────────────────────────────

    def scan_by_index_prefix(self, ctx: InvocationContext, index_name: str,
                             leading_segments: Sequence[str]) -> Iterator[str]:
        """
        Yield the record ids of every index entry whose leading segments
        match, in index order. The id is the trailing segment of the key.
        """
        # Validate before the generator is first pulled
        key_encoding.prefix(index_name, leading_segments)
        return self._scan_index(ctx, index_name, list(leading_segments))

    def _scan_index(self, ctx: InvocationContext, index_name: str,
                    leading_segments: Sequence[str]) -> Iterator[str]:
        it = ctx.substrate.get_state_by_partial_composite_key(index_name, leading_segments)
        for kv in it:
            namespace, segments = key_encoding.decode(kv.key)
            if not segments:
                raise LedgerError(
                    ErrorKind.MALFORMED_KEY,
                    f"Index key in {namespace!r} carries no record id")
            logger.debug("found %s from index %s: %s", segments[-1], namespace,
                         segments[:-1])
            yield segments[-1]

    # ─── Bulk transfer ──────────────────────────────────────────────

    def transfer_by_index(self, ctx: InvocationContext, index_name: str,
                          leading_segments: Sequence[str], field_name: str,
                          new_value: Any) -> int:
        """
        Set field_name to new_value on every record found under the index
        prefix. Stops at the first failure and raises BulkTransferError;
        returns the number of records transferred on success.
        """
        logger.debug("start transfer on %s%s: %s=%r", index_name,
                     list(leading_segments), field_name, new_value)
        transferred = 0
        for record_id in self.scan_by_index_prefix(ctx, index_name, leading_segments):
            try:
                self.store.update_field(ctx, record_id, field_name, new_value)
            except LedgerError as e:
                logger.warning("transfer stopped at %s after %d record(s): %s",
                               record_id, transferred, e.message)
                raise BulkTransferError(record_id, transferred, e) from e
            transferred += 1
        logger.info("transferred %d record(s) on %s%s", transferred, index_name,
                    list(leading_segments))
        return transferred
