"""
WorkLedger In-Memory Substrate
==============================
Reference implementation of the ledger substrate: an ordered key-value
map with range and prefix iteration, JSON selector queries, and a
per-key version history.

Ordering:
  Keys are kept in a sorted list (bisect) next to the value map, so
  range scans are a slice of the key list.

Iteration:
  Every iterator snapshots the matching (key, value) pairs when it is
  created. Writes made while an iterator is being consumed are not seen
  by it, which is what makes "scan the index, update each record" safe.

Transactions:
  begin() → Transaction(tx_id, timestamp). Writes are applied
  immediately and recorded against the active transaction. rollback()
  restores the state captured at begin(). Writes outside an explicit
  transaction run in an implicit single-write transaction.
  Within one transaction, repeated writes to the same key leave a single
  history entry (the last write wins), as a committed block would.

Concurrency: single-threaded; one active transaction at a time.
"""

import bisect
import json
import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional, Sequence

from indexing import key_encoding
from ledger import selector
from ledger.errors import ErrorKind, LedgerError, invalid_argument
from ledger.substrate import KV, KeyModification, Substrate

logger = logging.getLogger(__name__)


class Transaction:
    """Bookkeeping for one ledger transaction."""
    __slots__ = ("tx_id", "timestamp", "state", "_snapshot")

    def __init__(self, tx_id: str, timestamp: datetime, snapshot: dict):
        self.tx_id = tx_id
        self.timestamp = timestamp
        self.state = "ACTIVE"
        self._snapshot = snapshot


class MemoryLedger(Substrate):
    """
    In-memory ordered key-value ledger.

    Usage:
        ledger = MemoryLedger(creator="User1@org1.example.com")
        with ledger.transaction():
            ledger.put_state("w1", b'{"docType":"work"}')
    """

    def __init__(self, creator: str = "", rich_query: bool = True):
        self._values: Dict[str, bytes] = {}
        self._keys: List[str] = []
        self._history: Dict[str, List[KeyModification]] = {}
        self._creator = creator
        self._active: Optional[Transaction] = None
        self.supports_rich_query = rich_query

    # ─── Transactions ───────────────────────────────────────────────

    def begin(self, tx_id: Optional[str] = None,
              timestamp: Optional[datetime] = None) -> Transaction:
        """Start a transaction. Only one may be active at a time."""
        if self._active is not None:
            raise LedgerError(ErrorKind.SUBSTRATE_FAILURE,
                              f"Transaction {self._active.tx_id} already active")
        txn = Transaction(
            tx_id=tx_id or uuid.uuid4().hex,
            timestamp=timestamp or datetime.now(timezone.utc),
            snapshot=self._snapshot(),
        )
        self._active = txn
        logger.debug("begin transaction %s", txn.tx_id)
        return txn

    def commit(self) -> None:
        txn = self._require_active()
        txn.state = "COMMITTED"
        txn._snapshot = {}
        self._active = None
        logger.debug("commit transaction %s", txn.tx_id)

    def rollback(self) -> None:
        """Discard every write made since begin()."""
        txn = self._require_active()
        self._restore(txn._snapshot)
        txn.state = "ABORTED"
        self._active = None
        logger.debug("rollback transaction %s", txn.tx_id)

    @contextmanager
    def transaction(self, tx_id: Optional[str] = None,
                    timestamp: Optional[datetime] = None) -> Iterator[Transaction]:
        """Commit on normal exit, roll back if the block raises."""
        txn = self.begin(tx_id, timestamp)
        try:
            yield txn
        except BaseException:
            if self._active is txn:
                self.rollback()
            raise
        if self._active is txn:
            self.commit()

    @property
    def active_transaction(self) -> Optional[Transaction]:
        return self._active

    def _require_active(self) -> Transaction:
        if self._active is None:
            raise LedgerError(ErrorKind.SUBSTRATE_FAILURE, "No active transaction")
        return self._active

    def _snapshot(self) -> dict:
        return {
            "values": dict(self._values),
            "keys": list(self._keys),
            "history": {k: list(v) for k, v in self._history.items()},
        }

    def _restore(self, snapshot: dict) -> None:
        self._values = snapshot["values"]
        self._keys = snapshot["keys"]
        self._history = snapshot["history"]

    # ─── Point operations ───────────────────────────────────────────

    def get_state(self, key: str) -> Optional[bytes]:
        _check_key(key)
        return self._values.get(key)

    def put_state(self, key: str, value: bytes) -> None:
        _check_key(key)
        if not isinstance(value, (bytes, bytearray)):
            raise invalid_argument(f"Value for key {key!r} must be bytes")
        if not value:
            raise invalid_argument(
                f"Empty value for key {key!r}; use del_state to remove a key")
        if key not in self._values:
            bisect.insort(self._keys, key)
        self._values[key] = bytes(value)
        self._record(key, bytes(value), is_delete=False)

    def del_state(self, key: str) -> None:
        _check_key(key)
        if key not in self._values:
            return
        del self._values[key]
        idx = bisect.bisect_left(self._keys, key)
        del self._keys[idx]
        self._record(key, None, is_delete=True)

    def _record(self, key: str, value: Optional[bytes], is_delete: bool) -> None:
        implicit = self._active is None
        txn = self._active or Transaction(uuid.uuid4().hex,
                                          datetime.now(timezone.utc), {})
        entries = self._history.setdefault(key, [])
        mod = KeyModification(tx_id=txn.tx_id, value=value,
                              timestamp=txn.timestamp, is_delete=is_delete)
        if entries and entries[-1].tx_id == txn.tx_id:
            entries[-1] = mod
        else:
            entries.append(mod)
        if implicit:
            logger.debug("implicit transaction %s for key %r", txn.tx_id, key)

    # ─── Iteration ──────────────────────────────────────────────────

    def get_state_by_range(self, start_key: str, end_key: str) -> Iterator[KV]:
        lo = bisect.bisect_left(self._keys, start_key)
        hi = len(self._keys) if end_key == "" else bisect.bisect_left(self._keys, end_key)
        snapshot = [KV(k, self._values[k]) for k in self._keys[lo:hi]]
        return iter(snapshot)

    def get_state_by_partial_composite_key(self, namespace: str,
                                           leading_segments: Sequence[str]) -> Iterator[KV]:
        start, end = key_encoding.prefix_range(namespace, leading_segments)
        return self.get_state_by_range(start, end)

    def get_query_result(self, query: str) -> Iterator[KV]:
        if not self.supports_rich_query:
            return super().get_query_result(query)
        spec = selector.parse_query(query)
        docs = []
        for key in self._keys:
            if key_encoding.is_composite(key):
                continue
            doc = _json_object(self._values[key])
            if doc is not None:
                docs.append((key, doc))
        results = selector.execute(spec, docs)
        return iter([KV(k, _encode_json(d)) for k, d in results])

    def get_history_for_key(self, key: str) -> Iterator[KeyModification]:
        _check_key(key)
        return iter(list(self._history.get(key, [])))

    # ─── Invocation metadata ────────────────────────────────────────

    def get_creator(self) -> str:
        return self._creator

    def set_creator(self, creator: str) -> None:
        self._creator = creator

    def get_tx_id(self) -> str:
        return self._require_active().tx_id

    def get_tx_timestamp(self) -> datetime:
        if self._active is None:
            return datetime.now(timezone.utc)
        return self._active.timestamp

    # ─── Introspection ──────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._keys)

    def keys(self) -> List[str]:
        return list(self._keys)


# ─── Helpers ────────────────────────────────────────────────────────────────

def _check_key(key: str) -> None:
    if not isinstance(key, str) or not key:
        raise invalid_argument("Key must be a non-empty string")


def _json_object(value: bytes) -> Optional[dict]:
    """Decode a stored value as a JSON object; None if it is not one."""
    try:
        doc = json.loads(value.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return None
    return doc if isinstance(doc, dict) else None


def _encode_json(doc: dict) -> bytes:
    return json.dumps(doc, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
