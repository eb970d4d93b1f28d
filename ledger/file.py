"""
WorkLedger File Substrate
=========================
MemoryLedger persisted as a single JSON document (ledger.json).

Loaded into memory on open; written back after every committed
transaction (and after every implicit single-write transaction).

Safety guarantees:
  - Atomic writes: the ledger is written to a temp file in the same
    directory, then renamed over the old file with os.replace. A crash
    mid-write leaves the previous version intact.
  - A rolled-back transaction is never written.

File layout:
  {"magic": "WorkLedger", "format_version": 1,
   "state":   {key: base64(value), ...},
   "history": {key: [{"tx_id", "value", "timestamp", "is_delete"}, ...]}}
"""

import base64
import json
import logging
import os
import tempfile
from datetime import datetime
from typing import Optional

from ledger.errors import ErrorKind, LedgerError
from ledger.memory import MemoryLedger
from ledger.substrate import KeyModification

logger = logging.getLogger(__name__)

LEDGER_MAGIC = "WorkLedger"
LEDGER_FORMAT_VERSION = 1
LEDGER_FILE_NAME = "ledger.json"


class FileLedger(MemoryLedger):
    """
    File-backed ledger.

    Usage:
        ledger = FileLedger("path/to/data")
        with ledger.transaction():
            ledger.put_state("w1", b"...")
        # ledger.json now holds w1
    """

    def __init__(self, data_dir: str, creator: str = "", rich_query: bool = True):
        super().__init__(creator=creator, rich_query=rich_query)
        self._data_dir = os.path.abspath(data_dir)
        self._path = os.path.join(self._data_dir, LEDGER_FILE_NAME)
        self.load()

    @property
    def path(self) -> str:
        return self._path

    # ─── Load / Save ────────────────────────────────────────────────

    def load(self) -> None:
        """Load ledger state from disk. Starts empty if the file doesn't exist."""
        if not os.path.exists(self._path):
            logger.debug("no ledger file at %s, starting empty", self._path)
            return
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise LedgerError(ErrorKind.SUBSTRATE_FAILURE,
                              f"Failed to read ledger file {self._path}: {e}")

        if not isinstance(data, dict) or data.get("magic") != LEDGER_MAGIC:
            raise LedgerError(ErrorKind.SUBSTRATE_FAILURE,
                              f"Not a WorkLedger file: {self._path}")
        version = data.get("format_version", 0)
        if version > LEDGER_FORMAT_VERSION:
            raise LedgerError(
                ErrorKind.SUBSTRATE_FAILURE,
                f"Ledger format version {version} is newer than "
                f"supported version {LEDGER_FORMAT_VERSION}")

        try:
            values = {k: base64.b64decode(v) for k, v in data.get("state", {}).items()}
            history = {
                k: [_modification_from_dict(e) for e in entries]
                for k, entries in data.get("history", {}).items()
            }
        except (KeyError, TypeError, ValueError) as e:
            raise LedgerError(ErrorKind.SUBSTRATE_FAILURE,
                              f"Corrupted ledger file {self._path}: {e}")

        self._restore({"values": values, "keys": sorted(values), "history": history})
        logger.info("loaded %d keys from %s", len(values), self._path)

    def save(self) -> None:
        """Persist ledger state using an atomic write."""
        data = {
            "magic": LEDGER_MAGIC,
            "format_version": LEDGER_FORMAT_VERSION,
            "state": {k: base64.b64encode(self._values[k]).decode("ascii")
                      for k in self._keys},
            "history": {k: [_modification_to_dict(m) for m in entries]
                        for k, entries in self._history.items()},
        }
        try:
            os.makedirs(self._data_dir, exist_ok=True)
            tmp_fd, tmp_path = tempfile.mkstemp(
                dir=self._data_dir, prefix="ledger_", suffix=".tmp")
            try:
                with os.fdopen(tmp_fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=1)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, self._path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
        except OSError as e:
            raise LedgerError(ErrorKind.SUBSTRATE_FAILURE,
                              f"Failed to write ledger file {self._path}: {e}")

    # ─── Durability hooks ───────────────────────────────────────────

    def commit(self) -> None:
        super().commit()
        self.save()

    def put_state(self, key: str, value: bytes) -> None:
        super().put_state(key, value)
        if self.active_transaction is None:
            self.save()

    def del_state(self, key: str) -> None:
        super().del_state(key)
        if self.active_transaction is None:
            self.save()


def _modification_to_dict(m: KeyModification) -> dict:
    return {
        "tx_id": m.tx_id,
        "value": None if m.value is None else base64.b64encode(m.value).decode("ascii"),
        "timestamp": m.timestamp.isoformat(),
        "is_delete": m.is_delete,
    }


def _modification_from_dict(d: dict) -> KeyModification:
    value: Optional[bytes] = None
    if d.get("value") is not None:
        value = base64.b64decode(d["value"])
    return KeyModification(
        tx_id=d["tx_id"],
        value=value,
        timestamp=datetime.fromisoformat(d["timestamp"]),
        is_delete=bool(d["is_delete"]),
    )
