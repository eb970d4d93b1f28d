"""
WorkLedger Ledger Module
========================
The substrate boundary and its reference implementations.

Components:
  - substrate: abstract Substrate (get/put/delete, range and prefix scans,
    predicate query, per-key history, caller identity)
  - memory: MemoryLedger, ordered in-memory substrate with transactions
  - file: FileLedger, MemoryLedger persisted to a JSON file
  - selector: CouchDB-style selector engine behind predicate queries
  - errors: ErrorKind + LedgerError, the one tagged error type
  - context: InvocationContext passed into every operation
"""

from ledger.errors import ErrorKind, LedgerError, BulkTransferError
from ledger.substrate import KV, KeyModification, Substrate
from ledger.context import InvocationContext
from ledger.memory import MemoryLedger, Transaction
from ledger.file import FileLedger

__all__ = [
    "ErrorKind", "LedgerError", "BulkTransferError",
    "KV", "KeyModification", "Substrate",
    "InvocationContext",
    "MemoryLedger", "Transaction", "FileLedger",
]
