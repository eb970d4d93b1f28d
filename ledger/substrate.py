"""
WorkLedger Substrate Interface
==============================
The ordered key-value ledger the engine runs on, as consumed capabilities.

The host platform owns these primitives: their transactional guarantees,
consensus and identity are out of reach of the engine. The engine only
ever calls the methods below.

Consistency contracts:
  - get_state_by_range / get_state_by_partial_composite_key are
    re-executed by the host at commit time; their result sets are
    reproducible and safe to drive state changes.
  - get_query_result has no such guarantee (phantom reads); it is a
    point-in-time read only.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, Optional, Sequence

from ledger.errors import ErrorKind, LedgerError


@dataclass(frozen=True)
class KV:
    """One (key, value) pair yielded by a scan or query."""
    key: str
    value: bytes


@dataclass(frozen=True)
class KeyModification:
    """One entry of a key's version history."""
    tx_id: str
    value: Optional[bytes]      # None for a delete
    timestamp: datetime
    is_delete: bool


class Substrate(ABC):
    """Abstract ledger substrate."""

    #: Whether get_query_result is available on this substrate.
    supports_rich_query: bool = False

    # ─── Point operations ───────────────────────────────────────────

    @abstractmethod
    def get_state(self, key: str) -> Optional[bytes]:
        """Return the value stored under key, or None if absent."""

    @abstractmethod
    def put_state(self, key: str, value: bytes) -> None:
        """Store value under key."""

    @abstractmethod
    def del_state(self, key: str) -> None:
        """Remove key. Removing an absent key is not an error."""

    # ─── Iteration ──────────────────────────────────────────────────

    @abstractmethod
    def get_state_by_range(self, start_key: str, end_key: str) -> Iterator[KV]:
        """
        Ascending iteration over [start_key, end_key).
        An empty end_key means unbounded.
        """

    @abstractmethod
    def get_state_by_partial_composite_key(self, namespace: str,
                                           leading_segments: Sequence[str]) -> Iterator[KV]:
        """Ascending iteration over composite keys sharing the leading segments."""

    def get_query_result(self, query: str) -> Iterator[KV]:
        """Run a predicate query. Only available on rich-query substrates."""
        raise LedgerError(ErrorKind.QUERY_UNSUPPORTED,
                          f"{type(self).__name__} does not support rich queries")

    @abstractmethod
    def get_history_for_key(self, key: str) -> Iterator[KeyModification]:
        """Version history of key, oldest first."""

    # ─── Invocation metadata ────────────────────────────────────────

    @abstractmethod
    def get_creator(self) -> str:
        """Identity of the caller submitting the current invocation."""

    @abstractmethod
    def get_tx_id(self) -> str:
        """Identifier of the current transaction."""

    @abstractmethod
    def get_tx_timestamp(self) -> datetime:
        """Timestamp of the current transaction."""
