"""
WorkLedger History Reader
=========================
Per-key version history, oldest to newest, as the substrate records it.
A delete shows up as a tombstone: is_delete=True and value=None. The
last live value is never reconstructed.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from ledger.context import InvocationContext
from storage.serializer import decode_document


@dataclass(frozen=True)
class HistoryEntry:
    tx_id: str
    value: Optional[Dict[str, Any]]
    timestamp: datetime
    is_delete: bool

    def to_dict(self) -> dict:
        return {
            "TxId": self.tx_id,
            "Value": self.value,
            "Timestamp": self.timestamp.isoformat(),
            "IsDelete": self.is_delete,
        }


class HistoryReader:

    def history(self, ctx: InvocationContext, record_id: str) -> List[HistoryEntry]:
        entries = []
        for mod in ctx.substrate.get_history_for_key(record_id):
            if mod.is_delete or mod.value is None:
                value = None
            else:
                value = decode_document(mod.value)
            entries.append(HistoryEntry(mod.tx_id, value, mod.timestamp, mod.is_delete))
        return entries
