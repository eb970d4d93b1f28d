"""
WorkLedger Response
===================
Outcome of one command invocation: status 200 with an optional payload,
or status 500 with the failure kind and message.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ledger.errors import LedgerError

OK = 200
ERROR = 500


@dataclass
class Response:
    status: int
    payload: Optional[bytes] = None
    message: str = ""
    kind: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, payload: Optional[bytes] = None) -> "Response":
        return cls(status=OK, payload=payload)

    @classmethod
    def error(cls, err: LedgerError) -> "Response":
        return cls(status=ERROR, message=err.message, kind=err.kind.value,
                   details=dict(err.details))

    @property
    def ok(self) -> bool:
        return self.status == OK

    def text(self) -> str:
        """Payload decoded as UTF-8 ('' when there is none)."""
        if self.payload is None:
            return ""
        return self.payload.decode("utf-8")
