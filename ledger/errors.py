"""
WorkLedger Errors
=================
One tagged error type for every failure the engine reports.

Callers branch on `LedgerError.kind`, never on the message text.
Nothing in the engine retries or repairs on its own: a failure is raised
where it is detected and converted to a rejected invocation only at the
dispatcher boundary.
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(Enum):
    """Failure kinds surfaced to callers."""
    INVALID_ARGUMENT = "InvalidArgument"
    ALREADY_EXISTS = "AlreadyExists"
    NOT_FOUND = "NotFound"
    MALFORMED_KEY = "MalformedKey"
    SERIALIZATION_ERROR = "SerializationError"
    INDEX_INCONSISTENCY = "IndexInconsistency"
    QUERY_SYNTAX_ERROR = "QuerySyntaxError"
    QUERY_UNSUPPORTED = "QueryUnsupported"
    UNKNOWN_COMMAND = "UnknownCommand"
    SUBSTRATE_FAILURE = "SubstrateFailure"


class LedgerError(Exception):
    """
    Tagged failure: a kind, a human-readable message, and optional
    structured details (record id, counts, ...).
    """

    def __init__(self, kind: ErrorKind, message: str, **details: Any):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        d = {"kind": self.kind.value, "message": self.message}
        if self.details:
            d["details"] = dict(self.details)
        return d

    def __repr__(self) -> str:
        return f"LedgerError({self.kind.value}, {self.message!r})"


class BulkTransferError(LedgerError):
    """
    A bulk transfer stopped at its first failing record.

    `transferred` records were updated before the failure and keep their
    new value; `record_id` is the record that failed. The kind is the
    kind of the underlying failure.
    """

    def __init__(self, record_id: str, transferred: int, cause: LedgerError):
        message = (f"Transfer failed for {record_id} after {transferred} "
                   f"transferred: {cause.message}")
        super().__init__(cause.kind, message,
                         record_id=record_id, transferred=transferred)
        self.record_id = record_id
        self.transferred = transferred
        self.cause: Optional[LedgerError] = cause


# ─── Shorthands ─────────────────────────────────────────────────────────────

def invalid_argument(message: str, **details: Any) -> LedgerError:
    return LedgerError(ErrorKind.INVALID_ARGUMENT, message, **details)


def not_found(message: str, **details: Any) -> LedgerError:
    return LedgerError(ErrorKind.NOT_FOUND, message, **details)
