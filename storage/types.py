"""
WorkLedger Field Type System
============================
Defines the field types a record may carry: STRING and INT.
Each type provides validation and coercion from the string arguments
that arrive at the invocation boundary.

Records are stored as JSON, so a type only has to decide which Python
value ends up in the document: `str` for STRING, `int` for INT.
"""

from enum import Enum
from typing import Any

from ledger.errors import invalid_argument


class DataType(Enum):
    """Supported field types."""
    STRING = "STRING"
    INT = "INT"


# ─── Validation ─────────────────────────────────────────────────────────────

def validate(value: Any, dtype: DataType) -> bool:
    """
    Check if a Python value is already of the given DataType.
    Returns True if valid, False otherwise.
    """
    if dtype == DataType.INT:
        return isinstance(value, int) and not isinstance(value, bool)
    elif dtype == DataType.STRING:
        return isinstance(value, str)
    return False


def coerce(value: Any, dtype: DataType, name: str = "value") -> Any:
    """
    Coerce a value (usually a command argument string) to the target type.
    Raises LedgerError(InvalidArgument) on failure.
    """
    if value is None:
        raise invalid_argument(f"{name} must not be null")

    if dtype == DataType.INT:
        if isinstance(value, bool):
            raise invalid_argument(f"{name} must be a numeric string")
        if isinstance(value, int):
            return value
        try:
            return int(str(value).strip())
        except ValueError:
            raise invalid_argument(f"{name} must be a numeric string, got {value!r}")

    elif dtype == DataType.STRING:
        if not isinstance(value, str):
            raise invalid_argument(
                f"{name} must be a string, got {type(value).__name__}")
        return value

    raise invalid_argument(f"Unknown data type: {dtype}")


def type_from_string(type_str: str) -> DataType:
    """Convert a string like 'INT' to a DataType enum member."""
    normalized = type_str.strip().upper()
    try:
        return DataType(normalized)
    except ValueError:
        raise ValueError(f"Unknown data type: {type_str!r}. "
                         f"Valid types: {[t.value for t in DataType]}")
