"""
WorkLedger Composite Key Encoding
=================================
Order-preserving encoding of an ordered tuple of string segments into one
sortable ledger key, and back.

Encoding rules:
  KEY      → COMPOSITE_MARKER + SEGMENT(namespace) + SEGMENT(s1) + ...
  SEGMENT  → segment text with every U+0000 escaped as U+0000 U+0001,
             terminated by U+0000 U+0000.

The terminator sorts below every other continuation, so no encoded segment
is a prefix of another. Plain string comparison of two encoded keys
therefore matches segment-wise lexicographic comparison of the tuples.

U+10FFFF is reserved as the upper bound of prefix scans and is rejected
inside segments: a key containing it could sort past the end of its own
prefix range.
"""

from typing import List, Sequence, Tuple

from ledger.errors import ErrorKind, LedgerError, invalid_argument


# ─── Reserved code points ───────────────────────────────────────────────────

COMPOSITE_MARKER = "\x00"
MIN_UNICODE = "\x00"
MAX_UNICODE = "\U0010ffff"

_ESCAPE = "\x00\x01"
_TERMINATOR = "\x00\x00"


# ─── Encode ─────────────────────────────────────────────────────────────────

def encode(namespace: str, segments: Sequence[str]) -> str:
    """
    Encode [namespace] + segments into a single composite key.

    Raises LedgerError(InvalidArgument) for an empty namespace, a
    non-string segment, or a segment containing the reserved U+10FFFF.
    """
    if not isinstance(namespace, str) or not namespace:
        raise invalid_argument("Composite key namespace must be a non-empty string")
    parts = [COMPOSITE_MARKER, _encode_segment(namespace)]
    for seg in segments:
        parts.append(_encode_segment(seg))
    return "".join(parts)


def _encode_segment(segment: str) -> str:
    if not isinstance(segment, str):
        raise invalid_argument(
            f"Composite key segment must be a string, got {type(segment).__name__}")
    if MAX_UNICODE in segment:
        raise invalid_argument(
            f"Composite key segment {segment!r} contains reserved code point U+10FFFF")
    return segment.replace(MIN_UNICODE, _ESCAPE) + _TERMINATOR


def prefix(namespace: str, leading_segments: Sequence[str] = ()) -> str:
    """
    Return the key prefix shared by every composite key in `namespace`
    whose first segments equal `leading_segments`.
    """
    return encode(namespace, leading_segments)


def prefix_range(namespace: str, leading_segments: Sequence[str] = ()) -> Tuple[str, str]:
    """
    Half-open key range [start, end) holding exactly the composite keys
    that share the given leading segments, in ascending segment order.
    """
    start = prefix(namespace, leading_segments)
    return start, start + MAX_UNICODE


def is_composite(key: str) -> bool:
    return key.startswith(COMPOSITE_MARKER)


# ─── Decode ─────────────────────────────────────────────────────────────────

def decode(key: str) -> Tuple[str, List[str]]:
    """
    Split a composite key into (namespace, segments).
    Raises LedgerError(MalformedKey) if the key is not a well-formed
    composite key.
    """
    if not isinstance(key, str) or not is_composite(key):
        raise LedgerError(ErrorKind.MALFORMED_KEY,
                          f"Not a composite key: {key!r}")

    segments: List[str] = []
    i = len(COMPOSITE_MARKER)
    current: List[str] = []
    while i < len(key):
        ch = key[i]
        if ch != MIN_UNICODE:
            current.append(ch)
            i += 1
            continue
        if i + 1 >= len(key):
            raise LedgerError(ErrorKind.MALFORMED_KEY,
                              f"Truncated escape at offset {i} in key {key!r}")
        nxt = key[i + 1]
        if nxt == "\x00":
            segments.append("".join(current))
            current = []
        elif nxt == "\x01":
            current.append(MIN_UNICODE)
        else:
            raise LedgerError(
                ErrorKind.MALFORMED_KEY,
                f"Invalid escape sequence U+0000 U+{ord(nxt):04X} at offset {i}")
        i += 2

    if current:
        raise LedgerError(ErrorKind.MALFORMED_KEY,
                          f"Unterminated segment in key {key!r}")
    if not segments or not segments[0]:
        raise LedgerError(ErrorKind.MALFORMED_KEY,
                          f"Composite key {key!r} has no namespace")
    return segments[0], segments[1:]
