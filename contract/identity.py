"""
WorkLedger Caller Identity
==========================
Short member names from certificate common names.

  "User1@org1.example.com"  →  "org1"
  "Admin@a1aw28.example.com" → "a1aw28"
"""

from ledger.errors import invalid_argument

MEMBER_DOMAIN_SUFFIX = ".example.com"


def member_name(identity: str) -> str:
    """
    Member name of a caller: the part between '@' and the trailing
    ".example.com". Identities without the suffix keep everything after
    the '@'; identities without an '@' are returned unchanged.
    """
    if not identity:
        raise invalid_argument("Caller identity is empty")
    start = identity.find("@") + 1
    end = identity.rfind(MEMBER_DOMAIN_SUFFIX)
    if end < start:
        end = len(identity)
    name = identity[start:end]
    if not name:
        raise invalid_argument(f"No member name in caller identity {identity!r}")
    return name
