"""
WorkLedger Invocation Context
=============================
Everything one operation needs from its surroundings, passed in
explicitly: the substrate handle and the caller identity.
"""

from dataclasses import dataclass, field

from ledger.substrate import Substrate


@dataclass
class InvocationContext:
    """Run-time context for one command invocation."""
    substrate: Substrate
    caller: str = field(default="")
