"""
WorkLedger Contract Module
==========================
Invocation boundary: command name + string arguments in, Response out.
"""

from contract.dispatcher import Dispatcher
from contract.handlers import build_dispatcher
from contract.identity import member_name
from contract.response import Response

__all__ = ["Dispatcher", "build_dispatcher", "member_name", "Response"]
