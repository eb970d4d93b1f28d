"""
WorkLedger Dispatcher
=====================
Explicit command table: command name → handler.

A handler takes (ctx, args) and returns the payload bytes (or None).
It signals failure by raising LedgerError; the dispatcher turns that
into an error Response. Anything else is a bug and propagates.
"""

import logging
from typing import Callable, Dict, List, Optional, Sequence

from contract.response import Response
from ledger.context import InvocationContext
from ledger.errors import ErrorKind, LedgerError

logger = logging.getLogger(__name__)

Handler = Callable[[InvocationContext, List[str]], Optional[bytes]]


class Dispatcher:
    """
    Routes invocations to command handlers.

    Usage:
        d = Dispatcher({"readWork": read_work})
        resp = d.invoke(ctx, "readWork", ["w1"])
    """

    def __init__(self, commands: Dict[str, Handler]):
        for name, handler in commands.items():
            if not isinstance(name, str) or not name:
                raise ValueError(f"Invalid command name: {name!r}")
            if not callable(handler):
                raise ValueError(f"Handler for {name!r} is not callable")
        self._commands = dict(commands)

    @property
    def commands(self) -> List[str]:
        return list(self._commands)

    def invoke(self, ctx: InvocationContext, command: str,
               args: Sequence[str]) -> Response:
        logger.debug("invoke is running %s", command)
        handler = self._commands.get(command)
        if handler is None:
            logger.debug("invoke did not find func: %s", command)
            return Response.error(LedgerError(ErrorKind.UNKNOWN_COMMAND,
                                              "Received unknown function invocation",
                                              command=command))
        try:
            payload = handler(ctx, list(args))
        except LedgerError as e:
            logger.debug("%s failed: %s: %s", command, e.kind.value, e.message)
            return Response.error(e)
        return Response.success(payload)
