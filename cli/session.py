"""
WorkLedger Session
==================
Per-connection state object that wires the engine together.

Owns:
  - FileLedger (the substrate, loaded from the ledger directory)
  - Dispatcher (the command table of one record schema)
  - InvocationContext (substrate + caller member name)

Autocommit semantics:
  - Default: each invocation runs in its own ledger transaction.
    With atomic=True a failed invocation is rolled back, the way the
    host discards an invalid transaction; with atomic=False whatever
    the invocation wrote before failing is kept.
  - begin() → explicit transaction until commit()/rollback(). Failed
    invocations inside it are not rolled back individually.
"""

import logging
import os
from typing import List, Optional, Sequence

from contract.handlers import build_dispatcher
from contract.identity import member_name
from contract.response import Response
from ledger.context import InvocationContext
from ledger.file import FileLedger
from records.schemas import get_schema

logger = logging.getLogger(__name__)


class SessionError(Exception):
    """Session-level error (transaction lifecycle, etc.)."""
    pass


class Session:
    """
    Ledger session: owns the substrate and dispatcher for one connection.

    Usage:
        session = Session("path/to/ledger")
        resp = session.execute("readWork", ["w1"])
        print(resp.text())
        session.close()
    """

    def __init__(self, db_path: str, *, schema: str = "work",
                 caller: str = "User1@org1.example.com", rich_query: bool = True,
                 rekey_index: bool = False, atomic: bool = True):
        self.db_path = os.path.abspath(db_path)
        self.schema = get_schema(schema)
        self.atomic = atomic

        self.ledger = FileLedger(self.db_path, creator=caller, rich_query=rich_query)
        self.dispatcher = build_dispatcher(self.schema, rekey_index=rekey_index)
        self.context = InvocationContext(substrate=self.ledger,
                                         caller=member_name(caller))

        self.explicit_txn = False
        self._closed = False
        self.stats = {
            "transactions_committed": 0,
            "transactions_aborted": 0,
            "invocations": 0,
            "failures": 0,
        }

    # ─── Transaction Control ────────────────────────────────────────

    def begin(self) -> str:
        self._check_closed()
        if self.explicit_txn:
            raise SessionError("Transaction already active; commit or rollback first")
        txn = self.ledger.begin()
        self.explicit_txn = True
        return f"BEGIN transaction {txn.tx_id}"

    def commit(self) -> str:
        self._check_closed()
        if not self.explicit_txn:
            return "WARNING: no transaction in progress"
        tx_id = self.ledger.get_tx_id()
        try:
            self.ledger.commit()
        finally:
            self.explicit_txn = self.ledger.active_transaction is not None
        self.stats["transactions_committed"] += 1
        return f"COMMIT transaction {tx_id}"

    def rollback(self) -> str:
        self._check_closed()
        if not self.explicit_txn:
            return "WARNING: no transaction in progress"
        tx_id = self.ledger.get_tx_id()
        try:
            self.ledger.rollback()
        finally:
            self.explicit_txn = self.ledger.active_transaction is not None
        self.stats["transactions_aborted"] += 1
        return f"ROLLBACK transaction {tx_id}"

    # ─── Invocation ─────────────────────────────────────────────────

    def execute(self, command: str, args: Sequence[str] = ()) -> Response:
        """Invoke one command. Failures come back as error Responses."""
        self._check_closed()
        self.stats["invocations"] += 1

        if self.explicit_txn:
            resp = self.dispatcher.invoke(self.context, command, args)
        else:
            self.ledger.begin()
            try:
                resp = self.dispatcher.invoke(self.context, command, args)
            except BaseException:
                self.ledger.rollback()
                self.stats["transactions_aborted"] += 1
                raise
            if not resp.ok and self.atomic:
                self.ledger.rollback()
                self.stats["transactions_aborted"] += 1
            else:
                self.ledger.commit()
                self.stats["transactions_committed"] += 1

        if not resp.ok:
            self.stats["failures"] += 1
            logger.info("%s failed: %s: %s", command, resp.kind, resp.message)
        return resp

    @property
    def commands(self) -> List[str]:
        return self.dispatcher.commands

    def _check_closed(self):
        if self._closed:
            raise SessionError("Session is closed")

    # ─── Lifecycle ──────────────────────────────────────────────────

    def close(self) -> Optional[str]:
        """
        Close the session. An explicit transaction still open is rolled
        back; the returned warning says so.
        """
        if self._closed:
            return None
        warning = None
        if self.explicit_txn and self.ledger.active_transaction is not None:
            tx_id = self.ledger.get_tx_id()
            self.rollback()
            warning = f"WARNING: active transaction {tx_id} was rolled back on close"
        self.explicit_txn = False
        self._closed = True
        return warning

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
