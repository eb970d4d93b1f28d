"""
WorkLedger Command Handlers
===========================
The command set of one record schema, wired to the store, scanner,
query executor and history reader.

Commands (shown for the "work" schema):
  initWork <uid> <workstartdate> <workenddate> <workexperience>
  readWork <uid>
  delete <uid>
  transferWork <uid> <new workexperience>
  transferWorksBasedOnWorkstartdate <workstartdate> <new workexperience>
  getWorksByRange <startKey> <endKey>
  queryWorksByWorkexperience <workexperience>
  queryWorks <query string>
  getHistoryForWork <uid>

The index-driven and parameterized command names follow the schema's
indexed and transfer fields.

Argument checks happen here, at the edge; the components below assume
well-formed input.
"""

import json
import logging
from typing import Any, List

from contract.dispatcher import Dispatcher
from indexing.scanner import RangeScanner
from ledger.context import InvocationContext
from ledger.errors import invalid_argument
from query.executor import QueryExecutor
from query.history import HistoryReader
from records.store import RecordStore
from storage.schema import RecordSchema
from storage.serializer import serialize_record

logger = logging.getLogger(__name__)


def build_dispatcher(schema: RecordSchema, *, rekey_index: bool = False) -> Dispatcher:
    """Command table for one schema."""
    handlers = WorkHandlers(schema, rekey_index=rekey_index)
    return Dispatcher(handlers.command_table())


def transfer_by_index_command(schema: RecordSchema) -> str:
    return "transferWorksBasedOn" + _title(schema.indexed_field)


def query_by_field_command(schema: RecordSchema) -> str:
    return "queryWorksBy" + _title(schema.transfer_field)


class WorkHandlers:
    """Handlers bound to one schema's components."""

    def __init__(self, schema: RecordSchema, *, rekey_index: bool = False):
        self.schema = schema
        self.store = RecordStore(schema, rekey_index=rekey_index)
        self.scanner = RangeScanner(self.store)
        self.queries = QueryExecutor(schema)
        self.history = HistoryReader()

    def command_table(self) -> dict:
        return {
            "initWork": self.init_work,
            "readWork": self.read_work,
            "delete": self.delete,
            "transferWork": self.transfer_work,
            transfer_by_index_command(self.schema): self.transfer_by_index,
            "getWorksByRange": self.get_by_range,
            query_by_field_command(self.schema): self.query_by_field,
            "queryWorks": self.query,
            "getHistoryForWork": self.get_history,
        }

    # ─── Lifecycle ──────────────────────────────────────────────────

    def init_work(self, ctx: InvocationContext, args: List[str]) -> None:
        fields = self.schema.arg_fields()
        _expect_exactly(args, len(fields))
        logger.debug("- start init %s", self.schema.doc_type)
        for i, arg in enumerate(args):
            if not arg:
                raise invalid_argument(f"{_ordinal(i + 1)} argument must be a non-empty string")
        values = {f.name: arg for f, arg in zip(fields[1:], args[1:])}
        self.store.create(ctx, args[0], values)
        logger.debug("- end init %s", self.schema.doc_type)
        return None

    def read_work(self, ctx: InvocationContext, args: List[str]) -> bytes:
        if len(args) != 1:
            raise invalid_argument(
                f"Incorrect number of arguments. Expecting {self.schema.key_field.name} "
                f"of the {self.schema.doc_type} to query")
        return serialize_record(self.store.read(ctx, args[0]))

    def delete(self, ctx: InvocationContext, args: List[str]) -> None:
        _expect_exactly(args, 1)
        self.store.delete(ctx, args[0])
        return None

    def transfer_work(self, ctx: InvocationContext, args: List[str]) -> None:
        _expect_at_least(args, 2)
        logger.debug("- start transfer %s %s", args[0], args[1])
        self.store.update_field(ctx, args[0], self.schema.transfer_field, args[1])
        logger.debug("- end transfer (success)")
        return None

    def transfer_by_index(self, ctx: InvocationContext, args: List[str]) -> bytes:
        _expect_at_least(args, 2)
        indexed = self.schema.get_field(self.schema.indexed_field)
        target = self.schema.get_field(self.schema.transfer_field)
        leading = str(indexed.normalize(args[0]))
        new_value = target.normalize(args[1])
        n = self.scanner.transfer_by_index(ctx, self.schema.index_name, [leading],
                                           target.name, new_value)
        return f"Transferred {n} {leading} works to {new_value}".encode("utf-8")

    # ─── Reporting ──────────────────────────────────────────────────

    def get_by_range(self, ctx: InvocationContext, args: List[str]) -> bytes:
        _expect_at_least(args, 2)
        rows = [{"Key": key, "Record": record.to_dict()}
                for key, record in self.scanner.scan_range(ctx, args[0], args[1])]
        return _json_payload(rows)

    def query_by_field(self, ctx: InvocationContext, args: List[str]) -> bytes:
        _expect_at_least(args, 1)
        results = self.queries.query_by_field(ctx, self.schema.transfer_field, args[0])
        return _json_payload([r.to_dict() for r in results])

    def query(self, ctx: InvocationContext, args: List[str]) -> bytes:
        _expect_at_least(args, 1)
        results = self.queries.query(ctx, args[0])
        return _json_payload([r.to_dict() for r in results])

    def get_history(self, ctx: InvocationContext, args: List[str]) -> bytes:
        _expect_at_least(args, 1)
        logger.debug("- start getHistoryFor %s", args[0])
        entries = self.history.history(ctx, args[0])
        return _json_payload([e.to_dict() for e in entries])


# ─── Helpers ────────────────────────────────────────────────────────────────

def _expect_exactly(args: List[str], n: int) -> None:
    if len(args) != n:
        raise invalid_argument(f"Incorrect number of arguments. Expecting {n}")


def _expect_at_least(args: List[str], n: int) -> None:
    if len(args) < n:
        raise invalid_argument(f"Incorrect number of arguments. Expecting {n}")


def _ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def _title(name: str) -> str:
    return name[:1].upper() + name[1:]


def _json_payload(obj: Any) -> bytes:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
