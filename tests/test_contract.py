"""
WorkLedger Contract Tests
=========================
Dispatcher routing, per-command argument validation, payload formats,
and caller identity.
"""

import json

import pytest

from contract.dispatcher import Dispatcher
from contract.handlers import build_dispatcher, query_by_field_command, transfer_by_index_command
from contract.identity import member_name
from contract.response import Response
from ledger.context import InvocationContext
from ledger.errors import ErrorKind, LedgerError
from ledger.memory import MemoryLedger
from records.schemas import WORK, WORK_RECORD


@pytest.fixture
def ledger():
    return MemoryLedger(creator="User1@org1.example.com")


@pytest.fixture
def ctx(ledger):
    return InvocationContext(ledger, caller=member_name(ledger.get_creator()))


@pytest.fixture
def work():
    return build_dispatcher(WORK)


def _ok(resp: Response) -> Response:
    assert resp.ok, f"{resp.kind}: {resp.message}"
    return resp


def _seed(work, ctx):
    for args in (["w1", "blue", "35", "tom"], ["w2", "red", "50", "tom"],
                 ["w3", "blue", "10", "jerry"]):
        _ok(work.invoke(ctx, "initWork", args))


# ═══════════════════════════════════════════════════════════════════
# Dispatcher
# ═══════════════════════════════════════════════════════════════════

class TestDispatcher:

    def test_unknown_command(self, ctx, work):
        resp = work.invoke(ctx, "initInvoice", [])
        assert resp.status == 500
        assert resp.kind == "UnknownCommand"
        assert resp.message == "Received unknown function invocation"

    def test_command_table(self, work):
        assert set(work.commands) == {
            "initWork", "readWork", "delete", "transferWork",
            "transferWorksBasedOnWorkstartdate", "getWorksByRange",
            "queryWorksByWorkexperience", "queryWorks", "getHistoryForWork"}

    def test_command_names_follow_schema(self):
        assert transfer_by_index_command(WORK_RECORD) == "transferWorksBasedOnWorkexperience"
        assert query_by_field_command(WORK_RECORD) == "queryWorksByWorkStartDate"

    def test_invalid_table(self):
        with pytest.raises(ValueError):
            Dispatcher({"": lambda ctx, args: None})
        with pytest.raises(ValueError):
            Dispatcher({"x": "not callable"})

    def test_ledger_errors_become_responses(self, ctx):
        def failing(ctx, args):
            raise LedgerError(ErrorKind.NOT_FOUND, "gone", record_id="w1")

        resp = Dispatcher({"f": failing}).invoke(ctx, "f", [])
        assert not resp.ok
        assert (resp.kind, resp.message, resp.details) == ("NotFound", "gone", {"record_id": "w1"})

    def test_other_errors_propagate(self, ctx):
        def broken(ctx, args):
            raise KeyError("bug")

        with pytest.raises(KeyError):
            Dispatcher({"f": broken}).invoke(ctx, "f", [])


# ═══════════════════════════════════════════════════════════════════
# Commands
# ═══════════════════════════════════════════════════════════════════

class TestInitAndRead:

    def test_init_then_read(self, ctx, work):
        assert _ok(work.invoke(ctx, "initWork", ["w1", "Blue", "35", "Tom"])).payload is None
        resp = _ok(work.invoke(ctx, "readWork", ["w1"]))
        assert json.loads(resp.payload) == {"docType": "work", "uid": "w1",
                                            "workstartdate": "blue", "workenddate": 35,
                                            "workexperience": "tom"}

    def test_init_arity(self, ctx, work):
        resp = work.invoke(ctx, "initWork", ["w1", "blue", "35"])
        assert resp.kind == "InvalidArgument"
        assert resp.message == "Incorrect number of arguments. Expecting 4"

    @pytest.mark.parametrize("pos,ordinal", [(0, "1st"), (1, "2nd"), (2, "3rd"), (3, "4th")])
    def test_init_empty_argument(self, ctx, work, pos, ordinal):
        args = ["w1", "blue", "35", "tom"]
        args[pos] = ""
        resp = work.invoke(ctx, "initWork", args)
        assert resp.message == f"{ordinal} argument must be a non-empty string"

    def test_init_numeric(self, ctx, work):
        resp = work.invoke(ctx, "initWork", ["w1", "blue", "soon", "tom"])
        assert resp.kind == "InvalidArgument"
        assert "must be a numeric string" in resp.message

    def test_init_duplicate(self, ctx, work):
        _ok(work.invoke(ctx, "initWork", ["w1", "blue", "35", "tom"]))
        resp = work.invoke(ctx, "initWork", ["w1", "red", "35", "tom"])
        assert (resp.kind, resp.message) == ("AlreadyExists", "This work already exists: w1")

    def test_read_arity(self, ctx, work):
        resp = work.invoke(ctx, "readWork", [])
        assert resp.message == "Incorrect number of arguments. Expecting uid of the work to query"

    def test_read_missing(self, ctx, work):
        resp = work.invoke(ctx, "readWork", ["w9"])
        assert (resp.kind, resp.message) == ("NotFound", "Work does not exist: w9")

    def test_work_record_schema(self, ctx):
        d = build_dispatcher(WORK_RECORD)
        uid = "0123456789abcdef0123456789abcdef"
        _ok(d.invoke(ctx, "initWork", [uid, "Engineer", "20200101000000",
                                       "20200201000000", "20210201000000"]))
        record = json.loads(d.invoke(ctx, "readWork", [uid]).payload)
        assert record["creator"] == "org1"
        assert isinstance(record["timestamp"], int)

        resp = d.invoke(ctx, "initWork", ["short", "Engineer", "20200101000000",
                                          "20200201000000", "20210201000000"])
        assert resp.message == "Parameter uid length error, 32 is right (got 5)"


class TestTransferAndDelete:

    def test_transfer_work(self, ctx, work):
        _seed(work, ctx)
        _ok(work.invoke(ctx, "transferWork", ["w1", "Jerry"]))
        record = json.loads(work.invoke(ctx, "readWork", ["w1"]).payload)
        assert record["workexperience"] == "jerry"

    def test_transfer_arity(self, ctx, work):
        resp = work.invoke(ctx, "transferWork", ["w1"])
        assert resp.message == "Incorrect number of arguments. Expecting 2"

    def test_transfer_by_index(self, ctx, work):
        _seed(work, ctx)
        resp = _ok(work.invoke(ctx, "transferWorksBasedOnWorkstartdate", ["Blue", "Bob"]))
        assert resp.payload == b"Transferred 2 blue works to bob"
        rows = json.loads(work.invoke(ctx, "queryWorksByWorkexperience", ["bob"]).payload)
        assert [r["Key"] for r in rows] == ["w1", "w3"]

    def test_transfer_by_index_partial_failure(self, ctx, ledger, work):
        _seed(work, ctx)
        ledger.del_state("w3")
        resp = work.invoke(ctx, "transferWorksBasedOnWorkstartdate", ["blue", "bob"])
        assert resp.kind == "NotFound"
        assert resp.details == {"record_id": "w3", "transferred": 1}
        record = json.loads(work.invoke(ctx, "readWork", ["w1"]).payload)
        assert record["workexperience"] == "bob"

    def test_delete(self, ctx, work):
        _seed(work, ctx)
        _ok(work.invoke(ctx, "delete", ["w1"]))
        assert work.invoke(ctx, "readWork", ["w1"]).kind == "NotFound"
        assert work.invoke(ctx, "delete", ["w1"]).kind == "NotFound"
        assert work.invoke(ctx, "delete", []).kind == "InvalidArgument"


class TestReporting:

    def test_get_by_range(self, ctx, work):
        _seed(work, ctx)
        rows = json.loads(_ok(work.invoke(ctx, "getWorksByRange", ["w1", "w3"])).payload)
        assert [r["Key"] for r in rows] == ["w1", "w2"]
        assert rows[0]["Record"]["workstartdate"] == "blue"

    def test_get_by_range_unbounded(self, ctx, work):
        _seed(work, ctx)
        rows = json.loads(work.invoke(ctx, "getWorksByRange", ["", ""]).payload)
        assert len(rows) == 3

    def test_get_by_range_empty(self, ctx, work):
        assert work.invoke(ctx, "getWorksByRange", ["a", "b"]).payload == b"[]"

    def test_get_by_range_arity(self, ctx, work):
        assert work.invoke(ctx, "getWorksByRange", ["w1"]).kind == "InvalidArgument"

    def test_query_works(self, ctx, work):
        _seed(work, ctx)
        q = '{"selector":{"docType":"work","workenddate":{"$gte":35}}}'
        rows = json.loads(_ok(work.invoke(ctx, "queryWorks", [q])).payload)
        assert [r["Key"] for r in rows] == ["w1", "w2"]

    def test_query_syntax_error(self, ctx, work):
        assert work.invoke(ctx, "queryWorks", ["{"]).kind == "QuerySyntaxError"

    def test_query_unsupported(self, work):
        ctx = InvocationContext(MemoryLedger(rich_query=False))
        resp = work.invoke(ctx, "queryWorksByWorkexperience", ["tom"])
        assert resp.kind == "QueryUnsupported"

    def test_history(self, ctx, ledger, work):
        with ledger.transaction("tx1"):
            _ok(work.invoke(ctx, "initWork", ["w1", "blue", "35", "tom"]))
        with ledger.transaction("tx2"):
            _ok(work.invoke(ctx, "delete", ["w1"]))
        rows = json.loads(_ok(work.invoke(ctx, "getHistoryForWork", ["w1"])).payload)
        assert [r["TxId"] for r in rows] == ["tx1", "tx2"]
        assert rows[0]["Value"]["workexperience"] == "tom"
        assert rows[1]["IsDelete"] is True
        assert rows[1]["Value"] is None
        assert set(rows[0]) == {"TxId", "Value", "Timestamp", "IsDelete"}


# ═══════════════════════════════════════════════════════════════════
# Identity / Response
# ═══════════════════════════════════════════════════════════════════

class TestIdentity:

    @pytest.mark.parametrize("identity,name", [
        ("User1@org1.example.com", "org1"),
        ("Admin@a1aw28.example.com", "a1aw28"),
        ("bob@corp", "corp"),
        ("alice", "alice"),
    ])
    def test_member_name(self, identity, name):
        assert member_name(identity) == name

    @pytest.mark.parametrize("identity", ["", "bob@"])
    def test_no_member_name(self, identity):
        with pytest.raises(LedgerError) as exc:
            member_name(identity)
        assert exc.value.kind == ErrorKind.INVALID_ARGUMENT


class TestResponse:

    def test_success(self):
        resp = Response.success(b"hi")
        assert resp.ok and resp.status == 200 and resp.text() == "hi"

    def test_error(self):
        resp = Response.error(LedgerError(ErrorKind.NOT_FOUND, "gone"))
        assert resp.status == 500 and not resp.ok
        assert resp.text() == ""
