"""
WorkLedger Record Store Tests
=============================
Create / read / update / delete and secondary index upkeep, including
the stale index left behind by updates of the indexed field.
"""

from datetime import datetime, timezone

import pytest

from indexing import index_manager
from indexing.key_encoding import encode
from indexing.scanner import RangeScanner
from ledger.context import InvocationContext
from ledger.errors import ErrorKind, LedgerError
from ledger.memory import MemoryLedger
from records.schemas import WORK, WORK_RECORD
from records.store import RecordStore


# ═══════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════

@pytest.fixture
def ledger():
    return MemoryLedger(creator="User1@org1.example.com")


@pytest.fixture
def ctx(ledger):
    return InvocationContext(ledger, caller="org1")


@pytest.fixture
def store():
    return RecordStore(WORK)


def _values(start="blue", end="35", exp="tom"):
    return {"workstartdate": start, "workenddate": end, "workexperience": exp}


def _index_ids(ctx, store, value):
    return list(RangeScanner(store).scan_by_index_prefix(ctx, WORK.index_name, [value]))


# ═══════════════════════════════════════════════════════════════════
# Create / Read
# ═══════════════════════════════════════════════════════════════════

class TestCreate:

    def test_create_then_read(self, ctx, store):
        store.create(ctx, "w1", _values(start="Blue", exp="Tom"))
        record = store.read(ctx, "w1")
        assert record.to_dict() == {"docType": "work", "uid": "w1",
                                    "workstartdate": "blue", "workenddate": 35,
                                    "workexperience": "tom"}

    def test_create_writes_index_entry(self, ctx, ledger, store):
        store.create(ctx, "w1", _values())
        key = encode("workstartdate~uid", ["blue", "w1"])
        assert ledger.get_state(key) == index_manager.INDEX_MARKER
        assert len(ledger) == 2

    def test_duplicate_rejected(self, ctx, ledger, store):
        store.create(ctx, "w1", _values())
        with pytest.raises(LedgerError) as exc:
            store.create(ctx, "w1", _values(start="red"))
        assert exc.value.kind == ErrorKind.ALREADY_EXISTS
        assert exc.value.message == "This work already exists: w1"
        assert store.read(ctx, "w1").indexed_value == "blue"
        assert _index_ids(ctx, store, "red") == []

    def test_invalid_input_writes_nothing(self, ctx, ledger, store):
        with pytest.raises(LedgerError) as exc:
            store.create(ctx, "w1", _values(end="soon"))
        assert exc.value.kind == ErrorKind.INVALID_ARGUMENT
        assert len(ledger) == 0

    def test_reserved_code_point_writes_nothing(self, ctx, ledger, store):
        with pytest.raises(LedgerError) as exc:
            store.create(ctx, "w1", _values(start="blue\U0010ffff"))
        assert exc.value.kind == ErrorKind.INVALID_ARGUMENT
        assert len(ledger) == 0

    @pytest.mark.parametrize("record_id", ["", "\x00w1"])
    def test_bad_primary_key(self, ctx, store, record_id):
        with pytest.raises(LedgerError) as exc:
            store.create(ctx, record_id, _values())
        assert exc.value.kind == ErrorKind.INVALID_ARGUMENT

    def test_read_missing(self, ctx, store):
        with pytest.raises(LedgerError) as exc:
            store.read(ctx, "nope")
        assert exc.value.kind == ErrorKind.NOT_FOUND
        assert exc.value.message == "Work does not exist: nope"
        assert not store.exists(ctx, "nope")

    def test_read_corrupted(self, ctx, ledger, store):
        ledger.put_state("w1", b"not json")
        with pytest.raises(LedgerError) as exc:
            store.read(ctx, "w1")
        assert exc.value.kind == ErrorKind.SERIALIZATION_ERROR

    def test_auto_fields(self, ledger, ctx):
        store = RecordStore(WORK_RECORD)
        stamp = datetime(2020, 5, 1, 12, 0, tzinfo=timezone.utc)
        uid = "a" * 32
        with ledger.transaction(tx_id="tx1", timestamp=stamp):
            store.create(ctx, uid, {
                "workexperience": "engineer", "applyDate": "20200101000000",
                "workStartDate": "20200201000000", "workEndDate": "20210201000000",
            })
        record = store.read(ctx, uid)
        assert record.get("creator") == "org1"
        assert record.get("timestamp") == int(stamp.timestamp())


# ═══════════════════════════════════════════════════════════════════
# Update
# ═══════════════════════════════════════════════════════════════════

class TestUpdate:

    def test_update_field(self, ctx, store):
        store.create(ctx, "w1", _values())
        updated = store.update_field(ctx, "w1", "workexperience", "Jerry")
        assert updated.get("workexperience") == "jerry"
        assert store.read(ctx, "w1").get("workexperience") == "jerry"

    def test_update_other_field_keeps_index(self, ctx, store):
        store.create(ctx, "w1", _values())
        store.update_field(ctx, "w1", "workexperience", "jerry")
        assert _index_ids(ctx, store, "blue") == ["w1"]

    def test_update_missing(self, ctx, store):
        with pytest.raises(LedgerError) as exc:
            store.update_field(ctx, "w9", "workexperience", "jerry")
        assert exc.value.kind == ErrorKind.NOT_FOUND

    def test_update_unknown_field(self, ctx, store):
        store.create(ctx, "w1", _values())
        with pytest.raises(LedgerError) as exc:
            store.update_field(ctx, "w1", "colour", "red")
        assert exc.value.kind == ErrorKind.INVALID_ARGUMENT

    def test_update_key_field_rejected(self, ctx, store):
        store.create(ctx, "w1", _values())
        with pytest.raises(LedgerError):
            store.update_field(ctx, "w1", "uid", "w2")

    def test_update_coerces(self, ctx, store):
        store.create(ctx, "w1", _values())
        store.update_field(ctx, "w1", "workenddate", "40")
        assert store.read(ctx, "w1").get("workenddate") == 40


class TestStaleIndex:

    def test_indexed_field_update_leaves_stale_entry(self, ctx, store):
        store.create(ctx, "w1", _values(start="blue"))
        store.update_field(ctx, "w1", "workstartdate", "red")
        assert store.read(ctx, "w1").indexed_value == "red"
        assert _index_ids(ctx, store, "blue") == ["w1"]
        assert _index_ids(ctx, store, "red") == []

    def test_delete_after_drift_orphans_old_entry(self, ctx, ledger, store):
        store.create(ctx, "w1", _values(start="blue"))
        store.update_field(ctx, "w1", "workstartdate", "red")
        store.delete(ctx, "w1")
        assert ledger.get_state("w1") is None
        assert _index_ids(ctx, store, "blue") == ["w1"]

    def test_rekey_option_moves_entry(self, ctx, ledger):
        store = RecordStore(WORK, rekey_index=True)
        store.create(ctx, "w1", _values(start="blue"))
        store.update_field(ctx, "w1", "workstartdate", "red")
        assert _index_ids(ctx, store, "blue") == []
        assert _index_ids(ctx, store, "red") == ["w1"]
        store.delete(ctx, "w1")
        assert len(ledger) == 0

    @pytest.mark.parametrize("rekey", [False, True])
    def test_unindexable_value_rejected_before_write(self, ctx, ledger, rekey):
        store = RecordStore(WORK, rekey_index=rekey)
        store.create(ctx, "w1", _values(start="blue"))
        with pytest.raises(LedgerError) as exc:
            store.update_field(ctx, "w1", "workstartdate", "red\U0010ffff")
        assert exc.value.kind == ErrorKind.INVALID_ARGUMENT
        assert store.read(ctx, "w1").indexed_value == "blue"
        assert _index_ids(ctx, store, "blue") == ["w1"]
        store.delete(ctx, "w1")
        assert len(ledger) == 0


# ═══════════════════════════════════════════════════════════════════
# Delete
# ═══════════════════════════════════════════════════════════════════

class TestDelete:

    def test_delete_removes_record_and_index(self, ctx, ledger, store):
        store.create(ctx, "w1", _values())
        deleted = store.delete(ctx, "w1")
        assert deleted.record_id == "w1"
        assert ledger.get_state("w1") is None
        assert _index_ids(ctx, store, "blue") == []
        assert len(ledger) == 0

    def test_delete_missing(self, ctx, store):
        with pytest.raises(LedgerError) as exc:
            store.delete(ctx, "w1")
        assert exc.value.kind == ErrorKind.NOT_FOUND

    def test_index_failure_reports_inconsistency(self, ctx, store):
        class FailingIndexLedger(MemoryLedger):
            def del_state(self, key):
                if key.startswith("\x00"):
                    raise LedgerError(ErrorKind.SUBSTRATE_FAILURE, "disk gone")
                super().del_state(key)

        ledger = FailingIndexLedger()
        ctx = InvocationContext(ledger)
        store.create(ctx, "w1", _values())
        with pytest.raises(LedgerError) as exc:
            store.delete(ctx, "w1")
        assert exc.value.kind == ErrorKind.INDEX_INCONSISTENCY
        assert exc.value.details["record_id"] == "w1"
        assert ledger.get_state("w1") is None

    def test_create_index_failure_reports_inconsistency(self, store):
        class FailingIndexLedger(MemoryLedger):
            def put_state(self, key, value):
                if key.startswith("\x00"):
                    raise LedgerError(ErrorKind.SUBSTRATE_FAILURE, "disk gone")
                super().put_state(key, value)

        ledger = FailingIndexLedger()
        ctx = InvocationContext(ledger)
        with pytest.raises(LedgerError) as exc:
            store.create(ctx, "w1", _values())
        assert exc.value.kind == ErrorKind.INDEX_INCONSISTENCY
        assert ledger.get_state("w1") is not None
