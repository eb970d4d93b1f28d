"""
WorkLedger Key Encoding Tests
=============================
Composite key encode/decode, ordering, prefix ranges and malformed input.
"""

import pytest

from indexing.key_encoding import (
    COMPOSITE_MARKER, MAX_UNICODE, decode, encode, is_composite, prefix, prefix_range,
)
from ledger.errors import ErrorKind, LedgerError


class TestEncodeDecode:

    def test_round_trip(self):
        key = encode("workstartdate~uid", ["blue", "w1"])
        assert decode(key) == ("workstartdate~uid", ["blue", "w1"])

    def test_namespace_only(self):
        assert decode(encode("ns", [])) == ("ns", [])

    def test_empty_segments_survive(self):
        assert decode(encode("ns", ["", "x", ""])) == ("ns", ["", "x", ""])

    def test_nul_inside_segment_is_escaped(self):
        key = encode("ns", ["a\x00b", "c"])
        assert decode(key) == ("ns", ["a\x00b", "c"])

    def test_composite_marker(self):
        key = encode("ns", ["a"])
        assert key.startswith(COMPOSITE_MARKER)
        assert is_composite(key)
        assert not is_composite("w1")

    def test_deterministic(self):
        assert encode("ns", ["a", "b"]) == encode("ns", ["a", "b"])


class TestOrdering:

    def test_segment_wise_order(self):
        tuples = [["a"], ["a", ""], ["a", "b"], ["a\x00"], ["ab"], ["b"]]
        keys = [encode("ns", t) for t in tuples]
        assert keys == sorted(keys)

    def test_shorter_segment_sorts_first(self):
        assert encode("ns", ["blue", "w2"]) < encode("ns", ["bluex", "w1"])

    def test_namespace_groups_keys(self):
        assert encode("a", ["zzz"]) < encode("b", [""])

    def test_composite_keys_sort_below_simple_keys(self):
        assert encode("ns", ["zzz"]) < "\x01"


class TestPrefix:

    def test_prefix_range_contains_matching_keys(self):
        start, end = prefix_range("idx", ["blue"])
        inside = [encode("idx", ["blue", "w1"]), encode("idx", ["blue", "w\x00"]),
                  encode("idx", ["blue", "\U0010fffe"])]
        for k in inside:
            assert start <= k < end

    def test_prefix_range_excludes_neighbours(self):
        start, end = prefix_range("idx", ["blue"])
        outside = [encode("idx", ["blu", "w1"]), encode("idx", ["bluex", "w1"]),
                   encode("idx", ["red", "w1"]), encode("idy", ["blue", "w1"])]
        for k in outside:
            assert not (start <= k < end)

    def test_prefix_is_key_start(self):
        assert encode("idx", ["blue", "w1"]).startswith(prefix("idx", ["blue"]))
        assert prefix_range("idx")[1] == prefix("idx") + MAX_UNICODE


class TestInvalid:

    @pytest.mark.parametrize("namespace", ["", None, 5])
    def test_bad_namespace(self, namespace):
        with pytest.raises(LedgerError) as exc:
            encode(namespace, ["a"])
        assert exc.value.kind == ErrorKind.INVALID_ARGUMENT

    def test_non_string_segment(self):
        with pytest.raises(LedgerError) as exc:
            encode("ns", ["a", 3])
        assert exc.value.kind == ErrorKind.INVALID_ARGUMENT

    def test_reserved_code_point_rejected(self):
        with pytest.raises(LedgerError) as exc:
            encode("ns", ["a" + MAX_UNICODE])
        assert exc.value.kind == ErrorKind.INVALID_ARGUMENT

    @pytest.mark.parametrize("key", [
        "w1",                        # not composite
        "\x00ns\x00\x00abc",         # unterminated segment
        "\x00ns\x00",                # truncated escape
        "\x00ns\x00\x05\x00\x00",    # invalid escape
        "\x00",                      # no namespace
        "\x00\x00\x00a\x00\x00",     # empty namespace
    ])
    def test_malformed(self, key):
        with pytest.raises(LedgerError) as exc:
            decode(key)
        assert exc.value.kind == ErrorKind.MALFORMED_KEY
