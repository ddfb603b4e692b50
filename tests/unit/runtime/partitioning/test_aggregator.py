"""Unit tests for partition merging and deduplication."""

from __future__ import annotations

import pytest

from calaim.records import Filter, RecordAggregator
from calaim.records.core.enums import FilterKind
from calaim.records.runtime.partitioning.aggregator import SYNTHETIC_PREFIX

A = Filter(where="MCO='A'", index=0, label="A", kind=FilterKind.VALUE)
B = Filter(where="MCO='B'", index=1, label="B", kind=FilterKind.VALUE)
UNKNOWN = Filter(where="MCO IS NULL OR MCO=''", index=2, label="<unknown>", kind=FilterKind.CATCH_ALL)


class TestRecordAggregator:
    """Test RecordAggregator functionality."""

    def test_first_seen_wins(self):
        """Test that a record appearing in two partitions keeps the first copy."""
        first = {"client_ID2": "A1", "name": "X"}
        second = {"client_ID2": "A1", "name": "Y"}

        merged = RecordAggregator().merge([(A, [first]), (B, [second])])

        assert merged == [first]
        assert merged[0]["name"] == "X"

    def test_order_is_partition_then_page_order(self):
        merged = RecordAggregator().merge(
            [
                (A, [{"id": "1"}, {"id": "2"}]),
                (B, [{"id": "3"}]),
                (UNKNOWN, [{"id": "4"}]),
            ]
        )

        assert [r["id"] for r in merged] == ["1", "2", "3", "4"]

    def test_duplicates_within_one_partition(self):
        merged = RecordAggregator().merge([(A, [{"id": "1", "v": 1}, {"id": "1", "v": 2}])])

        assert merged == [{"id": "1", "v": 1}]

    def test_alias_priority(self):
        """Test that the first non-empty alias is the key."""
        aggregator = RecordAggregator()

        assert aggregator.primary_key({"client_ID2": "A1", "id": "9"}) == "A1"
        assert aggregator.primary_key({"client_ID2": "", "Client_ID2": "B2"}) == "B2"
        assert aggregator.primary_key({"client_ID2": "  ", "id": 42}) == "42"
        assert aggregator.primary_key({"name": "nobody"}) is None

    def test_keys_from_different_aliases_collide(self):
        """Test that the same id under two alias spellings is one record."""
        merged = RecordAggregator().merge(
            [(A, [{"client_ID2": "A1", "v": 1}]), (B, [{"Client_ID2": "A1", "v": 2}])]
        )

        assert len(merged) == 1
        assert merged[0]["v"] == 1

    def test_keys_are_compared_as_strings(self):
        merged = RecordAggregator().merge([(A, [{"id": 7}]), (B, [{"id": "7"}])])

        assert len(merged) == 1

    def test_records_without_id_are_never_coalesced(self):
        """Test that key-less records all survive, even identical ones."""
        orphan = {"name": "no id"}

        keyed, stats = RecordAggregator().merge_keyed([(A, [orphan, dict(orphan)]), (B, [dict(orphan)])])

        assert len(keyed) == 3
        assert all(entry.synthetic for entry in keyed)
        assert all(entry.key.startswith(SYNTHETIC_PREFIX) for entry in keyed)
        assert len({entry.key for entry in keyed}) == 3
        assert stats.synthetic_keys == 3
        assert stats.duplicates_dropped == 0

    def test_merge_stats(self):
        keyed, stats = RecordAggregator().merge_keyed(
            [
                (A, [{"id": "1"}, {"id": "2"}]),
                (B, [{"id": "2"}, {"id": "3"}, {"other": "x"}]),
            ]
        )

        assert stats.raw_total == 5
        assert stats.unique_total == 4
        assert stats.duplicates_dropped == 1
        assert stats.synthetic_keys == 1
        assert [entry.key for entry in keyed[:3]] == ["1", "2", "3"]

    def test_custom_aliases(self):
        aggregator = RecordAggregator(id_aliases=("record_no",))

        merged = aggregator.merge([(A, [{"record_no": "r1", "id": "x"}, {"record_no": "r1", "id": "y"}])])

        assert len(merged) == 1

    def test_empty_aliases_rejected(self):
        with pytest.raises(ValueError, match="id_aliases"):
            RecordAggregator(id_aliases=())
