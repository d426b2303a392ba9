"""Tests for the Top-K collector."""

from __future__ import annotations

import math

import pytest

from fitpick.search.topk import TopKCollector, canonical_key

from conftest import PLANNED, READY, item


def combo(*sizes, provenance=READY):
    return tuple(item(s, c, provenance) for s, c in zip(sizes, "ABCA"))


class TestCanonicalKey:
    def test_order_independent(self):
        a, b, c = item(10, "A"), item(5, "B"), item(8, "C")
        assert canonical_key([a, b, c]) == canonical_key([c, a, b])

    def test_ignores_index_and_metadata(self):
        a1 = item(10, "A", index=0, room="1")
        a2 = item(10, "A", index=7, room="2")
        rest = [item(5, "B"), item(8, "C")]
        assert canonical_key([a1, *rest]) == canonical_key([a2, *rest])

    def test_provenance_distinguishes(self):
        rest = [item(5, "B"), item(8, "C")]
        assert canonical_key([item(10, "A", PLANNED), *rest]) != canonical_key(
            [item(10, "A", READY), *rest]
        )


class TestTopKCollector:
    def test_rejects_bad_k(self):
        with pytest.raises(ValueError):
            TopKCollector(0)

    def test_sorted_descending(self):
        collector = TopKCollector(5)
        for total in (20, 35, 25, 30):
            collector.offer(float(total), combo(total, 1, 1))
        assert [e.sum for e in collector.entries] == [35.0, 30.0, 25.0, 20.0]

    def test_duplicate_is_noop(self):
        collector = TopKCollector(5)
        assert collector.offer(23.0, combo(10, 5, 8))
        assert not collector.offer(23.0, combo(10, 5, 8))
        assert len(collector) == 1

    def test_permuted_duplicate_is_noop(self):
        collector = TopKCollector(5)
        picks = combo(10, 5, 8)
        collector.offer(23.0, picks)
        assert not collector.offer(23.0, tuple(reversed(picks)))
        assert len(collector) == 1

    def test_evicts_lowest(self):
        collector = TopKCollector(2)
        collector.offer(20.0, combo(10, 5, 5))
        collector.offer(30.0, combo(20, 5, 5))
        assert collector.offer(25.0, combo(15, 5, 5))
        assert [e.sum for e in collector.entries] == [30.0, 25.0]
        assert canonical_key(combo(10, 5, 5)) not in {e.key for e in collector.entries}

    def test_lower_than_all_when_full_is_not_retained(self):
        collector = TopKCollector(2)
        collector.offer(20.0, combo(10, 5, 5))
        collector.offer(30.0, combo(20, 5, 5))
        assert not collector.offer(10.0, combo(1, 4, 5))
        assert [e.sum for e in collector.entries] == [30.0, 20.0]
        assert canonical_key(combo(1, 4, 5)) not in {e.key for e in collector.entries}

    def test_ties_keep_earlier(self):
        collector = TopKCollector(1)
        first = combo(12, 6, 2)
        second = combo(10, 6, 4)
        assert collector.offer(20.0, first)
        assert not collector.offer(20.0, second)
        assert collector.entries[0].picks == first

    def test_min_keep(self):
        collector = TopKCollector(2)
        assert collector.min_keep == -math.inf
        collector.offer(30.0, combo(20, 5, 5))
        assert not collector.is_full
        assert collector.min_keep == -math.inf
        collector.offer(20.0, combo(10, 5, 5))
        assert collector.is_full
        assert collector.min_keep == 20.0
        collector.offer(25.0, combo(15, 5, 5))
        assert collector.min_keep == 25.0

    def test_entries_is_a_copy(self):
        collector = TopKCollector(2)
        collector.offer(30.0, combo(20, 5, 5))
        collector.entries.clear()
        assert len(collector) == 1
