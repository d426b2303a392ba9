"""Bounded, deduplicated Top-K collection of combinations."""

from __future__ import annotations

import bisect
import math
from collections.abc import Sequence
from dataclasses import dataclass

from fitpick.search.models import Item

CanonicalKey = tuple[tuple[float, str, str], ...]


def canonical_key(picks: Sequence[Item]) -> CanonicalKey:
    """Order-independent identity: sorted (size, category, provenance) triples.

    Two combinations made of different physical units that agree on all three
    fields share a key.
    """
    return tuple(sorted(p.identity for p in picks))


@dataclass(frozen=True)
class TopKEntry:
    sum: float
    picks: tuple[Item, ...]
    key: CanonicalKey


def _neg_sum(entry: TopKEntry) -> float:
    return -entry.sum


class TopKCollector:
    """Keeps the K highest-sum distinct combinations seen so far.

    Entries stay ordered by sum descending. Among equal sums the earlier
    offer stays ahead, so on overflow the newest tie is the one evicted.
    """

    def __init__(self, k: int) -> None:
        if k < 1:
            raise ValueError(f"k must be >= 1, got {k}")
        self.k = k
        self._entries: list[TopKEntry] = []
        self._keys: set[CanonicalKey] = set()

    def offer(self, total: float, picks: Sequence[Item]) -> bool:
        """Offer a combination. Returns True if it is retained."""
        key = canonical_key(picks)
        if key in self._keys:
            return False

        entry = TopKEntry(sum=total, picks=tuple(picks), key=key)
        bisect.insort_right(self._entries, entry, key=_neg_sum)
        self._keys.add(key)

        if len(self._entries) > self.k:
            removed = self._entries.pop()
            self._keys.discard(removed.key)
            return removed is not entry
        return True

    @property
    def is_full(self) -> bool:
        return len(self._entries) >= self.k

    @property
    def min_keep(self) -> float:
        """Smallest retained sum, or -inf while there is room."""
        if not self.is_full:
            return -math.inf
        return self._entries[-1].sum

    @property
    def entries(self) -> list[TopKEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
