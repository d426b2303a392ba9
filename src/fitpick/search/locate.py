"""Best-fit lookup over a size-ascending group."""

from __future__ import annotations

import bisect
from collections.abc import Sequence

from fitpick.search.models import Item


def _size(item: Item) -> float:
    return item.size


def insertion_point(group: Sequence[Item], residual: float) -> int:
    """Index of the first item whose size exceeds `residual`."""
    return bisect.bisect_right(group, residual, key=_size)


def best_fit(group: Sequence[Item], residual: float) -> Item | None:
    """Largest item with size <= `residual`, or None."""
    if residual < 0:
        return None
    idx = insertion_point(group, residual) - 1
    return group[idx] if idx >= 0 else None
