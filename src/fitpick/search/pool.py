"""Candidate pool construction.

Filters raw items down to valid, in-category, in-source units and groups
them by category, each group sorted ascending by size. Sorting is stable so
that equal sizes keep their source order, which keeps results deterministic.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Collection, Iterable
from dataclasses import dataclass, field
from typing import Any

from fitpick.search.models import Item, RawItem
from fitpick.search.normalize import SEARCH_CATEGORIES, normalize_category

logger = logging.getLogger("fitpick.search")


def parse_size(value: Any) -> float | None:
    """Coerce a raw size to a finite positive float, or None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        size = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(size) or size <= 0:
        return None
    return size


@dataclass
class CandidatePool:
    """Three size-ascending groups, one per search category."""

    groups: dict[str, list[Item]] = field(
        default_factory=lambda: {c: [] for c in SEARCH_CATEGORIES}
    )
    dropped: int = 0

    @property
    def has_coverage(self) -> bool:
        return all(self.groups[c] for c in SEARCH_CATEGORIES)

    def group(self, category: str) -> list[Item]:
        return self.groups[category]

    def max_size(self, category: str) -> float:
        group = self.groups[category]
        return group[-1].size if group else -math.inf

    def __len__(self) -> int:
        return sum(len(g) for g in self.groups.values())


def build_pool(
    items: Iterable[RawItem],
    target: float,
    accepted_provenances: Collection[str] | None = None,
    min_size: float | None = None,
    max_size: float | None = None,
) -> CandidatePool:
    """Build the candidate pool for one search.

    Args:
        items: Raw items in source order.
        target: Search target; any single unit larger than it is discarded.
        accepted_provenances: Allowed source tags. None accepts every tag.
        min_size: Optional inclusive lower size bound.
        max_size: Optional inclusive upper size bound.

    Returns:
        The pool. ``has_coverage`` is False if any category ended up empty.
    """
    pool = CandidatePool()
    accepted = set(accepted_provenances) if accepted_provenances is not None else None

    for index, raw in enumerate(items):
        size = parse_size(raw.size)
        category = normalize_category(raw.category)
        if size is None or category not in SEARCH_CATEGORIES:
            pool.dropped += 1
            continue
        if not isinstance(raw.provenance, str) or not raw.provenance:
            pool.dropped += 1
            continue
        if accepted is not None and raw.provenance not in accepted:
            pool.dropped += 1
            continue
        if min_size is not None and size < min_size:
            pool.dropped += 1
            continue
        if (max_size is not None and size > max_size) or size > target:
            pool.dropped += 1
            continue
        pool.groups[category].append(
            Item(
                size=size,
                category=category,
                provenance=raw.provenance,
                index=index,
                metadata=raw.metadata,
            )
        )

    for group in pool.groups.values():
        group.sort(key=lambda x: x.size)

    if pool.dropped:
        logger.debug(f"Pool build dropped {pool.dropped} item(s)")
    return pool
