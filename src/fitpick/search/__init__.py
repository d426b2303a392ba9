"""Constrained Top-K combination search.

Usage:
    from fitpick.search import RawItem, search

    items = [RawItem(62.5, "A", "planned"), RawItem(48.0, "B类", "ready"), ...]
    results = search(items, target=180.0, must_include="ready", k=10)
"""

from fitpick.search.engine import search
from fitpick.search.models import (
    AntiDominance,
    CandidateResult,
    Item,
    OversizedCap,
    RawItem,
    ResultPick,
    SearchOptions,
)
from fitpick.search.normalize import normalize_category

__all__ = [
    "search",
    "normalize_category",
    "AntiDominance",
    "CandidateResult",
    "Item",
    "OversizedCap",
    "RawItem",
    "ResultPick",
    "SearchOptions",
]
