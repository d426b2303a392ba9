"""Constrained Top-K combination search.

Formulation:
  Given three size-ascending groups A, B, C, a target T, a must-include
  provenance P and K >= 1, find the K highest-sum distinct combinations X:

    1. |X| = 3 with one unit per category, or |X| = 4 with exactly one
       category appearing twice
    2. Σ size(x) ≤ T  for x ∈ X
    3. some x ∈ X has provenance P
    4. every configured business rule accepts X

Algorithm:
  1. Build the pool: validate, filter, group by category, stable-sort by size
  2. 3 units: for every (a, b) ∈ A × B in size-descending order, close the
     sum with the largest c ∈ C that still fits (binary search)
  3. 4 units: for each duplicated category X with others Y, Z, for every
     pair in X and every y ∈ Y (size-descending), close with the best z ∈ Z
  4. Each closed combination passes the rule chain, then the Top-K collector

Pruning:
  Once K results are held, a partial sum p whose best possible completion
  p + max(Z) cannot beat the current worst kept sum ends the innermost loop,
  since every later (smaller) choice only lowers p.

All search state lives on a per-call enumerator, so concurrent calls over
the same items never share anything mutable.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Iterable, Sequence
from numbers import Real

from fitpick.exceptions import InvalidInputError
from fitpick.search.formatter import format_result
from fitpick.search.locate import best_fit
from fitpick.search.models import CandidateResult, Item, RawItem, SearchOptions
from fitpick.search.pool import CandidatePool, build_pool
from fitpick.search.rules import Rule, accepts, build_rules
from fitpick.search.topk import TopKCollector

logger = logging.getLogger("fitpick.search")

# Duplicated category first, then the loop category and the closing category
_FOUR_UNIT_SHAPES = (
    ("A", "B", "C"),
    ("B", "A", "C"),
    ("C", "A", "B"),
)


class _Enumerator:
    """Branch-and-bound enumeration over one pool."""

    def __init__(
        self,
        pool: CandidatePool,
        target: float,
        rules: Sequence[Rule],
        collector: TopKCollector,
    ) -> None:
        self.pool = pool
        self.target = target
        self.rules = rules
        self.collector = collector
        self.closed = 0  # combinations closed by the locator
        self.rejected = 0  # combinations refused by a rule

    def run(self) -> None:
        self.enumerate_three()
        for x, y, z in _FOUR_UNIT_SHAPES:
            self.enumerate_four(x, y, z)

    def _can_improve(self, partial: float, closing_max: float) -> bool:
        if not self.collector.is_full:
            return True
        return partial + closing_max > self.collector.min_keep

    def _collect(self, picks: Sequence[Item], total: float) -> None:
        if total > self.target:
            return
        self.closed += 1
        if not accepts(picks, self.rules):
            self.rejected += 1
            return
        self.collector.offer(total, picks)

    def enumerate_three(self) -> None:
        group_a = self.pool.group("A")
        group_b = self.pool.group("B")
        group_c = self.pool.group("C")
        max_c = self.pool.max_size("C")

        for a in reversed(group_a):
            for b in reversed(group_b):
                partial = a.size + b.size
                # A smaller b may still fit
                if partial > self.target:
                    continue
                if not self._can_improve(partial, max_c):
                    break
                c = best_fit(group_c, self.target - partial)
                if c is not None:
                    self._collect((a, b, c), partial + c.size)

    def enumerate_four(self, x: str, y: str, z: str) -> None:
        group_x = self.pool.group(x)
        group_y = self.pool.group(y)
        group_z = self.pool.group(z)
        max_z = self.pool.max_size(z)

        for i in range(len(group_x) - 1, 0, -1):
            for j in range(i - 1, -1, -1):
                sum_xx = group_x[i].size + group_x[j].size
                if sum_xx > self.target:
                    continue
                for item_y in reversed(group_y):
                    partial = sum_xx + item_y.size
                    if partial > self.target:
                        continue
                    if not self._can_improve(partial, max_z):
                        break
                    item_z = best_fit(group_z, self.target - partial)
                    if item_z is not None:
                        self._collect(
                            (group_x[i], group_x[j], item_y, item_z),
                            partial + item_z.size,
                        )


def _is_finite_number(value: object) -> bool:
    if not isinstance(value, Real) or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def validate_search_args(target: float, k: int, options: SearchOptions) -> None:
    """Raise InvalidInputError for parameters no search can run with."""
    if not _is_finite_number(target) or target <= 0:
        raise InvalidInputError(f"target must be a finite positive number, got {target!r}")
    if not isinstance(k, int) or isinstance(k, bool) or k < 1:
        raise InvalidInputError(f"k must be an integer >= 1, got {k!r}")

    for name in ("min_size", "max_size"):
        value = getattr(options, name)
        if value is not None and not math.isfinite(value):
            raise InvalidInputError(f"{name} must be finite, got {value!r}")
    if (
        options.min_size is not None
        and options.max_size is not None
        and options.min_size > options.max_size
    ):
        raise InvalidInputError(
            f"min_size ({options.min_size:g}) is greater than max_size ({options.max_size:g})"
        )

    ad = options.anti_dominance
    if ad is not None:
        for value in (ad.dominant_threshold, ad.others_threshold):
            if value is not None and not math.isfinite(value):
                raise InvalidInputError(f"anti-dominance thresholds must be finite, got {value!r}")
    cap = options.oversized_cap
    if cap is not None and cap.max_count < 0:
        raise InvalidInputError(f"oversized max_count must be >= 0, got {cap.max_count}")


def search(
    items: Iterable[RawItem],
    target: float,
    must_include: str,
    k: int = 10,
    options: SearchOptions | None = None,
    extra_rules: Sequence[Rule] = (),
) -> list[CandidateResult]:
    """Find the K best combinations of 3 or 4 units not exceeding `target`.

    Args:
        items: Raw units from both collections, in source order.
        target: The allowance to fill.
        must_include: Provenance tag every combination must contain.
        k: Maximum number of combinations to return.
        options: Size bounds, accepted sources and business rules.
        extra_rules: Additional deployment-specific rules.

    Returns:
        Up to K results ordered by sum descending. Empty if any category has
        no eligible unit.

    Raises:
        InvalidInputError: If the target, K or options are unusable.
    """
    options = options or SearchOptions()
    validate_search_args(target, k, options)
    target = float(target)

    t0 = time.perf_counter()
    pool = build_pool(
        items,
        target,
        accepted_provenances=options.sources,
        min_size=options.min_size,
        max_size=options.max_size,
    )
    if not pool.has_coverage:
        logger.info(
            f"No coverage for target={target:g}: "
            + ", ".join(f"{c}={len(g)}" for c, g in pool.groups.items())
        )
        return []

    collector = TopKCollector(k)
    enumerator = _Enumerator(pool, target, build_rules(must_include, options, extra_rules), collector)
    enumerator.run()

    results = [format_result(entry, target) for entry in collector.entries]
    elapsed = (time.perf_counter() - t0) * 1000
    logger.info(
        f"search spent {elapsed:.2f} ms target={target:g} k={k} pool={len(pool)} "
        f"closed={enumerator.closed} rejected={enumerator.rejected} results={len(results)}"
    )
    return results
