"""Business rules applied to every candidate combination.

A rule is any callable taking the picked units and returning True to accept.
Rules see the complete combination and must not have side effects.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from fitpick.search.models import Item, SearchOptions

Rule = Callable[[Sequence[Item]], bool]


def require_provenance(tag: str) -> Rule:
    """Accept only combinations containing at least one unit from `tag`."""

    def rule(picks: Sequence[Item]) -> bool:
        return any(p.provenance == tag for p in picks)

    rule.__name__ = f"require_provenance[{tag}]"
    return rule


def anti_dominance(dominant_threshold: float, others_threshold: float) -> Rule:
    """Reject exactly one unit above `dominant_threshold` with all others below `others_threshold`."""

    def rule(picks: Sequence[Item]) -> bool:
        dominant = [p for p in picks if p.size > dominant_threshold]
        if len(dominant) != 1:
            return True
        others = [p for p in picks if p.size <= dominant_threshold]
        return not all(p.size < others_threshold for p in others)

    rule.__name__ = f"anti_dominance[{dominant_threshold:g}/{others_threshold:g}]"
    return rule


def cap_oversized(provenance: str, threshold: float, max_count: int = 1) -> Rule:
    """Reject more than `max_count` units from `provenance` larger than `threshold`."""

    def rule(picks: Sequence[Item]) -> bool:
        count = sum(1 for p in picks if p.provenance == provenance and p.size > threshold)
        return count <= max_count

    rule.__name__ = f"cap_oversized[{provenance}>{threshold:g}<={max_count}]"
    return rule


def build_rules(
    must_include: str,
    options: SearchOptions | None = None,
    extra: Sequence[Rule] = (),
) -> list[Rule]:
    """Assemble the rule chain for one search."""
    rules: list[Rule] = [require_provenance(must_include)]
    if options is not None:
        ad = options.anti_dominance
        if ad is not None and ad.active:
            rules.append(anti_dominance(ad.dominant_threshold, ad.others_threshold))
        cap = options.oversized_cap
        if cap is not None:
            rules.append(cap_oversized(cap.provenance, cap.threshold, cap.max_count))
    rules.extend(extra)
    return rules


def accepts(picks: Sequence[Item], rules: Sequence[Rule]) -> bool:
    return all(rule(picks) for rule in rules)
