"""Map retained combinations to the external result shape."""

from __future__ import annotations

from fitpick.search.models import CandidateResult, Item, ResultPick
from fitpick.search.topk import TopKEntry

# Floating-point summation noise is absorbed at this precision
SUM_PRECISION = 6

_LOCATION_FIELDS = (
    ("community", "{}"),
    ("building", "Bldg {}"),
    ("door", "No. {}"),
    ("room", "Rm {}"),
)


def item_label(item: Item) -> str:
    """Category plus provenance, followed by whatever location data is known."""
    label = f"{item.category}({item.provenance})"
    parts = []
    for key, fmt in _LOCATION_FIELDS:
        value = item.metadata.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            parts.append(fmt.format(text))
    if parts:
        label += " " + " ".join(parts)
    return label


def format_pick(item: Item) -> ResultPick:
    return ResultPick(
        size=item.size,
        category=item.category,
        provenance=item.provenance,
        label=item_label(item),
        metadata=dict(item.metadata),
    )


def format_result(entry: TopKEntry, target: float) -> CandidateResult:
    # Rounding must not push the shown sum past the target
    total = min(round(entry.sum, SUM_PRECISION), target)
    return CandidateResult(
        picks=[format_pick(p) for p in entry.picks],
        sum=total,
        target=target,
        gap=round(target - total, SUM_PRECISION),
    )
