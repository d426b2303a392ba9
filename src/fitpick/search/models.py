"""Data models for the combination search."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field


@dataclass
class RawItem:
    """A unit as delivered by ingestion, before any validation."""

    size: Any
    category: Any
    provenance: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Item:
    """A validated unit inside a candidate pool."""

    size: float
    category: str  # A, B or C
    provenance: str
    index: int = 0  # Position in the raw input
    metadata: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def identity(self) -> tuple[float, str, str]:
        return (self.size, self.category, self.provenance)


class AntiDominance(BaseModel):
    """Reject one big unit padded out with small ones."""

    enabled: bool = True
    dominant_threshold: float | None = None
    others_threshold: float | None = None

    @property
    def active(self) -> bool:
        return (
            self.enabled
            and self.dominant_threshold is not None
            and self.others_threshold is not None
        )


class OversizedCap(BaseModel):
    """Cap how many units above a size threshold may come from one source."""

    provenance: str
    threshold: float
    max_count: int = 1


class SearchOptions(BaseModel):
    """Optional knobs for a single search invocation."""

    min_size: float | None = None
    max_size: float | None = None
    sources: list[str] | None = None  # None = every provenance present
    anti_dominance: AntiDominance | None = None
    oversized_cap: OversizedCap | None = None


class ResultPick(BaseModel):
    """One unit of a returned combination."""

    size: float
    category: str
    provenance: str
    label: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class CandidateResult(BaseModel):
    """A returned combination, ready for display or export."""

    picks: list[ResultPick]
    sum: float
    target: float
    gap: float

    @property
    def item_count(self) -> int:
        return len(self.picks)
