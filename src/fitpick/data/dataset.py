"""The two unit collections a search draws from."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from fitpick.config import CACHE_DB_FILE, ColumnConfig, ProjectConfig, get_fitpick_dir
from fitpick.data.loader import (
    Row,
    list_communities,
    load_rows,
    rows_to_items,
    validate_columns,
)
from fitpick.data.store import RowStore
from fitpick.exceptions import InvalidInputError
from fitpick.search.models import RawItem

logger = logging.getLogger("fitpick.data")

SOURCE_SELECTORS = ("A", "B", "AB")


def _positional_columns(columns: ColumnConfig) -> list[str]:
    return [columns.size, columns.category[0], columns.building, columns.door, columns.room]


def load_source(
    path: Path,
    sheet: str | None,
    columns: ColumnConfig,
    store: RowStore | None = None,
    refresh: bool = False,
) -> list[Row]:
    """Load one collection, going through the row cache when one is given.

    With `refresh`, the cached entry is dropped before the file is parsed.
    """
    label = f"{path.name}{f' -> {sheet}' if sheet else ''}"
    mtime = path.stat().st_mtime if path.exists() else None

    if store is not None:
        if refresh:
            # A failed re-parse must not leave the old rows behind
            store.invalidate(path)
        elif mtime is not None:
            cached = store.get(path, mtime)
            if cached is not None:
                logger.debug(f"Row cache hit for {label}")
                validate_columns(cached, [columns.size], f"{label} (cached)")
                return cached

    rows = load_rows(path, sheet, positional_columns=_positional_columns(columns))
    validate_columns(rows, [columns.size], label)
    if store is not None and mtime is not None:
        store.put(path, mtime, rows)
    return rows


@dataclass
class Dataset:
    """Planned and ready rows, plus how to turn them into search items."""

    planned_rows: list[Row] = field(default_factory=list)
    ready_rows: list[Row] = field(default_factory=list)
    columns: ColumnConfig = field(default_factory=ColumnConfig)
    planned_tag: str = "planned"
    ready_tag: str = "ready"

    @classmethod
    def load(
        cls,
        config: ProjectConfig,
        root: Path,
        refresh: bool = False,
        store: RowStore | None = None,
    ) -> Dataset:
        """Load both collections named in the config, relative to `root`."""
        own_store = store is None
        if own_store:
            store = RowStore(get_fitpick_dir(root) / CACHE_DB_FILE)
        try:
            data = config.data
            planned = load_source(
                root / data.planned_path, data.planned_sheet, config.columns, store, refresh
            )
            ready = load_source(
                root / data.ready_path, data.ready_sheet, config.columns, store, refresh
            )
        finally:
            if own_store:
                store.close()

        return cls(
            planned_rows=planned,
            ready_rows=ready,
            columns=config.columns,
            planned_tag=data.planned_tag,
            ready_tag=data.ready_tag,
        )

    def communities(self) -> list[str]:
        """Community names present in the ready collection."""
        return list_communities(self.ready_rows, self.columns)

    def source_tags(self, source: str) -> list[str]:
        """Provenance tags selected by a source selector (A, B or AB)."""
        selector = source.upper()
        if selector not in SOURCE_SELECTORS:
            raise InvalidInputError(
                f"source must be one of {', '.join(SOURCE_SELECTORS)}, got {source!r}"
            )
        tags = []
        if "A" in selector:
            tags.append(self.planned_tag)
        if "B" in selector:
            tags.append(self.ready_tag)
        return tags

    def raw_items(
        self,
        source: str = "AB",
        communities: Iterable[str] | None = None,
    ) -> list[RawItem]:
        """Search candidates for a source selector.

        `communities` narrows the ready collection only.
        """
        tags = self.source_tags(source)
        items: list[RawItem] = []
        if self.planned_tag in tags:
            items.extend(rows_to_items(self.planned_rows, self.planned_tag, self.columns))
        if self.ready_tag in tags:
            items.extend(
                rows_to_items(self.ready_rows, self.ready_tag, self.columns, communities)
            )
        return items

    @property
    def stats(self) -> dict[str, int]:
        return {
            "planned": len(self.planned_rows),
            "ready": len(self.ready_rows),
            "communities": len(self.communities()),
        }
