"""Row loading and column mapping for the unit collections.

Two source formats are accepted:
  - ``.xlsx`` workbooks (first row is the header, every column is kept)
  - ``.json`` files holding an array of objects or an array of arrays

Files are only ever parsed as data.
"""

from __future__ import annotations

import json
import logging
import zipfile
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from fitpick.config import ColumnConfig
from fitpick.exceptions import DataSourceError
from fitpick.search.models import RawItem

logger = logging.getLogger("fitpick.data")

Row = dict[str, Any]

XLSX_SUFFIXES = {".xlsx", ".xlsm"}
JSON_SUFFIXES = {".json"}


def load_rows(
    path: str | Path,
    sheet: str | None = None,
    positional_columns: Sequence[str] = (),
) -> list[Row]:
    """Load rows from an .xlsx or .json file.

    Args:
        path: Source file.
        sheet: Worksheet name for workbooks (None = first sheet).
        positional_columns: Column names assigned, in order, to the values of
            array-shaped JSON rows.

    Returns:
        One dict per row, keyed by column name.

    Raises:
        DataSourceError: If the file is missing, unreadable or not a plain
            array of rows.
    """
    path = Path(path)
    if not path.is_file():
        raise DataSourceError(f"Source file not found: {path}")

    suffix = path.suffix.lower()
    if suffix in XLSX_SUFFIXES:
        rows = _load_xlsx(path, sheet)
    elif suffix in JSON_SUFFIXES:
        rows = _load_json(path, positional_columns)
    else:
        raise DataSourceError(
            f"Unsupported source format '{suffix}' for {path.name} (expected .xlsx or .json)"
        )
    logger.info(f"Parsed {path.name}{f' -> {sheet}' if sheet else ''}: {len(rows)} rows")
    return rows


def _load_xlsx(path: Path, sheet: str | None) -> list[Row]:
    try:
        wb = load_workbook(path, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, OSError, KeyError, ValueError) as e:
        raise DataSourceError(f"Cannot open workbook {path.name}: {e}") from e

    try:
        if sheet:
            if sheet not in wb.sheetnames:
                raise DataSourceError(f"Worksheet not found: {path.name} -> {sheet}")
            ws = wb[sheet]
        else:
            ws = wb.worksheets[0]

        values = ws.iter_rows(values_only=True)
        header_row = next(values, None)
        if header_row is None:
            return []
        header = [
            str(h).strip() if h is not None else f"column_{i + 1}"
            for i, h in enumerate(header_row)
        ]

        rows: list[Row] = []
        for raw in values:
            if raw is None or all(v is None for v in raw):
                continue
            row = {name: None for name in header}
            for name, value in zip(header, raw):
                row[name] = value
            rows.append(row)
        return rows
    finally:
        wb.close()


def _load_json(path: Path, positional_columns: Sequence[str]) -> list[Row]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DataSourceError(f"Cannot parse {path.name} as JSON: {e}") from e

    if not isinstance(data, list):
        raise DataSourceError(f"{path.name} must hold a JSON array of rows")
    if not data:
        return []

    if all(isinstance(r, dict) for r in data):
        return [dict(r) for r in data]
    if all(isinstance(r, list) for r in data):
        if not positional_columns:
            raise DataSourceError(f"{path.name} holds array rows but no column order was given")
        rows = []
        for r in data:
            row: Row = {name: None for name in positional_columns}
            for name, value in zip(positional_columns, r):
                row[name] = value
            rows.append(row)
        return rows
    raise DataSourceError(
        f"{path.name} must hold either only objects or only arrays as rows"
    )


def detect_column(
    rows: Sequence[Row],
    candidates: Sequence[str],
    fuzzy: Iterable[str] = (),
) -> str | None:
    """Find the first candidate column present in the rows' header."""
    if not rows:
        return None
    keys = list(rows[0].keys())
    for name in candidates:
        if name in keys:
            return name
    tokens = [t.lower() for t in fuzzy]
    for key in keys:
        if any(t in str(key).lower() for t in tokens):
            return key
    return None


def validate_columns(rows: Sequence[Row], required: Sequence[str], label: str) -> None:
    """Raise DataSourceError if rows are empty or miss a required column."""
    if not rows:
        raise DataSourceError(f"No rows in {label}")
    first = rows[0]
    for col in required:
        if col not in first:
            raise DataSourceError(f"Missing required column '{col}' in {label}")


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def rows_to_items(
    rows: Sequence[Row],
    provenance: str,
    columns: ColumnConfig,
    communities: Iterable[str] | None = None,
) -> list[RawItem]:
    """Map source rows to RawItems tagged with `provenance`.

    If `communities` is non-empty and a community column can be found, only
    rows from those communities are kept. Without a community column no row
    is filtered out.
    """
    category_key = detect_column(rows, columns.category) or columns.category[0]
    community_key = detect_column(rows, columns.community, fuzzy=("community", "estate"))

    wanted = {c.strip() for c in communities or () if c and c.strip()}
    if wanted and community_key is None:
        logger.warning(
            f"No community column found for '{provenance}' rows; community filter ignored"
        )

    items: list[RawItem] = []
    for i, row in enumerate(rows):
        community = _clean(row.get(community_key)) if community_key else None
        if wanted and community_key is not None and community not in wanted:
            continue

        metadata: dict[str, Any] = {"row": i + 1}
        if community is not None:
            metadata["community"] = community
        for key, column in (
            ("building", columns.building),
            ("door", columns.door),
            ("room", columns.room),
        ):
            value = _clean(row.get(column))
            if value is not None:
                metadata[key] = value

        items.append(
            RawItem(
                size=row.get(columns.size),
                category=row.get(category_key),
                provenance=provenance,
                metadata=metadata,
            )
        )
    return items


def list_communities(rows: Sequence[Row], columns: ColumnConfig) -> list[str]:
    """Distinct community names, sorted."""
    key = detect_column(rows, columns.community, fuzzy=("community", "estate"))
    if key is None:
        return []
    names = {name for name in (_clean(r.get(key)) for r in rows) if name}
    return sorted(names)
