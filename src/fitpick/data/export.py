"""Export search results to tabular files (.xlsx, .csv)."""

from __future__ import annotations

import csv
from collections.abc import Sequence
from pathlib import Path
from typing import IO, Any

from openpyxl import Workbook

from fitpick.exceptions import ExportError
from fitpick.search.models import CandidateResult

MAX_PICKS = 4
SHEET_TITLE = "TopK"


def result_headers() -> list[str]:
    headers = []
    for i in range(1, MAX_PICKS + 1):
        headers += [f"item{i}_size", f"item{i}_label"]
    return headers + ["sum", "target", "gap"]


def result_row(result: CandidateResult) -> list[Any]:
    """Flatten one result; a 3-unit result leaves the last slot empty."""
    row: list[Any] = []
    for i in range(MAX_PICKS):
        if i < len(result.picks):
            pick = result.picks[i]
            row += [pick.size, pick.label]
        else:
            row += ["", ""]
    return row + [result.sum, result.target, result.gap]


def export_xlsx(results: Sequence[CandidateResult], dest: str | Path | IO[bytes]) -> None:
    """Write results to an .xlsx workbook (path or binary file object)."""
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE
    ws.append(result_headers())
    for result in results:
        ws.append(result_row(result))
    try:
        wb.save(dest)
    except OSError as e:
        raise ExportError(f"Failed to write workbook: {e}") from e


def export_csv(results: Sequence[CandidateResult], path: str | Path) -> None:
    """Write results to a CSV file (UTF-8 with BOM so spreadsheets detect it)."""
    try:
        with open(path, "w", newline="", encoding="utf-8-sig") as f:
            writer = csv.writer(f)
            writer.writerow(result_headers())
            for result in results:
                writer.writerow(result_row(result))
    except OSError as e:
        raise ExportError(f"Failed to write {path}: {e}") from e
