"""Loading, caching and exporting unit data."""

from fitpick.data.dataset import Dataset
from fitpick.data.export import export_csv, export_xlsx
from fitpick.data.loader import load_rows, rows_to_items
from fitpick.data.store import RowStore

__all__ = ["Dataset", "RowStore", "export_csv", "export_xlsx", "load_rows", "rows_to_items"]
