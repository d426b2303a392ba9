"""Persistent cache of parsed source rows using SQLite.

Parsing a large workbook takes far longer than a search, so parsed rows are
kept per source path together with the file's mtime. A cached entry is only
served while the mtime still matches.
"""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any


class RowStore:
    """Caches parsed rows keyed by source path and modification time."""

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._create_tables()
        return self._conn

    def _create_tables(self) -> None:
        conn = self._get_conn()
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS sources (
                path TEXT PRIMARY KEY,
                mtime REAL NOT NULL,
                row_count INTEGER NOT NULL,
                rows TEXT NOT NULL               -- JSON array of row objects
            );
        """)
        conn.commit()

    @staticmethod
    def _key(path: str | Path) -> str:
        return str(Path(path).resolve())

    def get(self, path: str | Path, mtime: float) -> list[dict[str, Any]] | None:
        """Return cached rows for `path` if they were stored for `mtime`."""
        conn = self._get_conn()
        row = conn.execute(
            "SELECT mtime, rows FROM sources WHERE path = ?", (self._key(path),)
        ).fetchone()
        if row is None or row["mtime"] != mtime:
            return None
        return json.loads(row["rows"])

    def put(self, path: str | Path, mtime: float, rows: list[dict[str, Any]]) -> None:
        """Store parsed rows for `path`, replacing any previous entry."""
        conn = self._get_conn()
        conn.execute(
            "INSERT OR REPLACE INTO sources (path, mtime, row_count, rows) VALUES (?, ?, ?, ?)",
            (
                self._key(path),
                mtime,
                len(rows),
                json.dumps(rows, ensure_ascii=False, default=str),
            ),
        )
        conn.commit()

    def invalidate(self, path: str | Path) -> None:
        conn = self._get_conn()
        conn.execute("DELETE FROM sources WHERE path = ?", (self._key(path),))
        conn.commit()

    def cached_sources(self) -> list[dict[str, Any]]:
        """List cached sources with their mtime and row count."""
        conn = self._get_conn()
        return [
            {"path": r["path"], "mtime": r["mtime"], "row_count": r["row_count"]}
            for r in conn.execute(
                "SELECT path, mtime, row_count FROM sources ORDER BY path"
            ).fetchall()
        ]

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None
