"""Export listings to a SQLite table keyed by listing id."""

from __future__ import annotations

import json
import re
from pathlib import Path

import sqlite3

from .base import BaseExporter

_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SQLiteExporter(BaseExporter):
    """Persist records as JSON blobs, one row per listing id."""

    def __init__(self, path: Path, table: str = "listings") -> None:
        if not _TABLE_NAME.match(table):
            raise ValueError(f"Invalid table name: {table!r}")
        self.path = path
        self.table = table
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.path)
        self.conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self.table} (
                id TEXT PRIMARY KEY,
                page INTEGER,
                payload TEXT NOT NULL,
                saved_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
            """
        )
        self.conn.commit()

    def export(self, record: dict) -> None:
        self.conn.execute(
            f"INSERT OR REPLACE INTO {self.table}(id, page, payload) VALUES (?, ?, ?)",
            (str(record.get("id", "")), record.get("page"), json.dumps(record, ensure_ascii=False)),
        )

    def flush(self) -> None:
        self.conn.commit()

    def close(self) -> None:
        self.conn.commit()
        self.conn.close()


__all__ = ["SQLiteExporter"]
