from __future__ import annotations

import csv
import json
import sqlite3

import pytest

from vinted_crawler.engine.exporter import FileExporter, MemoryExporter, SQLiteExporter
from vinted_crawler.engine.normalizer import normalize_item


def _records(item_factory, *ids):
    return [normalize_item(item_factory(item_id), page=1).to_record() for item_id in ids]


def test_file_exporter_json_lines(tmp_path, item_factory) -> None:
    exporter = FileExporter(tmp_path, "vinted jeans", "json", run_tag="run1")
    assert exporter.push(_records(item_factory, 1, 2)) == 2
    exporter.close()

    assert exporter.path.name == "vinted_jeans-run1.jsonl"
    rows = [json.loads(line) for line in exporter.path.read_text(encoding="utf-8").splitlines()]
    assert [row["id"] for row in rows] == ["1", "2"]
    assert rows[0]["currency"] == "EUR"


def test_file_exporter_csv_flattens_lists(tmp_path, item_factory) -> None:
    exporter = FileExporter(tmp_path, "listings", "csv", run_tag="run2")
    record = _records(item_factory, 7)[0]
    record["matched_queries"] = ["jeans", "denim"]
    exporter.push([record])
    exporter.close()

    with exporter.path.open(encoding="utf-8", newline="") as stream:
        rows = list(csv.DictReader(stream))
    assert rows[0]["id"] == "7"
    assert rows[0]["matched_queries"] == "jeans|denim"
    assert rows[0]["search_score"] == ""


def test_file_exporter_rejects_unknown_format(tmp_path) -> None:
    with pytest.raises(ValueError):
        FileExporter(tmp_path, "listings", "xml")


def test_sqlite_exporter_upserts_by_id(tmp_path, item_factory) -> None:
    path = tmp_path / "listings.db"
    exporter = SQLiteExporter(path)
    exporter.push(_records(item_factory, 1, 2))
    updated = _records(item_factory, 1)[0]
    updated["title"] = "Renamed"
    exporter.push([updated])
    exporter.close()

    conn = sqlite3.connect(path)
    rows = conn.execute("SELECT id, payload FROM listings ORDER BY id").fetchall()
    conn.close()
    assert [row[0] for row in rows] == ["1", "2"]
    assert json.loads(rows[0][1])["title"] == "Renamed"


def test_sqlite_exporter_validates_table_name(tmp_path) -> None:
    with pytest.raises(ValueError):
        SQLiteExporter(tmp_path / "x.db", table="listings; DROP TABLE x")


def test_memory_exporter_tracks_batches(item_factory) -> None:
    exporter = MemoryExporter()
    exporter.push(_records(item_factory, 1, 2))
    exporter.push([])
    assert exporter.batches == [2, 0]
    assert len(exporter.records) == 2
