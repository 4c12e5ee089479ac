"""File based exporter supporting JSON lines and CSV."""

from __future__ import annotations

import csv
import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from .base import BaseExporter


class FileExporter(BaseExporter):
    """Write records to local files, one file per run."""

    def __init__(self, output_dir: Path, name: str, fmt: str, run_tag: str | None = None) -> None:
        if fmt not in ("json", "csv"):
            raise ValueError(f"Unsupported file format: {fmt}")
        self.output_dir = output_dir
        self.name = name
        self.format = fmt
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.run_tag = run_tag or datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        slug = re.sub(r"[^0-9A-Za-z_-]+", "_", name.strip()) or "listings"
        filename = f"{slug}-{self.run_tag}.{self._extension}"
        self.path = self.output_dir / filename
        self._file = self.path.open("a", encoding="utf-8", newline="")
        self._csv_writer: Optional[csv.DictWriter] = None

    @property
    def _extension(self) -> str:
        return "jsonl" if self.format == "json" else "csv"

    def export(self, record: dict) -> None:
        if self.format == "json":
            json.dump(record, self._file, ensure_ascii=False)
            self._file.write("\n")
            return
        if not self._csv_writer:
            self._csv_writer = csv.DictWriter(
                self._file, fieldnames=list(record.keys()), extrasaction="ignore"
            )
            self._csv_writer.writeheader()
        self._csv_writer.writerow({key: self._flatten(value) for key, value in record.items()})

    def flush(self) -> None:
        self._file.flush()

    def close(self) -> None:
        self._file.close()

    @staticmethod
    def _flatten(value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return "|".join(str(item) for item in value)
        if value is None:
            return ""
        return value


__all__ = ["FileExporter"]
