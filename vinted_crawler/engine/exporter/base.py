"""Exporter Service Provider Interface (the run's sink)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable


class BaseExporter(ABC):
    """Uniform sink contract enabling plug-and-play outputs."""

    @abstractmethod
    def export(self, record: dict) -> None:
        """Persist a single record."""

    def push(self, records: Iterable[dict]) -> int:
        """Append a batch of records and flush; an empty batch is a no-op."""

        count = 0
        for record in records:
            self.export(record)
            count += 1
        if count:
            self.flush()
        return count

    @abstractmethod
    def flush(self) -> None:
        """Flush buffered data to destination."""

    @abstractmethod
    def close(self) -> None:
        """Release underlying resources."""


class MemoryExporter(BaseExporter):
    """Keep records in memory; used for programmatic runs."""

    def __init__(self) -> None:
        self.records: list[dict] = []
        self.batches: list[int] = []

    def export(self, record: dict) -> None:
        self.records.append(dict(record))

    def push(self, records: Iterable[dict]) -> int:
        count = super().push(records)
        self.batches.append(count)
        return count

    def flush(self) -> None:
        return

    def close(self) -> None:
        return


__all__ = ["BaseExporter", "MemoryExporter"]
