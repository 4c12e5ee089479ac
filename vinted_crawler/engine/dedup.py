"""Run-scoped deduplication of emitted listing ids."""

from __future__ import annotations

from typing import Iterable, Iterator


class SeenSet:
    """Ids already emitted during a run; members are only ever added."""

    def __init__(self, initial: Iterable[str] | None = None) -> None:
        self._ids: set[str] = set(initial or ())

    def check_and_add(self, item_id: str) -> bool:
        """Record ``item_id``; return ``False`` when it was seen before."""

        if item_id in self._ids:
            return False
        self._ids.add(item_id)
        return True

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(self._ids)


__all__ = ["SeenSet"]
