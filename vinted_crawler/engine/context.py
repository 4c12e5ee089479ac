"""Explicit mutable state threaded through one crawl run."""

from __future__ import annotations

from dataclasses import dataclass, field

from .dedup import SeenSet
from .query import CanonicalQuery, NormalizedQuery
from .session import Session


@dataclass
class RunContext:
    """Everything a run mutates: session, seen ids, counters."""

    query: CanonicalQuery
    initial_url: str
    results_wanted: int
    max_pages: int
    run_id: str = ""
    session: Session | None = None
    seen: SeenSet = field(default_factory=SeenSet)
    saved: int = 0
    pages_fetched: int = 0
    total_pages: int | None = None
    sessions_minted: int = 0
    attempts: dict[int, int] = field(default_factory=dict)

    @classmethod
    def from_normalized(
        cls, normalized: NormalizedQuery, results_wanted: int, max_pages: int, run_id: str = ""
    ) -> "RunContext":
        return cls(
            query=normalized.query,
            initial_url=normalized.initial_url,
            results_wanted=results_wanted,
            max_pages=max_pages,
            run_id=run_id,
        )

    @property
    def normalized(self) -> NormalizedQuery:
        return NormalizedQuery(query=self.query, initial_url=self.initial_url)

    @property
    def remaining(self) -> int:
        return max(0, self.results_wanted - self.saved)

    @property
    def budget_reached(self) -> bool:
        return self.saved >= self.results_wanted

    def record_attempt(self, page: int) -> int:
        self.attempts[page] = self.attempts.get(page, 0) + 1
        return self.attempts[page]


__all__ = ["RunContext"]
