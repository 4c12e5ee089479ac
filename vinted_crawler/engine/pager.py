"""Sequential page loop: fetch, normalise, push, decide whether to continue."""

from __future__ import annotations

import random
import time
from enum import Enum
from typing import Callable

import structlog

from .context import RunContext
from .exporter import BaseExporter
from .fetcher import PageFetcher, PageResult
from .normalizer import ItemNormalizer


class StopReason(str, Enum):
    """Why a run ended."""

    BUDGET_REACHED = "results_wanted_reached"
    CATALOG_EXHAUSTED = "catalog_exhausted"
    LAST_PAGE_REACHED = "last_page_reached"
    PAGE_LIMIT_REACHED = "max_pages_reached"
    FATAL_ERROR = "fatal_error"


class CatalogPager:
    """Drive pages strictly one after another until a stop condition holds."""

    def __init__(
        self,
        fetcher: PageFetcher,
        normalizer: ItemNormalizer,
        sink: BaseExporter,
        delay_range: tuple[float, float] = (0.0, 0.0),
        sleep: Callable[[float], None] = time.sleep,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.normalizer = normalizer
        self.sink = sink
        self.delay_range = delay_range
        self.sleep = sleep
        self.logger = logger or structlog.get_logger("vinted_crawler.pager")

    def run(self, context: RunContext) -> StopReason:
        try:
            if context.session is None:
                self.fetcher.refresh_session(context)
            for page in range(1, context.max_pages + 1):
                if page > 1:
                    self._pause()
                result = self.fetcher.fetch_page(context, page)
                context.pages_fetched += 1
                if context.total_pages is None and result.total_pages is not None:
                    context.total_pages = result.total_pages
                    self.logger.info("total_pages_reported", total_pages=result.total_pages)

                batch = self.normalizer.process_page(
                    result.items, page, context.seen, context.remaining
                )
                self.sink.push(batch.records())
                context.saved += len(batch.items)
                self.logger.info(
                    "page_saved",
                    page=page,
                    attempts=result.attempts,
                    received=len(result.items),
                    saved=len(batch.items),
                    duplicates=batch.duplicates,
                    discarded=batch.discarded,
                    truncated=batch.truncated,
                    total_saved=context.saved,
                    results_wanted=context.results_wanted,
                )

                reason = self._stop_reason(context, result)
                if reason is not None:
                    self.logger.info("run_stopped", page=page, reason=reason.value)
                    return reason
            self.logger.info(
                "run_stopped", page=context.max_pages, reason=StopReason.PAGE_LIMIT_REACHED.value
            )
            return StopReason.PAGE_LIMIT_REACHED
        finally:
            self.fetcher.close_session(context)

    @staticmethod
    def _stop_reason(context: RunContext, result: PageResult) -> StopReason | None:
        if not result.items:
            return StopReason.CATALOG_EXHAUSTED
        if context.budget_reached:
            return StopReason.BUDGET_REACHED
        if context.total_pages is not None and result.page >= context.total_pages:
            return StopReason.LAST_PAGE_REACHED
        return None

    def _pause(self) -> None:
        low, high = self.delay_range
        if high <= 0:
            return
        self.sleep(random.uniform(low, high))


__all__ = ["CatalogPager", "StopReason"]
