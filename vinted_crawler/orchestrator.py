"""Run orchestrator wiring together query, session, fetching, normalisation and export."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

import structlog

from .config import ConfigRepository, CrawlInput, GlobalConfig, parse_crawl_input
from .engine import (
    CatalogPager,
    ItemNormalizer,
    PageFetcher,
    RunContext,
    StopReason,
    normalize_query,
)
from .engine.exporter import BaseExporter, FileExporter, MongoExporter, SQLiteExporter
from .errors import CrawlerError
from .infra import HttpxTransportProvider, ProxyPool, TransportProvider, UserAgentPool
from .logging_conf import run_logger


@dataclass(slots=True)
class RunSummary:
    """User-facing outcome of one run."""

    run_id: str
    saved: int
    reason: StopReason
    pages_fetched: int = 0
    total_pages: int | None = None
    sessions_minted: int = 0
    error: CrawlerError | None = None
    output_path: Path | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def as_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "saved": self.saved,
            "reason": self.reason.value,
            "pages_fetched": self.pages_fetched,
            "total_pages": self.total_pages,
            "sessions_minted": self.sessions_minted,
            "error": f"{type(self.error).__name__}: {self.error}" if self.error else None,
            "output_path": str(self.output_path) if self.output_path else None,
        }


class Orchestrator:
    """Central coordinator managing the lifecycle of a crawl run."""

    def __init__(
        self,
        config_repository: ConfigRepository | None = None,
        global_config: GlobalConfig | None = None,
        transport_provider: TransportProvider | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config_repository = config_repository
        if global_config is None:
            repository = config_repository or ConfigRepository()
            global_config = repository.load_global_config()
        self.global_config: GlobalConfig = global_config
        self.transport_provider = transport_provider
        self.sleep = sleep

    def run(
        self,
        crawl_input: CrawlInput | dict[str, Any] | None,
        sink: BaseExporter | None = None,
        run_id: str | None = None,
    ) -> RunSummary:
        run_id = run_id or uuid.uuid4().hex[:12]
        logger = run_logger(run_id)
        try:
            crawl_input = parse_crawl_input(crawl_input)
        except CrawlerError as exc:
            logger.error("run_failed", stage="validation", error=str(exc))
            return RunSummary(run_id=run_id, saved=0, reason=StopReason.FATAL_ERROR, error=exc)

        normalized = normalize_query(
            start_url=crawl_input.start_url,
            keyword=crawl_input.keyword,
            category=crawl_input.category,
            min_price=crawl_input.min_price,
            max_price=crawl_input.max_price,
            base_url=self.global_config.base_url,
        )
        context = RunContext.from_normalized(
            normalized,
            results_wanted=crawl_input.results_wanted,
            max_pages=crawl_input.max_pages,
            run_id=run_id,
        )
        logger.info(
            "run_started",
            initial_url=normalized.initial_url,
            catalog_ids=list(normalized.query.catalog_ids),
            results_wanted=context.results_wanted,
            max_pages=context.max_pages,
        )

        owns_sink = sink is None
        exporter = sink or self._create_exporter(crawl_input, run_id)
        output_path = getattr(exporter, "path", None)
        transport = self.transport_provider or self._create_transport(crawl_input, logger)
        fetcher = PageFetcher(self.global_config, transport, sleep=self.sleep, logger=logger)
        pager = CatalogPager(
            fetcher,
            ItemNormalizer(self.global_config.base_url),
            exporter,
            delay_range=self.global_config.page_delay_range,
            sleep=self.sleep,
            logger=logger,
        )

        error: CrawlerError | None = None
        try:
            reason = pager.run(context)
        except CrawlerError as exc:
            reason = StopReason.FATAL_ERROR
            error = exc
            logger.error(
                "run_failed",
                error_type=type(exc).__name__,
                error=str(exc),
                saved=context.saved,
                pages_fetched=context.pages_fetched,
            )
        finally:
            if owns_sink:
                exporter.flush()
                exporter.close()

        summary = RunSummary(
            run_id=run_id,
            saved=context.saved,
            reason=reason,
            pages_fetched=context.pages_fetched,
            total_pages=context.total_pages,
            sessions_minted=context.sessions_minted,
            error=error,
            output_path=Path(output_path) if output_path else None,
        )
        logger.info("run_finished", **summary.as_dict())
        return summary

    # ------------------------------------------------------------------
    def _create_transport(
        self, crawl_input: CrawlInput, logger: structlog.BoundLogger
    ) -> TransportProvider:
        proxy_settings = crawl_input.proxy_configuration
        proxy_pool = None
        if proxy_settings.use_proxy:
            proxy_pool = ProxyPool(proxy_settings.proxy_urls, file_path=self.global_config.proxy_file)
            if proxy_pool.empty:
                logger.warning("proxy_pool_empty", proxy_file=str(self.global_config.proxy_file))
                proxy_pool = None
        user_agents = self.global_config.user_agent_list
        ua_pool = UserAgentPool(user_agents if isinstance(user_agents, list) else None)
        return HttpxTransportProvider(
            proxy_pool=proxy_pool,
            ua_pool=ua_pool,
            timeout=self.global_config.request_timeout,
            logger=logger,
        )

    def _create_exporter(self, crawl_input: CrawlInput, run_id: str) -> BaseExporter:
        base_dir = Path(self.global_config.outputs_dir)
        base_dir.mkdir(parents=True, exist_ok=True)
        name = self._output_name(crawl_input)
        output_format = self.global_config.output_format
        if output_format in {"json", "csv"}:
            run_tag = f"{datetime.now(timezone.utc).strftime('%Y%m%d-%H%M%S')}-{run_id[:6]}"
            return FileExporter(base_dir, name, output_format, run_tag=run_tag)
        if output_format == "mongodb":
            return MongoExporter(
                self.global_config.mongo_uri,
                database=self.global_config.mongo_database,
                collection=self.global_config.mongo_collection,
            )
        if output_format == "sqlite":
            return SQLiteExporter(base_dir / f"{name}.db")
        raise ValueError(f"Unsupported output format: {output_format}")

    @staticmethod
    def _output_name(crawl_input: CrawlInput) -> str:
        label = crawl_input.keyword or crawl_input.category or "listings"
        if crawl_input.start_url:
            label = "custom"
        return f"vinted-{label}"


__all__ = ["Orchestrator", "RunSummary"]
