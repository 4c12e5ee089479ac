"""Per-page fetch state machine with re-authentication and backoff."""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

import httpx
import structlog

from ..config import GlobalConfig
from ..errors import (
    AuthRejected,
    CrawlerError,
    PageFetchExhausted,
    ParseError,
    TransientHttpError,
    UnexpectedStatusError,
)
from ..infra.transport import TransportProvider
from .context import RunContext
from .session import Session, SessionBootstrapper

CATALOG_ITEMS_PATH = "/api/v2/catalog/items"
EXCERPT_LENGTH = 200


class FetchState(str, Enum):
    """States of a single page attempt."""

    FETCHING = "fetching"
    SUCCESS = "success"
    AUTH_RETRY = "auth_retry"
    BACKOFF_RETRY = "backoff_retry"
    FATAL = "fatal"


def classify_status(status_code: int) -> FetchState:
    if status_code == 200:
        return FetchState.SUCCESS
    if status_code in {401, 403}:
        return FetchState.AUTH_RETRY
    if status_code == 429 or 500 <= status_code <= 599:
        return FetchState.BACKOFF_RETRY
    return FetchState.FATAL


@dataclass
class BackoffPolicy:
    """Exponential backoff with bounded uniform jitter (seconds)."""

    base: float = 0.8
    jitter: float = 0.6
    rng: random.Random = field(default_factory=random.Random, repr=False)

    def deterministic(self, attempt: int) -> float:
        return self.base * 2 ** (attempt - 1)

    def delay(self, attempt: int) -> float:
        return self.deterministic(attempt) + self.rng.uniform(0, self.jitter)


@dataclass(slots=True)
class PageResult:
    """Raw outcome of a successful page request."""

    page: int
    items: list[Any]
    total_pages: int | None
    attempts: int


@dataclass(slots=True)
class AttemptOutcome:
    state: FetchState
    payload: dict[str, Any] | None = None
    error: CrawlerError | None = None
    status_code: int | None = None


class PageFetcher:
    """Issue catalog page requests, owning the session lifecycle of a run."""

    def __init__(
        self,
        global_config: GlobalConfig,
        transport_provider: TransportProvider,
        bootstrapper: SessionBootstrapper | None = None,
        backoff: BackoffPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.global_config = global_config
        self.transport_provider = transport_provider
        self.logger = logger or structlog.get_logger("vinted_crawler.fetcher")
        self.bootstrapper = bootstrapper or SessionBootstrapper(logger=self.logger)
        self.backoff = backoff or BackoffPolicy(
            base=global_config.backoff_base, jitter=global_config.backoff_jitter
        )
        self.sleep = sleep
        self.max_attempts = global_config.max_attempts

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    def refresh_session(self, context: RunContext) -> Session:
        """Discard the current session (if any) and mint a replacement."""

        self.close_session(context)
        session = self.bootstrapper.bootstrap(self.transport_provider, context.normalized)
        context.session = session
        context.sessions_minted += 1
        return session

    def close_session(self, context: RunContext) -> None:
        session = context.session
        if session is None:
            return
        context.session = None
        if not session.closed:
            session.closed = True
            self.transport_provider.release(session.conduit)

    # ------------------------------------------------------------------
    def fetch_page(self, context: RunContext, page: int) -> PageResult:
        last_error: CrawlerError | None = None
        for attempt in range(1, self.max_attempts + 1):
            session = context.session or self.refresh_session(context)
            context.record_attempt(page)
            self.logger.debug(
                "page_request", page=page, attempt=attempt, state=FetchState.FETCHING.value
            )
            outcome = self._attempt(session, context, page)
            self.logger.debug(
                "page_attempt",
                page=page,
                attempt=attempt,
                state=outcome.state.value,
                status=outcome.status_code,
            )

            if outcome.state is FetchState.SUCCESS:
                payload = outcome.payload or {}
                return PageResult(
                    page=page,
                    items=payload["items"],
                    total_pages=payload.get("total_pages"),
                    attempts=attempt,
                )
            if outcome.state is FetchState.FATAL:
                raise outcome.error or CrawlerError(f"Page {page} failed")

            last_error = outcome.error
            if attempt >= self.max_attempts:
                break
            if outcome.state is FetchState.AUTH_RETRY:
                self.logger.warning(
                    "auth_rejected", page=page, attempt=attempt, status=outcome.status_code
                )
                self.refresh_session(context)
            else:
                delay = self.backoff.delay(attempt)
                self.logger.warning(
                    "backoff_scheduled",
                    page=page,
                    attempt=attempt,
                    status=outcome.status_code,
                    delay=round(delay, 3),
                    error=str(outcome.error),
                )
                self.sleep(delay)

        raise PageFetchExhausted(page, self.max_attempts) from last_error

    def page_url(self, context: RunContext, page: int) -> str:
        query_string = context.query.to_query_string(page, self.global_config.page_size)
        return f"{self.global_config.base_url}{CATALOG_ITEMS_PATH}?{query_string}"

    def _attempt(self, session: Session, context: RunContext, page: int) -> AttemptOutcome:
        try:
            # a redirect from the API means the session was bounced, not a new page
            response = session.client.get(
                self.page_url(context, page),
                headers=session.api_headers(context.initial_url),
                follow_redirects=False,
            )
        except httpx.DecodingError as exc:
            return AttemptOutcome(FetchState.FATAL, error=ParseError(page, f"undecodable body: {exc}"))
        except httpx.TransportError as exc:
            return AttemptOutcome(
                FetchState.BACKOFF_RETRY,
                error=TransientHttpError(page, reason=f"{type(exc).__name__}: {exc}"),
            )

        session.credentials.harvest(response)
        status = response.status_code
        state = classify_status(status)
        if state is FetchState.SUCCESS:
            try:
                payload = self._parse(response, page)
            except ParseError as exc:
                return AttemptOutcome(FetchState.FATAL, error=exc, status_code=status)
            return AttemptOutcome(state, payload=payload, status_code=status)
        if state is FetchState.AUTH_RETRY:
            return AttemptOutcome(state, error=AuthRejected(status, page), status_code=status)
        if state is FetchState.BACKOFF_RETRY:
            return AttemptOutcome(
                state, error=TransientHttpError(page, status_code=status), status_code=status
            )
        excerpt = " ".join(response.text[:EXCERPT_LENGTH].split())
        if not excerpt:
            excerpt = response.headers.get("location", "")
        return AttemptOutcome(
            FetchState.FATAL,
            error=UnexpectedStatusError(status, excerpt, page=page),
            status_code=status,
        )

    @staticmethod
    def _parse(response: httpx.Response, page: int) -> dict[str, Any]:
        try:
            document = response.json()
        except ValueError as exc:
            raise ParseError(page, str(exc)) from exc
        if not isinstance(document, dict):
            raise ParseError(page, f"expected a JSON object, got {type(document).__name__}")
        items = document.get("items")
        if items is None:
            items = []
        if not isinstance(items, list):
            raise ParseError(page, "`items` is not a list")
        total_pages = None
        pagination = document.get("pagination")
        if isinstance(pagination, dict):
            try:
                total_pages = int(pagination["total_pages"])
            except (KeyError, TypeError, ValueError):
                total_pages = None
        return {"items": items, "total_pages": total_pages}


__all__ = [
    "BackoffPolicy",
    "CATALOG_ITEMS_PATH",
    "FetchState",
    "PageFetcher",
    "PageResult",
    "classify_status",
]
