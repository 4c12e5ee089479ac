"""Error taxonomy shared by the crawl engine, orchestrator and CLI."""

from __future__ import annotations


class CrawlerError(Exception):
    """Base class for every error raised by Vinted-Crawler."""

    fatal = True

    def __init__(self, message: str = "Crawler error") -> None:
        self.message = message
        super().__init__(message)


class ValidationError(CrawlerError):
    """Invalid crawl input; raised before any network activity."""


class SessionBootstrapError(CrawlerError):
    """The priming request failed or did not yield an access token."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class AuthRejected(CrawlerError):
    """Catalog API rejected the session credentials (401/403)."""

    fatal = False

    def __init__(self, status_code: int, page: int) -> None:
        self.status_code = status_code
        self.page = page
        super().__init__(f"Credentials rejected with HTTP {status_code} on page {page}")


class TransientHttpError(CrawlerError):
    """Rate limiting, server error or transport timeout."""

    fatal = False

    def __init__(self, page: int, status_code: int | None = None, reason: str = "") -> None:
        self.status_code = status_code
        self.page = page
        label = f"HTTP {status_code}" if status_code is not None else reason or "transport error"
        super().__init__(f"Transient failure on page {page}: {label}")


class ParseError(CrawlerError):
    """A 200 response whose body is not a usable JSON document."""

    def __init__(self, page: int, detail: str) -> None:
        self.page = page
        super().__init__(f"Malformed catalog payload on page {page}: {detail}")


class UnexpectedStatusError(CrawlerError):
    """A status code outside every recoverable class."""

    def __init__(self, status_code: int, excerpt: str, page: int | None = None) -> None:
        self.status_code = status_code
        self.excerpt = excerpt
        self.page = page
        super().__init__(f"Unexpected HTTP {status_code}: {excerpt}")


class PageFetchExhausted(CrawlerError):
    """The per-page attempt budget ran out without a successful response."""

    def __init__(self, page: int, attempts: int) -> None:
        self.page = page
        self.attempts = attempts
        super().__init__(f"Page {page} failed after {attempts} attempts")


__all__ = [
    "AuthRejected",
    "CrawlerError",
    "PageFetchExhausted",
    "ParseError",
    "SessionBootstrapError",
    "TransientHttpError",
    "UnexpectedStatusError",
    "ValidationError",
]
