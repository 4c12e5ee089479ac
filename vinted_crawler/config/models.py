"""Pydantic models used across Vinted-Crawler configuration flow."""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_BASE_URL = "https://www.vinted.com"
DEFAULT_RESULTS_WANTED = 20
DEFAULT_MAX_PAGES = 10


def _coerce_positive_int(value: Any, default: int) -> int:
    """Clamp loosely typed counters to a positive integer, falling back on garbage."""

    if value in (None, ""):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return max(1, int(number))


class ProxyConfiguration(BaseModel):
    """Opaque proxy settings handed to the transport provider."""

    model_config = ConfigDict(populate_by_name=True)

    use_proxy: bool = Field(default=False, alias="useProxy")
    proxy_urls: list[str] = Field(default_factory=list, alias="proxyUrls")

    @field_validator("proxy_urls", mode="before")
    @classmethod
    def _coerce_urls(cls, value: Any) -> list[str]:
        if value in (None, ""):
            return []
        if isinstance(value, str):
            value = [value]
        return [str(item).strip() for item in value if str(item).strip()]


class CrawlInput(BaseModel):
    """User supplied crawl parameters for a single run."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    start_url: str | None = Field(default=None, alias="startUrl")
    keyword: str = ""
    category: str = "women"
    min_price: float | None = Field(default=None, alias="minPrice")
    max_price: float | None = Field(default=None, alias="maxPrice")
    results_wanted: int = Field(default=DEFAULT_RESULTS_WANTED, alias="resultsWanted")
    max_pages: int = Field(default=DEFAULT_MAX_PAGES, alias="maxPages")
    proxy_configuration: ProxyConfiguration = Field(
        default_factory=ProxyConfiguration, alias="proxyConfiguration"
    )

    @field_validator("start_url", mode="before")
    @classmethod
    def _blank_url(cls, value: Any) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        if not text:
            return None
        if not text.startswith(("http://", "https://")):
            raise ValueError("startUrl must be an absolute http(s) URL")
        return text

    @field_validator("keyword", "category", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("min_price", "max_price")
    @classmethod
    def _non_negative(cls, value: float | None) -> float | None:
        if value is not None and value < 0:
            raise ValueError("Price bounds must be non-negative")
        return value

    @field_validator("results_wanted", mode="before")
    @classmethod
    def _coerce_results(cls, value: Any) -> int:
        return _coerce_positive_int(value, DEFAULT_RESULTS_WANTED)

    @field_validator("max_pages", mode="before")
    @classmethod
    def _coerce_pages(cls, value: Any) -> int:
        return _coerce_positive_int(value, DEFAULT_MAX_PAGES)

    @field_validator("proxy_configuration", mode="before")
    @classmethod
    def _default_proxy(cls, value: Any) -> Any:
        return {} if value is None else value

    @model_validator(mode="after")
    def _validate_price_range(self) -> "CrawlInput":
        if (
            self.min_price is not None
            and self.max_price is not None
            and self.min_price > self.max_price
        ):
            raise ValueError(
                f"minPrice ({self.min_price:g}) must not exceed maxPrice ({self.max_price:g})"
            )
        return self


class GlobalConfig(BaseModel):
    """Global controls shared across runs."""

    base_url: str = DEFAULT_BASE_URL
    page_size: int = 24
    request_timeout: float = 30.0
    max_attempts: int = 4
    backoff_base: float = 0.8
    backoff_jitter: float = 0.6
    page_delay_range: tuple[float, float] = (1.5, 3.0)
    user_agent_list: list[str] | Path | None = None
    proxy_file: Path | None = None
    output_format: Literal["json", "csv", "sqlite", "mongodb"] = "json"
    outputs_dir: Path = Field(default=Path("data/outputs"))
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_database: str = "vinted_crawler"
    mongo_collection: str = "listings"

    @field_validator("base_url")
    @classmethod
    def _strip_base(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("page_size", "max_attempts")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("Value must be >= 1")
        return value

    @field_validator("request_timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("request_timeout must be > 0")
        return value

    @field_validator("backoff_base", "backoff_jitter")
    @classmethod
    def _non_negative_backoff(cls, value: float) -> float:
        if value < 0:
            raise ValueError("Backoff parameters must be non-negative")
        return value

    @field_validator("page_delay_range", mode="before")
    @classmethod
    def _coerce_delay(cls, value: Any) -> tuple[float, float]:
        if value in (None, ""):
            return (0.0, 0.0)
        if isinstance(value, (list, tuple)) and len(value) == 2:
            low, high = float(value[0]), float(value[1])
            if low < 0 or high < 0:
                raise ValueError("Delay range values must be non-negative")
            if high < low:
                raise ValueError("Delay range upper bound must be >= lower bound")
            return (low, high)
        raise ValueError("Delay range expects a two-item list or tuple")

    @field_validator("outputs_dir", mode="before")
    @classmethod
    def _coerce_dirs(cls, value: Any) -> Path:
        return Path(value)

    @model_validator(mode="after")
    def _apply_user_agents(self) -> "GlobalConfig":
        if isinstance(self.user_agent_list, Path):
            if not self.user_agent_list.exists():
                raise ValueError(f"UA file not found: {self.user_agent_list}")
            content = self.user_agent_list.read_text(encoding="utf-8").splitlines()
            self.user_agent_list = [line.strip() for line in content if line.strip()]
        return self


__all__ = [
    "CrawlInput",
    "DEFAULT_BASE_URL",
    "DEFAULT_MAX_PAGES",
    "DEFAULT_RESULTS_WANTED",
    "GlobalConfig",
    "ProxyConfiguration",
]
