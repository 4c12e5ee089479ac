"""Shared fixtures: isolated crawler home, fast config and a fake catalog service."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterable

import httpx
import pytest

from vinted_crawler.config import ConfigLocator, ConfigRepository, GlobalConfig
from vinted_crawler.engine.fetcher import CATALOG_ITEMS_PATH
from vinted_crawler.infra import HttpxTransportProvider

TIMEOUT = "timeout"


def make_item(item_id: int | str, **overrides: Any) -> dict[str, Any]:
    item: dict[str, Any] = {
        "id": item_id,
        "title": f"Item {item_id}",
        "brand_title": "Levi's",
        "size_title": "M",
        "status": "Very good",
        "price": {"amount": "12.5", "currency_code": "EUR"},
        "total_item_price": {"amount": "13.9", "currency_code": "EUR"},
        "photo": {"url": f"https://images.example/{item_id}.jpg"},
        "url": f"https://www.vinted.com/items/{item_id}-jeans",
        "user": {"id": 77, "login": "seller77"},
    }
    item.update(overrides)
    return item


class FakeVinted:
    """Scriptable stand-in for the catalog document and API endpoints.

    Pages without a script answer 200 with ``pages[n]``; scripted outcomes
    (``httpx.Response`` objects or :data:`TIMEOUT`) are consumed first.
    """

    TIMEOUT = TIMEOUT

    def __init__(
        self,
        pages: dict[int, list[Any]] | None = None,
        total_pages: int | None = None,
        bootstrap_cookies: dict[str, str] | None = None,
        bootstrap_status: int = 200,
    ) -> None:
        self.pages = pages or {}
        self.total_pages = total_pages
        self.bootstrap_cookies = bootstrap_cookies
        self.bootstrap_status = bootstrap_status
        self.scripts: dict[int, list[Any]] = {}
        self.requests: list[httpx.Request] = []
        self.bootstrap_count = 0

    def script(self, page: int, *outcomes: Any) -> None:
        self.scripts.setdefault(page, []).extend(outcomes)

    @property
    def api_requests(self) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path == CATALOG_ITEMS_PATH]

    def pages_requested(self) -> list[int]:
        return [int(request.url.params["page"]) for request in self.api_requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == CATALOG_ITEMS_PATH:
            return self._api(request)
        return self._document()

    def _document(self) -> httpx.Response:
        self.bootstrap_count += 1
        cookies = self.bootstrap_cookies
        if cookies is None:
            cookies = {
                "access_token_web": f"token-{self.bootstrap_count}",
                "anon_id": f"anon-{self.bootstrap_count}",
            }
        headers = [("set-cookie", f"{name}={value}; Path=/") for name, value in cookies.items()]
        return httpx.Response(self.bootstrap_status, headers=headers, text="<html></html>")

    def _api(self, request: httpx.Request) -> httpx.Response:
        page = int(request.url.params.get("page", "1"))
        queue = self.scripts.get(page)
        if queue:
            outcome = queue.pop(0)
            if outcome == TIMEOUT:
                raise httpx.ReadTimeout("timed out", request=request)
            return outcome
        payload: dict[str, Any] = {"items": self.pages.get(page, [])}
        if self.total_pages is not None:
            payload["pagination"] = {"current_page": page, "total_pages": self.total_pages}
        return httpx.Response(200, json=payload)

    def transport_provider(self) -> HttpxTransportProvider:
        return HttpxTransportProvider(transport=httpx.MockTransport(self.handler))


@pytest.fixture(autouse=True)
def crawler_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("VINTED_CRAWLER_HOME", str(tmp_path))
    return tmp_path


@pytest.fixture
def sample_global_config(tmp_path: Path) -> GlobalConfig:
    return GlobalConfig(
        outputs_dir=tmp_path / "outputs",
        page_delay_range=(0.0, 0.0),
    )


@pytest.fixture
def fake_vinted() -> Callable[..., FakeVinted]:
    def _builder(**kwargs: Any) -> FakeVinted:
        return FakeVinted(**kwargs)

    return _builder


@pytest.fixture
def item_factory() -> Callable[..., dict[str, Any]]:
    return make_item


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def temp_config_repository(tmp_path: Path) -> Iterable[ConfigRepository]:
    locator = ConfigLocator(project_root=tmp_path)
    repository = ConfigRepository(locator)
    yield repository
