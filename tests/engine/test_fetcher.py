from __future__ import annotations

import random

import httpx
import pytest

from vinted_crawler.engine import RunContext, normalize_query
from vinted_crawler.engine.fetcher import BackoffPolicy, FetchState, PageFetcher, classify_status
from vinted_crawler.errors import (
    AuthRejected,
    PageFetchExhausted,
    ParseError,
    TransientHttpError,
    UnexpectedStatusError,
)


def _context(**kwargs) -> RunContext:
    return RunContext.from_normalized(
        normalize_query(**kwargs), results_wanted=100, max_pages=10, run_id="test"
    )


def _fetcher(config, service, sleeps, seed: int = 7) -> PageFetcher:
    return PageFetcher(
        config,
        service.transport_provider(),
        backoff=BackoffPolicy(
            base=config.backoff_base, jitter=config.backoff_jitter, rng=random.Random(seed)
        ),
        sleep=sleeps.append,
    )


@pytest.mark.parametrize(
    ("status", "state"),
    [
        (200, FetchState.SUCCESS),
        (401, FetchState.AUTH_RETRY),
        (403, FetchState.AUTH_RETRY),
        (429, FetchState.BACKOFF_RETRY),
        (500, FetchState.BACKOFF_RETRY),
        (599, FetchState.BACKOFF_RETRY),
        (302, FetchState.FATAL),
        (404, FetchState.FATAL),
        (418, FetchState.FATAL),
    ],
)
def test_classify_status(status: int, state: FetchState) -> None:
    assert classify_status(status) is state


def test_backoff_grows_and_stays_within_jitter() -> None:
    policy = BackoffPolicy(base=0.8, jitter=0.6, rng=random.Random(3))
    assert [policy.deterministic(attempt) for attempt in (1, 2, 3)] == [0.8, 1.6, 3.2]
    for _ in range(100):
        delays = [policy.delay(attempt) for attempt in (1, 2, 3)]
        assert delays == sorted(delays)
        for attempt, delay in zip((1, 2, 3), delays):
            assert policy.deterministic(attempt) <= delay <= policy.deterministic(attempt) + 0.6


def test_fetch_page_sends_canonical_request(sample_global_config, fake_vinted, item_factory, sleeps) -> None:
    service = fake_vinted(pages={1: [item_factory(1)]}, total_pages=5)
    fetcher = _fetcher(sample_global_config, service, sleeps)
    context = _context(keyword="jeans", category="men")

    result = fetcher.fetch_page(context, 1)

    assert result.attempts == 1
    assert result.total_pages == 5
    assert [item["id"] for item in result.items] == [1]
    request = service.api_requests[0]
    assert request.url.params.get_list("catalog_ids[]") == ["5"]
    assert request.url.params["search_text"] == "jeans"
    assert request.url.params["order"] == "newest_first"
    assert request.url.params["per_page"] == "24"
    assert request.headers["Authorization"] == "Bearer token-1"
    assert request.headers["Referer"] == context.initial_url
    assert context.sessions_minted == 1
    assert sleeps == []


def test_auth_rejection_triggers_fresh_bootstrap(sample_global_config, fake_vinted, item_factory, sleeps) -> None:
    service = fake_vinted(pages={1: [item_factory(1)]})
    service.script(1, httpx.Response(403, text="forbidden"))
    fetcher = _fetcher(sample_global_config, service, sleeps)
    context = _context()

    result = fetcher.fetch_page(context, 1)

    assert result.attempts == 2
    assert service.bootstrap_count == 2
    assert context.sessions_minted == 2
    assert context.attempts[1] == 2
    assert [r.headers["Authorization"] for r in service.api_requests] == [
        "Bearer token-1",
        "Bearer token-2",
    ]
    assert sleeps == []


def test_transient_errors_back_off_with_growing_delays(
    sample_global_config, fake_vinted, item_factory, sleeps
) -> None:
    service = fake_vinted(pages={1: [item_factory(1)]})
    service.script(1, httpx.Response(429), httpx.Response(502), service.TIMEOUT)
    fetcher = _fetcher(sample_global_config, service, sleeps)

    result = fetcher.fetch_page(_context(), 1)

    assert result.attempts == 4
    assert service.bootstrap_count == 1
    assert len(sleeps) == 3
    assert sleeps == sorted(sleeps)
    assert 0.8 <= sleeps[0] <= 1.4
    assert 1.6 <= sleeps[1] <= 2.2
    assert 3.2 <= sleeps[2] <= 3.8


def test_attempt_budget_is_bounded(sample_global_config, fake_vinted, sleeps) -> None:
    service = fake_vinted()
    service.script(1, *[httpx.Response(503) for _ in range(6)])
    fetcher = _fetcher(sample_global_config, service, sleeps)
    context = _context()

    with pytest.raises(PageFetchExhausted) as excinfo:
        fetcher.fetch_page(context, 1)

    assert excinfo.value.attempts == 4
    assert isinstance(excinfo.value.__cause__, TransientHttpError)
    assert len(service.api_requests) == 4
    assert context.attempts[1] == 4
    # no wait after the final attempt
    assert len(sleeps) == 3


def test_repeated_auth_rejection_exhausts_budget(sample_global_config, fake_vinted, sleeps) -> None:
    service = fake_vinted()
    service.script(1, *[httpx.Response(401) for _ in range(4)])
    fetcher = _fetcher(sample_global_config, service, sleeps)

    with pytest.raises(PageFetchExhausted) as excinfo:
        fetcher.fetch_page(_context(), 1)

    assert isinstance(excinfo.value.__cause__, AuthRejected)
    assert len(service.api_requests) == 4
    assert service.bootstrap_count == 4
    assert sleeps == []


def test_malformed_body_is_fatal_without_retry(sample_global_config, fake_vinted, sleeps) -> None:
    service = fake_vinted()
    service.script(1, httpx.Response(200, text="<html>captcha</html>"))
    fetcher = _fetcher(sample_global_config, service, sleeps)

    with pytest.raises(ParseError):
        fetcher.fetch_page(_context(), 1)
    assert len(service.api_requests) == 1


def test_non_list_items_is_a_parse_error(sample_global_config, fake_vinted, sleeps) -> None:
    service = fake_vinted()
    service.script(1, httpx.Response(200, json={"items": {"id": 1}}))
    with pytest.raises(ParseError):
        _fetcher(sample_global_config, service, sleeps).fetch_page(_context(), 1)


def test_unexpected_status_carries_excerpt(sample_global_config, fake_vinted, sleeps) -> None:
    service = fake_vinted()
    service.script(1, httpx.Response(404, text="  Not \n found  "))
    fetcher = _fetcher(sample_global_config, service, sleeps)

    with pytest.raises(UnexpectedStatusError) as excinfo:
        fetcher.fetch_page(_context(), 1)

    assert excinfo.value.status_code == 404
    assert excinfo.value.excerpt == "Not found"
    assert len(service.api_requests) == 1
    assert sleeps == []


def test_close_session_releases_conduit(sample_global_config, fake_vinted, sleeps) -> None:
    service = fake_vinted()
    fetcher = _fetcher(sample_global_config, service, sleeps)
    context = _context()
    session = fetcher.refresh_session(context)

    fetcher.close_session(context)

    assert context.session is None
    assert session.closed
    assert session.client.is_closed


def test_undecodable_body_is_a_parse_error(sample_global_config, fake_vinted, sleeps) -> None:
    service = fake_vinted()
    service.script(1, httpx.Response(200, headers={"content-encoding": "gzip"}, content=b"not gzip"))
    fetcher = _fetcher(sample_global_config, service, sleeps)

    with pytest.raises(ParseError):
        fetcher.fetch_page(_context(), 1)
    assert len(service.api_requests) == 1
    assert sleeps == []


def test_api_redirect_is_not_followed(sample_global_config, fake_vinted, sleeps) -> None:
    service = fake_vinted()
    service.script(
        1,
        *[
            httpx.Response(302, headers={"location": "https://www.vinted.com/api/v2/catalog/items?page=1"})
            for _ in range(30)
        ],
    )
    fetcher = _fetcher(sample_global_config, service, sleeps)

    with pytest.raises(UnexpectedStatusError) as excinfo:
        fetcher.fetch_page(_context(), 1)

    assert excinfo.value.status_code == 302
    assert "catalog/items" in excinfo.value.excerpt
    assert len(service.api_requests) == 1


def test_cookies_set_by_api_are_sent_on_next_page(
    sample_global_config, fake_vinted, item_factory, sleeps
) -> None:
    service = fake_vinted(pages={2: [item_factory(2)]})
    service.script(
        1,
        httpx.Response(
            200,
            headers=[("set-cookie", "datadome=abc; Path=/")],
            json={"items": [item_factory(1)]},
        ),
    )
    fetcher = _fetcher(sample_global_config, service, sleeps)
    context = _context()

    fetcher.fetch_page(context, 1)
    fetcher.fetch_page(context, 2)

    first, second = service.api_requests
    assert "datadome" not in first.headers["Cookie"]
    assert "datadome=abc" in second.headers["Cookie"]
    assert "access_token_web=token-1" in second.headers["Cookie"]
    assert context.session.credentials.get("datadome") == "abc"
