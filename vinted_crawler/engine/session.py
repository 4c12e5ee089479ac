"""Session bootstrapping: harvest cookies and tokens from a priming request."""

from __future__ import annotations

import itertools
import uuid
from dataclasses import dataclass, field
from typing import Callable, Iterator, Mapping

import httpx
import structlog

from ..errors import SessionBootstrapError
from ..infra.transport import Conduit, TransportProvider
from .query import NormalizedQuery

ACCESS_TOKEN_COOKIE = "access_token_web"
ANON_ID_COOKIE = "anon_id"

SEC_CH_UA = '"Chromium";v="122", "Google Chrome";v="122", "Not(A:Brand";v="24"'

DOCUMENT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
    "Sec-Ch-Ua": SEC_CH_UA,
    "Sec-Ch-Ua-Mobile": "?0",
    "Sec-Ch-Ua-Platform": '"Windows"',
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Upgrade-Insecure-Requests": "1",
}

API_HEADERS = {
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.9",
    "Sec-Ch-Ua": SEC_CH_UA,
    "Sec-Ch-Ua-Mobile": "?0",
    "Sec-Ch-Ua-Platform": '"Windows"',
    "Sec-Fetch-Dest": "empty",
    "Sec-Fetch-Mode": "cors",
    "Sec-Fetch-Site": "same-origin",
    "X-Requested-With": "XMLHttpRequest",
}


class CredentialStore:
    """Accumulating map of server-set cookies.

    Newer values overwrite older ones; names are never removed.
    """

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def update(self, values: Mapping[str, str]) -> None:
        for name, value in values.items():
            if name:
                self._values[name] = value

    def harvest(self, response: httpx.Response) -> int:
        """Merge cookies set by ``response`` and its redirect chain; return count."""

        harvested = 0
        for hop in [*response.history, response]:
            cookies = {cookie.name: cookie.value for cookie in hop.cookies.jar}
            self.update(cookies)
            harvested += len(cookies)
        return harvested

    def get(self, name: str, default: str | None = None) -> str | None:
        return self._values.get(name, default)

    def as_dict(self) -> dict[str, str]:
        return dict(self._values)

    def cookie_header(self) -> str:
        return "; ".join(f"{name}={value}" for name, value in self._values.items())

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)


@dataclass
class Session:
    """Credentials and transport binding used to authorize page requests."""

    conduit: Conduit
    credentials: CredentialStore
    anon_id: str
    access_token: str
    csrf_token: str
    generation: int = 1
    closed: bool = field(default=False, repr=False)

    @property
    def identity(self) -> str:
        return self.conduit.identity

    @property
    def client(self) -> httpx.Client:
        return self.conduit.client

    def api_headers(self, referer: str) -> dict[str, str]:
        headers = dict(API_HEADERS)
        headers["User-Agent"] = self.conduit.user_agent
        headers["Referer"] = referer
        headers["Authorization"] = f"Bearer {self.access_token}"
        headers["X-Anon-Id"] = self.anon_id
        headers["X-Csrf-Token"] = self.csrf_token
        cookie = self.credentials.cookie_header()
        if cookie:
            headers["Cookie"] = cookie
        return headers


class SessionBootstrapper:
    """Mint fresh sessions; the only way a session is obtained or refreshed."""

    def __init__(
        self,
        logger: structlog.BoundLogger | None = None,
        token_factory: Callable[[], str] | None = None,
    ) -> None:
        self.logger = logger or structlog.get_logger("vinted_crawler.session")
        self._token_factory = token_factory or (lambda: str(uuid.uuid4()))
        self._generation = itertools.count(1)

    def bootstrap(self, transport_provider: TransportProvider, query: NormalizedQuery) -> Session:
        generation = next(self._generation)
        conduit = transport_provider.acquire(f"session-{generation}")
        headers = dict(DOCUMENT_HEADERS)
        headers["User-Agent"] = conduit.user_agent
        try:
            response = conduit.client.get(query.initial_url, headers=headers)
        except httpx.HTTPError as exc:
            transport_provider.release(conduit)
            raise SessionBootstrapError(f"Priming request failed: {exc}") from exc

        if response.status_code >= 400:
            transport_provider.release(conduit)
            raise SessionBootstrapError(
                f"Priming request returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        credentials = CredentialStore()
        credentials.harvest(response)
        access_token = credentials.get(ACCESS_TOKEN_COOKIE)
        if not access_token:
            transport_provider.release(conduit)
            raise SessionBootstrapError(
                f"Priming response did not set `{ACCESS_TOKEN_COOKIE}`",
                status_code=response.status_code,
            )

        anon_id = credentials.get(ANON_ID_COOKIE) or self._token_factory()
        session = Session(
            conduit=conduit,
            credentials=credentials,
            anon_id=anon_id,
            access_token=access_token,
            csrf_token=self._token_factory(),
            generation=generation,
        )
        self.logger.info(
            "session_bootstrapped",
            identity=conduit.identity,
            generation=generation,
            cookies=len(credentials),
            anon_id_from_server=ANON_ID_COOKIE in credentials,
        )
        return session


__all__ = [
    "ACCESS_TOKEN_COOKIE",
    "ANON_ID_COOKIE",
    "CredentialStore",
    "Session",
    "SessionBootstrapper",
]
