"""Transport provider handing out httpx clients bound to rotating identities."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

import httpx
import structlog

from .proxy_pool import ProxyPool
from .ua_pool import UserAgentPool


@dataclass(slots=True)
class Conduit:
    """Request-capable handle pinned to one identity (proxy + user agent)."""

    identity: str
    client: httpx.Client = field(repr=False)
    user_agent: str
    proxy: str | None = None

    def close(self) -> None:
        self.client.close()


class TransportProvider(Protocol):
    """Behaviour expected from egress providers."""

    def acquire(self, identity: str) -> Conduit:
        """Return a conduit bound to ``identity``."""

    def release(self, conduit: Conduit) -> None:
        """Dispose of a conduit that will not be used again."""


class HttpxTransportProvider:
    """Build one ``httpx.Client`` per identity, rotating proxies from the pool.

    ``transport`` replaces the network layer entirely (mock transports, custom
    adapters); when it is set no proxy is mounted.
    """

    def __init__(
        self,
        proxy_pool: ProxyPool | None = None,
        ua_pool: UserAgentPool | None = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.proxy_pool = proxy_pool
        self.ua_pool = ua_pool or UserAgentPool()
        self.timeout = timeout
        self.transport = transport
        self.logger = logger or structlog.get_logger("vinted_crawler.transport")

    def acquire(self, identity: str) -> Conduit:
        proxy = None
        if self.transport is None and self.proxy_pool and not self.proxy_pool.empty:
            proxy = self.proxy_pool.proxy_for(identity)
        client_kwargs: dict = {
            "follow_redirects": True,
            "timeout": httpx.Timeout(self.timeout),
        }
        if self.transport is not None:
            client_kwargs["transport"] = self.transport
        elif proxy:
            client_kwargs["proxy"] = proxy
        client = httpx.Client(**client_kwargs)
        self.logger.debug("conduit_acquired", identity=identity, proxied=proxy is not None)
        return Conduit(
            identity=identity,
            client=client,
            user_agent=self.ua_pool.get(),
            proxy=proxy,
        )

    def release(self, conduit: Conduit) -> None:
        conduit.close()
        if self.proxy_pool is not None:
            self.proxy_pool.release(conduit.identity)


__all__ = ["Conduit", "HttpxTransportProvider", "TransportProvider"]
