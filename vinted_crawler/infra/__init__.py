"""Infra layer utilities (transport, proxy, UA pools)."""

from .proxy_pool import ProxyPool
from .transport import Conduit, HttpxTransportProvider, TransportProvider
from .ua_pool import DEFAULT_USER_AGENT, UserAgentPool

__all__ = [
    "Conduit",
    "DEFAULT_USER_AGENT",
    "HttpxTransportProvider",
    "ProxyPool",
    "TransportProvider",
    "UserAgentPool",
]
