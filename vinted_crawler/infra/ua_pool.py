"""User-Agent pool pinning one browser identity per session."""

from __future__ import annotations

import random
from threading import Lock
from typing import Iterable, List

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
)


class UserAgentPool:
    """Return random user agents from configured pool, or a stable default."""

    def __init__(self, user_agents: Iterable[str] | None = None) -> None:
        self._lock = Lock()
        self._uas: List[str] = []
        if user_agents:
            self._uas.extend(ua.strip() for ua in user_agents if ua.strip())

    def get(self) -> str:
        with self._lock:
            if not self._uas:
                return DEFAULT_USER_AGENT
            return random.choice(self._uas)


__all__ = ["DEFAULT_USER_AGENT", "UserAgentPool"]
