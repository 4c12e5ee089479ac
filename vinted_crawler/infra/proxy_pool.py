"""Proxy pool handing out one egress proxy per session identity."""

from __future__ import annotations

import random
from pathlib import Path
from threading import Lock
from typing import Iterable, List, Optional


class ProxyPool:
    """Circular proxy provider; each new identity advances to the next proxy."""

    def __init__(self, proxies: Iterable[str] | None = None, file_path: Path | None = None) -> None:
        self._lock = Lock()
        self._index = 0
        self._proxies: List[str] = []
        self._assigned: dict[str, str] = {}
        if proxies:
            self._proxies.extend(p.strip() for p in proxies if p.strip())
        if file_path and file_path.exists():
            lines = file_path.read_text(encoding="utf-8").splitlines()
            self._proxies.extend(line.strip() for line in lines if line.strip())
        random.shuffle(self._proxies)

    @property
    def empty(self) -> bool:
        return not self._proxies

    def __len__(self) -> int:
        return len(self._proxies)

    def proxy_for(self, identity: str) -> Optional[str]:
        """Return the proxy pinned to ``identity``, assigning the next one if new."""

        with self._lock:
            if identity not in self._assigned:
                proxy = self._next_locked()
                if proxy is None:
                    return None
                self._assigned[identity] = proxy
            return self._assigned[identity]

    def release(self, identity: str) -> None:
        with self._lock:
            self._assigned.pop(identity, None)

    def _next_locked(self) -> Optional[str]:
        if not self._proxies:
            return None
        proxy = self._proxies[self._index % len(self._proxies)]
        self._index += 1
        return proxy


__all__ = ["ProxyPool"]
