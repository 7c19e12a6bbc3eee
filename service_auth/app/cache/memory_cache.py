"""
In-process cache backend, used when no Redis server is available.
"""

import time
from datetime import timedelta
from typing import Callable, Dict, Optional, Tuple


class InMemoryDistributedCache:
    """Dictionary-backed cache with the same expiry rules as the Redis backend."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[str, Optional[float]]] = {}

    def _purge(self, key: str) -> None:
        entry = self._entries.get(key)
        if entry is not None and entry[1] is not None and entry[1] <= self._clock():
            del self._entries[key]

    async def exists(self, key: str) -> bool:
        self._purge(key)
        return key in self._entries

    async def get(self, key: str) -> Optional[str]:
        self._purge(key)
        entry = self._entries.get(key)
        return entry[0] if entry else None

    async def set(self, key: str, value: str) -> None:
        # Overwriting clears any previous expiry, as SET does in Redis
        self._entries[key] = (value, None)

    async def set_expiry(self, key: str, ttl: timedelta) -> None:
        self._purge(key)
        if key not in self._entries:
            return
        value = self._entries[key][0]
        seconds = ttl.total_seconds()
        self._entries[key] = (value, self._clock() + seconds if seconds > 0 else None)

    async def delete(self, key: str) -> bool:
        self._purge(key)
        return self._entries.pop(key, None) is not None

    async def flush(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
