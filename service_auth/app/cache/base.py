"""
Key-value cache interface consumed by the metadata layer.
"""

from datetime import timedelta
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class DistributedCache(Protocol):
    """Asynchronous key-value store with per-key expiry.

    Every method may raise a connectivity error; callers let it propagate.
    A zero expiry passed to :meth:`set_expiry` means the key never expires.
    """

    async def exists(self, key: str) -> bool: ...

    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...

    async def set_expiry(self, key: str, ttl: timedelta) -> None: ...

    async def delete(self, key: str) -> bool: ...

    async def flush(self) -> None: ...
