"""
Distributed cache backends for identity metadata.

- base: the minimal key-value interface the metadata layer consumes.
- redis_cache: Redis implementation built on redis.asyncio.
- memory_cache: in-process implementation for local runs without Redis.
"""

from .base import DistributedCache
from .memory_cache import InMemoryDistributedCache
from .redis_cache import RedisDistributedCache

__all__ = ["DistributedCache", "InMemoryDistributedCache", "RedisDistributedCache"]
