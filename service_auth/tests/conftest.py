"""
Shared fixtures for the auth service tests.
"""

import json
from datetime import timedelta
from typing import Callable, Dict, List, Optional, Tuple
from unittest.mock import AsyncMock

import pytest
from prometheus_client import CollectorRegistry

from service_auth.app.cache import InMemoryDistributedCache
from service_auth.app.metadata import CacheGate, MetadataRetriever
from shared.metrics import MetricsCollector

DISCOVERY_ADDRESS = "https://issuer.example/.well-known/openid-configuration"
JWKS_ADDRESS = "https://issuer.example/keys"


class RecordingCache(InMemoryDistributedCache):
    """In-memory cache that records every call made against it."""

    def __init__(self):
        super().__init__()
        self.calls: List[Tuple[str, Optional[str]]] = []
        self.after_call: Optional[Callable[[str, Optional[str]], None]] = None

    def _note(self, operation: str, key: Optional[str] = None):
        self.calls.append((operation, key))
        if self.after_call:
            self.after_call(operation, key)

    async def exists(self, key: str) -> bool:
        result = await super().exists(key)
        self._note("exists", key)
        return result

    async def get(self, key: str):
        result = await super().get(key)
        self._note("get", key)
        return result

    async def set(self, key: str, value: str) -> None:
        await super().set(key, value)
        self._note("set", key)

    async def set_expiry(self, key: str, ttl: timedelta) -> None:
        await super().set_expiry(key, ttl)
        self._note("set_expiry", key)

    async def delete(self, key: str) -> bool:
        result = await super().delete(key)
        self._note("delete", key)
        return result

    async def flush(self) -> None:
        await super().flush()
        self._note("flush")

    def keys_touched(self) -> List[Optional[str]]:
        return [key for _, key in self.calls]


def make_fetcher(documents: Dict[str, str]) -> AsyncMock:
    """Build a document fetcher answering from a fixed address map."""
    fetcher = AsyncMock()

    async def _fetch(address, cancel=None):
        return documents[address]

    fetcher.fetch.side_effect = _fetch
    return fetcher


@pytest.fixture
def settings() -> Dict[str, str]:
    return {"REDIS_CACHE_TIMEOUT_SECONDS": "3600"}


@pytest.fixture
def cache() -> RecordingCache:
    return RecordingCache()


@pytest.fixture
def metrics() -> MetricsCollector:
    return MetricsCollector("auth", CollectorRegistry())


@pytest.fixture
def gate(cache, settings, metrics) -> CacheGate:
    return CacheGate(cache, settings, metrics=metrics)


@pytest.fixture
def retriever(gate) -> MetadataRetriever:
    return MetadataRetriever(gate)


@pytest.fixture
def discovery_document() -> str:
    return json.dumps({
        "issuer": "https://issuer.example",
        "authorization_endpoint": "https://issuer.example/authorize",
        "token_endpoint": "https://issuer.example/token",
        "jwks_uri": JWKS_ADDRESS,
        "scopes_supported": ["openid", "profile"],
    })


@pytest.fixture
def key_set_document() -> str:
    return json.dumps({
        "keys": [
            {"kty": "RSA", "kid": "key-2", "use": "sig", "alg": "RS256", "n": "second-n", "e": "AQAB"},
            {"kty": "RSA", "kid": "key-1", "use": "sig", "alg": "RS256", "n": "first-n", "e": "AQAB"},
        ]
    })
