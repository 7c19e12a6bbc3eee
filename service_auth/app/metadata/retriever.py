"""
Cache-aside retrieval of OpenID Connect metadata.
"""

from dataclasses import dataclass
from typing import Optional

import httpx
from redis.exceptions import RedisError

from shared.errors import AccessLayerException, ArgumentMissingError, ErrorKind
from shared.logging import get_logger
from .cache_gate import CacheGate
from .cancellation import CancellationToken, check_cancelled
from .fetcher import DocumentFetcher
from .models import OidcConfiguration
from .parser import parse_configuration, parse_key_set


@dataclass(frozen=True)
class RetrievalResult:
    """Outcome of :meth:`MetadataRetriever.try_get_configuration`."""

    configuration: Optional[OidcConfiguration] = None
    error_kind: Optional[ErrorKind] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None


def classify_error(exc: BaseException) -> Optional[ErrorKind]:
    """Map an exception raised during retrieval to its failure kind."""
    if isinstance(exc, AccessLayerException) and exc.kind is not None:
        return exc.kind
    if isinstance(exc, RedisError):
        return ErrorKind.CACHE_UNAVAILABLE
    if isinstance(exc, httpx.HTTPError):
        return ErrorKind.FETCH_FAILURE
    return None


class MetadataRetriever:
    """Resolve a discovery address to a configuration with its signing keys.

    The raw discovery and key-set documents are cached, never the parsed
    configuration, so every call returns a fresh object owned by the caller.
    """

    def __init__(self, cache_gate: CacheGate, *, logger=None):
        self.cache_gate = cache_gate
        self.logger = logger or get_logger("auth.metadata.retriever")

    async def get_configuration(
        self,
        address: str,
        fetcher: DocumentFetcher,
        cancel: Optional[CancellationToken] = None,
    ) -> OidcConfiguration:
        if not address or not address.strip():
            raise ArgumentMissingError("address")
        if fetcher is None:
            raise ArgumentMissingError("fetcher")

        document = await self._read_through(address, fetcher, cancel)
        configuration = parse_configuration(document)

        if not configuration.jwks_uri:
            self.logger.debug("Configuration has no jwks_uri, skipping key set", address=address)
            return configuration

        self.logger.debug("Retrieving json web keys", jwks_uri=configuration.jwks_uri)
        key_set = await self._read_through(configuration.jwks_uri, fetcher, cancel)

        self.logger.debug("Deserializing json web keys", jwks_uri=configuration.jwks_uri)
        configuration.signing_keys.extend(parse_key_set(key_set))

        return configuration

    async def try_get_configuration(
        self,
        address: str,
        fetcher: DocumentFetcher,
        cancel: Optional[CancellationToken] = None,
    ) -> RetrievalResult:
        """Like :meth:`get_configuration`, but failures come back as a value.

        Exceptions outside the retrieval taxonomy are re-raised.
        """
        try:
            configuration = await self.get_configuration(address, fetcher, cancel)
        except Exception as exc:
            kind = classify_error(exc)
            if kind is None:
                raise
            self.logger.warning("Metadata retrieval failed", address=address, kind=kind.value, error=str(exc))
            return RetrievalResult(error_kind=kind, error=exc)
        return RetrievalResult(configuration=configuration)

    async def _read_through(
        self,
        address: str,
        fetcher: DocumentFetcher,
        cancel: Optional[CancellationToken],
    ) -> str:
        entry = await self.cache_gate.try_get_string(address, cancel)
        if entry.is_valid and entry.value:
            return entry.value

        check_cancelled(cancel)
        document = await fetcher.fetch(address, cancel)

        await self.cache_gate.set_string(address, document, cancel=cancel)
        return document
