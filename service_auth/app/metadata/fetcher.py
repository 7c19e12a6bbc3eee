"""
HTTP retrieval of metadata documents.
"""

from typing import Optional, Protocol, runtime_checkable
from urllib.parse import urlparse

import httpx

from shared.errors import ArgumentMissingError, DocumentFetchError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from .cancellation import CancellationToken, check_cancelled


@runtime_checkable
class DocumentFetcher(Protocol):
    """Source of truth for metadata documents."""

    async def fetch(self, address: str, cancel: Optional[CancellationToken] = None) -> str: ...


class HttpDocumentFetcher:
    """Fetch documents with a plain HTTP GET."""

    def __init__(
        self,
        *,
        require_https: bool = True,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.require_https = require_https
        self.metrics = metrics
        self.logger = get_logger("auth.metadata.fetcher")
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def fetch(self, address: str, cancel: Optional[CancellationToken] = None) -> str:
        if not address or not address.strip():
            raise ArgumentMissingError("address")

        if self.require_https and urlparse(address).scheme.lower() != "https":
            raise DocumentFetchError(address, "The address must use the https scheme")

        check_cancelled(cancel)

        self.logger.debug("Fetching metadata document", address=address)
        try:
            if self.metrics:
                with self.metrics.time_fetch():
                    response = await self._get(address)
            else:
                response = await self._get(address)
        except httpx.HTTPStatusError as exc:
            raise DocumentFetchError(
                address,
                "Identity provider returned an error status",
                details={"status_code": exc.response.status_code},
            ) from exc
        except httpx.HTTPError as exc:
            raise DocumentFetchError(address, "Unable to reach identity provider", details={"error": str(exc)}) from exc

        if self.require_https and response.url.scheme != "https":
            raise DocumentFetchError(
                address,
                "The document was served over a redirect to a non-https address",
                details={"final_url": str(response.url)},
            )

        return response.text

    async def _get(self, address: str) -> httpx.Response:
        response = await self._client.get(address, headers={"Accept": "application/json"})
        response.raise_for_status()
        return response
