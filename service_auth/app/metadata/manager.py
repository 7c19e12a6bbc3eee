"""
Consumer-side refresh policy for OpenID Connect metadata.
"""

import asyncio
import time
from typing import Callable, Optional

from shared.errors import OperationCancelledError
from shared.logging import get_logger, reset_metadata_address, set_metadata_address
from shared.metrics import MetricsCollector
from .cancellation import CancellationToken
from .fetcher import DocumentFetcher
from .models import OidcConfiguration
from .retriever import MetadataRetriever

DEFAULT_AUTOMATIC_REFRESH_INTERVAL = 12 * 60 * 60
DEFAULT_REFRESH_INTERVAL = 30


class ConfigurationManager:
    """Keeps the last good configuration for one discovery address.

    The configuration is loaded lazily and reloaded through the retriever
    once it is older than ``automatic_refresh_interval`` seconds.
    :meth:`request_refresh` forces the next call to reload, but no more often
    than every ``refresh_interval`` seconds. Concurrent callers in this
    process share one reload. If a reload fails and a configuration was
    loaded before, the previous one keeps being served.
    """

    def __init__(
        self,
        address: str,
        retriever: MetadataRetriever,
        fetcher: DocumentFetcher,
        *,
        automatic_refresh_interval: int = DEFAULT_AUTOMATIC_REFRESH_INTERVAL,
        refresh_interval: int = DEFAULT_REFRESH_INTERVAL,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.address = address
        self.retriever = retriever
        self.fetcher = fetcher
        self.automatic_refresh_interval = automatic_refresh_interval
        self.refresh_interval = refresh_interval
        self.metrics = metrics
        self.logger = get_logger("auth.metadata.manager")

        self._clock = clock
        self._configuration: Optional[OidcConfiguration] = None
        self._sync_after: float = 0.0
        self._last_refresh: Optional[float] = None
        self._lock = asyncio.Lock()

    @property
    def current(self) -> Optional[OidcConfiguration]:
        return self._configuration

    def _is_fresh(self) -> bool:
        return self._configuration is not None and self._clock() < self._sync_after

    async def get_configuration(self, cancel: Optional[CancellationToken] = None) -> OidcConfiguration:
        """Return the cached configuration, reloading it when it is due."""
        if self._is_fresh():
            return self._configuration

        async with self._lock:
            if self._is_fresh():
                return self._configuration

            address_token = set_metadata_address(self.address)
            try:
                configuration = await self.retriever.get_configuration(self.address, self.fetcher, cancel)
            except OperationCancelledError:
                # the caller gave up; other callers keep the current schedule
                raise
            except Exception as exc:
                self._record("error")
                if self._configuration is None:
                    self.logger.error("Unable to load metadata", address=self.address, error=str(exc))
                    raise
                self.logger.error(
                    "Metadata refresh failed, serving previous configuration",
                    address=self.address,
                    error=str(exc),
                )
                # back off until the next forced refresh window
                self._sync_after = self._clock() + self.refresh_interval
                return self._configuration
            finally:
                reset_metadata_address(address_token)

            now = self._clock()
            self._configuration = configuration
            self._last_refresh = now
            self._sync_after = now + self.automatic_refresh_interval
            self._record("success")
            self.logger.info(
                "Metadata refreshed",
                address=self.address,
                signing_keys=len(configuration.signing_keys),
            )
            return configuration

    def request_refresh(self) -> None:
        """Mark the configuration stale, respecting the minimum refresh interval."""
        now = self._clock()
        if self._last_refresh is None or now >= self._last_refresh + self.refresh_interval:
            self._sync_after = now
        else:
            self._sync_after = self._last_refresh + self.refresh_interval

    def _record(self, status: str):
        if self.metrics:
            self.metrics.record_refresh(status)
