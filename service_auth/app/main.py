"""
Wiring for the auth service metadata layer.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from shared.config import ServiceConfig, get_config, get_runtime_settings
from shared.errors import ArgumentMissingError
from shared.logging import configure_logging, get_logger
from shared.metrics import MetricsCollector, get_metrics_collector
from .cache import InMemoryDistributedCache, RedisDistributedCache
from .metadata import CacheGate, ConfigurationManager, HttpDocumentFetcher, MetadataRetriever

SERVICE_NAME = "auth"
SERVICE_PORT = 8010


@dataclass
class MetadataStack:
    """Collaborators built for one service instance."""

    cache: Union[RedisDistributedCache, InMemoryDistributedCache]
    fetcher: HttpDocumentFetcher
    gate: CacheGate
    retriever: MetadataRetriever
    manager: ConfigurationManager

    async def start(self) -> None:
        if isinstance(self.cache, RedisDistributedCache):
            await self.cache.start(verify=not self.gate.is_disabled())

    async def close(self) -> None:
        await self.fetcher.close()
        if isinstance(self.cache, RedisDistributedCache):
            await self.cache.stop()


def build_metadata_stack(
    config: ServiceConfig,
    *,
    settings: Optional[Mapping[str, Any]] = None,
    cache: Optional[Union[RedisDistributedCache, InMemoryDistributedCache]] = None,
    fetcher: Optional[HttpDocumentFetcher] = None,
    metrics: Optional[MetricsCollector] = None,
) -> MetadataStack:
    """Assemble the metadata layer for the configured discovery endpoint."""
    if not config.sts_discovery_endpoint:
        raise ArgumentMissingError("sts_discovery_endpoint")

    metrics = metrics or get_metrics_collector(config.service_name)
    settings = settings if settings is not None else get_runtime_settings()

    if cache is None:
        cache = RedisDistributedCache(config.redis_url)
    if fetcher is None:
        fetcher = HttpDocumentFetcher(
            require_https=config.metadata_require_https,
            timeout=config.metadata_http_timeout,
            metrics=metrics,
        )
    gate = CacheGate(cache, settings, metrics=metrics)
    retriever = MetadataRetriever(gate)
    manager = ConfigurationManager(
        config.sts_discovery_endpoint,
        retriever,
        fetcher,
        automatic_refresh_interval=config.metadata_automatic_refresh_interval,
        refresh_interval=config.metadata_refresh_interval,
        metrics=metrics,
    )
    return MetadataStack(cache=cache, fetcher=fetcher, gate=gate, retriever=retriever, manager=manager)


async def main() -> None:
    """Load the configured metadata once and report what was found."""
    config = get_config(SERVICE_NAME, SERVICE_PORT)
    configure_logging(SERVICE_NAME, config.log_level)
    logger = get_logger("auth.main")

    stack = build_metadata_stack(config)
    await stack.start()
    try:
        configuration = await stack.manager.get_configuration()
        logger.info(
            "Identity provider metadata loaded",
            issuer=configuration.issuer,
            jwks_uri=configuration.jwks_uri,
            signing_keys=[key.kid for key in configuration.signing_keys],
        )
    finally:
        await stack.close()


if __name__ == "__main__":
    asyncio.run(main())
