"""
Policy layer in front of the distributed cache.

Every operation goes through the same gate: validate the key, honour the
``DISABLE_REDIS`` toggle, lower-case the key, and check for cancellation
right before each call into the cache. Cache failures are never caught here.
"""

from datetime import timedelta
from typing import Any, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError

from shared.config import DISABLE_REDIS, REDIS_CACHE_TIMEOUT_SECONDS, has_config_setting
from shared.errors import InvalidKeyError, MetadataParseError, ValidationError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..cache.base import DistributedCache
from .cancellation import CancellationToken, check_cancelled
from .models import CacheEntry

ModelT = TypeVar("ModelT", bound=BaseModel)


class CacheGate:
    """Feature-toggled, TTL-aware access to the distributed cache."""

    def __init__(
        self,
        cache: DistributedCache,
        settings: Mapping[str, Any],
        *,
        logger=None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.cache = cache
        self.settings = settings
        self.logger = logger or get_logger("auth.metadata.cache_gate")
        self.metrics = metrics

    @staticmethod
    def _normalize_key(key: Optional[str]) -> str:
        if not key:
            raise InvalidKeyError(key)
        return key.lower()

    def is_disabled(self) -> bool:
        """Whether the cache is switched off; re-read on every call."""
        value = has_config_setting(self.settings, DISABLE_REDIS)
        return value is not None and value.upper() == "TRUE"

    def resolve_ttl(self, ttl_override: int = 0) -> int:
        """Pick the expiry in seconds; ``0`` means the entry never expires."""
        if ttl_override < 0:
            raise ValidationError("TTL override must not be negative", {"ttl_override": ttl_override})
        if ttl_override > 0:
            return ttl_override

        configured = has_config_setting(self.settings, REDIS_CACHE_TIMEOUT_SECONDS)
        if configured is not None:
            try:
                timeout = int(configured.strip())
            except ValueError:
                timeout = -1
            if timeout >= 0:
                return timeout

        self.logger.warning(
            "There is no valid timeout value in the setting, entry will not expire",
            setting=REDIS_CACHE_TIMEOUT_SECONDS,
            value=configured,
        )
        return 0

    def _record(self, operation: str, result: str):
        if self.metrics:
            self.metrics.record_cache_operation(operation, result)

    async def try_get_string(self, key: str, cancel: Optional[CancellationToken] = None) -> CacheEntry[str]:
        """Look up a raw string value."""
        redis_key = self._normalize_key(key)

        if self.is_disabled():
            self.logger.debug("Cache is disabled, key will not be retrieved", cache_key=redis_key)
            self._record("get", "disabled")
            return CacheEntry.miss()

        check_cancelled(cancel)
        if not await self.cache.exists(redis_key):
            self.logger.debug("Cache miss", cache_key=redis_key)
            self._record("get", "miss")
            return CacheEntry.miss()

        check_cancelled(cancel)
        value = await self.cache.get(redis_key)
        if value is None:
            # expired between the existence check and the read
            self._record("get", "miss")
            return CacheEntry.miss()

        self.logger.debug("Cache hit", cache_key=redis_key)
        self._record("get", "hit")
        return CacheEntry.hit(value)

    async def set_string(
        self,
        key: str,
        value: str,
        ttl_override: int = 0,
        cancel: Optional[CancellationToken] = None,
    ) -> None:
        """Write a raw string value and apply its expiry."""
        redis_key = self._normalize_key(key)

        if self.is_disabled():
            self.logger.debug("Cache is disabled, key will not be stored", cache_key=redis_key)
            self._record("set", "disabled")
            return

        ttl = self.resolve_ttl(ttl_override)

        check_cancelled(cancel)
        await self.cache.set(redis_key, value)
        check_cancelled(cancel)
        await self.cache.set_expiry(redis_key, timedelta(seconds=ttl))

        self.logger.debug("Stored key in cache", cache_key=redis_key, ttl_seconds=ttl)
        self._record("set", "write")

    async def try_get_value(
        self,
        key: str,
        model: Type[ModelT],
        cancel: Optional[CancellationToken] = None,
    ) -> CacheEntry[ModelT]:
        """Look up a structured value stored by :meth:`set_value`."""
        entry = await self.try_get_string(key, cancel)
        if not entry.is_valid:
            return CacheEntry.miss()

        try:
            return CacheEntry.hit(model.model_validate_json(entry.value))
        except PydanticValidationError as exc:
            raise MetadataParseError(
                f"Cached value is not a valid {model.__name__}",
                details={"cache_key": key.lower()},
            ) from exc

    async def set_value(
        self,
        key: str,
        payload: BaseModel,
        ttl_override: int = 0,
        cancel: Optional[CancellationToken] = None,
    ) -> None:
        """Serialise a structured value to JSON and store it."""
        self._normalize_key(key)
        await self.set_string(key, payload.model_dump_json(by_alias=True), ttl_override, cancel)

    async def remove(self, key: str, cancel: Optional[CancellationToken] = None) -> bool:
        """Delete a key. Always true: disabled, absent and removed are all success."""
        redis_key = self._normalize_key(key)

        if self.is_disabled():
            self.logger.debug("Cache is disabled, key will not be removed", cache_key=redis_key)
            self._record("remove", "disabled")
            return True

        check_cancelled(cancel)
        if not await self.cache.exists(redis_key):
            self.logger.debug("Key does not exist, nothing to remove", cache_key=redis_key)
            self._record("remove", "miss")
            return True

        check_cancelled(cancel)
        await self.cache.delete(redis_key)

        self.logger.debug("Removed key from cache", cache_key=redis_key)
        self._record("remove", "removed")
        return True

    async def clear(self, cancel: Optional[CancellationToken] = None) -> None:
        """Flush the whole cache database, not only metadata keys."""
        if self.is_disabled():
            self.logger.debug("Cache is disabled, clear aborted")
            self._record("clear", "disabled")
            return

        check_cancelled(cancel)
        await self.cache.flush()

        self.logger.info("Cache flushed")
        self._record("clear", "flushed")
