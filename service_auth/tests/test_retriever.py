"""
Unit tests for MetadataRetriever.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from service_auth.app.metadata import CacheGate, CancellationToken, MetadataRetriever
from shared.errors import (
    ArgumentMissingError,
    DocumentFetchError,
    ErrorKind,
    InvalidKeyError,
    MetadataParseError,
    OperationCancelledError,
)

from conftest import DISCOVERY_ADDRESS, JWKS_ADDRESS, make_fetcher


class TestGetConfiguration:
    """Cache-aside resolution of discovery and key-set documents."""

    @pytest.mark.asyncio
    async def test_cold_cache_fetches_and_caches_both_documents(
        self, retriever, cache, discovery_document, key_set_document
    ):
        fetcher = make_fetcher({DISCOVERY_ADDRESS: discovery_document, JWKS_ADDRESS: key_set_document})

        configuration = await retriever.get_configuration(DISCOVERY_ADDRESS, fetcher)

        assert configuration.jwks_uri == JWKS_ADDRESS
        assert [key.kid for key in configuration.signing_keys] == ["key-2", "key-1"]
        assert [call.args[0] for call in fetcher.fetch.await_args_list] == [DISCOVERY_ADDRESS, JWKS_ADDRESS]
        assert await cache.get(DISCOVERY_ADDRESS.lower()) == discovery_document
        assert await cache.get(JWKS_ADDRESS.lower()) == key_set_document

    @pytest.mark.asyncio
    async def test_minimal_discovery_document(self, retriever, key_set_document):
        fetcher = make_fetcher({
            DISCOVERY_ADDRESS: json.dumps({"jwks_uri": JWKS_ADDRESS}),
            JWKS_ADDRESS: key_set_document,
        })

        configuration = await retriever.get_configuration(DISCOVERY_ADDRESS, fetcher)

        assert configuration.jwks_uri == "https://issuer.example/keys"
        assert len(configuration.signing_keys) == 2

    @pytest.mark.asyncio
    async def test_warm_cache_skips_network(self, retriever, gate, discovery_document, key_set_document):
        await gate.set_string(DISCOVERY_ADDRESS, discovery_document)
        await gate.set_string(JWKS_ADDRESS, key_set_document)
        fetcher = make_fetcher({})

        configuration = await retriever.get_configuration(DISCOVERY_ADDRESS.upper(), fetcher)

        fetcher.fetch.assert_not_awaited()
        assert len(configuration.signing_keys) == 2

    @pytest.mark.asyncio
    async def test_each_call_returns_a_fresh_configuration(self, retriever, discovery_document, key_set_document):
        fetcher = make_fetcher({DISCOVERY_ADDRESS: discovery_document, JWKS_ADDRESS: key_set_document})

        first = await retriever.get_configuration(DISCOVERY_ADDRESS, fetcher)
        first.signing_keys.clear()
        second = await retriever.get_configuration(DISCOVERY_ADDRESS, fetcher)

        assert first is not second
        assert len(second.signing_keys) == 2

    @pytest.mark.asyncio
    async def test_no_jwks_uri_stops_after_discovery(self, retriever, cache):
        fetcher = make_fetcher({DISCOVERY_ADDRESS: json.dumps({"issuer": "https://issuer.example"})})

        configuration = await retriever.get_configuration(DISCOVERY_ADDRESS, fetcher)

        assert configuration.signing_keys == []
        assert fetcher.fetch.await_count == 1
        assert set(cache.keys_touched()) == {DISCOVERY_ADDRESS.lower()}

    @pytest.mark.asyncio
    async def test_cached_empty_document_is_refetched(self, retriever, gate, discovery_document):
        await gate.set_string(DISCOVERY_ADDRESS, "")
        fetcher = make_fetcher({DISCOVERY_ADDRESS: json.dumps({"issuer": "https://issuer.example"})})

        await retriever.get_configuration(DISCOVERY_ADDRESS, fetcher)

        fetcher.fetch.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_disabled_cache_always_fetches(self, retriever, settings, cache, discovery_document, key_set_document):
        settings["DISABLE_REDIS"] = "TRUE"
        fetcher = make_fetcher({DISCOVERY_ADDRESS: discovery_document, JWKS_ADDRESS: key_set_document})

        await retriever.get_configuration(DISCOVERY_ADDRESS, fetcher)
        await retriever.get_configuration(DISCOVERY_ADDRESS, fetcher)

        assert fetcher.fetch.await_count == 4
        assert cache.calls == []


class TestErrors:
    """Error propagation."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("address", ["", "   ", None])
    async def test_missing_address(self, retriever, address):
        with pytest.raises(ArgumentMissingError):
            await retriever.get_configuration(address, make_fetcher({}))

    @pytest.mark.asyncio
    async def test_missing_fetcher(self, retriever):
        with pytest.raises(ArgumentMissingError) as exc_info:
            await retriever.get_configuration(DISCOVERY_ADDRESS, None)

        assert exc_info.value.details == {"argument": "fetcher"}

    @pytest.mark.asyncio
    async def test_malformed_discovery_document(self, retriever):
        fetcher = make_fetcher({DISCOVERY_ADDRESS: "<html>"})

        with pytest.raises(MetadataParseError):
            await retriever.get_configuration(DISCOVERY_ADDRESS, fetcher)

    @pytest.mark.asyncio
    async def test_malformed_key_set(self, retriever):
        fetcher = make_fetcher({DISCOVERY_ADDRESS: json.dumps({"jwks_uri": JWKS_ADDRESS}), JWKS_ADDRESS: "null"})

        with pytest.raises(MetadataParseError):
            await retriever.get_configuration(DISCOVERY_ADDRESS, fetcher)

    @pytest.mark.asyncio
    async def test_fetch_error_propagates_unchanged(self, retriever, cache):
        error = DocumentFetchError(DISCOVERY_ADDRESS, "Identity provider returned an error status")
        fetcher = AsyncMock()
        fetcher.fetch.side_effect = error

        with pytest.raises(DocumentFetchError) as exc_info:
            await retriever.get_configuration(DISCOVERY_ADDRESS, fetcher)

        assert exc_info.value is error
        assert ("set", DISCOVERY_ADDRESS.lower()) not in cache.calls

    @pytest.mark.asyncio
    async def test_cache_error_propagates_unchanged(self, settings):
        broken = MagicMock()
        broken.exists = AsyncMock(side_effect=RedisConnectionError("connection refused"))
        retriever = MetadataRetriever(CacheGate(broken, settings))
        fetcher = make_fetcher({})

        with pytest.raises(RedisConnectionError):
            await retriever.get_configuration(DISCOVERY_ADDRESS, fetcher)
        fetcher.fetch.assert_not_awaited()


class TestCancellation:
    """Cancellation observed between steps."""

    @pytest.mark.asyncio
    async def test_cancel_after_discovery_cached(self, retriever, cache, discovery_document, key_set_document):
        token = CancellationToken()
        fetcher = make_fetcher({DISCOVERY_ADDRESS: discovery_document, JWKS_ADDRESS: key_set_document})

        def cancel_after_discovery_written(operation, key):
            if operation == "set_expiry" and key == DISCOVERY_ADDRESS.lower():
                token.cancel()

        cache.after_call = cancel_after_discovery_written

        with pytest.raises(OperationCancelledError):
            await retriever.get_configuration(DISCOVERY_ADDRESS, fetcher, token)

        assert [call.args[0] for call in fetcher.fetch.await_args_list] == [DISCOVERY_ADDRESS]
        assert JWKS_ADDRESS.lower() not in cache.keys_touched()
        assert await cache.get(DISCOVERY_ADDRESS.lower()) == discovery_document

    @pytest.mark.asyncio
    async def test_cancel_with_cache_disabled(self, retriever, settings, discovery_document):
        settings["DISABLE_REDIS"] = "TRUE"
        token = CancellationToken()
        fetcher = AsyncMock()

        async def fetch(address, cancel=None):
            token.cancel()
            return discovery_document

        fetcher.fetch.side_effect = fetch

        with pytest.raises(OperationCancelledError):
            await retriever.get_configuration(DISCOVERY_ADDRESS, fetcher, token)
        assert fetcher.fetch.await_count == 1

    @pytest.mark.asyncio
    async def test_cancelled_before_start(self, retriever, cache):
        token = CancellationToken()
        token.cancel()
        fetcher = make_fetcher({})

        with pytest.raises(OperationCancelledError):
            await retriever.get_configuration(DISCOVERY_ADDRESS, fetcher, token)

        assert cache.calls == []
        fetcher.fetch.assert_not_awaited()


class TestTryGetConfiguration:
    """Result-returning variant."""

    @pytest.mark.asyncio
    async def test_success(self, retriever, discovery_document, key_set_document):
        fetcher = make_fetcher({DISCOVERY_ADDRESS: discovery_document, JWKS_ADDRESS: key_set_document})

        result = await retriever.try_get_configuration(DISCOVERY_ADDRESS, fetcher)

        assert result.ok is True
        assert len(result.configuration.signing_keys) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error, kind", [
        (DocumentFetchError(DISCOVERY_ADDRESS), ErrorKind.FETCH_FAILURE),
        (httpx.ConnectError("refused"), ErrorKind.FETCH_FAILURE),
        (RedisConnectionError("refused"), ErrorKind.CACHE_UNAVAILABLE),
        (OperationCancelledError(), ErrorKind.CANCELLED),
        (InvalidKeyError(""), ErrorKind.INVALID_KEY),
    ])
    async def test_failures_are_classified(self, retriever, error, kind):
        fetcher = AsyncMock()
        fetcher.fetch.side_effect = error

        result = await retriever.try_get_configuration(DISCOVERY_ADDRESS, fetcher)

        assert result.ok is False
        assert result.error_kind is kind
        assert result.error is error
        assert result.configuration is None

    @pytest.mark.asyncio
    async def test_argument_and_parse_failures(self, retriever):
        missing = await retriever.try_get_configuration("", make_fetcher({}))
        malformed = await retriever.try_get_configuration(DISCOVERY_ADDRESS, make_fetcher({DISCOVERY_ADDRESS: "{"}))

        assert missing.error_kind is ErrorKind.ARGUMENT_MISSING
        assert malformed.error_kind is ErrorKind.PARSE_FAILURE

    @pytest.mark.asyncio
    async def test_unexpected_errors_are_raised(self, retriever):
        fetcher = AsyncMock()
        fetcher.fetch.side_effect = RuntimeError("bug")

        with pytest.raises(RuntimeError):
            await retriever.try_get_configuration(DISCOVERY_ADDRESS, fetcher)
