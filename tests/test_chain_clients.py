import asyncio
from decimal import Decimal

import aiohttp
import pytest
from redis.exceptions import RedisError

from core.exceptions import (
    UpstreamAddressException,
    UpstreamConnectionException,
    UpstreamProtocolException,
    UpstreamTimeoutException,
)
from core.redis.providers import PriceCache
from wallet.clients import NativeChainClient, SecondaryChainClient, UpstreamRpcClient
from wallet.pricing import PriceService

ADDRESS = "5paZC1vV94AF513DJn5yXj2TTnTEqm4RuPkWgKYujAi5"


class FakeResponse:
    def __init__(self, body=None, status: int = 200, error: Exception | None = None):
        self.body = body
        self.status = status
        self.error = error

    async def __aenter__(self):
        if self.error is not None:
            raise self.error
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def json(self, content_type=None):
        if isinstance(self.body, Exception):
            raise self.body
        return self.body


class FakeSession:
    """
    Minimal stand-in for ``aiohttp.ClientSession`` replaying canned responses.
    """

    def __init__(self, *responses: FakeResponse):
        self.responses = list(responses)
        self.requests = []

    def post(self, url, json=None):
        self.requests.append((url, json))
        return self.responses.pop(0)

    def get(self, url):
        self.requests.append((url, None))
        return self.responses.pop(0)


class FixedPrice:
    def __init__(self, price: str):
        self.price = Decimal(price)

    async def get_unit_price(self, descriptor) -> Decimal:
        return self.price


class MemoryCache:
    def __init__(self):
        self.values = {}

    async def get(self, symbol):
        return self.values.get(symbol)

    async def put(self, symbol, price, ttl):
        self.values[symbol] = price
        return True


def rpc_result(value) -> FakeResponse:
    return FakeResponse({"jsonrpc": "2.0", "id": 1, "result": {"context": {"slot": 1}, "value": value}})


def rpc_error(code: int, message) -> FakeResponse:
    return FakeResponse({"jsonrpc": "2.0", "id": 1, "error": {"code": code, "message": message}})


class TestChainClients:
    """
    Tests for JSON-RPC dialects and upstream error mapping.
    """

    @pytest.mark.asyncio
    async def test_native_balance(self, registry, logger):
        """
        Test a native balance is converted from lamports and priced.
        """
        session = FakeSession(rpc_result(1_500_000_000))
        client = NativeChainClient(session=session, price_service=FixedPrice("1"), logger=logger, clock=lambda: 42.0)
        descriptor = registry.resolve("X1-mainnet")

        snapshot = await client.fetch_balance(ADDRESS, descriptor)

        assert snapshot.native_amount == Decimal("1.5")
        assert snapshot.usd_value == Decimal("1.5")
        assert snapshot.network_id == "X1-mainnet"
        assert snapshot.fetched_at == 42.0
        url, payload = session.requests[0]
        assert url == descriptor.endpoint_url
        assert payload["method"] == "getBalance"
        assert payload["params"] == [ADDRESS]

    @pytest.mark.asyncio
    async def test_secondary_balance_uses_confirmed_commitment(self, registry, logger):
        session = FakeSession(rpc_result(2_000_000_000))
        client = SecondaryChainClient(session=session, price_service=FixedPrice("150"), logger=logger)
        descriptor = registry.resolve("SOLANA-devnet")

        snapshot = await client.fetch_balance(ADDRESS, descriptor)

        assert snapshot.native_amount == Decimal(2)
        assert snapshot.unit_price == Decimal(150)
        assert snapshot.usd_value == Decimal(300)
        _, payload = session.requests[0]
        assert payload["params"] == [ADDRESS, {"commitment": "confirmed"}]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("response", "expected"),
        [
            (FakeResponse(error=asyncio.TimeoutError()), UpstreamTimeoutException),
            (FakeResponse(error=aiohttp.ClientConnectionError("refused")), UpstreamConnectionException),
            (FakeResponse({"error": "boom"}, status=500), UpstreamProtocolException),
            (FakeResponse(ValueError("not json")), UpstreamProtocolException),
            (FakeResponse(["not", "an", "object"]), UpstreamProtocolException),
            (FakeResponse({"jsonrpc": "2.0", "id": 1}), UpstreamProtocolException),
            (rpc_error(-32602, "Invalid param: WrongSize"), UpstreamAddressException),
            (rpc_error(-32005, "Node is behind"), UpstreamProtocolException),
            (rpc_error(-32000, None), UpstreamProtocolException),
            (rpc_error(-32000, 42), UpstreamProtocolException),
            (rpc_result(-1), UpstreamProtocolException),
            (rpc_result("1000"), UpstreamProtocolException),
        ],
    )
    async def test_upstream_errors_are_typed(self, registry, logger, response, expected):
        client = NativeChainClient(session=FakeSession(response), price_service=FixedPrice("1"), logger=logger)

        with pytest.raises(expected):
            await client.fetch_balance(ADDRESS, registry.resolve("X1-mainnet"))

    @pytest.mark.asyncio
    async def test_signatures_and_transactions(self, registry, logger):
        session = FakeSession(
            FakeResponse({"jsonrpc": "2.0", "id": 1, "result": [{"signature": "sig-1"}]}),
            FakeResponse({"jsonrpc": "2.0", "id": 1, "result": None}),
        )
        client = NativeChainClient(session=session, price_service=FixedPrice("1"), logger=logger)
        descriptor = registry.resolve("X1-testnet")

        signatures = await client.get_signatures_for_address(descriptor, ADDRESS, 5)
        transaction = await client.get_transaction(descriptor, "sig-1")

        assert signatures == [{"signature": "sig-1"}]
        assert transaction is None
        assert session.requests[0][1]["params"] == [ADDRESS, {"limit": 5}]
        assert session.requests[1][1]["params"][1]["encoding"] == "jsonParsed"


class TestUpstreamRpcClient:
    """
    Tests for dispatch on chain family and GraphQL forwarding.
    """

    @pytest.mark.asyncio
    async def test_dispatch_by_chain_family(self, registry, logger):
        native = NativeChainClient(session=FakeSession(rpc_result(1)), price_service=FixedPrice("1"), logger=logger)
        secondary = SecondaryChainClient(session=FakeSession(rpc_result(2)), price_service=FixedPrice("1"), logger=logger)
        upstream = UpstreamRpcClient(chain_clients=[native, secondary], session=FakeSession(), logger=logger)

        assert upstream.client_for(registry.resolve("X1-mainnet")) is native
        assert upstream.client_for(registry.resolve("SOLANA-testnet")) is secondary

        snapshot = await upstream.fetch_balance(ADDRESS, registry.resolve("SOLANA-mainnet"))
        assert snapshot.native_amount == Decimal(2) / Decimal(10) ** 9

    @pytest.mark.asyncio
    async def test_forward_graphql(self, logger):
        session = FakeSession(FakeResponse({"data": {"wallet": None}}))
        upstream = UpstreamRpcClient(chain_clients=[], session=session, logger=logger)
        payload = {"query": "{ wallet { id } }"}

        assert await upstream.forward_graphql("https://graphql.test/v2/graphql", payload) == {"data": {"wallet": None}}
        assert session.requests == [("https://graphql.test/v2/graphql", payload)]

    @pytest.mark.asyncio
    async def test_forward_graphql_rejects_non_object(self, logger):
        upstream = UpstreamRpcClient(chain_clients=[], session=FakeSession(FakeResponse([1, 2])), logger=logger)

        with pytest.raises(UpstreamProtocolException):
            await upstream.forward_graphql("https://graphql.test/v2/graphql", {"query": "{}"})


class TestPriceService:
    """
    Tests for native and oracle pricing.
    """

    @pytest.mark.asyncio
    async def test_native_price_is_fixed(self, registry, settings, logger):
        session = FakeSession()
        service = PriceService(price_cache=MemoryCache(), session=session, settings=settings, logger=logger)

        assert await service.get_unit_price(registry.resolve("X1-mainnet")) == Decimal("1.0")
        assert session.requests == []

    @pytest.mark.asyncio
    async def test_oracle_price_is_cached(self, registry, settings, logger):
        cache = MemoryCache()
        session = FakeSession(FakeResponse({"agg": {"SOL": {"avg": 172.5}}}))
        service = PriceService(price_cache=cache, session=session, settings=settings, logger=logger)
        descriptor = registry.resolve("SOLANA-mainnet")

        assert await service.get_unit_price(descriptor) == Decimal("172.5")
        assert await service.get_unit_price(descriptor) == Decimal("172.5")
        assert len(session.requests) == 1
        assert cache.values["SOL"] == Decimal("172.5")

    @pytest.mark.asyncio
    async def test_oracle_failure_uses_last_known_price(self, registry, settings, logger):
        cache = MemoryCache()
        session = FakeSession(
            FakeResponse({"agg": {"SOL": {"avg": 160}}}),
            FakeResponse(error=aiohttp.ClientConnectionError("down")),
        )
        service = PriceService(price_cache=cache, session=session, settings=settings, logger=logger)
        descriptor = registry.resolve("SOLANA-mainnet")

        assert await service.get_unit_price(descriptor) == Decimal(160)
        cache.values.clear()
        assert await service.get_unit_price(descriptor) == Decimal(160)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            FakeResponse({"agg": {}}),
            FakeResponse({"agg": {"SOL": {"avg": 0}}}),
            FakeResponse({"agg": {"SOL": {"avg": "NaN"}}}),
            FakeResponse(status=503),
            FakeResponse(error=asyncio.TimeoutError()),
        ],
    )
    async def test_oracle_failure_without_history_uses_fallback(self, registry, settings, logger, response):
        service = PriceService(price_cache=MemoryCache(), session=FakeSession(response), settings=settings, logger=logger)

        assert await service.get_unit_price(registry.resolve("SOLANA-mainnet")) == Decimal("158.0")


class TestPriceCache:
    """
    Tests for oracle prices shared through Redis.
    """

    @pytest.mark.asyncio
    async def test_put_and_get(self, mock_redis, logger):
        cache = PriceCache(mock_redis, logger)

        assert await cache.put("SOL", Decimal("172.5"), ttl=300) is True
        mock_redis.setex.assert_awaited_once_with("wallet_gateway:price:SOL", 300, '{"price": "172.5"}')

        mock_redis.get.return_value = '{"price": "172.5"}'
        assert await cache.get("SOL") == Decimal("172.5")
        mock_redis.get.assert_awaited_with("wallet_gateway:price:SOL")

    @pytest.mark.asyncio
    async def test_miss(self, mock_redis, logger):
        assert await PriceCache(mock_redis, logger).get("SOL") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("stored", ["not json", '{"value": 1}', '{"price": "abc"}'])
    async def test_malformed_value_is_a_miss(self, mock_redis, logger, stored):
        mock_redis.get.return_value = stored

        assert await PriceCache(mock_redis, logger).get("SOL") is None

    @pytest.mark.asyncio
    async def test_redis_errors_are_not_raised(self, mock_redis, logger):
        mock_redis.get.side_effect = RedisError("down")
        mock_redis.setex.side_effect = RedisError("down")
        cache = PriceCache(mock_redis, logger)

        assert await cache.get("SOL") is None
        assert await cache.put("SOL", Decimal(1), ttl=60) is False
