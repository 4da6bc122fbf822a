"""
Bitfinex Client Tests.

============================================================
PURPOSE
============================================================
Dispatch tests driven by an in-memory transport.

TEST CATEGORIES:
- Dispatch: success, server errors, transport failures, timeouts
- Preconditions: argument errors before any network activity
- Credentials: missing, replaced, shared nonce generator
- Wrappers: URL / parameter construction per endpoint
- Observability: metrics and masked logs

============================================================
"""

import asyncio
import base64
import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

import aiohttp
import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp import test_utils

from bitfinex_client import (
    BitfinexClient,
    BitfinexConfigurationError,
    ClientConfig,
    ErrorCategory,
    NonceGenerator,
    RequestDescriptor,
    Transport,
    TransportResponse,
)
from bitfinex_client import endpoints


BASE = "https://api.bitfinex.com"


class FakeTransport(Transport):
    """Records requests and replays canned responses."""

    def __init__(self, responses: Optional[List] = None):
        self.requests: List[RequestDescriptor] = []
        self.timeouts: List[Optional[float]] = []
        self.responses = list(responses or [])
        self.closed = False

    def queue(self, status: int, body: str) -> None:
        self.responses.append(TransportResponse(status=status, body=body.encode("utf-8")))

    async def send(self, request, timeout=None):
        self.requests.append(request)
        self.timeouts.append(timeout)
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self):
        self.closed = True


class SlowTransport(Transport):
    """Never answers within a short timeout."""

    def __init__(self):
        self.requests = []

    async def send(self, request, timeout=None):
        self.requests.append(request)
        await asyncio.sleep(10)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def client(transport):
    config = ClientConfig(api_key="mykey12345", api_secret="topsecret")
    return BitfinexClient(
        config,
        transport=transport,
        nonce_generator=NonceGenerator(clock=lambda: 1.0),
    )


@pytest.fixture
def public_client(transport):
    return BitfinexClient(transport=transport)


# ============================================================
# DISPATCH TESTS
# ============================================================

class TestDispatch:
    """Tests for BitfinexClient.execute."""

    @pytest.mark.asyncio
    async def test_success(self, public_client, transport):
        """Test a successful public call."""
        transport.queue(200, "[1]")

        result = await public_client.get_platform_status()

        assert result.success
        assert result.data.operative is True
        assert transport.requests[0].url == f"{BASE}/v2/platform/status"
        assert transport.requests[0].signed is False

    @pytest.mark.asyncio
    async def test_server_error(self, client, transport):
        """Test an error envelope becomes a SERVER error."""
        transport.queue(500, '["error",10100,"apikey: invalid"]')

        result = await client.get_wallets()

        assert result.success is False
        assert result.error.category == ErrorCategory.SERVER
        assert result.error.code == "10100"
        assert result.error.message == "apikey: invalid"

    @pytest.mark.asyncio
    async def test_transport_error(self, public_client, transport):
        """Test connection failures become TRANSPORT errors."""
        transport.responses.append(aiohttp.ClientConnectionError("connection reset"))

        result = await public_client.get_platform_status()

        assert result.error.category == ErrorCategory.TRANSPORT
        assert "connection reset" in result.error.message

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Test a call abandoned after the timeout."""
        slow = SlowTransport()
        client = BitfinexClient(transport=slow)

        result = await client.execute(endpoints.PLATFORM_STATUS, timeout=0.01)

        assert result.error.category == ErrorCategory.TIMEOUT
        assert result.error.message == "Request timed out after 10ms"

    @pytest.mark.asyncio
    async def test_timed_out_signed_call_spends_nonce(self, client):
        """Test the nonce is consumed even when the call times out."""
        client._transport = SlowTransport()

        result = await client.execute(endpoints.WALLETS, timeout=0.01)

        assert result.error.category == ErrorCategory.TIMEOUT
        assert client.nonce_generator.last == 10000

    @pytest.mark.asyncio
    async def test_path_value_mismatch(self, public_client, transport):
        """Test wrong number of path values is an ARGUMENT error."""
        result = await public_client.execute(endpoints.TRADES)

        assert result.error.category == ErrorCategory.ARGUMENT
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_deserialization_error(self, public_client, transport):
        """Test a malformed success body."""
        transport.queue(200, "<html>")

        result = await public_client.get_platform_status()

        assert result.error.category == ErrorCategory.DESERIALIZATION

    @pytest.mark.asyncio
    async def test_context_manager_closes_transport(self, transport):
        """Test the transport is closed on exit."""
        async with BitfinexClient(transport=transport):
            pass

        assert transport.closed is True

    @pytest.mark.asyncio
    async def test_os_error_is_transport_error(self, public_client, transport):
        """Test socket-level failures come back as results."""
        transport.responses.append(ConnectionResetError("peer reset"))

        result = await public_client.get_platform_status()

        assert result.error.category == ErrorCategory.TRANSPORT
        assert "ConnectionResetError" in result.error.message
        assert "peer reset" in result.error.message
        assert result.error.is_retryable() is True

    @pytest.mark.asyncio
    async def test_timeout_passed_to_transport(self, public_client, transport):
        """Test the call timeout reaches the transport."""
        transport.queue(200, "[1]")
        transport.queue(200, "[1]")

        await public_client.execute(endpoints.PLATFORM_STATUS, timeout=3.0)
        await public_client.execute(endpoints.PLATFORM_STATUS)

        assert transport.timeouts == [3.0, 30.0]


# ============================================================
# PRECONDITION TESTS
# ============================================================

class TestPreconditions:
    """Tests for argument validation before dispatch."""

    @pytest.mark.asyncio
    async def test_order_book_invalid_limit(self, public_client, transport):
        """Test order book limit other than 25/100."""
        result = await public_client.get_order_book("tBTCUSD", "P0", limit=50)

        assert result.error.category == ErrorCategory.ARGUMENT
        assert result.error.message == "Limit should be either 25 or 100"
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_order_book_valid_limit(self, public_client, transport):
        """Test allowed limits reach the network."""
        transport.queue(200, "[[7000,1,0.5]]")

        result = await public_client.get_order_book("tBTCUSD", "P0", limit=25)

        assert result.success
        assert transport.requests[0].url == f"{BASE}/v2/book/tBTCUSD/P0?len=25"

    @pytest.mark.asyncio
    async def test_order_book_without_limit(self, public_client, transport):
        """Test no limit sends no len parameter."""
        transport.queue(200, "[]")

        await public_client.get_order_book("tBTCUSD", "R0")

        assert transport.requests[0].url == f"{BASE}/v2/book/tBTCUSD/R0"


# ============================================================
# CREDENTIAL TESTS
# ============================================================

class TestCredentials:
    """Tests for credential handling."""

    @pytest.mark.asyncio
    async def test_signed_without_credentials_raises(self, public_client, transport):
        """Test a signed call with no credentials is a programmer error."""
        with pytest.raises(BitfinexConfigurationError):
            await public_client.get_wallets()

        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_set_credentials(self, public_client, transport):
        """Test credentials set after construction are used."""
        transport.queue(200, "[]")

        public_client.set_api_credentials("newkey", "newsecret")
        result = await public_client.get_wallets()

        assert result.success
        assert transport.requests[0].headers["bfx-apikey"] == "newkey"

    @pytest.mark.asyncio
    async def test_replacing_credentials_keeps_nonce_sequence(self, client, transport):
        """Test the nonce generator survives credential replacement."""
        transport.queue(200, "[]")
        transport.queue(200, "[]")

        await client.get_wallets()
        client.set_api_credentials("other", "othersecret")
        await client.get_wallets()

        assert [r.nonce for r in transport.requests] == [10000, 10001]

    def test_credentials_from_config(self, client):
        """Test credentials property."""
        assert client.credentials.key == "mykey12345"


# ============================================================
# WRAPPER TESTS
# ============================================================

class TestPublicWrappers:
    """Tests for public v2 wrapper methods."""

    @pytest.mark.asyncio
    async def test_ticker_symbols(self, public_client, transport):
        """Test symbols are joined and encoded."""
        transport.queue(200, '[["tBTCUSD",1,2,3,4,5,6,7,8,9,10]]')

        result = await public_client.get_ticker("tBTCUSD", "tETHUSD")

        assert result.data[0].symbol == "tBTCUSD"
        assert transport.requests[0].url == f"{BASE}/v2/tickers?symbols=tBTCUSD%2CtETHUSD"

    @pytest.mark.asyncio
    async def test_trades_time_range(self, public_client, transport):
        """Test datetimes become epoch milliseconds."""
        transport.queue(200, "[[1,1577836800000,0.5,7000]]")

        result = await public_client.get_trades(
            "tBTCUSD",
            limit=10,
            start_time=datetime(2020, 1, 1, tzinfo=timezone.utc),
        )

        assert result.data[0].price == 7000
        assert transport.requests[0].url == (
            f"{BASE}/v2/trades/tBTCUSD/hist?limit=10&start=1577836800000"
        )

    @pytest.mark.asyncio
    async def test_stats_history(self, public_client, transport):
        """Test stats key/symbol/side path."""
        transport.queue(200, "[[1,2.5]]")

        await public_client.get_stats("tBTCUSD", "pos.size", "long", history=True)

        assert transport.requests[0].url == f"{BASE}/v2/stats1/pos.size:1m:tBTCUSD:long/hist"

    @pytest.mark.asyncio
    async def test_last_candle(self, public_client, transport):
        """Test candle path."""
        transport.queue(200, "[1,2,3,4,5,6]")

        result = await public_client.get_last_candle("1m", "tBTCUSD")

        assert result.data.close == 3
        assert transport.requests[0].url == f"{BASE}/v2/candles/trade:1m:tBTCUSD/last"


class TestAuthenticatedWrappers:
    """Tests for signed wrapper methods."""

    @pytest.mark.asyncio
    async def test_wallets_signed_v2(self, client, transport):
        """Test v2 auth headers on a signed call."""
        transport.queue(200, '[["exchange","USD",100.5,0,null]]')

        result = await client.get_wallets()
        request = transport.requests[0]

        assert result.data[0].currency == "USD"
        assert request.url == f"{BASE}/v2/auth/r/wallets"
        assert request.body == "{}"
        assert request.headers["bfx-nonce"] == "10000"

    @pytest.mark.asyncio
    async def test_set_alert_body(self, client, transport):
        """Test alert parameters in the signed body."""
        transport.queue(200, '["price:tBTCUSD:500","price","tBTCUSD",500]')

        result = await client.set_alert("tBTCUSD", Decimal("500"))

        assert result.data.key == "price:tBTCUSD:500"
        assert json.loads(transport.requests[0].body) == {
            "type": "price",
            "symbol": "tBTCUSD",
            "price": "500",
        }

    @pytest.mark.asyncio
    async def test_account_info_unwrapped(self, client, transport):
        """Test v1 account info is unwrapped from its array."""
        transport.queue(200, '[{"maker_fees":"0.1","taker_fees":"0.2","fees":[]}]')

        result = await client.get_account_info()

        assert result.data.maker_fees == 0.1
        assert "X-BFX-PAYLOAD" in transport.requests[0].headers
        assert transport.requests[0].body is None

    @pytest.mark.asyncio
    async def test_account_info_empty(self, client, transport):
        """Test an empty account info array is NO_RESULT."""
        transport.queue(200, "[]")

        result = await client.get_account_info()

        assert result.error.category == ErrorCategory.NO_RESULT

    @pytest.mark.asyncio
    async def test_place_order_payload(self, client, transport):
        """Test v1 order parameters in the base64 payload."""
        transport.queue(200, '{"id":1,"symbol":"btcusd","side":"buy","type":"exchange limit"}')

        result = await client.place_order("btcusd", "buy", "exchange limit", 1.5, Decimal("100"))
        payload = transport.requests[0].headers["X-BFX-PAYLOAD"]
        document = json.loads(base64.b64decode(payload))

        assert result.data.id == 1
        assert transport.requests[0].url == f"{BASE}/v1/order/new"
        assert document == {
            "request": "/v1/order/new",
            "nonce": "10000",
            "symbol": "btcusd",
            "amount": "1.5",
            "price": "100",
            "exchange": "bitfinex",
            "side": "buy",
            "type": "exchange limit",
        }

    @pytest.mark.asyncio
    async def test_cancel_order(self, client, transport):
        """Test cancel order id is sent as a number."""
        transport.queue(200, '{"id":42,"symbol":"btcusd","side":"buy","type":"exchange limit"}')

        await client.cancel_order(42)
        payload = transport.requests[0].headers["X-BFX-PAYLOAD"]

        assert json.loads(base64.b64decode(payload))["order_id"] == 42


# ============================================================
# OBSERVABILITY TESTS
# ============================================================

class TestObservability:
    """Tests for metrics and logging around dispatch."""

    @pytest.mark.asyncio
    async def test_metrics_recorded(self, client, transport):
        """Test success, failure and signed counts."""
        transport.queue(200, "[1]")
        transport.queue(500, '["error",11010,"ratelimit: error"]')

        await client.get_platform_status()
        await client.get_wallets()

        summary = client.metrics.get_summary()
        assert summary["requests"]["total"] == 2
        assert summary["requests"]["success"] == 1
        assert summary["requests"]["signed"] == 1
        assert summary["errors"] == {"SERVER": 1}
        assert "auth/r/wallets" in client.metrics.get_latency_by_endpoint()

    @pytest.mark.asyncio
    async def test_argument_errors_not_recorded(self, public_client):
        """Test precondition failures never reach the metrics."""
        await public_client.get_order_book("tBTCUSD", "P0", limit=7)

        assert public_client.metrics.get_summary()["requests"]["total"] == 0

    @pytest.mark.asyncio
    async def test_logs_do_not_leak_credentials(self, client, transport, caplog):
        """Test key and secret never appear in logs."""
        caplog.set_level(logging.DEBUG)
        transport.queue(200, "[]")
        transport.queue(200, '[{"maker_fees":0.1,"taker_fees":0.2}]')

        await client.get_wallets()
        await client.get_account_info()

        assert "REQUEST" in caplog.text
        assert "mykey12345" not in caplog.text
        assert "topsecret" not in caplog.text

    @pytest.mark.asyncio
    async def test_request_logs_under_package_namespace(self, public_client, transport, caplog):
        """Test request logs use the bitfinex_client logger hierarchy."""
        caplog.set_level(logging.DEBUG, logger="bitfinex_client")
        transport.queue(200, "[1]")

        await public_client.get_platform_status()

        names = {record.name for record in caplog.records if "REQUEST" in record.getMessage()}
        assert names == {"bitfinex_client.requests"}


# ============================================================
# AIOHTTP TRANSPORT TESTS
# ============================================================

@pytest_asyncio.fixture
async def slow_server():
    """Local server answering platform status after 0.3s."""

    async def platform_status(request):
        await asyncio.sleep(0.3)
        return web.Response(text="[1]", content_type="application/json")

    app = web.Application()
    app.router.add_get("/v2/platform/status", platform_status)

    server = test_utils.TestServer(app)
    await server.start_server()
    yield f"http://{server.host}:{server.port}"
    await server.close()


class TestAiohttpTimeouts:
    """Tests for per-call timeouts against a real HTTP server."""

    @pytest.mark.asyncio
    async def test_call_timeout_longer_than_default(self, slow_server):
        """Test a per-call timeout above the configured default."""
        config = ClientConfig(base_address=slow_server, timeout_seconds=0.1)

        async with BitfinexClient(config) as client:
            result = await client.execute(endpoints.PLATFORM_STATUS, timeout=3.0)

        assert result.success
        assert result.data.operative is True

    @pytest.mark.asyncio
    async def test_call_timeout_shorter_than_default(self, slow_server):
        """Test a per-call timeout below the configured default."""
        config = ClientConfig(base_address=slow_server, timeout_seconds=3.0)

        async with BitfinexClient(config) as client:
            result = await client.execute(endpoints.PLATFORM_STATUS, timeout=0.1)

        assert result.error.category == ErrorCategory.TIMEOUT
        assert result.error.message == "Request timed out after 100ms"

    @pytest.mark.asyncio
    async def test_default_timeout_applies(self, slow_server):
        """Test the configured timeout when no per-call value is given."""
        config = ClientConfig(base_address=slow_server, timeout_seconds=0.1)

        async with BitfinexClient(config) as client:
            result = await client.get_platform_status()

        assert result.error.category == ErrorCategory.TIMEOUT
        assert result.error.message == "Request timed out after 100ms"
