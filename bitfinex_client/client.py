"""
Bitfinex Client - Dispatch and Endpoint Methods.

============================================================
PURPOSE
============================================================
Single entry point for every API call.

PIPELINE (per call):
    resolve template -> build URL -> build request (sign)
        -> transport -> parse -> CallResult

GUARANTEES:
- At-most-once: nothing is retried
- Expected failures come back as CallResult errors
- Only programmer errors raise (signed call without credentials)
- A signed call spends its nonce at build time, even if it is
  later cancelled or times out

============================================================
USAGE
============================================================
```python
async with BitfinexClient(ClientConfig.from_env()) as client:
    result = await client.get_wallets()
    if result.success:
        for wallet in result.data:
            ...
```

============================================================
"""

import asyncio
import time
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Sequence, Union

import aiohttp

from . import endpoints
from .config import ClientConfig
from .endpoints import build_url, fill_path_parameters
from .errors import (
    BitfinexError,
    BitfinexException,
    create_argument_error,
    create_timeout_error,
    create_transport_error,
)
from .logging_utils import ClientLogger
from .metrics import ClientMetrics
from .nonce import NonceGenerator
from .request_builder import RequestBuilder
from .response_parser import ResponseParser
from .transport import AiohttpTransport, Transport
from .types import CallResult, Credentials, EndpointDescriptor


ORDER_BOOK_LIMITS = (25, 100)

Number = Union[int, float, Decimal]


def _timestamp_ms(value: Optional[datetime]) -> Optional[int]:
    """Datetime to epoch milliseconds, as the API expects."""
    if value is None:
        return None
    return int(value.timestamp() * 1000)


def _decimal_str(value: Optional[Number]) -> Optional[str]:
    if value is None:
        return None
    return format(Decimal(str(value)), "f")


def _history_params(
    start_time: Optional[datetime],
    end_time: Optional[datetime],
    limit: Optional[int],
) -> Dict[str, Any]:
    return {
        "len": limit,
        "start": _timestamp_ms(start_time),
        "end": _timestamp_ms(end_time),
    }


# ============================================================
# BITFINEX CLIENT
# ============================================================

class BitfinexClient:
    """
    Client for the Bitfinex v1 and v2 REST APIs.

    Credentials are held as one immutable value and replaced as a
    whole. The nonce generator is shared by every signed call made
    through this instance.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        transport: Optional[Transport] = None,
        nonce_generator: Optional[NonceGenerator] = None,
    ):
        """
        Initialize client.

        Args:
            config: Client configuration (defaults: public API only)
            transport: HTTP transport (default: aiohttp)
            nonce_generator: Shared nonce source
        """
        self._config = config or ClientConfig()
        self._credentials: Optional[Credentials] = self._config.credentials()

        self._transport = transport or AiohttpTransport(self._config.timeout_seconds)
        self._builder = RequestBuilder(nonce_generator)
        self._parser = ResponseParser()

        self._metrics = ClientMetrics()
        self._logger = ClientLogger()

    # --------------------------------------------------------
    # PROPERTIES
    # --------------------------------------------------------

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def credentials(self) -> Optional[Credentials]:
        return self._credentials

    @property
    def metrics(self) -> ClientMetrics:
        return self._metrics

    @property
    def nonce_generator(self) -> NonceGenerator:
        return self._builder.nonce_generator

    # --------------------------------------------------------
    # CREDENTIALS / LIFECYCLE
    # --------------------------------------------------------

    def set_api_credentials(self, api_key: str, api_secret: str) -> None:
        """
        Replace the API credentials.

        Calls already being built keep the credentials they started
        with.
        """
        self._credentials = Credentials(key=api_key, secret=api_secret)
        self._logger.info("API credentials replaced")

    async def close(self) -> None:
        """Close the transport."""
        await self._transport.close()

    async def __aenter__(self) -> "BitfinexClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # --------------------------------------------------------
    # DISPATCH
    # --------------------------------------------------------

    async def execute(
        self,
        descriptor: EndpointDescriptor,
        path_values: Sequence[Any] = (),
        parameters: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> CallResult:
        """
        Execute one API call.

        Args:
            descriptor: Endpoint description
            path_values: Values for the template placeholders, in order
            parameters: Parameter bag; None values are dropped
            timeout: Seconds before the call is abandoned
                (default: config timeout)

        Returns:
            CallResult with the validated value or a BitfinexError

        Raises:
            BitfinexConfigurationError: Signed endpoint without credentials
        """
        try:
            endpoint = fill_path_parameters(descriptor.template, *path_values)
        except BitfinexException as e:
            return CallResult.fail(e.error)

        url = build_url(endpoint, descriptor.version, self._config.base_address)

        # One read: a concurrent set_api_credentials cannot split a call
        credentials = self._credentials
        request = self._builder.build(
            url,
            descriptor.method,
            parameters,
            signed=descriptor.signed,
            version=descriptor.version,
            credentials=credentials,
        )

        request_id = self._logger.log_request(
            operation=descriptor.template,
            method=request.method.value,
            url=request.url,
            headers=request.headers,
            body=request.body,
            signed=request.signed,
        )

        timeout = timeout if timeout is not None else self._config.timeout_seconds
        start_time = time.monotonic()
        status: Optional[int] = None
        body: Optional[bytes] = None

        try:
            response = await asyncio.wait_for(
                self._transport.send(request, timeout), timeout
            )
        except asyncio.TimeoutError:
            result = CallResult.fail(
                create_timeout_error(int(timeout * 1000), endpoint=endpoint)
            )
        except (aiohttp.ClientError, OSError) as e:
            result = CallResult.fail(
                create_transport_error(f"{type(e).__name__}: {e}", endpoint=endpoint)
            )
        else:
            status = response.status
            body = response.body
            result = self._parser.parse(
                response,
                descriptor.result_type,
                descriptor.unwrap_single,
                endpoint=endpoint,
            )

        latency_ms = (time.monotonic() - start_time) * 1000
        self._record(descriptor, request_id, request.signed, status, body, latency_ms, result)
        return result

    def _record(
        self,
        descriptor: EndpointDescriptor,
        request_id: str,
        signed: bool,
        status: Optional[int],
        body: Optional[bytes],
        latency_ms: float,
        result: CallResult,
    ) -> None:
        error: Optional[BitfinexError] = result.error

        self._metrics.record_request(
            endpoint=descriptor.template,
            latency_ms=latency_ms,
            success=result.success,
            signed=signed,
            status_code=status,
            error_category=error.category.value if error else None,
        )

        self._logger.log_response(
            operation=descriptor.template,
            request_id=request_id,
            status_code=status,
            latency_ms=latency_ms,
            success=result.success,
            error_category=error.category.value if error else None,
            error_code=error.code if error else None,
            error_message=error.message if error else None,
            response_body=body,
        )

    # --------------------------------------------------------
    # V2 PUBLIC
    # --------------------------------------------------------

    async def get_platform_status(self) -> CallResult:
        """Whether the platform is operative or in maintenance."""
        return await self.execute(endpoints.PLATFORM_STATUS)

    async def get_ticker(self, *symbols: str) -> CallResult:
        """Basic market data for the given symbols."""
        return await self.execute(
            endpoints.TICKERS,
            parameters={"symbols": ",".join(symbols)},
        )

    async def get_trades(
        self,
        symbol: str,
        limit: Optional[int] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        sort: Optional[int] = None,
    ) -> CallResult:
        """
        Recent public trades for a symbol.

        Args:
            symbol: e.g. tBTCUSD
            limit: Max number of results
            start_time: Only trades after this time
            end_time: Only trades before this time
            sort: 1 oldest first, -1 newest first
        """
        return await self.execute(
            endpoints.TRADES,
            [symbol],
            {
                "limit": limit,
                "start": _timestamp_ms(start_time),
                "end": _timestamp_ms(end_time),
                "sort": sort,
            },
        )

    async def get_order_book(
        self,
        symbol: str,
        precision: str,
        limit: Optional[int] = None,
    ) -> CallResult:
        """
        Order book for a symbol.

        Args:
            symbol: e.g. tBTCUSD
            precision: P0..P4 or R0
            limit: 25 or 100
        """
        if limit is not None and limit not in ORDER_BOOK_LIMITS:
            return CallResult.fail(
                create_argument_error(
                    "Limit should be either 25 or 100",
                    endpoint=endpoints.ORDER_BOOK.template,
                )
            )

        return await self.execute(
            endpoints.ORDER_BOOK,
            [symbol, precision],
            {"len": limit},
        )

    async def get_stats(
        self,
        symbol: str,
        key: str,
        side: str,
        history: bool = False,
        sort: Optional[int] = None,
    ) -> CallResult:
        """
        Market statistics.

        Args:
            symbol: e.g. tBTCUSD
            key: pos.size, funding.size, credits.size, ...
            side: long or short
            history: Return the series instead of the last value
            sort: 1 oldest first, -1 newest first
        """
        descriptor = endpoints.STATS_HIST if history else endpoints.STATS_LAST
        return await self.execute(descriptor, [key, symbol, side], {"sort": sort})

    async def get_last_candle(self, time_frame: str, symbol: str) -> CallResult:
        """Most recent candle (time_frame e.g. 1m, 1h, 1D)."""
        return await self.execute(endpoints.LAST_CANDLE, [time_frame, symbol])

    async def get_candles(
        self,
        time_frame: str,
        symbol: str,
        limit: Optional[int] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        sort: Optional[int] = None,
    ) -> CallResult:
        """Candle history."""
        params = _history_params(start_time, end_time, limit)
        params["sort"] = sort
        return await self.execute(endpoints.CANDLES, [time_frame, symbol], params)

    async def get_market_average_price(
        self,
        symbol: str,
        amount: Number,
        rate_limit: Optional[Number] = None,
        period: Optional[int] = None,
    ) -> CallResult:
        """Average execution price for an amount."""
        return await self.execute(
            endpoints.MARKET_AVERAGE_PRICE,
            parameters={
                "symbol": symbol,
                "amount": _decimal_str(amount),
                "period": period,
                "rate_limit": _decimal_str(rate_limit),
            },
        )

    # --------------------------------------------------------
    # V2 AUTHENTICATED
    # --------------------------------------------------------

    async def get_wallets(self) -> CallResult:
        """All wallets of the account."""
        return await self.execute(endpoints.WALLETS)

    async def get_active_orders(self) -> CallResult:
        return await self.execute(endpoints.ACTIVE_ORDERS)

    async def get_order_history(
        self,
        symbol: str,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> CallResult:
        return await self.execute(
            endpoints.ORDER_HISTORY,
            [symbol],
            _history_params(start_time, end_time, limit),
        )

    async def get_trades_for_order(self, symbol: str, order_id: int) -> CallResult:
        """Individual fills of one order."""
        return await self.execute(endpoints.ORDER_TRADES, [symbol, order_id])

    async def get_trade_history(
        self,
        symbol: str,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> CallResult:
        return await self.execute(
            endpoints.TRADE_HISTORY,
            [symbol],
            _history_params(start_time, end_time, limit),
        )

    async def get_active_positions(self) -> CallResult:
        return await self.execute(endpoints.ACTIVE_POSITIONS)

    async def get_active_funding_offers(self, symbol: str) -> CallResult:
        return await self.execute(endpoints.ACTIVE_FUNDING_OFFERS, [symbol])

    async def get_funding_offer_history(
        self,
        symbol: str,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> CallResult:
        return await self.execute(
            endpoints.FUNDING_OFFER_HISTORY,
            [symbol],
            _history_params(start_time, end_time, limit),
        )

    async def get_funding_loans(self, symbol: str) -> CallResult:
        return await self.execute(endpoints.FUNDING_LOANS, [symbol])

    async def get_funding_loans_history(
        self,
        symbol: str,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> CallResult:
        return await self.execute(
            endpoints.FUNDING_LOANS_HISTORY,
            [symbol],
            _history_params(start_time, end_time, limit),
        )

    async def get_funding_credits(self, symbol: str) -> CallResult:
        return await self.execute(endpoints.FUNDING_CREDITS, [symbol])

    async def get_funding_credits_history(
        self,
        symbol: str,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> CallResult:
        return await self.execute(
            endpoints.FUNDING_CREDITS_HISTORY,
            [symbol],
            _history_params(start_time, end_time, limit),
        )

    async def get_funding_trades_history(
        self,
        symbol: str,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> CallResult:
        return await self.execute(
            endpoints.FUNDING_TRADES,
            [symbol],
            _history_params(start_time, end_time, limit),
        )

    async def get_base_margin_info(self) -> CallResult:
        return await self.execute(endpoints.MARGIN_INFO_BASE)

    async def get_symbol_margin_info(self, symbol: str) -> CallResult:
        return await self.execute(endpoints.MARGIN_INFO_SYMBOL, [symbol])

    async def get_funding_info(self, symbol: str) -> CallResult:
        return await self.execute(endpoints.FUNDING_INFO, [symbol])

    async def get_movements(self, currency: str) -> CallResult:
        """Deposit and withdrawal history."""
        return await self.execute(endpoints.MOVEMENTS, [currency])

    async def get_daily_performance(self) -> CallResult:
        return await self.execute(endpoints.DAILY_PERFORMANCE)

    async def get_alert_list(self) -> CallResult:
        """Active price alerts."""
        return await self.execute(endpoints.ALERT_LIST, parameters={"type": "price"})

    async def set_alert(self, symbol: str, price: Number) -> CallResult:
        """Create a price alert."""
        return await self.execute(
            endpoints.SET_ALERT,
            parameters={
                "type": "price",
                "symbol": symbol,
                "price": _decimal_str(price),
            },
        )

    async def delete_alert(self, symbol: str, price: Number) -> CallResult:
        return await self.execute(endpoints.DELETE_ALERT, [symbol, _decimal_str(price)])

    # --------------------------------------------------------
    # V1 AUTHENTICATED
    # --------------------------------------------------------

    async def get_account_info(self) -> CallResult:
        """Fee tiers of the account (v1 returns a one-element array)."""
        return await self.execute(endpoints.ACCOUNT_INFO)

    async def get_withdrawal_fees(self) -> CallResult:
        return await self.execute(endpoints.WITHDRAWAL_FEES)

    async def place_order(
        self,
        symbol: str,
        side: str,
        order_type: str,
        amount: Number,
        price: Number,
    ) -> CallResult:
        """
        Place an order through the v1 API.

        Args:
            symbol: e.g. btcusd
            side: buy or sell
            order_type: e.g. "exchange limit", "exchange market"
            amount: Order size
            price: Limit price (any positive value for market orders)
        """
        return await self.execute(
            endpoints.PLACE_ORDER,
            parameters={
                "symbol": symbol,
                "amount": _decimal_str(amount),
                "price": _decimal_str(price),
                "exchange": "bitfinex",
                "side": side,
                "type": order_type,
            },
        )

    async def cancel_order(self, order_id: int) -> CallResult:
        return await self.execute(endpoints.CANCEL_ORDER, parameters={"order_id": order_id})

    async def cancel_all_orders(self) -> CallResult:
        return await self.execute(endpoints.CANCEL_ALL_ORDERS)

    async def get_order(self, order_id: int) -> CallResult:
        """Status of one order."""
        return await self.execute(endpoints.ORDER_STATUS, parameters={"order_id": order_id})
