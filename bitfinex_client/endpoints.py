"""
Bitfinex Client - Endpoint Resolution and Catalog.

============================================================
PURPOSE
============================================================
- Fill positional ``{}`` placeholders in endpoint templates
- Assemble absolute URLs from base address, version and endpoint
- Describe every endpoint the client exposes

URL CONTRACT:
    {base_address}/v{version}/{endpoint}
The base address has no trailing slash and the endpoint no leading
slash. Neither is corrected here.

============================================================
"""

from typing import Any, List

from .errors import BitfinexException, create_argument_error
from .models import (
    AccountInfo,
    Alert,
    Candle,
    MarginBase,
    MarketAveragePrice,
    Order,
    OrderBookEntry,
    PlacedOrder,
    PlatformStatus,
    Position,
    ResultMessage,
    Stat,
    Trade,
    TradingTicker,
    Wallet,
    WithdrawalFees,
)
from .types import ApiVersion, EndpointDescriptor, HttpMethod


PLACEHOLDER = "{}"


# ============================================================
# RESOLUTION
# ============================================================

def fill_path_parameters(template: str, *values: Any) -> str:
    """
    Replace ``{}`` placeholders left to right with ``str(value)``.

    Args:
        template: Endpoint template
        *values: One value per placeholder, in order

    Returns:
        Resolved endpoint

    Raises:
        BitfinexException: ARGUMENT error if the number of values
            differs from the number of placeholders
    """
    expected = template.count(PLACEHOLDER)
    if len(values) != expected:
        raise BitfinexException(
            create_argument_error(
                f"Endpoint '{template}' takes {expected} path value(s), "
                f"got {len(values)}",
                endpoint=template,
            )
        )

    # Split first so a value containing "{}" is never filled again
    segments = template.split(PLACEHOLDER)
    parts = [segments[0]]
    for value, segment in zip(values, segments[1:]):
        parts.append(str(value))
        parts.append(segment)
    return "".join(parts)


def build_url(endpoint: str, version: ApiVersion, base_address: str) -> str:
    """
    Build an absolute request URL.

    Args:
        endpoint: Resolved endpoint, no leading slash
        version: API generation
        base_address: Base address, no trailing slash

    Returns:
        ``{base_address}/v{version}/{endpoint}``
    """
    return f"{base_address}/v{version.value}/{endpoint}"


# ============================================================
# ENDPOINT CATALOG
# ============================================================

GET = HttpMethod.GET
POST = HttpMethod.POST
V1 = ApiVersion.LEGACY
V2 = ApiVersion.CURRENT

# V2 public
PLATFORM_STATUS = EndpointDescriptor(GET, "platform/status", V2, result_type=PlatformStatus)
TICKERS = EndpointDescriptor(GET, "tickers", V2, result_type=List[TradingTicker])
TRADES = EndpointDescriptor(GET, "trades/{}/hist", V2, result_type=List[Trade])
ORDER_BOOK = EndpointDescriptor(GET, "book/{}/{}", V2, result_type=List[OrderBookEntry])
STATS_LAST = EndpointDescriptor(GET, "stats1/{}:1m:{}:{}/last", V2, result_type=Stat)
STATS_HIST = EndpointDescriptor(GET, "stats1/{}:1m:{}:{}/hist", V2, result_type=List[Stat])
LAST_CANDLE = EndpointDescriptor(GET, "candles/trade:{}:{}/last", V2, result_type=Candle)
CANDLES = EndpointDescriptor(GET, "candles/trade:{}:{}/hist", V2, result_type=List[Candle])
MARKET_AVERAGE_PRICE = EndpointDescriptor(POST, "calc/trade/avg", V2, result_type=MarketAveragePrice)

# V2 authenticated
WALLETS = EndpointDescriptor(POST, "auth/r/wallets", V2, True, List[Wallet])
ACTIVE_ORDERS = EndpointDescriptor(POST, "auth/r/orders", V2, True, List[Order])
ORDER_HISTORY = EndpointDescriptor(POST, "auth/r/orders/{}/hist", V2, True, List[Order])
ORDER_TRADES = EndpointDescriptor(POST, "auth/r/order/{}:{}/trades", V2, True, List[List[Any]])
TRADE_HISTORY = EndpointDescriptor(POST, "auth/r/trades/{}/hist", V2, True, List[List[Any]])
ACTIVE_POSITIONS = EndpointDescriptor(POST, "auth/r/positions", V2, True, List[Position])
ACTIVE_FUNDING_OFFERS = EndpointDescriptor(POST, "auth/r/funding/offers/{}", V2, True, List[List[Any]])
FUNDING_OFFER_HISTORY = EndpointDescriptor(POST, "auth/r/funding/offers/{}/hist", V2, True, List[List[Any]])
FUNDING_LOANS = EndpointDescriptor(POST, "auth/r/funding/loans/{}", V2, True, List[List[Any]])
FUNDING_LOANS_HISTORY = EndpointDescriptor(POST, "auth/r/funding/loans/{}/hist", V2, True, List[List[Any]])
FUNDING_CREDITS = EndpointDescriptor(POST, "auth/r/funding/credits/{}", V2, True, List[List[Any]])
FUNDING_CREDITS_HISTORY = EndpointDescriptor(POST, "auth/r/funding/credits/{}/hist", V2, True, List[List[Any]])
FUNDING_TRADES = EndpointDescriptor(POST, "auth/r/funding/trades/{}/hist", V2, True, List[List[Any]])
MARGIN_INFO_BASE = EndpointDescriptor(POST, "auth/r/info/margin/base", V2, True, MarginBase)
MARGIN_INFO_SYMBOL = EndpointDescriptor(POST, "auth/r/info/margin/{}", V2, True, List[Any])
FUNDING_INFO = EndpointDescriptor(POST, "auth/r/info/funding/{}", V2, True, List[Any])
MOVEMENTS = EndpointDescriptor(POST, "auth/r/movements/{}/hist", V2, True, List[List[Any]])
DAILY_PERFORMANCE = EndpointDescriptor(POST, "auth/r/stats/perf:1D/hist", V2, True, Any)
ALERT_LIST = EndpointDescriptor(POST, "auth/r/alerts", V2, True, List[Alert])
SET_ALERT = EndpointDescriptor(POST, "auth/w/alert/set", V2, True, Alert)
DELETE_ALERT = EndpointDescriptor(POST, "auth/w/alert/price:{}:{}/del", V2, True, List[bool])

# V1 authenticated
ACCOUNT_INFO = EndpointDescriptor(POST, "account_infos", V1, True, AccountInfo, unwrap_single=True)
WITHDRAWAL_FEES = EndpointDescriptor(POST, "account_fees", V1, True, WithdrawalFees)
PLACE_ORDER = EndpointDescriptor(POST, "order/new", V1, True, PlacedOrder)
CANCEL_ORDER = EndpointDescriptor(POST, "order/cancel", V1, True, PlacedOrder)
CANCEL_ALL_ORDERS = EndpointDescriptor(POST, "order/cancel/all", V1, True, ResultMessage)
ORDER_STATUS = EndpointDescriptor(POST, "order/status", V1, True, PlacedOrder)
