"""
Pydantic Models for Bitfinex Responses.

v2 endpoints answer with positional arrays; ``ArrayModel`` maps
them onto named fields in declaration order. v1 endpoints answer
with JSON objects and use plain ``BaseModel``.
"""

from typing import Any, ClassVar, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, model_validator


# =============================================================
# BASE
# =============================================================

class ArrayModel(BaseModel):
    """Model populated from a positional JSON array."""

    model_config = ConfigDict(extra="ignore")

    _positions: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="before")
    @classmethod
    def _from_array(cls, data: Any) -> Any:
        if isinstance(data, (list, tuple)):
            names = cls._positions or tuple(cls.model_fields)
            return dict(zip(names, data))
        return data


# =============================================================
# V2 PUBLIC
# =============================================================

class PlatformStatus(ArrayModel):
    """1 = operative, 0 = maintenance."""
    status: int

    @property
    def operative(self) -> bool:
        return self.status == 1


class TradingTicker(ArrayModel):
    symbol: str
    bid: Optional[float] = None
    bid_size: Optional[float] = None
    ask: Optional[float] = None
    ask_size: Optional[float] = None
    daily_change: Optional[float] = None
    daily_change_relative: Optional[float] = None
    last_price: Optional[float] = None
    volume: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None


class Trade(ArrayModel):
    id: int
    timestamp: int
    amount: float
    price: float


class OrderBookEntry(ArrayModel):
    price: float
    count: int
    amount: float


class Stat(ArrayModel):
    timestamp: int
    value: float


class Candle(ArrayModel):
    timestamp: int
    open: float
    close: float
    high: float
    low: float
    volume: float


class MarketAveragePrice(ArrayModel):
    average_rate: float
    amount: float


# =============================================================
# V2 AUTHENTICATED
# =============================================================

class Wallet(ArrayModel):
    wallet_type: str
    currency: str
    balance: float
    unsettled_interest: Optional[float] = None
    balance_available: Optional[float] = None


class Order(ArrayModel):
    _positions: ClassVar[Tuple[str, ...]] = (
        "id", "group_id", "client_order_id", "symbol", "created_at",
        "updated_at", "amount", "amount_original", "order_type",
        "order_type_previous", "_placeholder_1", "_placeholder_2",
        "flags", "status", "_placeholder_3", "_placeholder_4",
        "price", "price_average",
    )

    id: int
    group_id: Optional[int] = None
    client_order_id: Optional[int] = None
    symbol: str
    created_at: Optional[int] = None
    updated_at: Optional[int] = None
    amount: float
    amount_original: float
    order_type: str
    order_type_previous: Optional[str] = None
    flags: Optional[int] = None
    status: Optional[str] = None
    price: Optional[float] = None
    price_average: Optional[float] = None


class Position(ArrayModel):
    symbol: str
    status: str
    amount: float
    base_price: float
    margin_funding: Optional[float] = None
    margin_funding_type: Optional[int] = None
    profit_loss: Optional[float] = None
    profit_loss_percentage: Optional[float] = None
    liquidation_price: Optional[float] = None
    leverage: Optional[float] = None


class MarginBase(BaseModel):
    """``["base", [USER_PL, USER_SWAPS, MARGIN_BALANCE, MARGIN_NET, ...]]``."""

    user_profit_loss: float
    user_swaps: float
    margin_balance: float
    margin_net: float

    @model_validator(mode="before")
    @classmethod
    def _from_array(cls, data: Any) -> Any:
        if isinstance(data, (list, tuple)) and len(data) == 2 and isinstance(data[1], list):
            names = ("user_profit_loss", "user_swaps", "margin_balance", "margin_net")
            return dict(zip(names, data[1]))
        return data


class Alert(ArrayModel):
    key: str
    type: str
    symbol: str
    price: float


# =============================================================
# V1 OBJECTS
# =============================================================

class FeeLevel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    pairs: str
    maker_fees: float
    taker_fees: float


class AccountInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    maker_fees: float
    taker_fees: float
    fees: List[FeeLevel] = []


class WithdrawalFees(BaseModel):
    model_config = ConfigDict(extra="ignore")

    withdraw: Dict[str, float]


class PlacedOrder(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    symbol: str
    exchange: Optional[str] = None
    price: Optional[float] = None
    avg_execution_price: Optional[float] = None
    side: str
    type: str
    timestamp: Optional[float] = None
    is_live: bool = False
    is_cancelled: bool = False
    is_hidden: bool = False
    was_forced: bool = False
    original_amount: Optional[float] = None
    remaining_amount: Optional[float] = None
    executed_amount: Optional[float] = None


class ResultMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    result: str
