"""Normalized types exchanged between gateways and the trading engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class Exchange(Enum):
    """Exchanges with a gateway implementation."""

    BTCE = "btce"


class Side(Enum):
    """Order or trade side."""

    BID = "bid"
    ASK = "ask"
    UNKNOWN = "unknown"


class OrderStatus(Enum):
    """Order lifecycle status as reported to the engine."""

    NEW = "new"
    WORKING = "working"
    COMPLETE = "complete"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


class ConnectivityStatus(Enum):
    """Gateway connectivity."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True, slots=True)
class CurrencyPair:
    base: str
    quote: str

    def __str__(self) -> str:
        return f"{self.base}/{self.quote}"


@dataclass(frozen=True, slots=True)
class MarketSide:
    """One price level of an order book."""

    price: float
    size: float


@dataclass(slots=True)
class Market:
    """Full order book snapshot, rebuilt on every poll."""

    bids: list[MarketSide]
    asks: list[MarketSide]
    time: datetime

    @property
    def best_bid(self) -> MarketSide | None:
        return self.bids[0] if self.bids else None

    @property
    def best_ask(self) -> MarketSide | None:
        return self.asks[0] if self.asks else None


@dataclass(frozen=True, slots=True)
class MarketTrade:
    """A trade reported by the exchange's public trade feed."""

    price: float
    size: float
    time: datetime
    side: Side
    trade_id: int


@dataclass(slots=True)
class BrokeredOrder:
    order_id: str
    side: Side
    price: float
    quantity: float


@dataclass(slots=True)
class BrokeredCancel:
    client_order_id: str
    request_id: str
    side: Side
    exchange_id: str


@dataclass(slots=True)
class BrokeredReplace(BrokeredOrder):
    """A new order that supersedes ``orig_order_id`` on the exchange."""

    orig_order_id: str = ""
    exchange_id: str = ""


@dataclass(slots=True)
class OrderStatusReport:
    """A change to one order's lifecycle, delivered after the exchange responds.

    Only ``order_id`` and ``order_status`` are always present; the other
    fields carry whatever the exchange told us about this transition.
    """

    order_id: str
    order_status: OrderStatus
    leaves_quantity: float | None = None
    exchange_id: str | None = None
    reject_message: str | None = None


@dataclass(frozen=True, slots=True)
class OrderGatewayActionReport:
    """Receipt returned immediately when an order action is submitted."""

    time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True, slots=True)
class CurrencyPosition:
    amount: float
    currency: str
