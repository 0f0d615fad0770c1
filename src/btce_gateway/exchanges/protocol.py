"""Protocol definitions for exchange gateways."""

from __future__ import annotations

from typing import Protocol

from ..events import Event
from ..models import (
    BrokeredCancel,
    BrokeredOrder,
    BrokeredReplace,
    ConnectivityStatus,
    CurrencyPosition,
    Exchange,
    Market,
    MarketTrade,
    OrderGatewayActionReport,
    OrderStatusReport,
)


class MarketDataGateway(Protocol):
    """Order book and public trade feed."""

    market_data: Event[Market]
    market_trade: Event[MarketTrade]
    connect_changed: Event[ConnectivityStatus]


class OrderEntryGateway(Protocol):
    """Order submission.

    Every action returns an immediate receipt; the outcome arrives later on
    ``order_update``.
    """

    order_update: Event[OrderStatusReport]
    connect_changed: Event[ConnectivityStatus]
    cancels_by_client_order_id: bool

    def send_order(self, order: BrokeredOrder) -> OrderGatewayActionReport:
        """Submit a new order.

        Args:
            order: Order to place

        Returns:
            Receipt stamped with the submission time
        """
        ...

    def cancel_order(self, cancel: BrokeredCancel) -> OrderGatewayActionReport:
        """Cancel a working order by its exchange id."""
        ...

    def replace_order(self, replace: BrokeredReplace) -> OrderGatewayActionReport:
        """Replace a working order with a new one."""
        ...

    def generate_client_order_id(self) -> str:
        """Produce a fresh client order id."""
        ...


class PositionGateway(Protocol):
    """Account balance feed."""

    position_update: Event[CurrencyPosition]


class ExchangeDetailsGateway(Protocol):
    """Static exchange metadata."""

    @property
    def has_self_trade_prevention(self) -> bool:
        ...

    def exchange(self) -> Exchange:
        ...

    def make_fee(self) -> float:
        ...

    def take_fee(self) -> float:
        ...

    def name(self) -> str:
        ...


class CombinedGateway:
    """The four gateway facets of one exchange, as handed to the engine."""

    def __init__(
        self,
        market_data: MarketDataGateway,
        order_entry: OrderEntryGateway,
        position: PositionGateway,
        base: ExchangeDetailsGateway,
    ):
        self.market_data = market_data
        self.order_entry = order_entry
        self.position = position
        self.base = base

    async def close(self) -> None:
        """Stop polling and close connections."""
        pass
