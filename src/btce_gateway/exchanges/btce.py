"""BTC-e exchange gateway."""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Coroutine, Generic, TypeVar
from urllib.parse import urlencode

from pydantic import BaseModel, Field, ValidationError

from ..events import Event
from ..models import (
    BrokeredCancel,
    BrokeredOrder,
    BrokeredReplace,
    ConnectivityStatus,
    CurrencyPair,
    CurrencyPosition,
    Exchange,
    Market,
    MarketSide,
    MarketTrade,
    OrderGatewayActionReport,
    OrderStatus,
    OrderStatusReport,
    Side,
)
from ..timers import TimeProvider
from .base import BaseRestClient, ProxyConfig
from .errors import TransportError
from .nonce import NonceGenerator
from .normalization import check_pair_key, pair_key
from .protocol import CombinedGateway

logger = logging.getLogger(__name__)

DEFAULT_PUBLIC_URL = "https://btc-e.com/api/3"
DEFAULT_TRADE_URL = "https://btc-e.com/tapi"

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Envelope of every authenticated API response."""

    success: int
    return_: T | None = Field(default=None, alias="return")
    error: str | None = None

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @property
    def ok(self) -> bool:
        return self.success == 1


class TradeResponse(BaseModel):
    received: float = 0.0
    remains: float = 0.0
    order_id: int
    funds: dict[str, float] = Field(default_factory=dict)


class CancelOrderAck(BaseModel):
    order_id: int
    funds: dict[str, float] = Field(default_factory=dict)


class AccountInfo(BaseModel):
    funds: dict[str, float] = Field(default_factory=dict)


class _BackgroundWork:
    """Tracks tasks spawned from synchronous callbacks and logs their failures."""

    def __init__(self, owner: str) -> None:
        self._owner = owner
        self._tasks: set[asyncio.Task[Any]] = set()

    def spawn(self, coro: Coroutine[Any, Any, Any], description: str) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro, name=f"{self._owner}:{description}")
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("%s failed: %s", task.get_name(), exc, exc_info=exc)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def flush(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def cancel(self) -> None:
        for task in list(self._tasks):
            task.cancel()


class BtcEPublicApiClient(BaseRestClient):
    """Unauthenticated market data endpoints."""

    async def get_from_endpoint(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        return await self.get_json(endpoint, params)


class BtcEAuthenticatedApiClient(BaseRestClient):
    """Signs and posts calls to the trade API.

    Every call carries a fresh nonce from this client's own generator and is
    signed with HMAC-SHA512 over the exact form body that is sent.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        api_secret: str,
        *,
        proxy: ProxyConfig | None = None,
        nonce: NonceGenerator | None = None,
    ):
        super().__init__(base_url, proxy=proxy)
        self.api_key = api_key
        self.api_secret = api_secret
        self._nonce = nonce or NonceGenerator()

    def build_form(self, method: str, params: dict[str, Any]) -> str:
        form_data = dict(params)
        form_data["method"] = method
        form_data["nonce"] = self._nonce.next()
        return urlencode(form_data)

    def sign(self, form: str) -> str:
        return self.generate_signature(self.api_secret, form)

    async def post(
        self,
        method: str,
        params: dict[str, Any],
        response_model: type[T] | None = None,
    ) -> ApiResponse[T]:
        """Call a trade API method.

        Args:
            method: Trade API method name (e.g. 'Trade', 'CancelOrder')
            params: Method-specific fields
            response_model: Model for the ``return`` payload

        Returns:
            The response envelope; ``success == 0`` is returned, not raised

        Raises:
            TransportError: If the call fails or the body cannot be decoded
        """
        form = self.build_form(method, params)
        headers = {"Key": self.api_key, "Sign": self.sign(form)}

        logger.debug("POST %s %s", method, form)
        data = await self.post_form(method, form, headers)

        envelope = ApiResponse[response_model] if response_model is not None else ApiResponse[dict[str, Any]]
        try:
            resp = envelope.model_validate(data)
        except ValidationError as exc:
            raise TransportError(f"Unexpected {method} response: {exc}", url=self.url_for(method)) from exc

        if resp.ok and resp.return_ is None and response_model is not None:
            raise TransportError(f"{method} succeeded without a return payload", url=self.url_for(method))
        return resp


class BtcEMarketDataGateway:
    """Polls depth and recent trades and publishes them as events."""

    DEPTH_LIMIT = 5
    TRADES_LIMIT = 5

    def __init__(
        self,
        pair_key: str,
        time_provider: TimeProvider,
        client: BtcEPublicApiClient,
        *,
        poll_interval: float = 2.0,
    ):
        self.market_data: Event[Market] = Event("market_data")
        self.market_trade: Event[MarketTrade] = Event("market_trade")
        self.connect_changed: Event[ConnectivityStatus] = Event("md_connect_changed")

        self._pair_key = pair_key
        self._time_provider = time_provider
        self._client = client
        self._seen_trade_ids: set[int] = set()
        self._work = _BackgroundWork("btce-md")

        self._timers = [
            time_provider.set_interval(self._on_refresh_market_data, poll_interval),
            time_provider.set_interval(self._on_refresh_market_trades, poll_interval),
        ]
        time_provider.set_immediate(lambda: self.connect_changed.trigger(ConnectivityStatus.CONNECTED))

    @staticmethod
    def convert_to_market_side(level: list[float]) -> MarketSide:
        return MarketSide(float(level[0]), float(level[1]))

    @classmethod
    def convert_to_market_side_list(cls, levels: list[list[float]]) -> list[MarketSide]:
        return [cls.convert_to_market_side(level) for level in levels]

    @staticmethod
    def convert_to_market_trade(trade: dict[str, Any]) -> MarketTrade:
        side = {"bid": Side.BID, "ask": Side.ASK}.get(trade.get("type", ""), Side.UNKNOWN)
        return MarketTrade(
            price=float(trade["price"]),
            size=float(trade["amount"]),
            time=datetime.fromtimestamp(trade["timestamp"], tz=timezone.utc),
            side=side,
            trade_id=int(trade["tid"]),
        )

    def _pair_payload(self, payload: Any, endpoint: str) -> Any:
        if not isinstance(payload, dict) or not check_pair_key(self._pair_key, payload):
            error = payload.get("error") if isinstance(payload, dict) else None
            raise TransportError(f"{endpoint} returned no data for {self._pair_key}: {error or payload!r}")
        return payload[self._pair_key]

    def _on_refresh_market_data(self) -> None:
        self._work.spawn(self.refresh_market_data(), "depth")

    def _on_refresh_market_trades(self) -> None:
        self._work.spawn(self.refresh_market_trades(), "trades")

    async def refresh_market_data(self) -> Market:
        endpoint = f"depth/{self._pair_key}"
        payload = await self._client.get_from_endpoint(endpoint, {"limit": self.DEPTH_LIMIT})
        book = self._pair_payload(payload, endpoint)

        market = Market(
            bids=self.convert_to_market_side_list(book.get("bids") or []),
            asks=self.convert_to_market_side_list(book.get("asks") or []),
            time=self._time_provider.utc_now(),
        )
        self.market_data.trigger(market)
        return market

    async def refresh_market_trades(self) -> list[MarketTrade]:
        """Publish trades not seen before, in the order the exchange lists them."""
        endpoint = f"trades/{self._pair_key}"
        payload = await self._client.get_from_endpoint(endpoint, {"limit": self.TRADES_LIMIT})
        trades = self._pair_payload(payload, endpoint) or []

        emitted: list[MarketTrade] = []
        for raw in trades:
            tid = int(raw["tid"])
            if tid in self._seen_trade_ids:
                continue
            self._seen_trade_ids.add(tid)
            trade = self.convert_to_market_trade(raw)
            emitted.append(trade)
            self.market_trade.trigger(trade)

        if emitted:
            logger.debug("%d new trades for %s", len(emitted), self._pair_key)
        return emitted

    @property
    def seen_trade_count(self) -> int:
        return len(self._seen_trade_ids)

    async def flush(self) -> None:
        await self._work.flush()

    def stop(self) -> None:
        for cancel in self._timers:
            cancel()
        self._timers = []
        self._work.cancel()


class BtcEOrderEntryGateway:
    """Order entry over the trade API.

    Actions return a receipt straight away; the exchange's answer is
    published on ``order_update`` once it arrives.
    """

    cancels_by_client_order_id = False

    def __init__(self, pair_key: str, time_provider: TimeProvider, client: BtcEAuthenticatedApiClient):
        self.order_update: Event[OrderStatusReport] = Event("order_update")
        self.connect_changed: Event[ConnectivityStatus] = Event("oe_connect_changed")

        self._pair_key = pair_key
        self._time_provider = time_provider
        self._client = client
        self._work = _BackgroundWork("btce-oe")

        time_provider.set_immediate(lambda: self.connect_changed.trigger(ConnectivityStatus.CONNECTED))

    def generate_client_order_id(self) -> str:
        return uuid.uuid4().hex[:12]

    def _receipt(self) -> OrderGatewayActionReport:
        return OrderGatewayActionReport(self._time_provider.utc_now())

    def send_order(self, order: BrokeredOrder) -> OrderGatewayActionReport:
        self._work.spawn(self._send(order), f"send {order.order_id}")
        return self._receipt()

    def cancel_order(self, cancel: BrokeredCancel) -> OrderGatewayActionReport:
        exchange_order_id = int(cancel.exchange_id)
        self._work.spawn(self._cancel(cancel, exchange_order_id), f"cancel {cancel.client_order_id}")
        return self._receipt()

    def replace_order(self, replace: BrokeredReplace) -> OrderGatewayActionReport:
        cancel = BrokeredCancel(replace.orig_order_id, replace.order_id, replace.side, replace.exchange_id)
        try:
            self.cancel_order(cancel)
        except ValueError:
            # nothing to cancel on the exchange yet; the new order still goes out
            logger.warning("replace of %s has no exchange id %r to cancel", replace.orig_order_id, replace.exchange_id)
            self.order_update.trigger(
                OrderStatusReport(
                    order_id=replace.orig_order_id,
                    order_status=OrderStatus.REJECTED,
                    reject_message=f"Invalid exchange order id: {replace.exchange_id!r}",
                )
            )
        return self.send_order(replace)

    async def _send(self, order: BrokeredOrder) -> OrderStatusReport:
        trade = {
            "pair": self._pair_key,
            "type": "buy" if order.side == Side.BID else "sell",
            "rate": order.price,
            "amount": order.quantity,
        }
        resp = await self._client.post("Trade", trade, TradeResponse)

        if resp.ok:
            ack = resp.return_
            report = OrderStatusReport(order_id=order.order_id, order_status=OrderStatus.WORKING, leaves_quantity=ack.remains)
            # order_id 0 means the order filled in full on arrival
            if ack.order_id == 0:
                report.order_status = OrderStatus.COMPLETE
            else:
                report.exchange_id = str(ack.order_id)
        else:
            logger.warning("order %s rejected: %s", order.order_id, resp.error)
            report = OrderStatusReport(order_id=order.order_id, order_status=OrderStatus.REJECTED, reject_message=resp.error)

        self.order_update.trigger(report)
        return report

    async def _cancel(self, cancel: BrokeredCancel, exchange_order_id: int) -> OrderStatusReport:
        resp = await self._client.post("CancelOrder", {"order_id": exchange_order_id}, CancelOrderAck)

        if resp.ok:
            report = OrderStatusReport(order_id=cancel.client_order_id, order_status=OrderStatus.CANCELLED)
        else:
            logger.warning("cancel of %s rejected: %s", cancel.client_order_id, resp.error)
            report = OrderStatusReport(
                order_id=cancel.client_order_id,
                order_status=OrderStatus.REJECTED,
                reject_message=resp.error,
            )

        self.order_update.trigger(report)
        return report

    async def flush(self) -> None:
        await self._work.flush()

    def stop(self) -> None:
        self._work.cancel()


class BtcEPositionGateway:
    """Account balances.

    Publishes nothing unless ``poll_positions`` is set, in which case the
    ``getInfo`` funds are published every ``poll_interval`` seconds.
    """

    def __init__(
        self,
        pair_key: str,
        time_provider: TimeProvider,
        client: BtcEAuthenticatedApiClient,
        *,
        poll_positions: bool = False,
        poll_interval: float = 15.0,
    ):
        self.position_update: Event[CurrencyPosition] = Event("position_update")

        self._pair_key = pair_key
        self._client = client
        self._work = _BackgroundWork("btce-pg")
        self._timers = []
        if poll_positions:
            self._timers.append(time_provider.set_interval(self._on_refresh_positions, poll_interval))

    def _on_refresh_positions(self) -> None:
        self._work.spawn(self.refresh_positions(), "getInfo")

    async def refresh_positions(self) -> list[CurrencyPosition]:
        resp = await self._client.post("getInfo", {}, AccountInfo)
        if not resp.ok:
            logger.warning("getInfo rejected: %s", resp.error)
            return []

        positions = [CurrencyPosition(amount, currency.upper()) for currency, amount in resp.return_.funds.items()]
        for position in positions:
            self.position_update.trigger(position)
        return positions

    async def flush(self) -> None:
        await self._work.flush()

    def stop(self) -> None:
        for cancel in self._timers:
            cancel()
        self._timers = []
        self._work.cancel()


class BtcEBaseGateway:
    """Static BTC-e metadata."""

    @property
    def has_self_trade_prevention(self) -> bool:
        return False

    def exchange(self) -> Exchange:
        return Exchange.BTCE

    def make_fee(self) -> float:
        return -0.0001

    def take_fee(self) -> float:
        return 0.001

    def name(self) -> str:
        return "BtcE"


class BtcE(CombinedGateway):
    """BTC-e gateway for one currency pair."""

    def __init__(
        self,
        pair: CurrencyPair,
        time_provider: TimeProvider,
        api_key: str,
        api_secret: str,
        *,
        public_url: str = DEFAULT_PUBLIC_URL,
        trade_url: str = DEFAULT_TRADE_URL,
        proxy: ProxyConfig | None = None,
        poll_interval: float = 2.0,
        poll_positions: bool = False,
        position_interval: float = 15.0,
        **options: Any,
    ):
        """Initialize the gateway.

        Args:
            pair: Instrument to trade
            time_provider: Clock and scheduler for polling
            api_key: Trade API key
            api_secret: Trade API secret
            public_url: Base URL of the public API
            trade_url: Base URL of the trade API
            proxy: Proxy configuration
            poll_interval: Seconds between depth and trade polls
            poll_positions: Poll account funds via getInfo
            position_interval: Seconds between getInfo polls
            **options: Ignored exchange options
        """
        if options:
            logger.debug("ignoring btce options: %s", sorted(options))

        self.pair = pair
        self.pair_key = pair_key(pair)
        self.public_client = BtcEPublicApiClient(public_url, proxy=proxy)
        self.auth_client = BtcEAuthenticatedApiClient(trade_url, api_key, api_secret, proxy=proxy)

        super().__init__(
            BtcEMarketDataGateway(self.pair_key, time_provider, self.public_client, poll_interval=poll_interval),
            BtcEOrderEntryGateway(self.pair_key, time_provider, self.auth_client),
            BtcEPositionGateway(
                self.pair_key,
                time_provider,
                self.auth_client,
                poll_positions=poll_positions,
                poll_interval=position_interval,
            ),
            BtcEBaseGateway(),
        )
        logger.info("BtcE gateway created for %s (%s)", pair, self.pair_key)

    async def close(self) -> None:
        """Stop polling and close connections."""
        self.market_data.stop()
        self.order_entry.stop()
        self.position.stop()
        await self.public_client.close()
        await self.auth_client.close()
