"""Tests for the order entry gateway."""

import logging
from unittest.mock import AsyncMock, MagicMock, call

import pytest

from btce_gateway.exchanges.btce import (
    ApiResponse,
    BtcEOrderEntryGateway,
    CancelOrderAck,
    TradeResponse,
)
from btce_gateway.exchanges.errors import TransportError
from btce_gateway.models import (
    BrokeredCancel,
    BrokeredOrder,
    BrokeredReplace,
    ConnectivityStatus,
    OrderGatewayActionReport,
    OrderStatus,
    Side,
)


def trade_ack(order_id, remains=0.0, received=0.0):
    return ApiResponse[TradeResponse].model_validate(
        {"success": 1, "return": {"received": received, "remains": remains, "order_id": order_id, "funds": {}}}
    )


def cancel_ack(order_id):
    return ApiResponse[CancelOrderAck].model_validate({"success": 1, "return": {"order_id": order_id, "funds": {}}})


def failure(message):
    return ApiResponse[TradeResponse].model_validate({"success": 0, "error": message})


def make_gateway(time_provider, responses):
    client = MagicMock()
    client.post = AsyncMock(side_effect=responses)
    gateway = BtcEOrderEntryGateway("btc_usd", time_provider, client)
    reports = []
    gateway.order_update.subscribe(reports.append)
    return gateway, client, reports


class TestSendOrder:
    """Tests for order submission."""

    @pytest.mark.asyncio
    async def test_returns_receipt_before_exchange_answers(self, time_provider, fixed_now):
        gateway, client, reports = make_gateway(time_provider, [trade_ack(55, remains=1.0)])

        receipt = gateway.send_order(BrokeredOrder("c1", Side.BID, 100.5, 1.0))

        assert isinstance(receipt, OrderGatewayActionReport)
        assert receipt.time == fixed_now
        assert reports == []

        await gateway.flush()
        assert len(reports) == 1

    @pytest.mark.asyncio
    async def test_builds_trade_request(self, time_provider):
        gateway, client, _ = make_gateway(time_provider, [trade_ack(55), trade_ack(56)])

        gateway.send_order(BrokeredOrder("c1", Side.BID, 100.5, 1.0))
        gateway.send_order(BrokeredOrder("c2", Side.ASK, 101.0, 0.5))
        await gateway.flush()

        assert client.post.await_args_list == [
            call("Trade", {"pair": "btc_usd", "type": "buy", "rate": 100.5, "amount": 1.0}, TradeResponse),
            call("Trade", {"pair": "btc_usd", "type": "sell", "rate": 101.0, "amount": 0.5}, TradeResponse),
        ]

    @pytest.mark.asyncio
    async def test_nonzero_order_id_is_working(self, time_provider):
        gateway, _, reports = make_gateway(time_provider, [trade_ack(4421, remains=0.9, received=0.1)])

        gateway.send_order(BrokeredOrder("c1", Side.BID, 100.5, 1.0))
        await gateway.flush()

        report = reports[0]
        assert report.order_id == "c1"
        assert report.order_status == OrderStatus.WORKING
        assert report.exchange_id == "4421"
        assert report.leaves_quantity == 0.9
        assert report.reject_message is None

    @pytest.mark.asyncio
    async def test_zero_order_id_is_complete_without_exchange_id(self, time_provider):
        gateway, _, reports = make_gateway(time_provider, [trade_ack(0, remains=0.0, received=1.0)])

        gateway.send_order(BrokeredOrder("c1", Side.ASK, 100.0, 1.0))
        await gateway.flush()

        report = reports[0]
        assert report.order_status == OrderStatus.COMPLETE
        assert report.exchange_id is None
        assert report.leaves_quantity == 0.0

    @pytest.mark.asyncio
    async def test_business_rejection_carries_exact_message(self, time_provider):
        gateway, _, reports = make_gateway(time_provider, [failure("Insufficient funds")])

        gateway.send_order(BrokeredOrder("c1", Side.BID, 100.0, 1000.0))
        await gateway.flush()

        report = reports[0]
        assert report.order_status == OrderStatus.REJECTED
        assert report.reject_message == "Insufficient funds"
        assert report.exchange_id is None

    @pytest.mark.asyncio
    async def test_transport_failure_emits_no_report(self, time_provider, caplog):
        gateway, _, reports = make_gateway(time_provider, [TransportError("POST Trade failed")])

        with caplog.at_level(logging.ERROR):
            gateway.send_order(BrokeredOrder("c1", Side.BID, 100.0, 1.0))
            await gateway.flush()

        assert reports == []
        assert "POST Trade failed" in caplog.text


class TestCancelOrder:
    """Tests for order cancellation."""

    @pytest.mark.asyncio
    async def test_cancel_posts_numeric_exchange_id(self, time_provider):
        gateway, client, reports = make_gateway(time_provider, [cancel_ack(4421)])

        gateway.cancel_order(BrokeredCancel("c1", "r1", Side.BID, "4421"))
        await gateway.flush()

        client.post.assert_awaited_once_with("CancelOrder", {"order_id": 4421}, CancelOrderAck)
        assert reports[0].order_id == "c1"
        assert reports[0].order_status == OrderStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_cancel_rejection(self, time_provider):
        gateway, _, reports = make_gateway(time_provider, [failure("bad status")])

        gateway.cancel_order(BrokeredCancel("c1", "r1", Side.BID, "4421"))
        await gateway.flush()

        assert reports[0].order_status == OrderStatus.REJECTED
        assert reports[0].reject_message == "bad status"

    def test_non_numeric_exchange_id_raises(self, time_provider):
        gateway, _, _ = make_gateway(time_provider, [])

        with pytest.raises(ValueError):
            gateway.cancel_order(BrokeredCancel("c1", "r1", Side.BID, "not-a-number"))


class TestReplaceOrder:
    """Tests for cancel-then-send replacement."""

    @pytest.mark.asyncio
    async def test_replace_is_one_cancel_then_one_send(self, time_provider):
        gateway, client, reports = make_gateway(time_provider, [cancel_ack(4421), trade_ack(4500, remains=2.0)])

        replace = BrokeredReplace("c2", Side.ASK, 102.0, 2.0, orig_order_id="c1", exchange_id="4421")
        receipt = gateway.replace_order(replace)
        await gateway.flush()

        assert isinstance(receipt, OrderGatewayActionReport)
        assert client.post.await_args_list == [
            call("CancelOrder", {"order_id": 4421}, CancelOrderAck),
            call("Trade", {"pair": "btc_usd", "type": "sell", "rate": 102.0, "amount": 2.0}, TradeResponse),
        ]

        by_id = {r.order_id: r for r in reports}
        assert by_id["c1"].order_status == OrderStatus.CANCELLED
        assert by_id["c2"].order_status == OrderStatus.WORKING
        assert by_id["c2"].exchange_id == "4500"

    @pytest.mark.asyncio
    async def test_replace_reports_are_independent(self, time_provider):
        """A failed cancel does not stop the new order."""
        gateway, _, reports = make_gateway(time_provider, [failure("order not found"), trade_ack(4600)])

        gateway.replace_order(BrokeredReplace("c2", Side.BID, 99.0, 1.0, orig_order_id="c1", exchange_id="4421"))
        await gateway.flush()

        by_id = {r.order_id: r for r in reports}
        assert by_id["c1"].order_status == OrderStatus.REJECTED
        assert by_id["c2"].order_status == OrderStatus.WORKING

    @pytest.mark.asyncio
    async def test_replace_without_exchange_id_still_sends(self, time_provider):
        """An order never acknowledged by the exchange is rejected, the new one goes out."""
        gateway, client, reports = make_gateway(time_provider, [trade_ack(4700)])

        gateway.replace_order(BrokeredReplace("c2", Side.BID, 99.0, 1.0, orig_order_id="c1"))
        await gateway.flush()

        assert client.post.await_args_list == [
            call("Trade", {"pair": "btc_usd", "type": "buy", "rate": 99.0, "amount": 1.0}, TradeResponse),
        ]
        by_id = {r.order_id: r for r in reports}
        assert by_id["c1"].order_status == OrderStatus.REJECTED
        assert "exchange order id" in by_id["c1"].reject_message
        assert by_id["c2"].order_status == OrderStatus.WORKING
        assert by_id["c2"].exchange_id == "4700"


class TestOrderEntryMisc:
    """Tests for ids and connectivity."""

    def test_client_order_ids_are_short_and_distinct(self, time_provider):
        gateway, _, _ = make_gateway(time_provider, [])
        ids = {gateway.generate_client_order_id() for _ in range(100)}
        assert len(ids) == 100
        assert all(len(i) == 12 for i in ids)

    def test_cancels_by_exchange_id(self, time_provider):
        gateway, _, _ = make_gateway(time_provider, [])
        assert gateway.cancels_by_client_order_id is False

    def test_connected_once(self, time_provider):
        gateway, _, _ = make_gateway(time_provider, [])
        states = []
        gateway.connect_changed.subscribe(states.append)
        time_provider.run_immediates()
        assert states == [ConnectivityStatus.CONNECTED]
