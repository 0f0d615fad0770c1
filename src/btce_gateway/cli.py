"""Typer-based CLI for one-shot gateway operations."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .models import BrokeredCancel, BrokeredOrder, OrderStatus, OrderStatusReport, Side
from .timers import ManualTimeProvider

if TYPE_CHECKING:
    from .exchanges.protocol import CombinedGateway
    from .settings import Settings


def _load_settings(config_path: Optional[Path] = None) -> "Settings":
    from .config import load_settings
    return load_settings(config_path)


def _create_gateway(settings: "Settings", exchange: str, time_provider: ManualTimeProvider) -> "CombinedGateway":
    from .exchanges.factory import create_gateway
    from .exchanges.init import gateway_options, proxy_options

    exchange_config = settings.exchanges.get(exchange)
    if exchange_config is None:
        raise ValueError(f"Exchange {exchange!r} is not configured")

    creds = exchange_config.credentials
    return create_gateway(
        exchange,
        exchange_config.pair,
        time_provider,
        creds.api_key.get_secret_value() if creds else "",
        creds.api_secret.get_secret_value() if creds else "",
        proxy=proxy_options(settings),
        **gateway_options(exchange_config),
    )


app = typer.Typer(help="BTC-e gateway CLI")
order_app = typer.Typer(help="Order entry commands")
app.add_typer(order_app, name="order")
console = Console()
logger = logging.getLogger(__name__)


def run_cli(argv: list[str] | None = None) -> None:
    """Run CLI with optional argv parameter."""
    app(argv)


def _require_credentials(settings: "Settings", exchange: str) -> None:
    exchange_config = settings.exchanges.get(exchange)
    if exchange_config is None or exchange_config.credentials is None:
        raise ValueError(f"Exchange {exchange!r} has no credentials configured")


async def _with_gateway(settings: "Settings", exchange: str, action):
    gateway = _create_gateway(settings, exchange, ManualTimeProvider())
    try:
        return await action(gateway)
    finally:
        await gateway.close()


@app.command()
def book(
    exchange: str = typer.Option("btce", help="Configured exchange name"),
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Show one order book snapshot."""
    try:
        settings = _load_settings(config)
        market = asyncio.run(_with_gateway(settings, exchange, lambda g: g.market_data.refresh_market_data()))
    except Exception as e:
        logger.error("Failed to fetch order book: %s", e, exc_info=True)
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    table = Table(title=f"Order book {market.time:%H:%M:%S} UTC")
    table.add_column("Bid size", style="green", justify="right")
    table.add_column("Bid", style="green", justify="right")
    table.add_column("Ask", style="red", justify="right")
    table.add_column("Ask size", style="red", justify="right")

    for i in range(max(len(market.bids), len(market.asks))):
        bid = market.bids[i] if i < len(market.bids) else None
        ask = market.asks[i] if i < len(market.asks) else None
        table.add_row(
            f"{bid.size:g}" if bid else "",
            f"{bid.price:g}" if bid else "",
            f"{ask.price:g}" if ask else "",
            f"{ask.size:g}" if ask else "",
        )

    console.print(table)


@app.command()
def trades(
    exchange: str = typer.Option("btce", help="Configured exchange name"),
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Show recent public trades."""
    try:
        settings = _load_settings(config)
        recent = asyncio.run(_with_gateway(settings, exchange, lambda g: g.market_data.refresh_market_trades()))
    except Exception as e:
        logger.error("Failed to fetch trades: %s", e, exc_info=True)
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not recent:
        console.print("[yellow]No trades found[/yellow]")
        return

    table = Table(title="Recent trades")
    table.add_column("Trade ID", style="cyan")
    table.add_column("Time", style="dim")
    table.add_column("Side", style="magenta")
    table.add_column("Price", justify="right")
    table.add_column("Size", justify="right")

    for trade in recent:
        table.add_row(
            str(trade.trade_id),
            trade.time.strftime("%H:%M:%S"),
            trade.side.value.upper(),
            f"{trade.price:g}",
            f"{trade.size:g}",
        )

    console.print(table)


def _print_report(report: OrderStatusReport) -> None:
    style = {
        OrderStatus.WORKING: "green",
        OrderStatus.COMPLETE: "blue",
        OrderStatus.CANCELLED: "yellow",
        OrderStatus.REJECTED: "red",
    }.get(report.order_status, "white")

    lines = [
        f"Order ID: {report.order_id}",
        f"Status: [{style}]{report.order_status.value.upper()}[/{style}]",
    ]
    if report.exchange_id:
        lines.append(f"Exchange ID: {report.exchange_id}")
    if report.leaves_quantity is not None:
        lines.append(f"Remaining: {report.leaves_quantity:g}")
    if report.reject_message:
        lines.append(f"Reason: {report.reject_message}")

    console.print(Panel.fit("\n".join(lines), title="Order Update"))


async def _submit(gateway: "CombinedGateway", submit) -> list[OrderStatusReport]:
    reports: list[OrderStatusReport] = []
    gateway.order_entry.order_update.subscribe(reports.append)
    submit(gateway.order_entry)
    await gateway.order_entry.flush()
    return reports


@order_app.command("send")
def order_send(
    side: str = typer.Option(..., help="buy or sell"),
    price: float = typer.Option(..., help="Limit price"),
    quantity: float = typer.Option(..., help="Order quantity"),
    exchange: str = typer.Option("btce", help="Configured exchange name"),
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Place a limit order and wait for the exchange's answer."""
    side_map = {"buy": Side.BID, "sell": Side.ASK}
    if side.lower() not in side_map:
        console.print(f"[red]Error:[/red] Invalid side '{side}'. Must be 'buy' or 'sell'.")
        raise typer.Exit(1)

    def _send(order_entry) -> None:
        order = BrokeredOrder(order_entry.generate_client_order_id(), side_map[side.lower()], price, quantity)
        order_entry.send_order(order)

    try:
        settings = _load_settings(config)
        _require_credentials(settings, exchange)
        reports = asyncio.run(_with_gateway(settings, exchange, lambda g: _submit(g, _send)))
    except Exception as e:
        logger.error("Failed to send order: %s", e, exc_info=True)
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not reports:
        console.print("[red]✗ No response from exchange[/red]")
        raise typer.Exit(1)

    for report in reports:
        _print_report(report)
    if any(r.order_status == OrderStatus.REJECTED for r in reports):
        raise typer.Exit(1)


@order_app.command("cancel")
def order_cancel(
    exchange_id: str = typer.Option(..., help="Exchange order id"),
    order_id: str = typer.Option("cli", help="Client order id to report against"),
    exchange: str = typer.Option("btce", help="Configured exchange name"),
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Cancel a working order by exchange id."""

    def _cancel(order_entry) -> None:
        order_entry.cancel_order(BrokeredCancel(order_id, order_id, Side.UNKNOWN, exchange_id))

    try:
        settings = _load_settings(config)
        _require_credentials(settings, exchange)
        reports = asyncio.run(_with_gateway(settings, exchange, lambda g: _submit(g, _cancel)))
    except Exception as e:
        logger.error("Failed to cancel order: %s", e, exc_info=True)
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not reports:
        console.print("[red]✗ No response from exchange[/red]")
        raise typer.Exit(1)

    for report in reports:
        _print_report(report)
    if any(r.order_status == OrderStatus.REJECTED for r in reports):
        raise typer.Exit(1)


@app.command()
def config_show(
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Print the effective configuration with secrets masked."""
    try:
        settings = _load_settings(config)
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    console.print_json(json.dumps(settings.redacted()))
