from __future__ import annotations

import asyncio
import logging
import signal

from .di import AppContainer
from .exchanges.init import create_gateways_from_settings
from .exchanges.protocol import CombinedGateway

logger = logging.getLogger(__name__)


def attach_event_logging(name: str, gateway: CombinedGateway) -> None:
    """Log every event a gateway publishes."""
    log = logging.getLogger(f"{__name__}.{name}")

    def _on_market(market) -> None:
        log.info(
            "book bid=%s ask=%s levels=%d/%d",
            market.best_bid,
            market.best_ask,
            len(market.bids),
            len(market.asks),
        )

    gateway.market_data.market_data.subscribe(_on_market)
    gateway.market_data.market_trade.subscribe(lambda t: log.info("trade %s", t))
    gateway.market_data.connect_changed.subscribe(lambda s: log.info("market data %s", s.value))
    gateway.order_entry.order_update.subscribe(lambda r: log.info("order update %s", r))
    gateway.order_entry.connect_changed.subscribe(lambda s: log.info("order entry %s", s.value))
    gateway.position.position_update.subscribe(lambda p: log.info("position %s %s", p.currency, p.amount))


def _install_signal_handlers(container: AppContainer) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, container.shutdown.set)
        except (NotImplementedError, RuntimeError):
            logger.debug("signal handlers unavailable on this platform")
            return


async def run(container: AppContainer) -> None:
    logger.info("runtime starting")
    logger.debug("settings=%s", container.settings.redacted())

    if not container.gateways:
        container.gateways = create_gateways_from_settings(container.settings, container.time_provider)

    if not container.gateways:
        logger.error("no gateways configured; add an exchanges.btce section with credentials")
        await asyncio.sleep(0)
        logger.info("runtime stopped")
        return

    for name, gateway in container.gateways.items():
        attach_event_logging(name, gateway)

    _install_signal_handlers(container)

    try:
        await container.shutdown.wait()
    finally:
        await container.close()

    logger.info("runtime stopped")
