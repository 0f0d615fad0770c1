"""Gateway initialization from settings."""

from __future__ import annotations

import logging
from typing import Any, Dict

from ..settings import ExchangeSettings, Settings
from ..timers import TimeProvider
from .errors import GatewayError
from .factory import create_gateway
from .protocol import CombinedGateway

logger = logging.getLogger(__name__)


def gateway_options(exchange_config: ExchangeSettings) -> dict[str, Any]:
    """Translate exchange settings into gateway keyword options."""
    options: dict[str, Any] = {
        "poll_interval": exchange_config.poll_interval,
        "poll_positions": exchange_config.poll_positions,
        "position_interval": exchange_config.position_interval,
    }
    if exchange_config.public_url:
        options["public_url"] = exchange_config.public_url
    if exchange_config.trade_url:
        options["trade_url"] = exchange_config.trade_url
    options.update(exchange_config.options)
    return options


def proxy_options(settings: Settings) -> dict[str, Any] | None:
    proxy = settings.proxy
    if not proxy.enabled or not proxy.url:
        return None
    return {
        "url": proxy.url,
        "username": proxy.username,
        "password": proxy.password.get_secret_value() if proxy.password else None,
    }


def create_gateways_from_settings(settings: Settings, time_provider: TimeProvider) -> Dict[str, CombinedGateway]:
    """Create gateways for every enabled exchange with credentials."""
    gateways: Dict[str, CombinedGateway] = {}

    for exchange_name, exchange_config in settings.exchanges.items():
        if not exchange_config.enabled:
            logger.debug("Exchange %s is disabled, skipping", exchange_name)
            continue

        if not exchange_config.credentials:
            logger.warning("Exchange %s has no credentials configured, skipping", exchange_name)
            continue

        try:
            gateway = create_gateway(
                exchange=exchange_name,
                pair=exchange_config.pair,
                time_provider=time_provider,
                api_key=exchange_config.credentials.api_key.get_secret_value(),
                api_secret=exchange_config.credentials.api_secret.get_secret_value(),
                proxy=proxy_options(settings),
                **gateway_options(exchange_config),
            )
        except (ValueError, GatewayError) as e:
            logger.error("Failed to initialize gateway for %s: %s", exchange_name, e)
            continue

        gateways[exchange_name] = gateway
        logger.info("Initialized gateway for %s %s", exchange_name, exchange_config.pair)

    return gateways
