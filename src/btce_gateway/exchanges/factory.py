"""Factory for creating exchange gateway instances."""

from __future__ import annotations

from typing import Any, Type

from ..models import CurrencyPair
from ..timers import TimeProvider
from .base import ProxyConfig
from .btce import BtcE
from .normalization import parse_pair
from .protocol import CombinedGateway

EXCHANGE_GATEWAYS: dict[str, Type[CombinedGateway]] = {
    "btce": BtcE,
}


def create_gateway(
    exchange: str,
    pair: CurrencyPair | str,
    time_provider: TimeProvider,
    api_key: str,
    api_secret: str,
    *,
    proxy: dict[str, Any] | None = None,
    **options: Any,
) -> CombinedGateway:
    """Create a gateway for one exchange and pair.

    Args:
        exchange: Exchange name (btce)
        pair: CurrencyPair or a symbol such as 'BTC/USD'
        time_provider: Scheduler the gateway polls with
        api_key: API key
        api_secret: API secret
        proxy: Proxy configuration (url, username, password)
        **options: Exchange-specific options (urls, poll intervals)

    Returns:
        Configured gateway

    Raises:
        ValueError: If exchange is not supported
        ConfigurationError: If the pair symbol cannot be parsed
    """
    gateway_class = EXCHANGE_GATEWAYS.get(exchange.lower())
    if gateway_class is None:
        supported = ", ".join(EXCHANGE_GATEWAYS.keys())
        raise ValueError(f"Unsupported exchange: {exchange}. Supported exchanges: {supported}")

    if isinstance(pair, str):
        pair = parse_pair(pair)

    proxy_config = None
    if proxy:
        proxy_config = ProxyConfig(
            url=proxy.get("url"),
            username=proxy.get("username"),
            password=proxy.get("password"),
        )

    return gateway_class(pair, time_provider, api_key, api_secret, proxy=proxy_config, **options)
