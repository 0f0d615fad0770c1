"""Exchange gateways and connectivity layer."""

from .protocol import (
    CombinedGateway,
    ExchangeDetailsGateway,
    MarketDataGateway,
    OrderEntryGateway,
    PositionGateway,
)
from .normalization import parse_pair, pair_key, check_pair_key
from .factory import create_gateway, EXCHANGE_GATEWAYS
from .base import BaseRestClient, ProxyConfig
from .errors import ConfigurationError, GatewayError, TransportError

__all__ = [
    "CombinedGateway",
    "ExchangeDetailsGateway",
    "MarketDataGateway",
    "OrderEntryGateway",
    "PositionGateway",
    "parse_pair",
    "pair_key",
    "check_pair_key",
    "create_gateway",
    "EXCHANGE_GATEWAYS",
    "BaseRestClient",
    "ProxyConfig",
    "ConfigurationError",
    "GatewayError",
    "TransportError",
]
