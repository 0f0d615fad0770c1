"""btce_gateway: BTC-e exchange connector."""

from .settings import Settings
from .exchanges import CombinedGateway, create_gateway, pair_key, parse_pair

__all__ = [
    "Settings",
    "CombinedGateway",
    "create_gateway",
    "pair_key",
    "parse_pair",
]
