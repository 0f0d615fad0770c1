"""Instrument symbol normalization for exchange endpoints."""

from __future__ import annotations

import logging

from ..models import CurrencyPair
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

_SEPARATORS = ("/", "-", "_", " ")


def parse_pair(symbol: str) -> CurrencyPair:
    """Parse a user-facing symbol into a currency pair.

    Handles various formats:
    - BTC/USD -> (BTC, USD)
    - btc_usd -> (BTC, USD)
    - BTC-USD -> (BTC, USD)

    Args:
        symbol: Symbol with an explicit separator

    Returns:
        CurrencyPair with upper-cased codes

    Raises:
        ConfigurationError: If the symbol has no separator or an empty side
    """
    if not symbol:
        raise ConfigurationError("Empty currency pair symbol")

    cleaned = symbol.strip().upper()
    for sep in _SEPARATORS:
        if sep in cleaned:
            parts = [p.strip() for p in cleaned.split(sep)]
            if len(parts) == 2 and parts[0] and parts[1]:
                return CurrencyPair(parts[0], parts[1])
            break

    raise ConfigurationError(f"Cannot parse currency pair from {symbol!r}; use BASE/QUOTE")


def pair_key(pair: CurrencyPair) -> str:
    """Render the BTC-e pair identifier, e.g. ``btc_usd``."""
    return f"{pair.base.lower()}_{pair.quote.lower()}"


def check_pair_key(expected: str, payload: dict) -> bool:
    """Check that an endpoint response is keyed by the expected pair.

    Logs a warning listing the keys actually present when it is not.
    """
    if expected in payload:
        return True

    logger.warning("Pair mismatch: expected %s, got keys %s", expected, sorted(payload))
    return False
