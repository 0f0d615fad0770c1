"""Pytest configuration and fixtures."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from btce_gateway.timers import ManualTimeProvider


def create_async_response(status=200, json_data=None):
    """Create a mock async response usable as ``async with session.get(...)``."""
    resp = AsyncMock()
    resp.status = status
    resp.json = AsyncMock(return_value=json_data if json_data is not None else {})
    resp.__aenter__ = AsyncMock(return_value=resp)
    resp.__aexit__ = AsyncMock(return_value=None)
    return resp


@pytest.fixture
def api_key():
    """Test API key."""
    return "test_api_key_123456"


@pytest.fixture
def api_secret():
    """Test API secret."""
    return "test_api_secret_789012"


@pytest.fixture
def fixed_now():
    return datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


@pytest.fixture
def time_provider(fixed_now):
    """Scheduler that only fires when the test says so."""
    return ManualTimeProvider(fixed_now)


@pytest.fixture
def sample_depth_response():
    """Sample depth/btc_usd response."""
    return {
        "btc_usd": {
            "asks": [[101.0, 1.5], [101.5, 3]],
            "bids": [[100.5, 2], [100.0, 5]],
        }
    }


@pytest.fixture
def sample_trades_response():
    """Sample trades/btc_usd response, newest first."""
    return {
        "btc_usd": [
            {"type": "ask", "price": 100.5, "amount": 0.25, "tid": 1003, "timestamp": 1700000003},
            {"type": "bid", "price": 101.0, "amount": 1.0, "tid": 1002, "timestamp": 1700000002},
            {"type": "ask", "price": 100.0, "amount": 0.5, "tid": 1001, "timestamp": 1700000001},
        ]
    }


@pytest.fixture
def sample_trade_ack():
    """Sample successful Trade response."""
    return {
        "success": 1,
        "return": {
            "received": 0.1,
            "remains": 0.9,
            "order_id": 4421,
            "funds": {"usd": 325, "btc": 2.498},
        },
    }
