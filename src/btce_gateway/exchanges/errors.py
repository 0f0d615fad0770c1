"""Exception hierarchy for gateway operations.

Business-level rejections (``success == 0``) are not exceptions; they are
delivered as ordinary responses and translated into status reports.
"""


class GatewayError(Exception):
    """Base class for all gateway errors."""


class TransportError(GatewayError):
    """The request never produced a usable response (network, HTTP, bad body)."""

    def __init__(self, message: str, *, url: str | None = None, status: int | None = None):
        super().__init__(message)
        self.url = url
        self.status = status


class ConfigurationError(GatewayError):
    """Gateway settings or instrument symbols are invalid."""
