"""Base HTTP client class for exchange gateways."""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from typing import Any

import aiohttp

from .errors import TransportError

logger = logging.getLogger(__name__)


class ProxyConfig:
    """HTTP proxy configuration."""

    def __init__(self, url: str | None = None, username: str | None = None, password: str | None = None):
        self.url = url
        self.username = username
        self.password = password

    @property
    def proxy_url(self) -> str | None:
        if not self.url:
            return None
        if self.username and self.password:
            protocol = self.url.split("://")[0] if "://" in self.url else "http"
            rest = self.url.split("://")[1] if "://" in self.url else self.url
            return f"{protocol}://{self.username}:{self.password}@{rest}"
        return self.url


class BaseRestClient:
    """Shared aiohttp session handling for REST clients.

    Subclasses build URLs relative to ``base_url``. Any failure to obtain a
    decoded JSON body is raised as :class:`TransportError`.
    """

    def __init__(self, base_url: str, *, proxy: ProxyConfig | None = None, user_agent: str = "btce-gateway/1.0"):
        self.base_url = base_url.rstrip("/")
        self.proxy = proxy or ProxyConfig()
        self.user_agent = user_agent
        self.session: aiohttp.ClientSession | None = None

    @staticmethod
    def generate_signature(secret: str, message: str) -> str:
        """Generate an HMAC-SHA512 signature.

        Args:
            secret: Secret key
            message: Message to sign

        Returns:
            Hex-encoded signature
        """
        return hmac.new(secret.encode(), message.encode(), hashlib.sha512).hexdigest()

    def url_for(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self.session is None:
            connector = aiohttp.TCPConnector()
            self.session = aiohttp.ClientSession(connector=connector, headers={"User-Agent": self.user_agent})
        return self.session

    async def _read_json(self, resp: aiohttp.ClientResponse, url: str) -> Any:
        if resp.status >= 500:
            raise TransportError(f"HTTP {resp.status} from {url}", url=url, status=resp.status)
        try:
            return await resp.json(content_type=None)
        except (json.JSONDecodeError, aiohttp.ContentTypeError, ValueError) as exc:
            raise TransportError(f"Malformed response body from {url}: {exc}", url=url, status=resp.status) from exc

    async def get_json(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """GET ``endpoint`` and return the decoded JSON body."""
        session = await self._ensure_session()
        url = self.url_for(endpoint)
        try:
            async with session.get(url, params=params, proxy=self.proxy.proxy_url) as resp:
                return await self._read_json(resp, url)
        except aiohttp.ClientError as exc:
            raise TransportError(f"GET {url} failed: {exc}", url=url) from exc

    async def post_form(self, endpoint: str, form: str, headers: dict[str, str]) -> Any:
        """POST an already-serialized form body and return the decoded JSON body."""
        session = await self._ensure_session()
        url = self.url_for(endpoint)
        request_headers = {"Content-Type": "application/x-www-form-urlencoded", **headers}
        try:
            async with session.post(url, data=form, headers=request_headers, proxy=self.proxy.proxy_url) as resp:
                return await self._read_json(resp, url)
        except aiohttp.ClientError as exc:
            raise TransportError(f"POST {url} failed: {exc}", url=url) from exc

    async def close(self) -> None:
        """Close connections."""
        if self.session:
            await self.session.close()
            self.session = None
