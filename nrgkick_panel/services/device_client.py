# nrgkick_panel/services/device_client.py

from __future__ import annotations

import urllib.parse
from typing import Any, Dict, Mapping, Optional

import httpx

from nrgkick_panel.errors import ConfigurationError, DeviceError, NetworkError
from nrgkick_panel.models.device import DeviceConfig
from nrgkick_panel.util.auth import basic_auth_header

# NRGKick answers {"Response": "..."} on failure; the proxy answers {"error": "..."}.
ERROR_KEYS = ("Response", "error", "message")


def extract_error_message(data: Any) -> Optional[str]:
    if not isinstance(data, Mapping):
        return None
    for key in ERROR_KEYS:
        message = data.get(key)
        if message:
            return str(message)
    return None


def check_target(url: str) -> str:
    """Reject URLs whose host or port could never be dialled (e.g. 192.168.1.100:99999)."""
    try:
        parts = urllib.parse.urlsplit(url)
        port = parts.port
    except ValueError as exc:
        raise ConfigurationError(f"Invalid device address in {url}: {exc}") from exc
    if not parts.hostname or port == 0:
        raise ConfigurationError(f"Invalid device address in {url}")
    return url


class DeviceClient:
    """Async client for the charger's local JSON API, either direct or through the proxy."""

    def __init__(
        self,
        cfg: DeviceConfig,
        log,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.cfg = cfg
        self.log = log
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self.auth_header: str | None = None
        if not cfg.proxy_mode:
            self.auth_header = basic_auth_header(cfg.username, cfg.password)

    async def __aenter__(self) -> "DeviceClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    # ------------------------------------------------------------------
    @property
    def base_url(self) -> str:
        if self.cfg.proxy_mode:
            return f"{(self.cfg.proxy_url or '').rstrip('/')}/api"
        if not self.cfg.configured:
            raise ConfigurationError("NRGKick IP not configured.")
        return f"http://{self.cfg.address.strip()}"

    def build_url(self, endpoint: str) -> str:
        if not endpoint.startswith("/"):
            endpoint = "/" + endpoint
        return f"{self.base_url}{endpoint}"

    # ------------------------------------------------------------------
    async def _get(self, url: str, params: Optional[Mapping[str, Any]], headers: Dict[str, str]) -> httpx.Response:
        check_target(url)
        try:
            return await self.client.get(url, params=params, headers=headers)
        except httpx.InvalidURL as exc:
            raise ConfigurationError(f"Invalid device address in {url}: {exc}") from exc
        except httpx.TimeoutException as exc:
            raise NetworkError(f"Request to {url} timed out") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"Request to {url} failed: {exc}") from exc

    async def request(self, endpoint: str, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """GET an API endpoint and return its JSON object, raising on any error shape."""
        url = self.build_url(endpoint)
        headers = {"Accept": "application/json"}
        if self.auth_header:
            headers["Authorization"] = self.auth_header

        self.log.debug("GET %s params=%s", url, dict(params or {}))
        resp = await self._get(url, params, headers)

        if resp.is_error:
            try:
                detail = extract_error_message(resp.json())
            except ValueError:
                detail = None
            message = detail or f"HTTP {resp.status_code}: {resp.reason_phrase}"
            raise NetworkError(message, status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError as exc:
            raise DeviceError(f"{endpoint} returned non-JSON payload") from exc

        message = extract_error_message(data)
        if message:
            raise DeviceError(message)
        if not isinstance(data, dict):
            raise DeviceError(f"{endpoint} returned unexpected payload")
        return data

    async def fetch_server_config(self) -> Dict[str, Any]:
        """Read the proxy's /api/config document."""
        url = f"{(self.cfg.proxy_url or '').rstrip('/')}/api/config"
        resp = await self._get(url, None, {"Accept": "application/json"})
        if resp.is_error:
            raise NetworkError(f"HTTP {resp.status_code}: {resp.reason_phrase}", status_code=resp.status_code)
        try:
            data = resp.json()
        except ValueError as exc:
            raise NetworkError("Proxy returned non-JSON configuration") from exc
        if not isinstance(data, dict):
            raise NetworkError("Proxy returned unexpected configuration")
        return data
