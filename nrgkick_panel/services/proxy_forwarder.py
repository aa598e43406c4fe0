# nrgkick_panel/services/proxy_forwarder.py

from __future__ import annotations

import json
import re
from typing import Any, Optional, Tuple

import requests

from nrgkick_panel.config import DeviceSettings
from nrgkick_panel.errors import ConfigurationError, ValidationError
from nrgkick_panel.util.auth import basic_auth_header

TIMEOUT_MESSAGE = "Connection to NRGKick device timed out"
CONNECT_MESSAGE = "Failed to connect to NRGKick device"
NOT_CONFIGURED_MESSAGE = "NRGKick IP not configured. Set NRGKICK_IP environment variable."

_IPV4_RE = re.compile(r"([0-9]{1,3})\.([0-9]{1,3})\.([0-9]{1,3})\.([0-9]{1,3})")

ProxyResult = Tuple[int, bytes]


def is_valid_ipv4(address: Any) -> bool:
    if not isinstance(address, str):
        return False
    match = _IPV4_RE.fullmatch(address)
    if not match:
        return False
    return all(0 <= int(octet) <= 255 for octet in match.groups())


def validate_ipv4(address: str) -> str:
    if not is_valid_ipv4(address):
        raise ValidationError(f"Invalid IP address: {address}")
    return address


def json_body(payload: dict) -> bytes:
    return json.dumps(payload).encode("utf-8")


class ProxyForwarder:
    """Relay GET requests to the charger's local API and translate transport failures."""

    def __init__(
        self,
        settings: DeviceSettings,
        log,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.settings = settings
        self.log = log
        self.timeout = timeout
        self.session = session or requests.Session()

    # ------------------------------------------------------------------
    @property
    def server_auth_header(self) -> str | None:
        return basic_auth_header(self.settings.username, self.settings.password)

    @staticmethod
    def build_url(address: str, endpoint: str, query: str | None = None) -> str:
        if not endpoint.startswith("/"):
            endpoint = "/" + endpoint
        url = f"http://{address}{endpoint}"
        query = (query or "").lstrip("?")
        if query:
            url = f"{url}?{query}"
        return url

    # ------------------------------------------------------------------
    def forward(
        self,
        address: str,
        endpoint: str,
        query: str | None = None,
        auth_header: str | None = None,
    ) -> ProxyResult:
        """
        GET http://<address><endpoint>?<query> once and return (status, body).

        A caller-supplied Authorization header wins over the server-held
        credentials. Device answers are relayed as-is; timeouts become 504 and
        connection failures 502, both with a JSON error body. Never retries.
        """
        url = self.build_url(address, endpoint, query)
        headers = {"Accept": "application/json"}
        auth = auth_header or self.server_auth_header
        if auth:
            headers["Authorization"] = auth

        self.log.info("Proxying request to %s", url)
        try:
            resp = self.session.get(url, headers=headers, timeout=self.timeout)
        except requests.Timeout:
            self.log.warning("Proxy request to %s timed out after %.1fs", url, self.timeout)
            return 504, json_body({"error": TIMEOUT_MESSAGE})
        except requests.RequestException as exc:
            self.log.error("Proxy request error: %s", exc)
            return 502, json_body({"error": CONNECT_MESSAGE, "details": str(exc)})

        return resp.status_code, resp.content

    def forward_fixed(
        self,
        endpoint: str,
        query: str | None = None,
        auth_header: str | None = None,
    ) -> ProxyResult:
        if not self.settings.configured:
            raise ConfigurationError(NOT_CONFIGURED_MESSAGE)
        return self.forward(self.settings.ip, endpoint, query, auth_header)

    def forward_path(
        self,
        address: str,
        endpoint: str,
        query: str | None = None,
        auth_header: str | None = None,
    ) -> ProxyResult:
        # Validated before any outbound request is attempted.
        validate_ipv4(address)
        return self.forward(address, endpoint, query, auth_header)
