# nrgkick_panel/config.py
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping
import configparser
import os
import urllib.parse

from nrgkick_panel.models.device import DeviceConfig

PROXY_MODES = ("fixed", "path")


@dataclass
class DeviceSettings:
    ip: str = ""
    username: str | None = None
    password: str | None = None

    @property
    def configured(self) -> bool:
        return bool(self.ip)

    @property
    def has_auth(self) -> bool:
        return bool(self.username and self.password)


@dataclass
class ProxyConfig:
    host: str = "0.0.0.0"
    port: int = 3000
    mode: str = "fixed"
    timeout: float = 10.0
    static_dir: str | None = None


@dataclass
class PanelConfig:
    proxy_url: str | None = None
    poll_interval: float = 2.0
    command_delay: float = 0.5
    error_dismiss: float = 5.0


@dataclass
class LoggingConfig:
    console_level: str = "INFO"
    console_quiet: bool = False
    debug_modules: list[str] = field(default_factory=list)
    structured_enabled: bool = False
    structured_path: str | None = None


@dataclass
class AppConfig:
    device: DeviceSettings
    proxy: ProxyConfig
    panel: PanelConfig
    logging: LoggingConfig


class Config:
    def __init__(self, path: str | None = None):
        self.path = Path(path) if path else None
        self.parser = configparser.ConfigParser(inline_comment_prefixes=("#",))
        if self.path is not None:
            read = self.parser.read(self.path)
            if not read:
                raise FileNotFoundError(f"Config file not found: {self.path}")

    @classmethod
    def load(cls, path: str | None = None, env: Mapping[str, str] | None = None) -> AppConfig:
        cfg = cls(path)
        p = cfg.parser
        env = os.environ if env is None else env

        def _as_bool(value: str) -> bool:
            return value.strip().lower() == "true"

        def _maybe_str(raw: str | None) -> str | None:
            if raw is None:
                return None
            raw = raw.strip()
            return raw or None

        # --- Device ---
        device_kwargs = {}
        if "device" in p:
            device_sec = p["device"]
            if (ip := _maybe_str(device_sec.get("ip"))) is not None:
                device_kwargs["ip"] = ip
            if (username := _maybe_str(device_sec.get("username"))) is not None:
                device_kwargs["username"] = username
            if "password" in device_sec and device_sec["password"]:
                device_kwargs["password"] = device_sec["password"]
        if env.get("NRGKICK_IP"):
            device_kwargs["ip"] = env["NRGKICK_IP"].strip()
        if env.get("NRGKICK_USER"):
            device_kwargs["username"] = env["NRGKICK_USER"]
        if env.get("NRGKICK_PASS"):
            device_kwargs["password"] = env["NRGKICK_PASS"]
        device = DeviceSettings(**device_kwargs)

        # --- Proxy ---
        proxy_kwargs = {}
        if "proxy" in p:
            proxy_sec = p["proxy"]
            if "host" in proxy_sec:
                proxy_kwargs["host"] = proxy_sec["host"].strip()
            if "port" in proxy_sec:
                proxy_kwargs["port"] = int(proxy_sec["port"])
            if "mode" in proxy_sec:
                proxy_kwargs["mode"] = proxy_sec["mode"].strip().lower()
            if "timeout" in proxy_sec:
                proxy_kwargs["timeout"] = float(proxy_sec["timeout"])
            if (static_dir := _maybe_str(proxy_sec.get("static_dir"))) is not None:
                proxy_kwargs["static_dir"] = static_dir
        if env.get("PORT"):
            proxy_kwargs["port"] = int(env["PORT"])
        proxy = ProxyConfig(**proxy_kwargs)
        if proxy.mode not in PROXY_MODES:
            raise ValueError(f"[proxy] mode must be one of {', '.join(PROXY_MODES)}, got '{proxy.mode}'")

        # --- Panel ---
        panel_kwargs = {}
        if "panel" in p:
            panel_sec = p["panel"]
            if (proxy_url := _maybe_str(panel_sec.get("proxy_url"))) is not None:
                panel_kwargs["proxy_url"] = proxy_url
            if "poll_interval" in panel_sec:
                panel_kwargs["poll_interval"] = float(panel_sec["poll_interval"])
            if "command_delay" in panel_sec:
                panel_kwargs["command_delay"] = float(panel_sec["command_delay"])
            if "error_dismiss" in panel_sec:
                panel_kwargs["error_dismiss"] = float(panel_sec["error_dismiss"])
        panel = PanelConfig(**panel_kwargs)

        # --- Logging ---
        logging_kwargs = {}
        if "logging" in p:
            logging_sec = p["logging"]
            if "console_level" in logging_sec:
                logging_kwargs["console_level"] = logging_sec["console_level"]
            if "console_quiet" in logging_sec:
                logging_kwargs["console_quiet"] = _as_bool(logging_sec["console_quiet"])
            if "debug_modules" in logging_sec:
                raw = logging_sec["debug_modules"]
                logging_kwargs["debug_modules"] = [x.strip() for x in raw.split(",") if x.strip()]
            if "structured_enabled" in logging_sec:
                logging_kwargs["structured_enabled"] = _as_bool(logging_sec["structured_enabled"])
            if "structured_path" in logging_sec:
                logging_kwargs["structured_path"] = logging_sec["structured_path"]
        logging_cfg = LoggingConfig(**logging_kwargs)

        return AppConfig(
            device=device,
            proxy=proxy,
            panel=panel,
            logging=logging_cfg,
        )


# ----------------------------------------------------------------------
# Config resolver


def parse_query(query: Mapping[str, str] | str | None) -> dict[str, str]:
    if not query:
        return {}
    if isinstance(query, str):
        parsed = urllib.parse.parse_qs(query.lstrip("?"))
        return {key: values[0] for key, values in parsed.items() if values}
    return dict(query)


def show_connection_panel(query: Mapping[str, str] | str | None, configured: bool = True) -> bool:
    """An unconfigured panel always shows the connection form; otherwise only on request."""
    if not configured:
        return True
    return parse_query(query).get("showConnection") in ("true", "1")


def resolve_device_config(
    settings: DeviceSettings,
    *,
    user_input: Mapping[str, str | None] | None = None,
    query: Mapping[str, str] | str | None = None,
    proxy_url: str | None = None,
    server_auth: bool = False,
) -> DeviceConfig:
    """
    Build the session's DeviceConfig.

    Each value comes from the first source that has it: explicit user input,
    then URL query parameters, then the environment/INI defaults.
    """
    sources = [dict(user_input or {}), parse_query(query)]

    def _pick(key: str, default: str | None) -> str | None:
        for source in sources:
            value = source.get(key)
            if value:
                return value.strip() if key == "ip" else value
        return default

    return DeviceConfig(
        address=_pick("ip", settings.ip) or "",
        username=_pick("username", settings.username),
        password=_pick("password", settings.password),
        proxy_mode=proxy_url is not None,
        proxy_url=proxy_url,
        server_auth=server_auth,
    )


def public_config(settings: DeviceSettings) -> dict:
    """What the proxy tells clients about itself; the password never leaves the server."""
    return {
        "configured": settings.configured,
        "ip": settings.ip,
        "hasAuth": settings.has_auth,
    }
