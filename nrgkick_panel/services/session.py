# nrgkick_panel/services/session.py

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime, timezone
from typing import Callable, Optional

from nrgkick_panel.config import PanelConfig
from nrgkick_panel.errors import PanelError
from nrgkick_panel.logging import StatusLogEntry, StructuredLog
from nrgkick_panel.models.device import (
    CommandRequest,
    ConnectionState,
    DeviceConfig,
    DeviceInfo,
    LiveStatus,
    SetChargePause,
    SetCurrentLimit,
    SetPhaseCount,
)
from nrgkick_panel.models.display import DisplayModel
from nrgkick_panel.services.command_dispatcher import CommandDispatcher
from nrgkick_panel.services.error_banner import ErrorBanner
from nrgkick_panel.services.output_formatter import apply_device_info, apply_live_status
from nrgkick_panel.services.poll_scheduler import PollScheduler
from nrgkick_panel.services.status_normalizer import StatusNormalizer
from nrgkick_panel.util.auth import basic_auth_header

NOT_CONFIGURED = "Server not configured. Set NRGKICK_IP environment variable."
SERVER_UNREACHABLE = "Failed to connect to server. Make sure the server is running."


class PanelSession:
    """
    Connection controller for one charger.

    Owns the connection state, the device config, the cached device info and
    the display model, plus the scheduler, dispatcher and normalizer that act
    on them. Every mutation happens on the event loop that drives it.
    """

    def __init__(
        self,
        device: DeviceConfig,
        client,
        log,
        panel: Optional[PanelConfig] = None,
        structured_log: Optional[StructuredLog] = None,
        on_update: Optional[Callable[[DisplayModel], None]] = None,
    ):
        panel = panel or PanelConfig()
        self.device = device
        self.client = client
        self.log = log
        self.structured_log = structured_log
        self.on_update = on_update

        self.state = ConnectionState.DISCONNECTED
        self.device_info: DeviceInfo | None = None
        self.last_status: LiveStatus | None = None
        self.display = DisplayModel()
        self.has_server_auth = device.server_auth

        self.banner = ErrorBanner(log, dismiss_after=panel.error_dismiss)
        self.normalizer = StatusNormalizer(client, log)
        self.scheduler = PollScheduler(panel.poll_interval, self._poll_tick, log)
        self.dispatcher = CommandDispatcher(
            client,
            self.scheduler,
            self._refresh_and_report,
            log,
            delay=panel.command_delay,
        )

    # ------------------------------------------------------------------
    @property
    def configured(self) -> bool:
        # Behind the proxy the address lives on the server; /api/config tells us.
        return self.device.configured

    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    @property
    def error(self) -> str | None:
        return self.banner.message

    def _set_state(self, state: ConnectionState) -> None:
        if state is not self.state:
            self.log.debug("Connection state %s -> %s", self.state.value, state.value)
        self.state = state

    # ------------------------------------------------------------------
    async def load_server_config(self, username: str | None = None, password: str | None = None) -> bool:
        """Read /api/config from the proxy and auto-connect when it has an address."""
        try:
            cfg = await self.client.fetch_server_config()
        except PanelError as exc:
            self.log.debug("Failed to load server config: %s", exc)
            self.banner.show(SERVER_UNREACHABLE)
            return False

        self.device = DeviceConfig(
            address=str(cfg.get("ip") or "") if cfg.get("configured") else "",
            username=self.device.username,
            password=self.device.password,
            proxy_mode=True,
            proxy_url=self.device.proxy_url,
            server_auth=bool(cfg.get("hasAuth")),
        )
        self.has_server_auth = self.device.server_auth
        if not self.configured:
            self.banner.show(NOT_CONFIGURED, persistent=True)
            return False
        return await self.connect(username, password)

    def _resolve_auth_header(self, username: str | None, password: str | None) -> str | None:
        username = (username or "").strip()
        if username and password:
            return basic_auth_header(username, password)
        if not self.device.proxy_mode:
            return basic_auth_header(self.device.username, self.device.password)
        # With server-held credentials the proxy injects its own header.
        return None

    async def connect(self, username: str | None = None, password: str | None = None) -> bool:
        if not self.configured:
            # Terminal: never retried, and polling is never scheduled.
            self.banner.show(NOT_CONFIGURED, persistent=True)
            return False

        self.scheduler.stop()
        self._set_state(ConnectionState.CONNECTING)
        self.client.auth_header = self._resolve_auth_header(username, password)

        try:
            info = await self.normalizer.fetch_device_info()
            if self.state is not ConnectionState.CONNECTING:
                self.log.debug("Disconnected while connecting; dropping device info")
                return False
            self.device_info = info
            self.display = apply_device_info(self.display, info)
            status = await self.normalizer.fetch_live_status()
        except PanelError as exc:
            if self.state is not ConnectionState.CONNECTING:
                return False
            self.banner.show(f"Connection failed: {exc}")
            self._set_state(ConnectionState.DISCONNECTED)
            return False

        if self.state is not ConnectionState.CONNECTING:
            self.log.debug("Disconnected while connecting; not starting the poller")
            return False
        self._apply_status(status)
        self._set_state(ConnectionState.CONNECTED)
        self.log.info(
            "Connected to %s (serial %s, firmware %s)",
            self.device.address or self.device.proxy_url,
            info.serial_number,
            info.firmware_version,
        )
        self.scheduler.start()
        return True

    def disconnect(self) -> None:
        self.scheduler.stop()
        self.scheduler.cancel_pending()
        self.client.auth_header = None
        self._set_state(ConnectionState.DISCONNECTED)
        self.display = DisplayModel()
        self.device_info = None
        self.last_status = None
        self.log.info("Disconnected")

    # ------------------------------------------------------------------
    async def refresh_status(self) -> LiveStatus | None:
        """Fetch /control + /values; the result is dropped if we disconnected meanwhile."""
        if self.state is ConnectionState.DISCONNECTED:
            return None
        status = await self.normalizer.fetch_live_status()
        if self.state is ConnectionState.DISCONNECTED:
            self.log.debug("Discarding status that arrived after disconnect")
            return None
        self._apply_status(status)
        return status

    async def _poll_tick(self) -> None:
        if not self.connected:
            return
        await self._refresh_and_report()

    async def _refresh_and_report(self) -> None:
        """Refresh for a poll tick or after a command; failures become a banner, stale values stay."""
        try:
            await self.refresh_status()
        except PanelError as exc:
            if self.state is ConnectionState.DISCONNECTED:
                return
            self.banner.show(f"Status update failed: {exc}")
            self._write_structured(error=str(exc))

    def _apply_status(self, status: LiveStatus) -> None:
        self.last_status = status
        self.display = apply_live_status(self.display, status)
        self._write_structured()
        if self.on_update is not None:
            self.on_update(self.display)

    def _write_structured(self, error: str | None = None) -> None:
        if self.structured_log is None:
            return
        self.structured_log.write(
            StatusLogEntry(
                timestamp=datetime.now(timezone.utc).isoformat(),
                connection_state=self.state.value,
                device_info=asdict(self.device_info) if self.device_info else None,
                live_status=asdict(self.last_status) if self.last_status else None,
                display=asdict(self.display),
                error=error,
            )
        )

    # ------------------------------------------------------------------
    async def send_command(self, command: CommandRequest) -> bool:
        try:
            await self.dispatcher.send(command)
        except PanelError as exc:
            self.banner.show(f"Failed to {command.label}: {exc}")
            return False
        return True

    async def start_charging(self) -> bool:
        return await self.send_command(SetChargePause(False))

    async def stop_charging(self) -> bool:
        return await self.send_command(SetChargePause(True))

    async def set_current_limit(self, amps: int) -> bool:
        return await self.send_command(SetCurrentLimit(amps))

    async def set_phase_count(self, phases: int) -> bool:
        return await self.send_command(SetPhaseCount(phases))
