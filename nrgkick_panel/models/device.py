# nrgkick_panel/models/device.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class DeviceConfig:
    address: str = ""
    username: str | None = None
    password: str | None = None
    proxy_mode: bool = False
    proxy_url: str | None = None
    server_auth: bool = False   # proxy holds credentials the client never sees

    @property
    def configured(self) -> bool:
        return bool(self.address and self.address.strip())

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"

    @property
    def label(self) -> str:
        if self is ConnectionState.CONNECTED:
            return "Connected"
        if self is ConnectionState.CONNECTING:
            return "Connecting..."
        return "Disconnected"


@dataclass
class DeviceInfo:
    serial_number: str = "--"
    firmware_version: str = "--"
    model_name: str = "NRGKick"
    phase_count: int | None = None
    max_current: float | None = None
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LiveStatus:
    charging_state_code: int | None
    power_watts: float | None
    session_energy_wh: float | None
    total_energy_wh: float | None
    current_amps: float | None
    voltage_volts: float | None
    temperature_celsius: float | None
    vehicle_connected: bool
    current_limit_amps: float | None
    phase_count: int | None
    charge_paused: bool | None = None
    control: Dict[str, Any] = field(default_factory=dict)
    values: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SetChargePause:
    paused: bool

    @property
    def label(self) -> str:
        return "stop charging" if self.paused else "start charging"

    def params(self) -> Dict[str, int]:
        return {"charge_pause": 1 if self.paused else 0}


@dataclass(frozen=True)
class SetCurrentLimit:
    amps: int

    label = "set current limit"

    def params(self) -> Dict[str, int]:
        return {"current_set": int(self.amps)}


@dataclass(frozen=True)
class SetPhaseCount:
    phases: int

    label = "set phases"

    def params(self) -> Dict[str, int]:
        return {"phase_count": int(self.phases)}


CommandRequest = SetChargePause | SetCurrentLimit | SetPhaseCount


def vehicle_connected(code: Optional[int]) -> bool:
    return code is not None and code >= 2
