# nrgkick_panel/services/output_formatter.py

from __future__ import annotations

import json
from dataclasses import asdict, replace
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Tuple

from nrgkick_panel.models.device import ConnectionState, DeviceInfo, LiveStatus
from nrgkick_panel.models.display import DisplayModel

STATUS_MAP = {
    0: "Unknown",
    1: "Standby",
    2: "Connected",
    3: "Charging",
    6: "Error",
    7: "Wakeup",
}

STATE_CLASSES = {
    3: "charging-active",
    2: "charging-ready",
    7: "charging-ready",
    1: "charging-stopped",
    6: "charging-error",
}


def _fixed(value: float, places: int) -> str:
    """Round half up on the decimal text of the value (1.005 -> 1.01)."""
    quantum = Decimal(1).scaleb(-places)
    try:
        return str(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return "--"


def format_power(watts: float) -> str:
    return f"{_fixed(Decimal(str(watts)) / 1000, 2)} kW"


def format_energy(wh: float) -> str:
    return f"{_fixed(Decimal(str(wh)) / 1000, 2)} kWh"


def format_current(amps: float) -> str:
    return f"{_fixed(amps, 1)} A"


def format_voltage(volts: float) -> str:
    return f"{_fixed(volts, 0)} V"


def format_temperature(celsius: float) -> str:
    return f"{_fixed(celsius, 1)} °C"


def charging_state_display(code: Optional[int]) -> Tuple[str, str]:
    """Return (label, style class) for a charging state code."""
    if code is None:
        return "--", ""
    return STATUS_MAP.get(code, "Unknown"), STATE_CLASSES.get(code, "")


def apply_device_info(display: DisplayModel, info: DeviceInfo) -> DisplayModel:
    return replace(
        display,
        serial_number=info.serial_number,
        firmware_version=info.firmware_version,
        model=info.model_name,
    )


def apply_live_status(display: DisplayModel, status: LiveStatus) -> DisplayModel:
    """Overwrite the fields present in status; absent readings keep their last value."""
    label, css = charging_state_display(status.charging_state_code)
    updates = {
        "charging_state": label,
        "charging_state_class": css,
        "vehicle_connected": "Yes" if status.vehicle_connected else "No",
        "vehicle_connected_class": "charging-active" if status.vehicle_connected else "charging-stopped",
    }
    if status.power_watts is not None:
        updates["power"] = format_power(status.power_watts)
    if status.session_energy_wh is not None:
        updates["session_energy"] = format_energy(status.session_energy_wh)
    if status.total_energy_wh is not None:
        updates["total_energy"] = format_energy(status.total_energy_wh)
    if status.current_amps is not None:
        updates["current"] = format_current(status.current_amps)
    if status.voltage_volts is not None:
        updates["voltage"] = format_voltage(status.voltage_volts)
    if status.temperature_celsius is not None:
        updates["temperature"] = format_temperature(status.temperature_celsius)
    if status.current_limit_amps is not None:
        updates["current_limit"] = f"{status.current_limit_amps:g} A"
    if status.phase_count:
        updates["phase_count"] = str(status.phase_count)
    return replace(display, **updates)


def emit_json(display: DisplayModel, state: ConnectionState, error: str | None = None) -> None:
    payload = {"connection": state.value, "display": asdict(display)}
    if error:
        payload["error"] = error
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def format_human(display: DisplayModel, state: ConnectionState) -> list[str]:
    return [
        f"[{state.label}] {display.model} serial={display.serial_number} firmware={display.firmware_version}",
        f"  state={display.charging_state}  vehicle={display.vehicle_connected}  "
        f"limit={display.current_limit}  phases={display.phase_count}",
        f"  power={display.power}  current={display.current}  voltage={display.voltage}  "
        f"temp={display.temperature}",
        f"  session={display.session_energy}  total={display.total_energy}",
    ]


def emit_human(display: DisplayModel, state: ConnectionState, error: str | None = None) -> None:
    if error:
        print(f"ERROR: {error}")
    for line in format_human(display, state):
        print(line)
