# nrgkick_panel/services/status_normalizer.py

from __future__ import annotations

import asyncio
from typing import Any, Dict, Mapping

from nrgkick_panel.models.device import DeviceInfo, LiveStatus, vehicle_connected
from nrgkick_panel.services.field_rules import (
    CONTROL_RULES,
    DEVICE_INFO_RULES,
    VALUES_RULES,
    phase_values,
    resolve_all,
)

CHARGING = 3


def _as_int(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def build_device_info(info: Mapping[str, Any]) -> DeviceInfo:
    fields = resolve_all(DEVICE_INFO_RULES, info)
    return DeviceInfo(
        serial_number=str(fields["serial_number"]),
        firmware_version=str(fields["firmware_version"]),
        model_name=str(fields["model_name"]),
        phase_count=_as_int(fields["phase_count"]),
        max_current=fields["max_current"],
        raw=dict(info),
    )


def _resolve_current(fields: Dict[str, Any], values: Mapping[str, Any], code: int | None) -> float | None:
    if fields["charging_current"] is not None:
        return fields["charging_current"]
    total = sum(phase_values(values, "current"))
    if total > 0:
        return total
    if code == CHARGING:
        return 0.0
    return None


def _resolve_voltage(fields: Dict[str, Any], values: Mapping[str, Any]) -> float | None:
    voltage = fields["charging_voltage"]
    if voltage is not None and voltage > 0:
        return voltage
    peak = max(phase_values(values, "voltage"))
    return peak if peak > 0 else None


def build_live_status(control: Mapping[str, Any], values: Mapping[str, Any]) -> LiveStatus:
    ctrl = resolve_all(CONTROL_RULES, control)
    vals = resolve_all(VALUES_RULES, values)
    code = _as_int(vals["charging_state_code"])
    pause = ctrl["charge_pause"]

    return LiveStatus(
        charging_state_code=code,
        power_watts=vals["power_watts"],
        session_energy_wh=vals["session_energy_wh"],
        total_energy_wh=vals["total_energy_wh"],
        current_amps=_resolve_current(vals, values, code),
        voltage_volts=_resolve_voltage(vals, values),
        temperature_celsius=vals["temperature_celsius"],
        vehicle_connected=vehicle_connected(code),
        current_limit_amps=ctrl["current_limit_amps"],
        phase_count=_as_int(ctrl["phase_count"]),
        charge_paused=bool(pause) if pause is not None else None,
        control=dict(control),
        values=dict(values),
    )


class StatusNormalizer:
    """Fetch /info, /control and /values and reconcile them into canonical models."""

    def __init__(self, client, log):
        self.client = client
        self.log = log

    async def fetch_device_info(self) -> DeviceInfo:
        # No section parameters: the device answers with every section.
        info = await self.client.request("/info")
        device_info = build_device_info(info)
        self.log.debug(
            "Device info: serial=%s firmware=%s model=%s",
            device_info.serial_number,
            device_info.firmware_version,
            device_info.model_name,
        )
        return device_info

    async def fetch_live_status(self) -> LiveStatus:
        control, values = await asyncio.gather(
            self.client.request("/control"),
            self.client.request("/values"),
        )
        return build_live_status(control, values)
