# nrgkick_panel/services/field_rules.py

"""Ordered accessor rules for the charger's JSON payloads.

Firmware variants nest the same logical value under different keys. Each
logical field is described by a tuple of key paths tried in order; the first
path that yields a usable value wins. Supporting a new firmware layout means
appending a path, not adding a branch.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Tuple

KeyPath = Tuple[str, ...]


def dig(payload: Any, path: KeyPath) -> Any:
    node = payload
    for key in path:
        if not isinstance(node, Mapping):
            return None
        node = node.get(key)
    return node


def _as_number(value: Any) -> float | int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


@dataclass(frozen=True)
class FieldRule:
    name: str
    paths: Tuple[KeyPath, ...]
    default: Any = None
    numeric: bool = False

    def resolve(self, payload: Any) -> Any:
        for path in self.paths:
            value = dig(payload, path)
            if value is None or value == "":
                continue
            if self.numeric:
                value = _as_number(value)
                if value is None:
                    continue
            return value
        return self.default


def resolve_all(rules: Tuple[FieldRule, ...], payload: Any) -> Dict[str, Any]:
    return {rule.name: rule.resolve(payload) for rule in rules}


# /info
DEVICE_INFO_RULES: Tuple[FieldRule, ...] = (
    FieldRule(
        "serial_number",
        (
            ("general", "serial_number"),
            ("general", "serialNumber"),
            ("general", "sn"),
            ("serial_number",),
            ("serialNumber",),
            ("sn",),
        ),
        default="--",
    ),
    FieldRule(
        "firmware_version",
        (
            ("versions", "sw_sm"),
            ("versions", "smartmodule"),
            ("general", "firmware_version"),
            ("firmware_version",),
            ("firmwareVersion",),
            ("firmware",),
        ),
        default="--",
    ),
    FieldRule(
        "model_name",
        (
            ("general", "model_type"),
            ("model_type",),
            ("modelName",),
            ("model",),
        ),
        default="NRGKick",
    ),
    FieldRule(
        "phase_count",
        (
            ("connector", "phase_count"),
            ("phase_count",),
            ("phaseCount",),
        ),
        numeric=True,
    ),
    FieldRule(
        "max_current",
        (
            ("connector", "max_current"),
            ("general", "rated_current"),
            ("max_current",),
            ("maxCurrent",),
        ),
        numeric=True,
    ),
)

# /control
CONTROL_RULES: Tuple[FieldRule, ...] = (
    FieldRule("current_limit_amps", (("current_set",), ("max_current",)), numeric=True),
    FieldRule("phase_count", (("phase_count",), ("phases",)), numeric=True),
    FieldRule("charge_pause", (("charge_pause",),), numeric=True),
)

# /values
VALUES_RULES: Tuple[FieldRule, ...] = (
    FieldRule("charging_state_code", (("general", "status"), ("status",)), numeric=True),
    FieldRule("power_watts", (("powerflow", "total_active_power"), ("power",)), numeric=True),
    FieldRule(
        "session_energy_wh",
        (("energy", "charged_energy"), ("charged_energy",), ("energy_session",)),
        numeric=True,
    ),
    FieldRule(
        "total_energy_wh",
        (("energy", "total_charged_energy"), ("total_charged_energy",), ("energy_total",)),
        numeric=True,
    ),
    FieldRule("charging_current", (("powerflow", "charging_current"), ("current",)), numeric=True),
    FieldRule("charging_voltage", (("powerflow", "charging_voltage"), ("voltage",)), numeric=True),
    FieldRule("temperature_celsius", (("temperatures", "housing"), ("temperature",)), numeric=True),
)

PHASES = ("l1", "l2", "l3")


def phase_values(values: Any, key: str) -> list[float]:
    """Per-phase readings from values.powerflow.l1..l3 (missing phases read as 0)."""
    readings = []
    for phase in PHASES:
        number = _as_number(dig(values, ("powerflow", phase, key)))
        readings.append(number if number is not None else 0)
    return readings
