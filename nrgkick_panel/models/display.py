# nrgkick_panel/models/display.py
from dataclasses import dataclass


@dataclass
class DisplayModel:
    charging_state: str = "--"
    charging_state_class: str = ""
    power: str = "-- kW"
    session_energy: str = "-- kWh"
    total_energy: str = "-- kWh"
    current: str = "-- A"
    voltage: str = "-- V"
    temperature: str = "-- °C"
    vehicle_connected: str = "--"
    vehicle_connected_class: str = ""
    current_limit: str = "-- A"
    phase_count: str = "--"
    serial_number: str = "--"
    firmware_version: str = "--"
    model: str = "--"
