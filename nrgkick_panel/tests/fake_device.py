# nrgkick_panel/tests/fake_device.py

import asyncio
import copy
from types import SimpleNamespace

from nrgkick_panel.errors import NetworkError


def null_log():
    noop = lambda *args, **kwargs: None
    return SimpleNamespace(debug=noop, info=noop, warning=noop, error=noop)


INFO_PAYLOAD = {
    "general": {
        "serial_number": "NRG-123456",
        "device_name": "Garage",
        "model_type": "NRGkick Gen2",
        "rated_current": 32,
    },
    "connector": {"phase_count": 3, "max_current": 32, "type": "CEE", "serial": "C-1"},
    "grid": {"voltage": 230, "frequency": 50},
    "network": {"ip_address": "192.168.1.100", "ssid": "home"},
    "versions": {"sw_sm": "4.1.2", "hw_sm": "2.0"},
}

CONTROL_PAYLOAD = {
    "current_set": 16,
    "charge_pause": 0,
    "energy_limit": 0,
    "phase_count": 3,
}

VALUES_PAYLOAD = {
    "general": {"status": 3, "charging_rate": 11.0},
    "energy": {"total_charged_energy": 1234567, "charged_energy": 2345},
    "powerflow": {
        "charging_voltage": 229.6,
        "charging_current": 15.94,
        "total_active_power": 11000,
        "l1": {"voltage": 230.1, "current": 16.0},
        "l2": {"voltage": 229.4, "current": 15.9},
        "l3": {"voltage": 229.2, "current": 15.9},
    },
    "temperatures": {"housing": 31.25, "connector_l1": 28.0},
}


class FakeDeviceClient:
    """
    Stand-in for DeviceClient.

    responses maps endpoint -> payload dict or an Exception instance to raise.
    Every request is recorded in .calls as (endpoint, params).
    """

    def __init__(self, responses=None, server_config=None, delay: float = 0.0):
        self.responses = responses if responses is not None else default_responses()
        self.server_config = server_config
        self.delay = delay
        self.auth_header = None
        self.calls = []

    async def request(self, endpoint, params=None):
        self.calls.append((endpoint, dict(params or {})))
        if self.delay:
            await asyncio.sleep(self.delay)
        result = self.responses.get(endpoint, NetworkError(f"HTTP 404: {endpoint}", status_code=404))
        if isinstance(result, Exception):
            raise result
        return copy.deepcopy(result)

    async def fetch_server_config(self):
        if isinstance(self.server_config, Exception):
            raise self.server_config
        return dict(self.server_config or {})

    def endpoint_calls(self, endpoint):
        return [params for name, params in self.calls if name == endpoint]


def default_responses():
    return {
        "/info": INFO_PAYLOAD,
        "/control": CONTROL_PAYLOAD,
        "/values": VALUES_PAYLOAD,
    }
