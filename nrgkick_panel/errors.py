# nrgkick_panel/errors.py
from __future__ import annotations


class PanelError(Exception):
    """Base class for every failure surfaced to the user."""


class ConfigurationError(PanelError):
    """No device address configured; blocks all operation."""


class NetworkError(PanelError):
    """Device or proxy unreachable, timed out, or answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class DeviceError(PanelError):
    """The device (or proxy) answered with a structured error message."""


class ValidationError(PanelError):
    """Malformed device address supplied in a path-addressed proxy request."""
