# nrgkick_panel/services/error_banner.py

from __future__ import annotations

import asyncio
from typing import Optional


class ErrorBanner:
    """The single user-visible error slot; transient messages auto-dismiss."""

    def __init__(self, log, dismiss_after: float = 5.0):
        self.log = log
        self.dismiss_after = dismiss_after
        self.message: str | None = None
        self.persistent = False
        self._timer: Optional[asyncio.TimerHandle] = None

    @property
    def visible(self) -> bool:
        return self.message is not None

    def show(self, message: str, *, persistent: bool = False) -> None:
        self._cancel_timer()
        self.message = message
        self.persistent = persistent
        self.log.error(message)
        if persistent:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._timer = loop.call_later(self.dismiss_after, self.dismiss)

    def dismiss(self) -> None:
        self._cancel_timer()
        self.message = None
        self.persistent = False

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
