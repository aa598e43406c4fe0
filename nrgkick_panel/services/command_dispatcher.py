# nrgkick_panel/services/command_dispatcher.py

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict

from nrgkick_panel.models.device import CommandRequest
from nrgkick_panel.services.poll_scheduler import PollScheduler


class CommandDispatcher:
    """Send single-parameter /control commands and queue one follow-up refresh each."""

    def __init__(
        self,
        client,
        scheduler: PollScheduler,
        refresh: Callable[[], Awaitable[Any]],
        log,
        delay: float = 0.5,
    ):
        self.client = client
        self.scheduler = scheduler
        self.refresh = refresh
        self.log = log
        self.delay = delay

    async def send(self, command: CommandRequest) -> Dict[str, Any]:
        # The device validates ranges; a rejection comes back as an error payload.
        params = command.params()
        self.log.info("Sending command %s", params)
        result = await self.client.request("/control", params)
        self.scheduler.schedule_once(self.delay, self.refresh)
        return result
