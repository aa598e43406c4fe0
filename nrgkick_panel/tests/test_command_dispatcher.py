import asyncio

import pytest

from nrgkick_panel.errors import DeviceError
from nrgkick_panel.models.device import SetChargePause, SetCurrentLimit, SetPhaseCount
from nrgkick_panel.services.command_dispatcher import CommandDispatcher
from nrgkick_panel.services.poll_scheduler import PollScheduler
from nrgkick_panel.tests.fake_device import FakeDeviceClient, null_log


class RefreshCounter:
    def __init__(self):
        self.count = 0

    async def __call__(self):
        self.count += 1


def _dispatcher(client, refresh, delay=0.02):
    scheduler = PollScheduler(2.0, refresh, null_log())
    return CommandDispatcher(client, scheduler, refresh, null_log(), delay=delay), scheduler


def test_commands_carry_exactly_one_parameter():
    assert SetChargePause(True).params() == {"charge_pause": 1}
    assert SetChargePause(False).params() == {"charge_pause": 0}
    assert SetCurrentLimit(16).params() == {"current_set": 16}
    assert SetPhaseCount(1).params() == {"phase_count": 1}


@pytest.mark.asyncio
async def test_each_command_issues_one_control_request():
    client = FakeDeviceClient()
    refresh = RefreshCounter()
    dispatcher, scheduler = _dispatcher(client, refresh)

    await dispatcher.send(SetChargePause(True))
    await dispatcher.send(SetChargePause(False))
    await dispatcher.send(SetCurrentLimit(20))
    await dispatcher.send(SetPhaseCount(3))
    scheduler.cancel_pending()

    assert client.endpoint_calls("/control") == [
        {"charge_pause": 1},
        {"charge_pause": 0},
        {"current_set": 20},
        {"phase_count": 3},
    ]


@pytest.mark.asyncio
async def test_successful_command_schedules_one_delayed_refresh():
    client = FakeDeviceClient()
    refresh = RefreshCounter()
    dispatcher, scheduler = _dispatcher(client, refresh, delay=0.05)

    await dispatcher.send(SetCurrentLimit(10))
    assert refresh.count == 0
    assert len(scheduler.pending) == 1

    await asyncio.sleep(0.15)
    assert refresh.count == 1
    assert scheduler.pending == []


@pytest.mark.asyncio
async def test_no_client_side_range_validation():
    client = FakeDeviceClient()
    dispatcher, scheduler = _dispatcher(client, RefreshCounter())
    await dispatcher.send(SetCurrentLimit(40))
    scheduler.cancel_pending()
    assert client.endpoint_calls("/control") == [{"current_set": 40}]


@pytest.mark.asyncio
async def test_device_rejection_raises_and_skips_refresh():
    client = FakeDeviceClient(responses={"/control": DeviceError("Value out of range")})
    refresh = RefreshCounter()
    dispatcher, scheduler = _dispatcher(client, refresh)

    with pytest.raises(DeviceError, match="out of range"):
        await dispatcher.send(SetCurrentLimit(40))
    assert scheduler.pending == []
