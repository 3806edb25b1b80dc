"""Tests for the command dispatcher."""

import asyncio

import pytest

from conftest import actuator, sensor
from homegateway.dispatcher import CommandDispatcher
from homegateway.exceptions import (
    GatewayConnectionError,
    GatewayValidationError,
    UnknownDeviceError,
)
from homegateway.models import StateRecord

LIGHT = "Actuators.Living Room Light.state"


@pytest.fixture
def dispatcher(client, registry, store):
    registry.reconcile([actuator(subtype="dimmer"), sensor()])
    return CommandDispatcher(client, registry, store)


class TestDispatch:
    """Test turning writes into gateway commands."""

    async def test_confirmed_command(self, dispatcher, client, registry, store):
        """A successful command updates the registry and acknowledges the state."""
        change = await dispatcher.dispatch(LIGHT, 40)

        assert client.set_calls == [(1, 40)]
        assert change.value == 40
        assert registry.get(1).value == 40
        assert registry.record(LIGHT) == StateRecord(LIGHT, 40, True)
        assert store.history == [StateRecord(LIGHT, 40, True)]

    async def test_out_of_range(self, dispatcher, client, registry, store):
        """Values outside the dimmer range never reach the gateway."""
        with pytest.raises(GatewayValidationError):
            await dispatcher.dispatch(LIGHT, 150)
        assert client.set_calls == []
        assert registry.record(LIGHT).ack is True
        assert store.history == []

    async def test_unknown_device(self, dispatcher, client):
        """Writes on unknown paths fail without a gateway call."""
        with pytest.raises(UnknownDeviceError):
            await dispatcher.dispatch("Actuators.Garage Door.state", 1)
        assert client.set_calls == []

    async def test_sensor_is_read_only(self, dispatcher, client):
        """Sensor states cannot be written."""
        with pytest.raises(GatewayValidationError):
            await dispatcher.dispatch("Sensors.Temperature Sensor.value", 1)
        assert client.set_calls == []

    async def test_status_echo_ignored(self, dispatcher, client, store):
        """Acknowledged writes are status echoes and ignored."""
        assert await dispatcher.dispatch(LIGHT, 40, ack=True) is None
        assert client.set_calls == []
        assert store.history == []

    async def test_failed_command_stays_pending(self, dispatcher, client, registry, store):
        """A failing gateway leaves the state unacknowledged."""
        client.set_error = GatewayConnectionError("timeout")
        with pytest.raises(GatewayConnectionError):
            await dispatcher.dispatch(LIGHT, 40)

        assert registry.record(LIGHT) == StateRecord(LIGHT, 40, False)
        assert registry.get(1).value == 0
        assert store.history == []

    async def test_closed_drops_confirmation(self, dispatcher, client, store):
        """After closing nothing is sent or confirmed."""
        dispatcher.close()
        assert await dispatcher.dispatch(LIGHT, 40) is None
        assert client.set_calls == []
        assert store.history == []

    async def test_same_device_serialized(self, dispatcher, client, store):
        """Commands on one device run one after the other."""
        active = 0
        peak = 0
        original = client.set_actuator

        async def slow_set(device_id, value, **kwargs):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return await original(device_id, value, **kwargs)

        client.set_actuator = slow_set
        await asyncio.gather(dispatcher.dispatch(LIGHT, 10), dispatcher.dispatch(LIGHT, 20))

        assert peak == 1
        assert [value for _, value in client.set_calls] == [10, 20]
        assert store.get_state(LIGHT).value == 20
