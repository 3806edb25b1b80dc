"""Shared fixtures for homegateway tests."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from homegateway.config import GatewayConfig
from homegateway.exceptions import GatewayError, HandshakeRejectedError
from homegateway.models import Device, DeviceKind, GatewayInfo, rule_for
from homegateway.registry import DeviceRegistry
from homegateway.store import MemoryStateStore
from homegateway.sync import SyncContext, SyncLoop


def actuator(device_id: int = 1, name: str = "Living Room Light", value: float = 0,
             subtype: str = "switch") -> Device:
    return Device(id=device_id, name=name, kind=DeviceKind.ACTUATOR, subtype=subtype, value=value)


def sensor(device_id: int = 1, name: str = "Temperature Sensor", value: float = 21.5,
           battery_low: bool | None = None) -> Device:
    return Device(
        id=device_id,
        name=name,
        kind=DeviceKind.SENSOR,
        subtype="temperature",
        value=value,
        battery_low=battery_low,
        unit="°C",
    )


class FakeClient:
    """Stands in for GatewayClient without any network."""

    def __init__(self) -> None:
        self.actuators: list[Device] = []
        self.sensors: list[Device] = []
        self.error: GatewayError | None = None
        self.handshake_error: HandshakeRejectedError | None = None
        self.set_error: GatewayError | None = None
        self.gate: asyncio.Event | None = None
        self.set_calls: list[tuple[int, Any]] = []
        self.handshakes = 0
        self.closed = False

    async def get_protocol_info(self) -> GatewayInfo:
        self.handshakes += 1
        if self.handshake_error:
            raise self.handshake_error
        return GatewayInfo(version="1.0")

    async def list_actuators(self) -> list[Device]:
        if self.gate is not None:
            await self.gate.wait()
        if self.error:
            raise self.error
        return [Device(**vars(d)) for d in self.actuators]

    async def list_sensors(self) -> list[Device]:
        if self.error:
            raise self.error
        return [Device(**vars(d)) for d in self.sensors]

    async def set_actuator(self, device_id, value, subtype="switch", value_range=None):
        rule_for(subtype, value_range).validate(value)
        self.set_calls.append((device_id, value))
        if self.set_error:
            raise self.set_error
        return value

    async def close_connection(self) -> None:
        self.closed = True


@pytest.fixture
def config() -> GatewayConfig:
    return GatewayConfig(base_url="http://gateway.local", failure_threshold=2)


@pytest.fixture
def client() -> FakeClient:
    fake = FakeClient()
    fake.actuators = [actuator()]
    fake.sensors = [sensor()]
    return fake


@pytest.fixture
def registry() -> DeviceRegistry:
    return DeviceRegistry()


@pytest.fixture
def store() -> MemoryStateStore:
    return MemoryStateStore()


@pytest.fixture
def sync_loop(config, client, registry, store) -> SyncLoop:
    return SyncLoop(SyncContext(config, client, registry, store))
