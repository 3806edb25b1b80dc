"""Typed operations over the gateway control API."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import aiohttp

from .const import (
    BATTERY_LOW_KEYS,
    CMD_LIST_ACTUATORS,
    CMD_LIST_SENSORS,
    CMD_PROTOCOL_INFO,
    CMD_SET_STATE,
    DEFAULT_REQUEST_TIMEOUT,
    KEY_ACTUATORS,
    KEY_SENSORS,
    UNIT_SUBTYPE,
)
from .exceptions import (
    GatewayCommandError,
    GatewayError,
    GatewayParseError,
    GatewayValidationError,
    HandshakeRejectedError,
)
from .models import Device, DeviceKind, GatewayInfo, rule_for, to_number
from .transport import JsonpTransport

_LOGGER = logging.getLogger(__name__)

_LIST_KEYS = {
    DeviceKind.ACTUATOR: KEY_ACTUATORS,
    DeviceKind.SENSOR: KEY_SENSORS,
}


def _parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def parse_device(entry: Any, kind: DeviceKind) -> Device:
    """Map one discovery entry to a Device.

    Raises ValueError if a required field is missing or malformed.
    """
    if not isinstance(entry, Mapping):
        raise ValueError(f"Entry is not an object: {entry!r}")
    for key in ("id", "name", "value"):
        if key not in entry:
            raise ValueError(f"Missing '{key}'")

    if isinstance(entry["id"], bool):
        raise ValueError(f"Invalid id {entry['id']!r}")
    device_id = to_number(entry["id"])
    if not isinstance(device_id, int) or device_id <= 0:
        raise ValueError(f"Invalid id {entry['id']!r}")
    name = str(entry["name"]).strip()
    if not name:
        raise ValueError("Empty name")
    value = to_number(entry["value"])
    unit = entry.get("unit")

    subtype = entry.get("type") or entry.get("subtype")
    if not subtype:
        if kind is DeviceKind.ACTUATOR:
            subtype = "switch"
        else:
            subtype = UNIT_SUBTYPE.get(unit, "generic")

    value_range = None
    if kind is DeviceKind.ACTUATOR and "min" in entry and "max" in entry:
        value_range = (to_number(entry["min"]), to_number(entry["max"]))

    battery_low = None
    if kind is DeviceKind.SENSOR:
        for key in BATTERY_LOW_KEYS:
            if key in entry:
                battery_low = _parse_bool(entry[key])
                break

    return Device(
        id=device_id,
        name=name,
        kind=kind,
        subtype=str(subtype).lower(),
        value=value,
        battery_low=battery_low,
        unit=str(unit) if unit is not None else None,
        value_range=value_range,
    )


def parse_devices(payload: Any, kind: DeviceKind) -> list[Device]:
    """Map the device array of a discovery response, skipping bad entries."""
    key = _LIST_KEYS[kind]
    if not isinstance(payload, Mapping):
        raise GatewayParseError(f"Expected an object with '{key}', got {type(payload).__name__}")
    entries = payload.get(key)
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise GatewayParseError(f"Expected '{key}' to be a list")

    devices = []
    for entry in entries:
        try:
            devices.append(parse_device(entry, kind))
        except (TypeError, ValueError) as err:
            _LOGGER.warning("Skipping malformed %s entry %s: %s", kind.value, entry, err)
    return devices


class GatewayClient:
    """Client for the gateway control API."""

    def __init__(
        self,
        host: str,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        websession: aiohttp.ClientSession | None = None,
        transport: JsonpTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            host: Hostname, IP address or URL of the gateway
            request_timeout: Seconds before a request is abandoned
            websession: Optional aiohttp ClientSession. If not provided, one will be created.
            transport: Optional transport, replaces the one built from the other arguments.
        """
        if not host.startswith("http"):
            host = f"http://{host}"
        self.base_url = host.rstrip("/")
        self._transport = transport or JsonpTransport(
            self.base_url, request_timeout=request_timeout, websession=websession
        )
        self.info: GatewayInfo | None = None

    async def close_connection(self) -> None:
        """Close the connection and clean up resources."""
        await self._transport.close()

    async def __aenter__(self) -> GatewayClient:
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close_connection()

    async def get_protocol_info(self) -> GatewayInfo:
        """Confirm the configured address answers as the expected gateway."""
        try:
            payload = await self._transport.send(CMD_PROTOCOL_INFO)
        except GatewayError as err:
            raise HandshakeRejectedError(
                f"No valid answer from {self.base_url}: {err}"
            ) from err

        if not isinstance(payload, Mapping) or payload.get("version") in (None, ""):
            raise HandshakeRejectedError(
                f"{self.base_url} does not answer like the expected gateway: {payload!r}"
            )
        self.info = GatewayInfo(version=str(payload["version"]), raw=dict(payload))
        _LOGGER.debug("Gateway protocol info: %s", self.info)
        return self.info

    async def list_actuators(self) -> list[Device]:
        """Discover all actuators."""
        payload = await self._transport.send(CMD_LIST_ACTUATORS)
        return parse_devices(payload, DeviceKind.ACTUATOR)

    async def list_sensors(self) -> list[Device]:
        """Discover all sensors."""
        payload = await self._transport.send(CMD_LIST_SENSORS)
        return parse_devices(payload, DeviceKind.SENSOR)

    async def set_actuator(
        self,
        device_id: int,
        value: Any,
        subtype: str = "switch",
        value_range: tuple[float, float] | None = None,
    ) -> int | float:
        """Set an actuator and return the value the gateway applied.

        The value is checked against the range of the subtype (or the range
        declared by the device) before anything is sent.
        """
        if isinstance(device_id, bool) or not isinstance(device_id, int) or device_id <= 0:
            raise GatewayValidationError(f"Invalid device id {device_id!r}")
        number = rule_for(subtype, value_range).validate(value)

        _LOGGER.debug("Setting actuator %s to %s", device_id, number)
        payload = await self._transport.send(
            CMD_SET_STATE, {"id": device_id, "value": number}
        )

        if isinstance(payload, Mapping):
            status = payload.get("status")
            if status is not None and str(status).lower() not in ("ok", "success"):
                raise GatewayCommandError(
                    f"Gateway refused to set actuator {device_id}: {payload!r}"
                )
            if "value" in payload:
                try:
                    return to_number(payload["value"])
                except ValueError as err:
                    raise GatewayParseError("invalid payload") from err
        return number
