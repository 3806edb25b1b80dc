"""Data models for homegateway library."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .const import PATH_ACTUATOR_STATE, PATH_SENSOR_BATTERY_LOW, PATH_SENSOR_VALUE
from .exceptions import GatewayValidationError


class DeviceKind(str, Enum):
    """Kind of a gateway device."""

    ACTUATOR = "actuator"
    SENSOR = "sensor"


class ConnectionState(str, Enum):
    """Reachability of the gateway as tracked by the connection manager."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DEGRADED = "degraded"

    @property
    def is_connected(self) -> bool:
        """Return the host-visible connection flag for this state."""
        return self in (ConnectionState.CONNECTED, ConnectionState.DEGRADED)


class ChangeType(str, Enum):
    """Kind of change produced by reconciling a snapshot."""

    CREATED = "created"
    VALUE_CHANGED = "value_changed"


def to_number(value: Any) -> int | float:
    """Convert a gateway or host value to an int or float.

    Integral values come back as int so that ``40.0`` and ``40`` compare and
    serialize the same way. Raises ValueError for anything non-numeric.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, str):
        value = value.strip()
    try:
        number = float(value)
    except (TypeError, ValueError) as err:
        raise ValueError(f"Not a number: {value!r}") from err
    if not math.isfinite(number):
        raise ValueError(f"Not a finite number: {value!r}")
    if number.is_integer():
        return int(number)
    return number


def path_segment(name: str) -> str:
    """Return a device name usable as one level of a state path."""
    return name.strip().replace(".", "_")


@dataclass(frozen=True)
class ValueRule:
    """Writable range of an actuator subtype."""

    minimum: float | None = None
    maximum: float | None = None
    allowed: tuple[float, ...] | None = None

    def validate(self, value: Any) -> int | float:
        """Return value as a number or raise GatewayValidationError."""
        try:
            number = to_number(value)
        except ValueError as err:
            raise GatewayValidationError(str(err)) from err
        if self.allowed is not None and number not in self.allowed:
            raise GatewayValidationError(
                f"Value {number} not allowed, must be one of: "
                f"{', '.join(str(v) for v in self.allowed)}"
            )
        if self.minimum is not None and number < self.minimum:
            raise GatewayValidationError(f"Value {number} below minimum {self.minimum}")
        if self.maximum is not None and number > self.maximum:
            raise GatewayValidationError(f"Value {number} above maximum {self.maximum}")
        return number


ANY_VALUE = ValueRule()

# Validation table per subtype. New subtypes are added here.
SUBTYPE_RULES: dict[str, ValueRule] = {
    "switch": ValueRule(allowed=(0, 1)),
    "binary": ValueRule(allowed=(0, 1)),
    "dimmer": ValueRule(minimum=0, maximum=100),
    "shutter": ValueRule(minimum=0, maximum=100),
}


def rule_for(subtype: str, value_range: tuple[float, float] | None = None) -> ValueRule:
    """Return the validation rule for a subtype, honoring a declared range."""
    if value_range is not None:
        return ValueRule(minimum=value_range[0], maximum=value_range[1])
    return SUBTYPE_RULES.get(subtype, ANY_VALUE)


@dataclass
class Device:
    """An actuator or sensor discovered on the gateway."""

    id: int
    name: str
    kind: DeviceKind
    subtype: str
    value: int | float
    battery_low: bool | None = None
    unit: str | None = None
    value_range: tuple[float, float] | None = None

    @property
    def key(self) -> tuple[DeviceKind, int]:
        """Registry key; ids are unique per kind only."""
        return (self.kind, self.id)

    @property
    def rule(self) -> ValueRule:
        """Validation rule for writes to this device."""
        return rule_for(self.subtype, self.value_range)

    @property
    def writable(self) -> bool:
        """Return True if the device accepts commands."""
        return self.kind is DeviceKind.ACTUATOR

    @property
    def value_path(self) -> str:
        """State path mirroring the device value."""
        template = PATH_ACTUATOR_STATE if self.writable else PATH_SENSOR_VALUE
        return template.format(name=path_segment(self.name))

    @property
    def battery_path(self) -> str | None:
        """State path of the low-battery flag, if the device reports one."""
        if self.kind is not DeviceKind.SENSOR or self.battery_low is None:
            return None
        return PATH_SENSOR_BATTERY_LOW.format(name=path_segment(self.name))


@dataclass
class StateRecord:
    """Externally visible mirror of a device attribute."""

    path: str
    value: Any
    ack: bool = True


@dataclass(frozen=True)
class StateChange:
    """A change the host state store has to learn about."""

    type: ChangeType
    path: str
    value: Any
    device: Device


@dataclass
class GatewayInfo:
    """Answer of the protocol info handshake."""

    version: str
    raw: dict[str, Any] = field(default_factory=dict)
