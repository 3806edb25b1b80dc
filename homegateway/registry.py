"""In-memory registry of discovered devices."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from .exceptions import UnknownDeviceError
from .models import ChangeType, Device, DeviceKind, StateChange, StateRecord

_LOGGER = logging.getLogger(__name__)


class DeviceRegistry:
    """Last known state of every device seen on the gateway.

    The registry is the single source of truth for device existence and
    bounds. It does no I/O; callers turn the returned changes into host
    state updates.

    Devices missing from a snapshot are left as they are. Each mutation
    triggered by a command bumps a generation counter, so a snapshot that
    was requested before the command (see ``snapshot_marker``) cannot
    overwrite the confirmed value.
    """

    def __init__(self) -> None:
        self._devices: dict[tuple[DeviceKind, int], Device] = {}
        self._paths: dict[str, tuple[DeviceKind, int]] = {}
        self._records: dict[str, StateRecord] = {}
        self._generation = 0
        self._commanded: dict[tuple[DeviceKind, int], int] = {}
        self._collisions: set[tuple[DeviceKind, int]] = set()

    def __len__(self) -> int:
        return len(self._devices)

    @property
    def devices(self) -> list[Device]:
        """All known devices."""
        return list(self._devices.values())

    @property
    def records(self) -> dict[str, StateRecord]:
        """State records by path."""
        return dict(self._records)

    def get(self, device_id: int, kind: DeviceKind = DeviceKind.ACTUATOR) -> Device | None:
        """Return a device by id."""
        return self._devices.get((kind, device_id))

    def record(self, path: str) -> StateRecord | None:
        """Return the state record of a path."""
        return self._records.get(path)

    def resolve(self, path: str) -> Device:
        """Return the device owning a state path."""
        key = self._paths.get(path)
        if key is None:
            raise UnknownDeviceError(f"No device for state '{path}'")
        return self._devices[key]

    def snapshot_marker(self) -> int:
        """Return a marker to pass to ``reconcile`` for a snapshot requested now."""
        return self._generation

    def reconcile(
        self, snapshot: Iterable[Device], since: int | None = None
    ) -> list[StateChange]:
        """Merge a snapshot and return what changed.

        Args:
            snapshot: Devices as reported by one discovery call or push event
            since: Marker taken before the snapshot was requested. Values of
                devices commanded after it are not touched.
        """
        changes: list[StateChange] = []
        for incoming in snapshot:
            current = self._devices.get(incoming.key)
            if current is None:
                changes.extend(self._create(incoming))
                continue

            if incoming.name != current.name:
                changes.extend(self._rename(current, incoming.name))

            current.subtype = incoming.subtype
            current.unit = incoming.unit
            current.value_range = incoming.value_range

            commanded = self._commanded.get(current.key, 0)
            if since is not None and commanded > since:
                _LOGGER.debug(
                    "Ignoring stale value %s for %s, commanded after snapshot",
                    incoming.value,
                    current.name,
                )
            elif incoming.value != current.value:
                current.value = incoming.value
                changes.append(self._update(current.value_path, current.value, current))

            if incoming.battery_low is not None and incoming.battery_low != current.battery_low:
                first = current.battery_low is None
                current.battery_low = incoming.battery_low
                path = current.battery_path
                if first:
                    changes.extend(self._announce(path, current.battery_low, current))
                else:
                    changes.append(self._update(path, current.battery_low, current))
        return changes

    def mark_pending(self, path: str, value: Any) -> StateRecord:
        """Record a command issued by the host as not yet acknowledged."""
        device = self.resolve(path)
        self._stamp(device)
        record = self._records[path]
        record.value = value
        record.ack = False
        return record

    def apply_command_result(self, device_id: int, value: Any) -> StateChange:
        """Store a value confirmed by the gateway and acknowledge its record."""
        device = self.get(device_id)
        if device is None:
            raise UnknownDeviceError(f"No actuator with id {device_id}")
        self._stamp(device)
        device.value = value
        return self._update(device.value_path, value, device)

    def _stamp(self, device: Device) -> None:
        self._generation += 1
        self._commanded[device.key] = self._generation

    def _claim(self, path: str, device: Device) -> bool:
        owner = self._paths.get(path)
        if owner is not None and owner != device.key:
            if device.key not in self._collisions:
                self._collisions.add(device.key)
                _LOGGER.warning(
                    "Skipping %s %s '%s', state '%s' belongs to another device",
                    device.kind.value,
                    device.id,
                    device.name,
                    path,
                )
            return False
        self._paths[path] = device.key
        return True

    def _create(self, device: Device) -> list[StateChange]:
        if not self._claim(device.value_path, device):
            return []
        self._devices[device.key] = device
        _LOGGER.debug("Discovered %s %s '%s'", device.kind.value, device.id, device.name)
        changes = self._announce(device.value_path, device.value, device)
        if device.battery_path is not None and self._claim(device.battery_path, device):
            changes.extend(self._announce(device.battery_path, device.battery_low, device))
        return changes

    def _rename(self, device: Device, name: str) -> list[StateChange]:
        old_paths = [device.value_path, device.battery_path]
        old_name = device.name
        device.name = name
        if device.value_path == old_paths[0]:
            return []
        if not self._claim(device.value_path, device):
            device.name = old_name
            return []
        _LOGGER.info("%s %s renamed from '%s' to '%s'", device.kind.value, device.id, old_name, name)
        for path in old_paths:
            if path is not None:
                self._paths.pop(path, None)
                self._records.pop(path, None)
        changes = self._announce(device.value_path, device.value, device)
        if device.battery_path is not None and self._claim(device.battery_path, device):
            changes.extend(self._announce(device.battery_path, device.battery_low, device))
        return changes

    def _announce(self, path: str, value: Any, device: Device) -> list[StateChange]:
        self._paths[path] = device.key
        self._records[path] = StateRecord(path=path, value=value, ack=True)
        return [
            StateChange(ChangeType.CREATED, path, value, device),
            StateChange(ChangeType.VALUE_CHANGED, path, value, device),
        ]

    def _update(self, path: str, value: Any, device: Device) -> StateChange:
        record = self._records.get(path)
        if record is None:
            record = self._records[path] = StateRecord(path=path, value=value)
        record.value = value
        record.ack = True
        return StateChange(ChangeType.VALUE_CHANGED, path, value, device)
