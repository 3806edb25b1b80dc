"""Interface of the host state store and an in-memory implementation."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from .models import Device, StateRecord


class StateStore(Protocol):
    """State tree owned by the host.

    The engine creates a state object for every new device attribute and
    writes values with their ack flag.
    """

    async def create_state(self, path: str, device: Device) -> None:
        """Create the object behind a state path if it does not exist."""

    async def set_state(self, path: str, value: Any, *, ack: bool) -> None:
        """Write a state value."""


class MemoryStateStore:
    """State store keeping everything in dictionaries.

    Useful for embedding the engine without a host and for tests. Every
    write is appended to ``history``.
    """

    def __init__(self) -> None:
        self.objects: dict[str, dict[str, Any]] = {}
        self.states: dict[str, StateRecord] = {}
        self.history: list[StateRecord] = []
        self._subscribers: list[Callable[[StateRecord], Awaitable[None]]] = []

    async def create_state(self, path: str, device: Device) -> None:
        if path in self.objects:
            return
        self.objects[path] = {
            "id": device.id,
            "name": device.name,
            "kind": device.kind.value,
            "subtype": device.subtype,
            "unit": device.unit if path == device.value_path else None,
            "writable": device.writable and path == device.value_path,
        }

    async def set_state(self, path: str, value: Any, *, ack: bool) -> None:
        record = StateRecord(path=path, value=value, ack=ack)
        self.states[path] = record
        self.history.append(record)
        for callback in list(self._subscribers):
            await callback(record)

    def get_state(self, path: str) -> StateRecord | None:
        """Return the current record of a path."""
        return self.states.get(path)

    def subscribe(self, callback: Callable[[StateRecord], Awaitable[None]]) -> Callable[[], None]:
        """Call ``callback`` on every write; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe
