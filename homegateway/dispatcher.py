"""Turns host write intents into gateway commands."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .client import GatewayClient
from .exceptions import GatewayError, GatewayValidationError
from .models import StateChange
from .registry import DeviceRegistry
from .store import StateStore

_LOGGER = logging.getLogger(__name__)


class CommandDispatcher:
    """Validates write intents and confirms them once the gateway applied them.

    Commands on the same device run one after the other. A failed command
    leaves its state unacknowledged instead of rolling it back.
    """

    def __init__(
        self, client: GatewayClient, registry: DeviceRegistry, store: StateStore
    ) -> None:
        self.client = client
        self.registry = registry
        self.store = store
        self._locks: dict[int, asyncio.Lock] = {}
        self._closed = False

    def open(self) -> None:
        """Accept commands again after ``close``."""
        self._closed = False

    def close(self) -> None:
        """Drop confirmations of commands still in flight."""
        self._closed = True

    async def dispatch(self, path: str, value: Any, ack: bool = False) -> StateChange | None:
        """Send a write intent to the gateway.

        Returns the confirmed change, or None if nothing was sent because
        the write was a status echo or the dispatcher is closed.
        """
        if ack:
            _LOGGER.debug("Ignoring acknowledged write to %s", path)
            return None
        if self._closed:
            _LOGGER.debug("Dispatcher closed, ignoring write to %s", path)
            return None

        device = self.registry.resolve(path)
        if not device.writable or path != device.value_path:
            raise GatewayValidationError(f"State '{path}' is read-only")
        number = device.rule.validate(value)

        lock = self._locks.setdefault(device.id, asyncio.Lock())
        async with lock:
            self.registry.mark_pending(path, number)
            try:
                applied = await self.client.set_actuator(
                    device.id,
                    number,
                    subtype=device.subtype,
                    value_range=device.value_range,
                )
            except GatewayError as err:
                _LOGGER.error("Setting %s to %s failed: %s", path, number, err)
                raise
            if self._closed:
                _LOGGER.debug("Dispatcher closed, dropping confirmation of %s", path)
                return None
            change = self.registry.apply_command_result(device.id, applied)

        await self.store.set_state(change.path, change.value, ack=True)
        return change
