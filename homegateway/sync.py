"""Polling scheduler keeping the host state tree in sync with the gateway."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass

import aiohttp

from .client import GatewayClient
from .config import GatewayConfig
from .connection import ConnectionManager
from .const import PATH_CONNECTION
from .events import EventListener
from .exceptions import GatewayError, HandshakeRejectedError
from .models import ChangeType, ConnectionState, Device, StateChange
from .registry import DeviceRegistry
from .store import StateStore

_LOGGER = logging.getLogger(__name__)

_RECONNECT_MARGIN = 0.01


@dataclass
class SyncContext:
    """Collaborators shared by the sync loop and the command dispatcher."""

    config: GatewayConfig
    client: GatewayClient
    registry: DeviceRegistry
    store: StateStore


class SyncLoop:
    """Runs discovery on a fixed interval and owns the connection state.

    A tick never starts a cycle while the previous one is still running;
    it is skipped instead. The timer keeps its own cadence regardless of
    how long a cycle or a command takes.
    """

    def __init__(
        self,
        context: SyncContext,
        connection: ConnectionManager | None = None,
        websession: aiohttp.ClientSession | None = None,
    ) -> None:
        config = context.config
        self.context = context
        self.connection = connection or ConnectionManager(
            failure_threshold=config.failure_threshold,
            backoff_min=config.backoff_min,
            backoff_max=config.backoff_max,
        )
        self._websession = websession
        self._timer: asyncio.Task | None = None
        self._cycle: asyncio.Task | None = None
        self._listener: EventListener | None = None
        self._reconnect: asyncio.TimerHandle | None = None
        self._in_flight = False
        self._closing = False

    @property
    def in_flight(self) -> bool:
        """Return True while a cycle is running."""
        return self._in_flight

    @property
    def running(self) -> bool:
        """Return True while the timer is active."""
        return bool(self._timer and not self._timer.done())

    def start(self) -> None:
        """Start the timer and, if configured, the push event listener."""
        if self.running:
            return
        self._closing = False
        loop = asyncio.get_running_loop()
        self._timer = loop.create_task(self._run_timer(), name="homegateway-poll")
        if self.context.config.events_url:
            self._listener = EventListener(
                self.context.config.events_url,
                on_devices=self.apply_snapshot,
                on_error=self.report_event_failure,
                websession=self._websession,
            )
            self._listener.start()

    async def stop(self) -> None:
        """Cancel the timer, close the listener and abandon a running cycle."""
        self._closing = True
        if self._reconnect:
            self._reconnect.cancel()
            self._reconnect = None
        if self._timer:
            self._timer.cancel()
            with suppress(asyncio.CancelledError):
                await self._timer
            self._timer = None
        if self._listener:
            await self._listener.stop()
            self._listener = None
        if self._cycle:
            self._cycle.cancel()
            with suppress(asyncio.CancelledError):
                await self._cycle
            self._cycle = None
        self.connection.reset()

    def tick(self) -> bool:
        """Start a cycle unless one is in flight. Returns True if started."""
        if self._in_flight:
            _LOGGER.debug("Previous sync cycle still running, skipping tick")
            return False
        self._in_flight = True
        self._cycle = asyncio.get_running_loop().create_task(self._guarded_cycle())
        return True

    async def _run_timer(self) -> None:
        interval = self.context.config.poll_interval
        while not self._closing:
            self.tick()
            await asyncio.sleep(interval)

    async def _guarded_cycle(self) -> None:
        try:
            await self.run_cycle()
        except asyncio.CancelledError:
            raise
        except Exception:
            _LOGGER.exception("Unexpected error during sync cycle")
        finally:
            self._in_flight = False

    async def run_cycle(self) -> None:
        """Connect if due, then poll the gateway once."""
        if self.connection.state is ConnectionState.DISCONNECTED:
            if not self.connection.ready_to_connect():
                return
            if not await self._handshake():
                return
        await self._poll()

    async def _handshake(self) -> bool:
        self.connection.connecting()
        try:
            info = await self.context.client.get_protocol_info()
        except HandshakeRejectedError as err:
            _LOGGER.warning("Gateway handshake failed: %s", err)
            await self._record_failure()
            return False
        except Exception:
            _LOGGER.exception("Unexpected error during gateway handshake")
            await self._record_failure()
            return False
        _LOGGER.debug("Gateway answered handshake, protocol version %s", info.version)
        return True

    async def _poll(self) -> None:
        client = self.context.client
        marker = self.context.registry.snapshot_marker()
        try:
            actuators = await client.list_actuators()
            sensors = await client.list_sensors()
        except GatewayError as err:
            _LOGGER.warning("Polling gateway failed: %s", err)
            await self._record_failure()
            return
        except Exception:
            _LOGGER.exception("Unexpected error while polling gateway")
            await self._record_failure()
            return
        await self.apply_snapshot(actuators + sensors, since=marker)
        if self.connection.succeeded():
            await self._emit_connection()

    async def apply_snapshot(self, devices: list[Device], since: int | None = None) -> None:
        """Reconcile devices and push the resulting changes to the host."""
        changes = self.context.registry.reconcile(devices, since=since)
        for change in changes:
            await self._emit(change)

    async def report_event_failure(self, err: Exception) -> None:
        """Count a failed push connection like a failed poll."""
        if self.connection.connected:
            await self._record_failure()

    async def _record_failure(self) -> None:
        if self.connection.failed():
            await self._emit_connection()
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        """Tick when the backoff elapses instead of waiting for the next poll."""
        delay = self.connection.retry_in()
        if delay is None or self._closing or not self.running:
            return
        if self._reconnect:
            self._reconnect.cancel()
        # small margin so the tick never lands before retry_at
        self._reconnect = asyncio.get_running_loop().call_later(
            delay + _RECONNECT_MARGIN, self._reconnect_tick
        )

    def _reconnect_tick(self) -> None:
        self._reconnect = None
        if not self._closing:
            self.tick()

    async def _emit(self, change: StateChange) -> None:
        store = self.context.store
        try:
            if change.type is ChangeType.CREATED:
                await store.create_state(change.path, change.device)
            else:
                await store.set_state(change.path, change.value, ack=True)
        except Exception:
            _LOGGER.exception("Failed to write %s to the state store", change.path)

    async def _emit_connection(self) -> None:
        try:
            await self.context.store.set_state(
                PATH_CONNECTION, self.connection.connected, ack=True
            )
        except Exception:
            _LOGGER.exception("Failed to write %s to the state store", PATH_CONNECTION)
