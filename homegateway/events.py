"""Optional push event listener."""

from __future__ import annotations

import asyncio
import json
import logging
import random
from collections.abc import Awaitable, Callable
from contextlib import suppress
from typing import Any

import aiohttp

from .client import parse_devices
from .const import EVENT_BACKOFF
from .exceptions import GatewayConnectionError, GatewayError, GatewayParseError
from .models import Device, DeviceKind
from .transport import unwrap_jsonp

_LOGGER = logging.getLogger(__name__)


def parse_event(text: str) -> Any:
    """Parse a pushed frame, JSONP wrapped or bare JSON."""
    stripped = text.strip()
    if stripped[:1] in ("{", "["):
        try:
            return json.loads(stripped)
        except ValueError as err:
            raise GatewayParseError("invalid payload") from err
    return unwrap_jsonp(stripped)


class EventListener:
    """Long-lived websocket listener feeding device updates to a callback.

    Frames look like discovery answers and carry ``actuator`` and/or
    ``sensor`` arrays. The listener reconnects on its own; each lost
    connection is reported through ``on_error``.
    """

    def __init__(
        self,
        url: str,
        on_devices: Callable[[list[Device]], Awaitable[None]],
        on_error: Callable[[Exception], Awaitable[None]],
        websession: aiohttp.ClientSession | None = None,
    ) -> None:
        self.url = url
        self._on_devices = on_devices
        self._on_error = on_error
        self._websession = websession
        self._own_session = websession is None
        self._task: asyncio.Task | None = None
        self._closing = False
        self._backoff_idx = 0

    def is_running(self) -> bool:
        """Return True if the listener task is active."""
        return bool(self._task and not self._task.done())

    def start(self) -> asyncio.Task:
        """Start the listener background task."""
        if self._task and not self._task.done():
            return self._task
        self._closing = False
        self._task = asyncio.get_running_loop().create_task(
            self._runner(), name="homegateway-events"
        )
        return self._task

    async def stop(self) -> None:
        """Cancel the listener and close its session."""
        self._closing = True
        if self._task:
            self._task.cancel()
            with suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        if self._own_session and self._websession:
            await self._websession.close()
            self._websession = None

    async def handle_message(self, text: str) -> None:
        """Reconcile the devices carried by one frame."""
        payload = parse_event(text)
        devices = parse_devices(payload, DeviceKind.ACTUATOR) + parse_devices(
            payload, DeviceKind.SENSOR
        )
        if devices:
            await self._on_devices(devices)

    async def _runner(self) -> None:
        """Manage connection attempts with backoff."""
        while not self._closing:
            try:
                await self._listen()
            except asyncio.CancelledError:
                raise
            except (aiohttp.ClientError, asyncio.TimeoutError, GatewayError) as err:
                _LOGGER.info(
                    "Event stream error (%s: %s); will retry", type(err).__name__, err
                )
                await self._on_error(err)
            if self._closing:
                break
            delay = EVENT_BACKOFF[min(self._backoff_idx, len(EVENT_BACKOFF) - 1)]
            self._backoff_idx = min(self._backoff_idx + 1, len(EVENT_BACKOFF) - 1)
            await asyncio.sleep(delay * random.uniform(0.8, 1.2))

    async def _listen(self) -> None:
        if self._websession is None:
            self._websession = aiohttp.ClientSession()
            self._own_session = True
        _LOGGER.debug("Connecting to event stream %s", self.url)
        async with self._websession.ws_connect(self.url, heartbeat=30) as ws:
            self._backoff_idx = 0
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    try:
                        await self.handle_message(msg.data)
                    except GatewayParseError as err:
                        _LOGGER.warning("Ignoring malformed event %s: %s", msg.data, err)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    raise GatewayConnectionError(f"Event stream failed: {ws.exception()}")
        if not self._closing:
            raise GatewayConnectionError("Event stream closed by gateway")
