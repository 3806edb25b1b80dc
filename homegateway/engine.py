"""Gateway engine, the entry point used by the host."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from .client import GatewayClient
from .config import GatewayConfig
from .const import PATH_CONNECTION
from .dispatcher import CommandDispatcher
from .models import ConnectionState, StateChange
from .registry import DeviceRegistry
from .store import StateStore
from .sync import SyncContext, SyncLoop

_LOGGER = logging.getLogger(__name__)


class GatewayEngine:
    """Keeps a host state tree and the gateway eventually consistent."""

    def __init__(
        self,
        config: GatewayConfig,
        store: StateStore,
        websession: aiohttp.ClientSession | None = None,
        client: GatewayClient | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            config: Gateway settings
            store: Host state store receiving device states
            websession: Optional aiohttp ClientSession shared by all requests
            client: Optional gateway client, built from ``config`` if omitted
        """
        self.config = config
        self.store = store
        self.client = client or GatewayClient(
            config.base_url,
            request_timeout=config.request_timeout,
            websession=websession,
        )
        self.registry = DeviceRegistry()
        self.context = SyncContext(config, self.client, self.registry, store)
        self.sync = SyncLoop(self.context, websession=websession)
        self.dispatcher = CommandDispatcher(self.client, self.registry, store)

    @property
    def connection_state(self) -> ConnectionState:
        """Current connection state."""
        return self.sync.connection.state

    @property
    def connected(self) -> bool:
        """Value of ``info.connection``."""
        return self.sync.connection.connected

    async def start(self) -> None:
        """Reset the connection flag and start synchronizing."""
        _LOGGER.debug("Starting engine for %s", self.config.base_url)
        await self.store.set_state(PATH_CONNECTION, False, ack=True)
        self.dispatcher.open()
        self.sync.start()

    async def handle_command(
        self, path: str, value: Any, ack: bool = False
    ) -> StateChange | None:
        """Handle a write on a state path issued by the host."""
        return await self.dispatcher.dispatch(path, value, ack=ack)

    async def stop(self) -> None:
        """Stop polling, drop pending confirmations and close the client."""
        _LOGGER.debug("Stopping engine for %s", self.config.base_url)
        self.dispatcher.close()
        await self.sync.stop()
        await self.client.close_connection()

    async def __aenter__(self) -> GatewayEngine:
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.stop()
