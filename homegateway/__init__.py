"""Python library keeping a host state tree in sync with a JSONP home-automation gateway."""

from .client import GatewayClient
from .config import GatewayConfig
from .connection import ConnectionManager
from .dispatcher import CommandDispatcher
from .engine import GatewayEngine
from .events import EventListener
from .exceptions import (
    GatewayCommandError,
    GatewayConfigError,
    GatewayConnectionError,
    GatewayError,
    GatewayHttpStatusError,
    GatewayParseError,
    GatewayTimeoutError,
    GatewayValidationError,
    HandshakeRejectedError,
    UnknownDeviceError,
)
from .models import (
    ChangeType,
    ConnectionState,
    Device,
    DeviceKind,
    GatewayInfo,
    StateChange,
    StateRecord,
)
from .registry import DeviceRegistry
from .store import MemoryStateStore, StateStore
from .sync import SyncContext, SyncLoop
from .transport import JsonpTransport, unwrap_jsonp

__all__ = [
    "ChangeType",
    "CommandDispatcher",
    "ConnectionManager",
    "ConnectionState",
    "Device",
    "DeviceKind",
    "DeviceRegistry",
    "EventListener",
    "GatewayClient",
    "GatewayCommandError",
    "GatewayConfig",
    "GatewayConfigError",
    "GatewayConnectionError",
    "GatewayEngine",
    "GatewayError",
    "GatewayHttpStatusError",
    "GatewayInfo",
    "GatewayParseError",
    "GatewayTimeoutError",
    "GatewayValidationError",
    "HandshakeRejectedError",
    "JsonpTransport",
    "MemoryStateStore",
    "StateChange",
    "StateRecord",
    "StateStore",
    "SyncContext",
    "SyncLoop",
    "UnknownDeviceError",
    "unwrap_jsonp",
]
