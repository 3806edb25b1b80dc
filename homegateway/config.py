"""Configuration consumed by the gateway engine."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any

from yarl import URL

from .const import (
    DEFAULT_BACKOFF_MAX,
    DEFAULT_BACKOFF_MIN,
    DEFAULT_FAILURE_THRESHOLD,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_REQUEST_TIMEOUT,
)
from .exceptions import GatewayConfigError


def _validate_url(value: str, schemes: tuple[str, ...], what: str) -> str:
    try:
        url = URL(value)
    except (TypeError, ValueError) as err:
        raise GatewayConfigError(f"Invalid {what} '{value}': {err}") from err
    if url.scheme not in schemes or not url.host:
        raise GatewayConfigError(
            f"Invalid {what} '{value}', expected a {'/'.join(schemes)} URL with a host"
        )
    return str(url).rstrip("/")


@dataclass
class GatewayConfig:
    """Settings for one gateway.

    Args:
        base_url: Address of the gateway. A bare host name gets ``http://``.
        poll_interval: Seconds between discovery polls.
        request_timeout: Seconds before a single gateway request is abandoned.
        failure_threshold: Consecutive failed polls tolerated while degraded.
        backoff_min: First reconnect delay once disconnected.
        backoff_max: Upper bound of the reconnect delay.
        events_url: Optional websocket address pushing device updates.
        device_links: Passed through to the host untouched.
    """

    base_url: str
    poll_interval: float = DEFAULT_POLL_INTERVAL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    failure_threshold: int = DEFAULT_FAILURE_THRESHOLD
    backoff_min: float = DEFAULT_BACKOFF_MIN
    backoff_max: float = DEFAULT_BACKOFF_MAX
    events_url: str | None = None
    device_links: list[Any] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not isinstance(self.base_url, str) or not self.base_url.strip():
            raise GatewayConfigError("A gateway address is required")
        base_url = self.base_url.strip()
        if "://" not in base_url:
            base_url = f"http://{base_url}"
        self.base_url = _validate_url(base_url, ("http", "https"), "gateway address")

        if self.events_url:
            self.events_url = _validate_url(
                self.events_url, ("ws", "wss", "http", "https"), "events address"
            )
        else:
            self.events_url = None

        for name in ("poll_interval", "request_timeout", "backoff_min", "backoff_max"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise GatewayConfigError(f"{name} must be a positive number, got {value!r}")
        if self.backoff_min > self.backoff_max:
            raise GatewayConfigError("backoff_min must not exceed backoff_max")
        if (
            isinstance(self.failure_threshold, bool)
            or not isinstance(self.failure_threshold, int)
            or self.failure_threshold < 1
        ):
            raise GatewayConfigError(
                f"failure_threshold must be an integer >= 1, got {self.failure_threshold!r}"
            )
        if not isinstance(self.device_links, list):
            raise GatewayConfigError("device_links must be a list")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> GatewayConfig:
        """Build a config from a host supplied mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        try:
            return cls(**{key: value for key, value in data.items() if key in known})
        except TypeError as err:
            raise GatewayConfigError(f"Invalid configuration: {err}") from err
