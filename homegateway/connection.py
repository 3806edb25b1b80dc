"""Reachability state machine for the gateway."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from .const import DEFAULT_BACKOFF_MAX, DEFAULT_BACKOFF_MIN, DEFAULT_FAILURE_THRESHOLD
from .models import ConnectionState

_LOGGER = logging.getLogger(__name__)

_ALLOWED = {
    ConnectionState.DISCONNECTED: {ConnectionState.CONNECTING},
    ConnectionState.CONNECTING: {ConnectionState.CONNECTED, ConnectionState.DISCONNECTED},
    ConnectionState.CONNECTED: {ConnectionState.CONNECTED, ConnectionState.DEGRADED},
    ConnectionState.DEGRADED: {
        ConnectionState.CONNECTED,
        ConnectionState.DEGRADED,
        ConnectionState.DISCONNECTED,
    },
}


class ConnectionManager:
    """Tracks whether the gateway is reachable and when to try again.

    Every transition method returns True when the host-visible connection
    flag changed, so the caller emits ``info.connection`` only then.

    Args:
        failure_threshold: Consecutive failures tolerated while degraded
        backoff_min: First reconnect delay once disconnected
        backoff_max: Upper bound of the reconnect delay
        clock: Monotonic time source
    """

    def __init__(
        self,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        backoff_min: float = DEFAULT_BACKOFF_MIN,
        backoff_max: float = DEFAULT_BACKOFF_MAX,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.failure_threshold = failure_threshold
        self.backoff_min = backoff_min
        self.backoff_max = backoff_max
        self._clock = clock
        self._state = ConnectionState.DISCONNECTED
        self._failures = 0
        self._backoff = backoff_min
        self._retry_at: float | None = None

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def connected(self) -> bool:
        """Host-visible connection flag."""
        return self._state.is_connected

    @property
    def failures(self) -> int:
        """Consecutive failures since the last success."""
        return self._failures

    @property
    def retry_at(self) -> float | None:
        """Clock time of the next connection attempt, None for immediately."""
        return self._retry_at

    def retry_in(self) -> float | None:
        """Seconds until the next connection attempt is due, None if not scheduled."""
        if self._state is not ConnectionState.DISCONNECTED or self._retry_at is None:
            return None
        return max(0.0, self._retry_at - self._clock())

    def reset(self) -> None:
        """Forget all history and start over disconnected."""
        self._state = ConnectionState.DISCONNECTED
        self._failures = 0
        self._backoff = self.backoff_min
        self._retry_at = None

    def ready_to_connect(self) -> bool:
        """Return True if disconnected and the backoff interval has elapsed."""
        if self._state is not ConnectionState.DISCONNECTED:
            return False
        return self._retry_at is None or self._clock() >= self._retry_at

    def connecting(self) -> bool:
        """Start a connection attempt."""
        return self._set_state(ConnectionState.CONNECTING)

    def succeeded(self) -> bool:
        """Record a successful handshake or poll."""
        if self._state is ConnectionState.DISCONNECTED:
            return False
        self._failures = 0
        self._backoff = self.backoff_min
        self._retry_at = None
        return self._set_state(ConnectionState.CONNECTED)

    def failed(self) -> bool:
        """Record a failed handshake or poll."""
        state = self._state
        if state is ConnectionState.DISCONNECTED:
            return False

        self._failures += 1
        if state is ConnectionState.CONNECTING:
            self._schedule_retry()
            return self._set_state(ConnectionState.DISCONNECTED)
        if self._failures > self.failure_threshold:
            self._backoff = self.backoff_min
            self._schedule_retry()
            return self._set_state(ConnectionState.DISCONNECTED)
        return self._set_state(ConnectionState.DEGRADED)

    def _schedule_retry(self) -> None:
        delay = self._backoff
        self._retry_at = self._clock() + delay
        self._backoff = min(self._backoff * 2, self.backoff_max)
        _LOGGER.debug("Next connection attempt in %.1f s", delay)

    def _set_state(self, new_state: ConnectionState) -> bool:
        old_state = self._state
        if new_state not in _ALLOWED[old_state]:
            _LOGGER.debug("Ignoring transition %s -> %s", old_state.value, new_state.value)
            return False
        self._state = new_state
        if new_state is not old_state:
            _LOGGER.info(
                "Gateway connection %s -> %s", old_state.value, new_state.value
            )
        return old_state.is_connected != new_state.is_connected
