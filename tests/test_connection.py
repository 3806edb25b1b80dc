"""Tests for the connection state machine."""

import pytest

from homegateway.connection import ConnectionManager
from homegateway.models import ConnectionState


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def manager(clock):
    return ConnectionManager(failure_threshold=2, backoff_min=5, backoff_max=20, clock=clock)


def connect(manager):
    manager.connecting()
    return manager.succeeded()


class TestTransitions:
    """Test state transitions and the connection flag."""

    def test_initial_state(self, manager):
        """A new manager is disconnected and may connect right away."""
        assert manager.state is ConnectionState.DISCONNECTED
        assert not manager.connected
        assert manager.ready_to_connect()

    def test_connect(self, manager):
        """Connecting then succeeding flips the flag once."""
        assert manager.connecting() is False
        assert manager.state is ConnectionState.CONNECTING
        assert manager.succeeded() is True
        assert manager.state is ConnectionState.CONNECTED
        assert manager.succeeded() is False

    def test_failures_until_disconnected(self, manager):
        """Failures degrade first and disconnect past the threshold."""
        connect(manager)
        flips = []
        states = []
        for _ in range(3):
            flips.append(manager.failed())
            states.append(manager.state)
        assert states == [
            ConnectionState.DEGRADED,
            ConnectionState.DEGRADED,
            ConnectionState.DISCONNECTED,
        ]
        assert flips == [False, False, True]

    def test_degraded_recovers(self, manager):
        """A success while degraded reconnects without touching the flag."""
        connect(manager)
        manager.failed()
        assert manager.connected
        assert manager.succeeded() is False
        assert manager.state is ConnectionState.CONNECTED
        assert manager.failures == 0

    def test_handshake_failure(self, manager):
        """A failed attempt goes back to disconnected without a flag change."""
        manager.connecting()
        assert manager.failed() is False
        assert manager.state is ConnectionState.DISCONNECTED

    def test_disconnected_ignores_results(self, manager):
        """Results arriving while disconnected change nothing."""
        assert manager.failed() is False
        assert manager.succeeded() is False
        assert manager.state is ConnectionState.DISCONNECTED


class TestBackoff:
    """Test the reconnect schedule."""

    def test_escalates_and_caps(self, manager, clock):
        """Each failed attempt doubles the delay up to the maximum."""
        delays = []
        for _ in range(4):
            manager.connecting()
            manager.failed()
            delays.append(manager.retry_at - clock.now)
            assert not manager.ready_to_connect()
            clock.now = manager.retry_at
            assert manager.ready_to_connect()
        assert delays == [5, 10, 20, 20]

    def test_resets_after_connection_loss(self, manager, clock):
        """Losing an established connection starts again at the minimum."""
        manager.connecting()
        manager.failed()
        clock.now = manager.retry_at
        connect(manager)
        for _ in range(3):
            manager.failed()
        assert manager.retry_at - clock.now == 5

        clock.now = manager.retry_at
        manager.connecting()
        manager.failed()
        assert manager.retry_at - clock.now == 10


def test_reset(manager, clock):
    """Reset returns to a fresh disconnected state."""
    connect(manager)
    for _ in range(3):
        manager.failed()
    manager.reset()
    assert manager.state is ConnectionState.DISCONNECTED
    assert manager.failures == 0
    assert manager.retry_in() is None
    assert manager.ready_to_connect()
