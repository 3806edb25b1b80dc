"""Tests for data models."""

import pytest

from conftest import actuator, sensor
from homegateway.exceptions import GatewayValidationError
from homegateway.models import ConnectionState, rule_for, to_number


class TestToNumber:
    """Test numeric coercion."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(1, 1), (40.0, 40), ("21.5", 21.5), (" 3 ", 3), (True, 1)],
    )
    def test_numbers(self, value, expected):
        """Numbers and numeric strings are accepted."""
        result = to_number(value)
        assert result == expected
        assert type(result) is type(expected)

    @pytest.mark.parametrize("value", [None, "on", "nan", float("inf"), [1]])
    def test_not_numbers(self, value):
        """Everything else raises ValueError."""
        with pytest.raises(ValueError):
            to_number(value)


class TestValueRules:
    """Test the subtype validation table."""

    def test_switch(self):
        """Switches take 0 or 1."""
        rule = rule_for("switch")
        assert rule.validate(1) == 1
        with pytest.raises(GatewayValidationError):
            rule.validate(0.5)

    def test_dimmer(self):
        """Dimmers take 0 to 100."""
        rule = rule_for("dimmer")
        assert rule.validate("40") == 40
        with pytest.raises(GatewayValidationError):
            rule.validate(150)

    def test_unknown_subtype(self):
        """Subtypes without a rule take any number."""
        assert rule_for("thermostat").validate(-12.5) == -12.5

    def test_declared_range_wins(self):
        """A declared range overrides the subtype default."""
        assert rule_for("dimmer", (0, 255)).validate(200) == 200


class TestPaths:
    """Test state path naming."""

    def test_actuator_path(self):
        """Actuators map to a writable state."""
        device = actuator()
        assert device.value_path == "Actuators.Living Room Light.state"
        assert device.battery_path is None
        assert device.writable

    def test_sensor_paths(self):
        """Sensors map to a value and optionally a battery flag."""
        device = sensor(battery_low=False)
        assert device.value_path == "Sensors.Temperature Sensor.value"
        assert device.battery_path == "Sensors.Temperature Sensor.battery_low"
        assert not device.writable


def test_connection_flag():
    """Connected and degraded count as connected."""
    assert [s for s in ConnectionState if s.is_connected] == [
        ConnectionState.CONNECTED,
        ConnectionState.DEGRADED,
    ]
