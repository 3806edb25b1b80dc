"""Constants for the homegateway library."""

# Control endpoint and JSONP callback identifier
ENDPOINT_CONTROL = "/control"
JSONP_CALLBACK = "x"

# Gateway commands
CMD_LIST_ACTUATORS = "get_list_actuators"
CMD_LIST_SENSORS = "get_list_sensors"
CMD_SET_STATE = "set_state"
CMD_PROTOCOL_INFO = "get_protocol_info"

# Response keys of the discovery commands
KEY_ACTUATORS = "actuator"
KEY_SENSORS = "sensor"

# Keys a sensor may use to report a low battery
BATTERY_LOW_KEYS = ("lowbat", "battery_low", "batteryLow")

# Host-facing state paths
PATH_ACTUATOR_STATE = "Actuators.{name}.state"
PATH_SENSOR_VALUE = "Sensors.{name}.value"
PATH_SENSOR_BATTERY_LOW = "Sensors.{name}.battery_low"
PATH_CONNECTION = "info.connection"

# Configuration defaults (seconds unless noted)
DEFAULT_POLL_INTERVAL = 15.0
DEFAULT_REQUEST_TIMEOUT = 5.0
DEFAULT_FAILURE_THRESHOLD = 3
DEFAULT_BACKOFF_MIN = 5.0
DEFAULT_BACKOFF_MAX = 300.0

# Reconnect delays of the push event listener
EVENT_BACKOFF = (5, 10, 30, 120, 300)

# Sensor subtype derived from the reported unit when no type is given
UNIT_SUBTYPE = {
    "°C": "temperature",
    "°F": "temperature",
    "C": "temperature",
    "%": "humidity",
    "lx": "illuminance",
    "W": "power",
    "kWh": "energy",
}
