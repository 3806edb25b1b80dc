"""Exceptions for the homegateway library."""


class GatewayError(Exception):
    """Base exception for gateway errors."""


class GatewayConnectionError(GatewayError):
    """The gateway could not be reached."""


class GatewayTimeoutError(GatewayConnectionError):
    """The gateway did not answer within the request timeout."""


class GatewayParseError(GatewayError):
    """The gateway answered with a malformed JSONP envelope or payload."""


class GatewayHttpStatusError(GatewayError):
    """The gateway answered with a non-success HTTP status."""

    def __init__(self, status: int, message: str | None = None) -> None:
        super().__init__(message or f"Gateway returned HTTP status {status}")
        self.status = status


class GatewayValidationError(GatewayError):
    """A command value or device id was rejected before reaching the gateway."""


class GatewayConfigError(GatewayValidationError):
    """The configuration supplied by the host is invalid."""


class GatewayCommandError(GatewayError):
    """The gateway refused a command."""


class UnknownDeviceError(GatewayError):
    """A state path does not resolve to a known device."""


class HandshakeRejectedError(GatewayError):
    """The configured address does not answer as the expected gateway."""
