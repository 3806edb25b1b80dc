"""JSONP transport for the gateway control API."""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any

import aiohttp

from .const import DEFAULT_REQUEST_TIMEOUT, ENDPOINT_CONTROL, JSONP_CALLBACK
from .exceptions import (
    GatewayConnectionError,
    GatewayHttpStatusError,
    GatewayParseError,
    GatewayTimeoutError,
)

_LOGGER = logging.getLogger(__name__)

_ENVELOPE = re.compile(r"^\s*([A-Za-z_$][\w$.]*)\((.*)\)\s*;?\s*$", re.DOTALL)


def unwrap_jsonp(body: str) -> Any:
    """Strip the ``identifier(...)`` wrapper and parse the JSON inside."""
    match = _ENVELOPE.match(body)
    if match is None:
        raise GatewayParseError("malformed envelope")
    try:
        return json.loads(match.group(2))
    except ValueError as err:
        raise GatewayParseError("invalid payload") from err


class JsonpTransport:
    """Issues control requests to the gateway and unwraps the JSONP answers.

    The transport knows nothing about devices; it turns a command and its
    parameters into a request and the answer into plain Python values.
    """

    def __init__(
        self,
        base_url: str,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        websession: aiohttp.ClientSession | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            base_url: Gateway address, e.g. ``http://192.168.1.20``
            request_timeout: Seconds before a request is abandoned
            websession: Optional aiohttp ClientSession. If not provided, one will be created.
        """
        self.base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=request_timeout)
        self._websession = websession
        self._own_session = websession is None

    @property
    def url(self) -> str:
        """Control endpoint of the gateway."""
        return f"{self.base_url}{ENDPOINT_CONTROL}"

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure a websession exists."""
        if self._websession is None:
            self._websession = aiohttp.ClientSession()
            self._own_session = True
        return self._websession

    async def close(self) -> None:
        """Close the session if it was created by the transport."""
        if self._own_session and self._websession:
            await self._websession.close()
            self._websession = None

    async def send(self, command: str, params: dict[str, Any] | None = None) -> Any:
        """Send a command and return the unwrapped payload."""
        session = await self._ensure_session()
        query = {"callback": JSONP_CALLBACK, "cmd": command}
        for key, value in (params or {}).items():
            query[key] = str(value)

        _LOGGER.debug("Sending %s to %s with %s", command, self.url, query)
        try:
            async with session.get(self.url, params=query, timeout=self._timeout) as response:
                if response.status >= 400:
                    raise GatewayHttpStatusError(response.status)
                body = await response.text(errors="replace")
        except GatewayHttpStatusError:
            raise
        except asyncio.TimeoutError as err:
            raise GatewayTimeoutError(f"Timeout while sending {command}") from err
        except aiohttp.ClientResponseError as err:
            raise GatewayHttpStatusError(err.status, f"Gateway error: {err}") from err
        except aiohttp.ClientError as err:
            raise GatewayConnectionError(f"Failed to connect to gateway: {err}") from err

        _LOGGER.debug("Response to %s: %s", command, body)
        return unwrap_jsonp(body)
