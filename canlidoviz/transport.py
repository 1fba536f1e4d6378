"""Socket.IO transport backed by python-socketio's asyncio client."""

from __future__ import annotations

import logging
from typing import Any

import socketio
from socketio import exceptions as sio_exceptions

from .exceptions import TransportError
from .interface import Handler, Transport

logger = logging.getLogger(__name__)


class SocketIOTransport(Transport):
    """Transport over Socket.IO (Engine.IO v4) using the WebSocket transport only.

    python-socketio's built-in reconnection is disabled: it gives no signal
    when it runs out of attempts, so CanliDovizClient runs the retry loop.
    """

    def __init__(self, transports: tuple[str, ...] = ("websocket",), wait_timeout: float = 10.0) -> None:
        self._transports = list(transports)
        self._wait_timeout = wait_timeout
        self._sio = socketio.AsyncClient(reconnection=False, logger=False, engineio_logger=False)

    def on(self, event: str, handler: Handler) -> None:
        self._sio.on(event, handler)

    async def connect(self, url: str) -> None:
        try:
            await self._sio.connect(url, transports=self._transports, wait_timeout=self._wait_timeout)
        except sio_exceptions.ConnectionError as e:
            raise TransportError(f"Connection to {url} failed: {e}") from e
        logger.debug("Socket.IO connected to %s (sid=%s)", url, self._sio.sid)

    async def disconnect(self) -> None:
        if not self._sio.connected:
            return
        await self._sio.disconnect()

    async def emit(self, event: str, data: Any) -> None:
        try:
            await self._sio.emit(event, data)
        except sio_exceptions.SocketIOError as e:
            raise TransportError(f"Emit of {event!r} failed: {e}") from e

    @property
    def sid(self) -> str | None:
        return self._sio.sid

    @property
    def connected(self) -> bool:
        return bool(self._sio.connected)
