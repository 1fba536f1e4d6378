"""Abstract interface for the push-messaging transport."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

# Lifecycle events every transport must deliver through on()
CONNECT = "connect"
DISCONNECT = "disconnect"
CONNECT_ERROR = "connect_error"

Handler = Callable[..., Awaitable[None] | None]


class Transport(ABC):
    """Contract for a bidirectional event channel.

    The client registers its handlers once, then drives the connection.
    Handlers for CONNECT fire on every successful (re)connect, DISCONNECT
    when an established connection drops, CONNECT_ERROR when the server
    rejects or fails a connection attempt. Any other event name is a
    server-sent data event.

    Lifecycle:
        transport.on("connect", on_connect)
        transport.on("c", on_rates)
        await transport.connect("https://s.canlidoviz.com/")
        await transport.emit("us", {...})
        # ... stream runs ...
        await transport.disconnect()

    Reconnection is driven by the client, not the transport, so the client
    can count attempts and report exhaustion.
    """

    @abstractmethod
    def on(self, event: str, handler: Handler) -> None:
        """Register ``handler`` for ``event``. Handlers may be sync or async."""

    @abstractmethod
    async def connect(self, url: str) -> None:
        """Open the connection. Raises TransportError on failure."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the connection and release resources.

        Safe to call multiple times and when not connected.
        """

    @abstractmethod
    async def emit(self, event: str, data: Any) -> None:
        """Send an event to the server. Raises TransportError on failure."""

    @property
    @abstractmethod
    def sid(self) -> str | None:
        """Server-assigned session id of the current connection, if any."""

    @property
    @abstractmethod
    def connected(self) -> bool:
        """True while a connection is established."""
