"""Fixtures for stream client tests.

FakeTransport stands in for the Socket.IO connection: it records emitted
events and lets a test fire server-side events (connect, disconnect, ``c``
batches) at the client. FakeResolver returns canned catalogs.
"""

import asyncio
import inspect

import pytest

from canlidoviz.exceptions import CatalogFetchError, TransportError
from canlidoviz.interface import Transport
from canlidoviz.models import Category


class FakeTransport(Transport):
    def __init__(self) -> None:
        self.handlers: dict = {}
        self.emitted: list[tuple[str, object]] = []
        self.connect_calls = 0
        self.disconnect_calls = 0
        self.fail_connects = 0  # Number of upcoming connect() calls that fail
        self.fail_emit = False
        self.url: str | None = None
        self._connected = False
        self._sessions = 0

    def on(self, event, handler) -> None:
        self.handlers[event] = handler

    async def connect(self, url: str) -> None:
        self.connect_calls += 1
        self.url = url
        if self.fail_connects:
            self.fail_connects -= 1
            raise TransportError("connection refused")
        self._connected = True
        self._sessions += 1
        await self.fire("connect")

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        was_connected = self._connected
        self._connected = False
        if was_connected:
            await self.fire("disconnect", "client disconnect")

    async def emit(self, event, data) -> None:
        if self.fail_emit:
            raise TransportError("not connected")
        self.emitted.append((event, data))

    async def fire(self, event, *args) -> None:
        handler = self.handlers.get(event)
        if handler is None:
            return
        result = handler(*args)
        if inspect.isawaitable(result):
            await result

    async def drop(self, reason: str = "transport close") -> None:
        """Simulate the server side closing the connection."""
        self._connected = False
        await self.fire("disconnect", reason)

    def subscriptions(self) -> list:
        return [data for event, data in self.emitted if event == "us"]

    @property
    def sid(self):
        return f"sid-{self._sessions}" if self._connected else None

    @property
    def connected(self) -> bool:
        return self._connected


class FakeResolver:
    def __init__(self, catalogs: dict) -> None:
        self.catalogs = catalogs  # Category -> mapping or exception
        self.calls: list[Category] = []

    async def resolve(self, category):
        self.calls.append(category)
        result = self.catalogs.get(category)
        if result is None:
            raise CatalogFetchError(f"{category.name}: unavailable", category=category)
        if isinstance(result, Exception):
            raise result
        return dict(result)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def resolver():
    return FakeResolver(
        {
            Category.CURRENCY: {101: "USD", 102: "EUR"},
            Category.GOLD: {201: "GA"},
            Category.STOCK: {301: "THYAO", 101: "DUPLICATE"},
            Category.CRYPTO: {401: "BTC"},
        }
    )


@pytest.fixture
def settle():
    """Let spawned tasks (subscription sends, reconnect loops) run."""

    async def _settle(rounds: int = 10) -> None:
        for _ in range(rounds):
            await asyncio.sleep(0)

    return _settle
