"""Streaming client for canlidoviz live quotes."""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Callable, Coroutine, Mapping
from threading import RLock
from types import MappingProxyType
from typing import Any

from .cache import RateStore
from .catalog import CatalogResolver
from .events import EventSurface, F
from .exceptions import CanliDovizError, TransportError, UnhandledTransportError
from .interface import CONNECT, CONNECT_ERROR, DISCONNECT, Transport
from .models import InstrumentRecord, LogEntry, LogLevel, Options
from .parser import normalize_batch, parse_token
from .registry import SUBSCRIBE_EVENT, ResolvedSymbols, SymbolRegistry, subscription_payload
from .transport import SocketIOTransport

logger = logging.getLogger(__name__)

RATES_EVENT = "c"


class SessionState(enum.Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    RECONNECTING = "reconnecting"
    TERMINATED = "terminated"


class CanliDovizClient:
    """Connects to the canlidoviz push stream and keeps per-symbol quote state.

    State machine:
        IDLE -> CONNECTING -> CONNECTED -> (DISCONNECTED -> RECONNECTING -> CONNECTED)* -> TERMINATED

    The client exclusively owns its RateStore and symbol maps. Listeners
    only ever receive immutable InstrumentRecord snapshots.

    Lifecycle:
        client = CanliDovizClient(Options(categories=Category.ALL))
        client.on_currency_changed(print)
        client.on_log(handle_log)
        await client.start()
        # ... stream runs ...
        await client.stop()

    ``await client.wait()`` blocks until the session ends and re-raises the
    UnhandledTransportError that ended it, if any.
    """

    def __init__(
        self,
        options: Options | None = None,
        symbol_map: Mapping[int, str] | None = None,
        transport: Transport | None = None,
        resolver: CatalogResolver | None = None,
    ) -> None:
        self._options = options or Options()
        self._lock = RLock()  # Shared by the store and the event surface
        self._events = EventSurface(self._lock)
        self._store = RateStore(self._lock)
        self._registry = SymbolRegistry(
            resolver or CatalogResolver(timeout=self._options.catalog_timeout),
            symbol_map,
        )
        self._transport = transport or SocketIOTransport()
        self._state = SessionState.IDLE
        self._symbols: ResolvedSymbols | None = None
        self._connected_once = False
        self._resolve_task: asyncio.Task | None = None
        self._reconnect_task: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()
        self._terminated = asyncio.Event()
        self._fatal_error: UnhandledTransportError | None = None

        self._transport.on(CONNECT, self._on_connect)
        self._transport.on(DISCONNECT, self._on_disconnect)
        self._transport.on(CONNECT_ERROR, self._on_connect_error)
        self._transport.on(RATES_EVENT, self._on_rates)

    # --- Public API ---

    @property
    def options(self) -> Options:
        return self._options

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def events(self) -> EventSurface:
        return self._events

    @property
    def store(self) -> RateStore:
        return self._store

    @property
    def symbols(self) -> Mapping[int, str]:
        """Read-only id -> symbol map used for decoding (empty before start)."""
        return self._symbols.full_map if self._symbols else MappingProxyType({})

    def on_currency_changed(self, callback: F) -> F:
        return self._events.on_currency_changed(callback)

    def on_log(self, callback: F) -> F:
        return self._events.on_log(callback)

    def on_reconnect_failed(self, callback: F) -> F:
        return self._events.on_reconnect_failed(callback)

    def off(self, callback: Callable[..., object]) -> None:
        self._events.off(callback)

    def records(self) -> dict[str, InstrumentRecord]:
        """Snapshot of every record received so far."""
        return self._store.get_all()

    def get(self, symbol: str) -> InstrumentRecord | None:
        return self._store.get(symbol)

    async def start(self) -> None:
        """Resolve symbols, then open the stream.

        Raises CatalogResolutionError if no configured category resolved.
        Raises UnhandledTransportError if the first connect fails and no
        on_log listener is registered.
        Transport failures are reported as log events and retried according
        to the reconnection options.
        """
        if self._state is not SessionState.IDLE:
            raise RuntimeError(f"Client already started (state={self._state.name})")
        self._state = SessionState.CONNECTING

        self._resolve_task = asyncio.create_task(
            self._registry.build(self._options.categories), name="canlidoviz-catalog"
        )
        try:
            self._symbols = await self._resolve_task
        except asyncio.CancelledError:
            if self._state is SessionState.TERMINATED:
                logger.info("Start aborted during catalog resolution")
                return
            raise
        except CanliDovizError:
            self._state = SessionState.TERMINATED
            self._terminated.set()
            raise
        finally:
            self._resolve_task = None

        for category, error in self._symbols.failures.items():
            self._report(LogLevel.WARNING, f"Catalog {category.name} unavailable: {error}", error)
        logger.info(
            "Resolved %d symbols (%d subscribed explicitly, tags=%s)",
            len(self._symbols.full_map),
            len(self._symbols.send_map),
            list(self._symbols.tags),
        )

        if self._state is SessionState.TERMINATED:
            return
        try:
            await self._transport.connect(self._options.host)
        except TransportError as e:
            if self._state is SessionState.TERMINATED:
                return
            try:
                self._report(LogLevel.ERROR, f"Error: {e}", e)
            except UnhandledTransportError as fatal:
                await self._fail(fatal)
                raise
            self._connection_lost()
            return
        if self._state is SessionState.TERMINATED:
            await self._transport.disconnect()

    async def stop(self) -> None:
        """Abort catalog resolution and reconnection, then close the transport.

        Safe to call multiple times. Handlers already running may finish;
        nothing new is scheduled afterwards.
        """
        if self._state is SessionState.TERMINATED:
            return
        self._state = SessionState.TERMINATED
        self._terminated.set()

        if self._resolve_task and not self._resolve_task.done():
            self._resolve_task.cancel()  # start() observes the cancellation

        task = self._reconnect_task
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._reconnect_task = None

        await self._transport.disconnect()
        logger.info("Client stopped")

    async def wait(self) -> None:
        """Block until the session is TERMINATED.

        Raises the UnhandledTransportError that ended the session, if an
        ERROR event found no on_log listener.
        """
        await self._terminated.wait()
        if self._fatal_error is not None:
            raise self._fatal_error

    # --- Transport callbacks ---

    def _on_connect(self) -> None:
        if self._state is SessionState.TERMINATED:
            return
        label = "Reconnected" if self._connected_once else "Connected"
        self._connected_once = True
        self._state = SessionState.CONNECTED
        self._report(LogLevel.INFO, f"{label} - Socket ID: {self._transport.sid}")
        # The server forgets subscriptions across connections
        self._spawn(self._send_subscription(), name="canlidoviz-subscribe")

    def _on_disconnect(self, reason: object = None) -> None:
        if self._state is SessionState.TERMINATED:
            return
        self._report(LogLevel.WARNING, f"Disconnected: {reason}" if reason else "Disconnected")
        self._connection_lost()

    def _on_connect_error(self, data: object = None) -> None:
        # Failed attempts are reported by whoever awaited connect()
        if self._state in (SessionState.TERMINATED, SessionState.CONNECTING, SessionState.RECONNECTING):
            return
        try:
            self._report(LogLevel.ERROR, f"Error: {data}")
        except UnhandledTransportError as fatal:
            self._fatal_error = fatal  # stop() may run before the task
            self._spawn(self._fail(fatal), name="canlidoviz-fail")
            raise

    def _on_rates(self, *args: Any) -> None:
        if self._state is SessionState.TERMINATED or self._symbols is None:
            return
        tokens = normalize_batch(args[0] if len(args) == 1 else list(args))
        symbol_map = self._symbols.full_map
        with self._lock:
            for token in tokens:
                update = parse_token(token, symbol_map)
                if update is None:
                    continue
                record = self._store.apply_update(
                    update.symbol, update.raw_buy, update.raw_sell, update.raw_value
                )
                self._events.emit_currency(record)

    # --- Internals ---

    async def _send_subscription(self) -> None:
        if self._symbols is None or self._state is SessionState.TERMINATED:
            return
        payload = subscription_payload(self._symbols)
        try:
            await self._transport.emit(SUBSCRIBE_EVENT, payload)
        except TransportError as e:
            if self._state is SessionState.TERMINATED:
                return
            try:
                self._report(LogLevel.ERROR, f"Subscription Error: {e}", e)
            except UnhandledTransportError as fatal:
                await self._fail(fatal)
            return
        logger.debug("Subscription sent: %d symbols, tags=%s", len(payload["c"]), payload["t"])

    def _connection_lost(self) -> None:
        if self._state is SessionState.TERMINATED:
            return
        self._state = SessionState.DISCONNECTED
        if not self._options.reconnection:
            return
        if self._reconnect_task is None or self._reconnect_task.done():
            self._reconnect_task = self._spawn(self._reconnect_loop(), name="canlidoviz-reconnect")

    async def _reconnect_loop(self) -> None:
        limit = self._options.reconnection_attempts
        attempts = 0
        while not limit or attempts < limit:
            await asyncio.sleep(self._options.reconnection_delay)
            if self._state is SessionState.TERMINATED:
                return
            attempts += 1
            self._state = SessionState.RECONNECTING
            logger.info("Reconnect attempt %d%s", attempts, f"/{limit}" if limit else "")
            try:
                await self._transport.connect(self._options.host)
            except TransportError as e:
                if self._state is SessionState.TERMINATED:
                    return
                self._state = SessionState.DISCONNECTED
                try:
                    self._report(LogLevel.ERROR, f"Reconnect Error: {e}", e)
                except UnhandledTransportError as fatal:
                    self._fatal_error = fatal
                    break
                continue
            if self._state is SessionState.TERMINATED:
                await self._transport.disconnect()
            return

        if self._fatal_error is not None:
            logger.error("Reconnection aborted after %d attempts: %s", attempts, self._fatal_error)
        else:
            logger.warning("Reconnection failed after %d attempts, giving up", attempts)
        self._state = SessionState.TERMINATED
        self._terminated.set()
        self._events.emit_reconnect_failed()
        await self._transport.disconnect()

    async def _fail(self, error: UnhandledTransportError) -> None:
        """End the session on an ERROR nobody listened for; wait() re-raises it."""
        self._fatal_error = self._fatal_error or error
        if self._state is SessionState.TERMINATED:
            return
        self._state = SessionState.TERMINATED
        self._terminated.set()
        task = self._reconnect_task
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
        await self._transport.disconnect()

    def _report(self, level: LogLevel, message: str, error: BaseException | None = None) -> None:
        """Mirror a diagnostic to the module logger and to on_log listeners.

        Errors nobody listens for would otherwise vanish, so they raise.
        """
        logger.log(level.logging_level, message)
        delivered = self._events.emit_log(LogEntry(level=level, message=message, error=error))
        if not delivered and level is LogLevel.ERROR:
            raise UnhandledTransportError(message) from error

    def _spawn(self, coro: Coroutine[Any, Any, None], name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Task %s failed", task.get_name(), exc_info=exc)
