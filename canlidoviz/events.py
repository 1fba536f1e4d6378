"""Observer registry for the client's public events."""

from __future__ import annotations

import logging
from collections.abc import Callable
from threading import RLock
from typing import TypeVar

from .models import InstrumentRecord, LogEntry

logger = logging.getLogger(__name__)

CurrencyListener = Callable[[InstrumentRecord], object]
LogListener = Callable[[LogEntry], object]
ReconnectFailedListener = Callable[[], object]

F = TypeVar("F", bound=Callable[..., object])


class EventSurface:
    """Fan-out of currency, log and reconnect-failed events.

    Every registered listener receives every event, in registration order.
    A listener that raises is logged and skipped; the rest still run.
    """

    def __init__(self, lock: RLock | None = None) -> None:
        self._lock = lock or RLock()
        self._currency: list[CurrencyListener] = []
        self._log: list[LogListener] = []
        self._reconnect_failed: list[ReconnectFailedListener] = []

    # --- Registration ---

    def on_currency_changed(self, callback: F) -> F:
        """Register a listener for updated InstrumentRecords. Usable as a decorator."""
        with self._lock:
            self._currency.append(callback)
        return callback

    def on_log(self, callback: F) -> F:
        """Register a listener for LogEntry diagnostics. Usable as a decorator."""
        with self._lock:
            self._log.append(callback)
        return callback

    def on_reconnect_failed(self, callback: F) -> F:
        """Register a listener called once when reconnection gives up."""
        with self._lock:
            self._reconnect_failed.append(callback)
        return callback

    def off(self, callback: Callable[..., object]) -> None:
        """Remove ``callback`` from every event it is registered for. No-op if absent."""
        with self._lock:
            for listeners in (self._currency, self._log, self._reconnect_failed):
                while callback in listeners:
                    listeners.remove(callback)

    @property
    def has_log_listeners(self) -> bool:
        with self._lock:
            return bool(self._log)

    # --- Emission ---

    def emit_currency(self, record: InstrumentRecord) -> None:
        self._dispatch(self._currency, "currency", record)

    def emit_log(self, entry: LogEntry) -> bool:
        """Deliver a log entry. Returns False if nobody is listening."""
        return self._dispatch(self._log, "log", entry)

    def emit_reconnect_failed(self) -> None:
        self._dispatch(self._reconnect_failed, "reconnect-failed")

    def _dispatch(self, listeners: list, name: str, *args: object) -> bool:
        with self._lock:
            snapshot = list(listeners)
            for listener in snapshot:
                try:
                    listener(*args)
                except Exception:
                    logger.exception("%s listener %r failed", name, listener)
        return bool(snapshot)
