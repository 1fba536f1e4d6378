"""Thread-safe in-memory rate store."""

from __future__ import annotations

import dataclasses
import time
from decimal import Decimal, InvalidOperation
from threading import RLock

from .models import InstrumentRecord


def parse_decimal(raw: str | None) -> Decimal | None:
    """Locale-invariant decimal parse. Blank, malformed or non-finite text -> None."""
    if raw is None:
        return None
    text = raw.strip().replace(",", "")
    if not text or "_" in text:  # Decimal() accepts digit-group underscores
        return None
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


class RateStore:
    """Latest InstrumentRecord for each symbol seen on the stream.

    Writer: CanliDovizClient (from transport callbacks).
    Readers: event listeners and the client accessors, via immutable snapshots.

    The lock may be shared with the EventSurface so that applying a batch
    and notifying listeners happen under one mutual-exclusion domain.
    """

    def __init__(self, lock: RLock | None = None) -> None:
        self._records: dict[str, InstrumentRecord] = {}
        self._lock = lock or RLock()
        self._version: int = 0  # Monotonically increasing; bumped on every update

    def apply_update(
        self,
        symbol: str,
        raw_buy: str | None,
        raw_sell: str | None,
        raw_value: str | None = None,
        timestamp: float | None = None,
    ) -> InstrumentRecord:
        """Merge one parsed update into the record for ``symbol``. Returns the new snapshot.

        A side's change is 0 the first time that side is seen and
        ``new - old`` afterwards. Fields that are absent or unparseable keep
        their previous value. ``value`` is only taken while the record has
        never had a buy or sell price.
        """
        with self._lock:
            prev = self._records.get(symbol) or InstrumentRecord(symbol=symbol)
            changes: dict = {"last_update": timestamp or time.time()}

            buy = parse_decimal(raw_buy)
            if buy is not None:
                old = prev.buy_price
                changes["buy_price_change"] = buy - old if old is not None else Decimal(0)
                changes["buy_price"] = buy

            sell = parse_decimal(raw_sell)
            if sell is not None:
                old = prev.sell_price
                changes["sell_price_change"] = sell - old if old is not None else Decimal(0)
                changes["sell_price"] = sell

            has_buy = changes.get("buy_price", prev.buy_price) is not None
            has_sell = changes.get("sell_price", prev.sell_price) is not None
            if not has_buy and not has_sell:
                value = parse_decimal(raw_value)
                if value is not None:
                    changes["value"] = value

            record = dataclasses.replace(prev, **changes)
            self._records[symbol] = record
            self._version += 1
            return record

    def get(self, symbol: str) -> InstrumentRecord | None:
        """Get the latest record for a symbol, or None if never seen."""
        with self._lock:
            return self._records.get(symbol)

    def get_all(self) -> dict[str, InstrumentRecord]:
        """Snapshot of all current records. Returns a shallow copy."""
        with self._lock:
            return dict(self._records)

    def get_price(self, symbol: str) -> Decimal | None:
        """Convenience: buy price, falling back to sell price or single value."""
        record = self.get(symbol)
        if record is None:
            return None
        for candidate in (record.buy_price, record.sell_price, record.value):
            if candidate is not None:
                return candidate
        return None

    @property
    def version(self) -> int:
        """Current version counter. Bumped on every applied update."""
        return self._version

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, symbol: str) -> bool:
        with self._lock:
            return symbol in self._records
