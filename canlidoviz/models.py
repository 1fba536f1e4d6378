"""Data models for the quote stream."""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal

DEFAULT_HOST = "https://s.canlidoviz.com/"


class Category(enum.Flag):
    """Instrument catalogs that can be streamed. Combine with ``|``."""

    NONE = 0
    CURRENCY = 1
    GOLD = 2
    STOCK = 4
    CRYPTO = 8
    ALL = CURRENCY | GOLD | STOCK | CRYPTO

    @classmethod
    def parse(cls, text: str) -> Category:
        """Parse ``"currency,gold"`` / ``"all"`` style text into a Category."""
        result = cls.NONE
        for name in text.replace("|", ",").split(","):
            name = name.strip().upper()
            if not name:
                continue
            try:
                result |= cls[name]
            except KeyError:
                raise ValueError(f"Unknown category: {name!r}") from None
        return result

    @property
    def subscription_tag(self) -> str | None:
        """Tag the server needs in the subscribe request, or None if streamed by default."""
        return _SUBSCRIPTION_TAGS.get(self)

    def members(self) -> list[Category]:
        """Single-bit categories contained in this value, in catalog precedence order."""
        return [c for c in CATALOG_ORDER if c in self]


# Currency and gold are part of the server's default stream
_SUBSCRIPTION_TAGS: dict[Category, str] = {
    Category.STOCK: "STOCK",
    Category.CRYPTO: "COIN",
}

# Merge precedence for duplicate ids: first category wins
CATALOG_ORDER: tuple[Category, ...] = (
    Category.CURRENCY,
    Category.GOLD,
    Category.STOCK,
    Category.CRYPTO,
)


class LogLevel(enum.Enum):
    INFO = "Info"
    WARNING = "Warning"
    ERROR = "Error"

    @property
    def logging_level(self) -> int:
        return {
            LogLevel.INFO: logging.INFO,
            LogLevel.WARNING: logging.WARNING,
            LogLevel.ERROR: logging.ERROR,
        }[self]


@dataclass(frozen=True, slots=True)
class LogEntry:
    """Diagnostic event delivered to ``on_log`` listeners."""

    level: LogLevel
    message: str
    timestamp: float = field(default_factory=time.time)  # Unix seconds
    error: BaseException | None = None


@dataclass(frozen=True, slots=True)
class InstrumentRecord:
    """Immutable snapshot of one instrument's latest known quote.

    Instruments are quoted either as a buy/sell pair or as a single
    ``value``. Once a buy or sell price has been seen, ``value`` is never
    populated again for that symbol.
    """

    symbol: str
    buy_price: Decimal | None = None
    sell_price: Decimal | None = None
    buy_price_change: Decimal | None = None
    sell_price_change: Decimal | None = None
    value: Decimal | None = None
    last_update: float = field(default_factory=time.time)  # Unix seconds

    @property
    def has_quote(self) -> bool:
        """True if any price or value has been observed."""
        return self.buy_price is not None or self.sell_price is not None or self.value is not None

    @property
    def spread(self) -> Decimal | None:
        """Sell minus buy, or None unless both sides are known."""
        if self.buy_price is None or self.sell_price is None:
            return None
        return self.sell_price - self.buy_price

    def to_dict(self) -> dict:
        """Serialize for JSON / SSE transmission. Decimals are sent as strings."""

        def _s(v: Decimal | None) -> str | None:
            return None if v is None else str(v)

        return {
            "symbol": self.symbol,
            "buy_price": _s(self.buy_price),
            "sell_price": _s(self.sell_price),
            "buy_price_change": _s(self.buy_price_change),
            "sell_price_change": _s(self.sell_price_change),
            "value": _s(self.value),
            "spread": _s(self.spread),
            "last_update": self.last_update,
        }


@dataclass(frozen=True, slots=True)
class Options:
    """Session configuration. Fixed for the lifetime of a client."""

    reconnection: bool = True
    reconnection_delay: float = 1.0  # seconds between reconnect attempts
    reconnection_attempts: int = 5  # 0 = retry forever
    categories: Category = Category.CURRENCY
    host: str = DEFAULT_HOST
    catalog_timeout: float = 10.0  # seconds, per catalog page

    def __post_init__(self) -> None:
        if self.reconnection_delay < 0:
            raise ValueError("reconnection_delay must be >= 0")
        if self.reconnection_attempts < 0:
            raise ValueError("reconnection_attempts must be >= 0")
        if self.catalog_timeout <= 0:
            raise ValueError("catalog_timeout must be > 0")
