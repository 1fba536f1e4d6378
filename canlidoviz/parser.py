"""Parsing of inbound ``c`` batches.

A batch is a JSON array of tokens shaped ``"<id>|<buy>|<sell>"``, sometimes
wrapped in one extra array level. Garbled tokens and ids we did not resolve
are normal on this feed and are skipped without error.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

FIELD_SEPARATOR = "|"
MIN_PARTS = 3  # id, buy, sell


@dataclass(frozen=True, slots=True)
class PendingUpdate:
    """One decoded token, not yet merged into the store."""

    symbol_id: int
    symbol: str
    fields: tuple[str, ...]

    @property
    def raw_buy(self) -> str | None:
        return self.fields[0] if len(self.fields) > 0 else None

    @property
    def raw_sell(self) -> str | None:
        return self.fields[1] if len(self.fields) > 1 else None

    @property
    def raw_value(self) -> str | None:
        """Optional single-value slot after the buy/sell pair."""
        return self.fields[2] if len(self.fields) > 2 else None


def normalize_batch(payload: Any) -> list[str]:
    """Flatten a ``c`` payload into a list of tokens, preserving order.

    Accepts a flat list, a list nested at any depth (``[["a", "b"]]``), a
    single token, a JSON-encoded array, or the tuple of positional arguments
    a Socket.IO handler receives. Non-string leaves are dropped.
    """
    if isinstance(payload, str):
        stripped = payload.strip()
        if stripped.startswith("["):
            try:
                return normalize_batch(json.loads(stripped))
            except ValueError:
                return []
        return [payload]

    tokens: list[str] = []
    if isinstance(payload, (list, tuple)):
        for item in payload:
            if isinstance(item, str):
                tokens.append(item)
            elif isinstance(item, (list, tuple)):
                tokens.extend(normalize_batch(item))
    return tokens


def parse_token(token: str, symbol_map: Mapping[int, str]) -> PendingUpdate | None:
    """Decode one token, or return None if it is malformed or its id is unknown."""
    if not isinstance(token, str):
        return None
    parts = token.split(FIELD_SEPARATOR)
    if len(parts) < MIN_PARTS:
        return None
    try:
        symbol_id = int(parts[0].strip())
    except ValueError:
        return None
    symbol = symbol_map.get(symbol_id)
    if symbol is None:
        return None
    return PendingUpdate(symbol_id=symbol_id, symbol=symbol, fields=tuple(parts[1:]))
