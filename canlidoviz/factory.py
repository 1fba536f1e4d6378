"""Factory for creating configured clients."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping

from .client import CanliDovizClient
from .models import DEFAULT_HOST, Category, Options

logger = logging.getLogger(__name__)

ENV_PREFIX = "CANLIDOVIZ_"
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _env(environ: Mapping[str, str], name: str) -> str:
    return environ.get(ENV_PREFIX + name, "").strip()


def _parse_bool(name: str, raw: str) -> bool:
    lowered = raw.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"{ENV_PREFIX}{name}: expected a boolean, got {raw!r}")


def options_from_env(environ: Mapping[str, str] | None = None) -> Options:
    """Build Options from CANLIDOVIZ_* environment variables.

    - CANLIDOVIZ_RECONNECTION           true/false (default true)
    - CANLIDOVIZ_RECONNECTION_DELAY     seconds (default 1.0)
    - CANLIDOVIZ_RECONNECTION_ATTEMPTS  int, 0 = unlimited (default 5)
    - CANLIDOVIZ_CATEGORIES             e.g. "currency,gold" or "all" (default currency)
    - CANLIDOVIZ_HOST                   stream URL
    - CANLIDOVIZ_CATALOG_TIMEOUT        seconds per catalog page (default 10)

    Unset or blank variables fall back to the defaults.
    """
    env = os.environ if environ is None else environ
    kwargs: dict = {}

    raw = _env(env, "RECONNECTION")
    if raw:
        kwargs["reconnection"] = _parse_bool("RECONNECTION", raw)
    raw = _env(env, "RECONNECTION_DELAY")
    if raw:
        kwargs["reconnection_delay"] = float(raw)
    raw = _env(env, "RECONNECTION_ATTEMPTS")
    if raw:
        kwargs["reconnection_attempts"] = int(raw)
    raw = _env(env, "CATEGORIES")
    if raw:
        kwargs["categories"] = Category.parse(raw)
    raw = _env(env, "CATALOG_TIMEOUT")
    if raw:
        kwargs["catalog_timeout"] = float(raw)
    kwargs["host"] = _env(env, "HOST") or DEFAULT_HOST

    return Options(**kwargs)


def create_client(
    options: Options | None = None,
    symbol_map: Mapping[int, str] | None = None,
) -> CanliDovizClient:
    """Create an unstarted client.

    - options given     -> used as-is
    - otherwise         -> options_from_env()
    - symbol_map given  -> catalog pages are not fetched

    Caller must await client.start().
    """
    options = options or options_from_env()
    if symbol_map:
        logger.info("Symbol source: pre-built map (%d symbols)", len(symbol_map))
    else:
        logger.info("Symbol source: catalog pages for %s", options.categories)
    return CanliDovizClient(options=options, symbol_map=symbol_map)
