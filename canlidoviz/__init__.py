"""Live quote streaming client for canlidoviz.com.

Public API:
    CanliDovizClient     - Stream session: connect, subscribe, reconnect, fan out updates
    Options, Category    - Session configuration and catalog selection
    InstrumentRecord     - Immutable per-symbol quote snapshot
    LogEntry, LogLevel   - Diagnostic events delivered to on_log listeners
    RateStore            - Thread-safe symbol -> record store
    CatalogResolver      - Fetches numeric id -> symbol catalogs
    SymbolRegistry       - Merges catalogs into decode/subscribe maps
    create_client        - Factory that reads CANLIDOVIZ_* environment settings
    create_stream_router - FastAPI router factory for the SSE endpoint
"""

from .cache import RateStore
from .catalog import CatalogResolver
from .client import CanliDovizClient, SessionState
from .exceptions import (
    CanliDovizError,
    CatalogError,
    CatalogFetchError,
    CatalogParseError,
    CatalogResolutionError,
    TransportError,
    UnhandledTransportError,
)
from .factory import create_client, options_from_env
from .models import Category, InstrumentRecord, LogEntry, LogLevel, Options
from .registry import ResolvedSymbols, SymbolRegistry
from .stream import create_stream_router

__all__ = [
    "CanliDovizClient",
    "SessionState",
    "Options",
    "Category",
    "InstrumentRecord",
    "LogEntry",
    "LogLevel",
    "RateStore",
    "CatalogResolver",
    "SymbolRegistry",
    "ResolvedSymbols",
    "create_client",
    "options_from_env",
    "create_stream_router",
    "CanliDovizError",
    "CatalogError",
    "CatalogFetchError",
    "CatalogParseError",
    "CatalogResolutionError",
    "TransportError",
    "UnhandledTransportError",
]
