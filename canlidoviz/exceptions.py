"""Exception hierarchy for the canlidoviz client."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Category


class CanliDovizError(Exception):
    """Base exception for the canlidoviz client."""


class CatalogError(CanliDovizError):
    """A single catalog page could not be resolved."""

    def __init__(self, message: str, category: Category | None = None, url: str | None = None):
        super().__init__(message)
        self.category = category
        self.url = url


class CatalogFetchError(CatalogError):
    """Raised when a catalog page cannot be downloaded (network error or non-2xx)."""


class CatalogParseError(CatalogError):
    """Raised when a catalog page contains no instrument rows at all."""


class CatalogResolutionError(CanliDovizError):
    """Raised when no configured category resolved to any symbol."""


class TransportError(CanliDovizError):
    """Raised by a transport when connecting or sending fails."""


class UnhandledTransportError(CanliDovizError):
    """A transport error occurred and no ``on_log`` listener was registered to receive it."""
