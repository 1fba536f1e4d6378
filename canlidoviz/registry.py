"""Symbol registry: merges catalog output into decode and subscribe maps."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from .catalog import CatalogResolver
from .exceptions import CatalogError, CatalogResolutionError
from .models import Category

logger = logging.getLogger(__name__)

SUBSCRIBE_EVENT = "us"


@dataclass(frozen=True)
class ResolvedSymbols:
    """Result of a registry build. Read-only once streaming starts."""

    full_map: Mapping[int, str]  # every id we can decode
    send_map: Mapping[int, str]  # ids advertised in the subscribe request
    tags: tuple[str, ...] = ()
    failures: Mapping[Category, CatalogError] = field(default_factory=dict)


def merge_first_wins(target: dict[int, str], source: Mapping[int, str]) -> list[int]:
    """Copy ids from ``source`` that ``target`` doesn't have yet. Returns the ids added."""
    added = []
    for symbol_id, symbol in source.items():
        if symbol_id not in target:
            target[symbol_id] = symbol
            added.append(symbol_id)
    return added


def subscription_tags(categories: Category) -> tuple[str, ...]:
    return tuple(c.subscription_tag for c in categories.members() if c.subscription_tag)


def subscription_payload(resolved: ResolvedSymbols) -> dict:
    """Body of the ``us`` (update subscription) event."""
    return {
        "t": list(resolved.tags),
        "m": False,
        "c": list(resolved.send_map.values()),
    }


class SymbolRegistry:
    """Builds the id -> symbol maps used for decoding and subscribing.

    Currency and gold ids are streamed by the server by default and only
    need to be decodable. Stock and crypto ids must be listed explicitly in
    the subscribe request alongside their category tag.

    If ``symbol_map`` is given, catalog resolution is skipped and that map is
    used verbatim for both decoding and subscribing.
    """

    def __init__(
        self,
        resolver: CatalogResolver | None = None,
        symbol_map: Mapping[int, str] | None = None,
    ) -> None:
        self._resolver = resolver or CatalogResolver()
        self._symbol_map = dict(symbol_map) if symbol_map else None

    @property
    def uses_catalog(self) -> bool:
        return self._symbol_map is None

    async def build(self, categories: Category) -> ResolvedSymbols:
        """Resolve ``categories`` and merge them in catalog precedence order.

        A category that fails to resolve is recorded in ``failures`` and
        skipped. Raises CatalogResolutionError if nothing resolved.
        """
        tags = subscription_tags(categories)

        if self._symbol_map is not None:
            frozen = MappingProxyType(dict(self._symbol_map))
            logger.info("Using pre-built symbol map with %d symbols", len(frozen))
            return ResolvedSymbols(full_map=frozen, send_map=frozen, tags=tags)

        full: dict[int, str] = {}
        send: dict[int, str] = {}
        failures: dict[Category, CatalogError] = {}

        for category in categories.members():
            try:
                mapping = await self._resolver.resolve(category)
            except CatalogError as e:
                logger.warning("Catalog %s could not be resolved: %s", category.name, e)
                failures[category] = e
                continue

            added = merge_first_wins(full, mapping)
            if category.subscription_tag:
                for symbol_id in added:
                    send[symbol_id] = full[symbol_id]
            logger.debug("Catalog %s: %d new ids (%d total)", category.name, len(added), len(full))

        if not full:
            raise CatalogResolutionError(
                f"No symbols resolved for categories {categories!r}"
                + (f" ({len(failures)} failed)" if failures else "")
            )

        return ResolvedSymbols(
            full_map=MappingProxyType(full),
            send_map=MappingProxyType(send),
            tags=tags,
            failures=MappingProxyType(failures),
        )
