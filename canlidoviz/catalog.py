"""Catalog resolver: maps numeric stream ids to instrument symbols.

Each category has a public listing page on canlidoviz.com. Every instrument
row carries its symbol in ``span[itemprop=currency]@content`` and the numeric
id used on the push stream in the ``cid`` attribute of the price cell.
"""

from __future__ import annotations

import logging

import httpx
from bs4 import BeautifulSoup

from .exceptions import CatalogFetchError, CatalogParseError
from .models import Category

logger = logging.getLogger(__name__)

CATALOG_URLS: dict[Category, str] = {
    Category.CURRENCY: "https://canlidoviz.com/doviz-kurlari",
    Category.GOLD: "https://canlidoviz.com/altin-fiyatlari",
    Category.STOCK: "https://canlidoviz.com/borsa",
    Category.CRYPTO: "https://canlidoviz.com/kripto-paralar",
}

ROW_SELECTOR = 'tr[itemprop="itemListElement"]'
SYMBOL_SELECTOR = 'span[itemprop="currency"]'
ID_SELECTOR = 'td[itemprop="currentExchangeRate"] span[itemprop="price"]'


def parse_catalog(html: str | bytes) -> dict[int, str]:
    """Extract ``{cid: symbol}`` from a catalog page.

    Rows without a symbol or a numeric id are skipped. If the same id
    appears twice, the first row wins.

    Raises:
        CatalogParseError: the page has no catalog rows, or no row carries
            both a symbol and a numeric id.
    """
    soup = BeautifulSoup(html, "html.parser")
    rows = soup.select(ROW_SELECTOR)
    if not rows:
        raise CatalogParseError("No catalog rows found in page")

    mapping: dict[int, str] = {}
    for row in rows:
        symbol_tag = row.select_one(SYMBOL_SELECTOR)
        id_tag = row.select_one(ID_SELECTOR)
        symbol = (symbol_tag.get("content") or "").strip() if symbol_tag else ""
        cid = (id_tag.get("cid") or "").strip() if id_tag else ""
        if not symbol or not cid:
            continue
        try:
            symbol_id = int(cid)
        except ValueError:
            continue
        mapping.setdefault(symbol_id, symbol)
    if not mapping:
        raise CatalogParseError(f"None of {len(rows)} catalog rows carried a symbol and id")
    return mapping


class CatalogResolver:
    """Fetches and parses one catalog page per category.

    Stateless apart from its settings; every ``resolve()`` call performs one
    HTTP GET bounded by ``timeout`` seconds.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        urls: dict[Category, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout = timeout
        self._urls = dict(CATALOG_URLS if urls is None else urls)
        self._client = client  # Injected client is owned by the caller

    def url_for(self, category: Category) -> str:
        try:
            return self._urls[category]
        except KeyError:
            raise ValueError(f"No catalog page for {category!r}") from None

    async def resolve(self, category: Category) -> dict[int, str]:
        """Return ``{cid: symbol}`` for one single-bit category."""
        url = self.url_for(category)
        html = await self._fetch(category, url)
        try:
            mapping = parse_catalog(html)
        except CatalogParseError as e:
            raise CatalogParseError(f"{category.name}: {e}", category=category, url=url) from e
        logger.info("Catalog %s: resolved %d symbols", category.name, len(mapping))
        return mapping

    async def _fetch(self, category: Category, url: str) -> str:
        try:
            if self._client is not None:
                resp = await self._client.get(url, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
                    resp = await client.get(url)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise CatalogFetchError(
                f"{category.name}: failed to fetch {url}: {e}", category=category, url=url
            ) from e
        return resp.text
