"""Tests for the catalog resolver (HTTP mocked with httpx.MockTransport)."""

import httpx
import pytest

from canlidoviz.catalog import CATALOG_URLS, CatalogResolver, parse_catalog
from canlidoviz.exceptions import CatalogFetchError, CatalogParseError
from canlidoviz.models import Category


def _row(symbol: str | None, cid: str | None) -> str:
    symbol_html = f'<span itemprop="currency" content="{symbol}">{symbol}</span>' if symbol is not None else ""
    cid_attr = f' cid="{cid}"' if cid is not None else ""
    return (
        '<tr itemprop="itemListElement">'
        f"<td>{symbol_html}</td>"
        '<td itemprop="currentExchangeRate">'
        f'<span itemprop="price"{cid_attr}>34.50</span>'
        "</td></tr>"
    )


def _page(*rows: str) -> str:
    return f"<html><body><table>{''.join(rows)}</table></body></html>"


CURRENCY_PAGE = _page(_row("USD", "101"), _row("EUR", "102"), _row("GBP", "103"))


class TestParseCatalog:
    """Unit tests for parse_catalog."""

    def test_extracts_rows(self):
        assert parse_catalog(CURRENCY_PAGE) == {101: "USD", 102: "EUR", 103: "GBP"}

    def test_row_missing_symbol_skipped(self):
        page = _page(_row("USD", "101"), _row(None, "102"))
        assert parse_catalog(page) == {101: "USD"}

    def test_row_missing_cid_skipped(self):
        page = _page(_row("USD", "101"), _row("EUR", None))
        assert parse_catalog(page) == {101: "USD"}

    def test_blank_attributes_skipped(self):
        page = _page(_row("", "101"), _row("EUR", ""), _row("GBP", "103"))
        assert parse_catalog(page) == {103: "GBP"}

    def test_non_numeric_cid_skipped(self):
        page = _page(_row("USD", "abc"), _row("EUR", "102"))
        assert parse_catalog(page) == {102: "EUR"}

    def test_duplicate_cid_first_wins(self):
        page = _page(_row("USD", "101"), _row("USD2", "101"))
        assert parse_catalog(page) == {101: "USD"}

    def test_price_outside_rate_cell_ignored(self):
        """The id must come from the currentExchangeRate cell."""
        row = (
            '<tr itemprop="itemListElement">'
            '<td><span itemprop="currency" content="USD">USD</span></td>'
            '<td><span itemprop="price" cid="101">1</span></td>'
            "</tr>"
        )
        assert parse_catalog(_page(row, _row("EUR", "102"))) == {102: "EUR"}
        with pytest.raises(CatalogParseError):
            parse_catalog(_page(row))

    def test_no_rows_raises(self):
        with pytest.raises(CatalogParseError):
            parse_catalog("<html><body><p>maintenance</p></body></html>")

    def test_rows_without_anchors_raise(self):
        """Rows are present but the id moved to another attribute."""
        row = (
            '<tr itemprop="itemListElement">'
            '<td><span itemprop="currency" content="USD">USD</span></td>'
            '<td itemprop="currentExchangeRate"><span itemprop="price" data-id="101">34.50</span></td>'
            "</tr>"
        )
        with pytest.raises(CatalogParseError, match="None of 2 catalog rows"):
            parse_catalog(_page(row, row.replace("USD", "EUR")))

    def test_bytes_input(self):
        assert parse_catalog(CURRENCY_PAGE.encode()) == {101: "USD", 102: "EUR", 103: "GBP"}


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
class TestCatalogResolver:
    """Unit tests for CatalogResolver with mocked HTTP."""

    async def test_resolve_fetches_category_page(self):
        requested = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            return httpx.Response(200, text=CURRENCY_PAGE)

        async with _client(handler) as client:
            resolver = CatalogResolver(client=client)
            result = await resolver.resolve(Category.CURRENCY)

        assert result == {101: "USD", 102: "EUR", 103: "GBP"}
        assert requested == [CATALOG_URLS[Category.CURRENCY]]

    async def test_each_category_has_its_own_page(self):
        requested = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            return httpx.Response(200, text=CURRENCY_PAGE)

        async with _client(handler) as client:
            resolver = CatalogResolver(client=client)
            for category in Category.ALL.members():
                await resolver.resolve(category)

        assert requested == [
            "https://canlidoviz.com/doviz-kurlari",
            "https://canlidoviz.com/altin-fiyatlari",
            "https://canlidoviz.com/borsa",
            "https://canlidoviz.com/kripto-paralar",
        ]

    async def test_custom_urls(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert str(request.url) == "https://example.test/gold"
            return httpx.Response(200, text=_page(_row("GA", "201")))

        async with _client(handler) as client:
            resolver = CatalogResolver(urls={Category.GOLD: "https://example.test/gold"}, client=client)
            assert await resolver.resolve(Category.GOLD) == {201: "GA"}

    async def test_http_error_status(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="unavailable")

        async with _client(handler) as client:
            resolver = CatalogResolver(client=client)
            with pytest.raises(CatalogFetchError) as exc_info:
                await resolver.resolve(Category.STOCK)

        assert exc_info.value.category == Category.STOCK
        assert exc_info.value.url == CATALOG_URLS[Category.STOCK]

    async def test_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            resolver = CatalogResolver(client=client)
            with pytest.raises(CatalogFetchError):
                await resolver.resolve(Category.CURRENCY)

    async def test_page_without_rows(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html></html>")

        async with _client(handler) as client:
            resolver = CatalogResolver(client=client)
            with pytest.raises(CatalogParseError) as exc_info:
                await resolver.resolve(Category.CRYPTO)

        assert exc_info.value.category == Category.CRYPTO

    async def test_unknown_category(self):
        resolver = CatalogResolver()
        with pytest.raises(ValueError):
            await resolver.resolve(Category.ALL)
