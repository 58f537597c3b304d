"""
Tests for the World Architecture Map crawler.

This module contains tests for fetching, listing pagination, building
extraction and the full crawl, using a fake site behind a mocked transport.
"""

import asyncio
import logging
from typing import Dict, Tuple
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest
from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup

from crawlers.wam import (
    BASE_URL,
    Building,
    BuildingNotFoundError,
    CrawlResult,
    HTTPStatusError,
    RequestTimeoutError,
    SyncWamCrawler,
    TransportError,
    WamCrawler,
    format_buildings,
    parse_export,
)

from .pages import (
    FULL_DETAIL_PAGE, NONEXISTENT_DETAIL_PAGE, ARCHITECT_ROW, detail_page, listing_page,
)

LETTER_A_URL = f"{BASE_URL}?letter=a"


def fake_site(pages: Dict[str, str]):
    """
    Create a replacement for ``WamCrawler._fetch`` serving the given pages.

    Unknown URLs answer with a 404.
    """
    async def fetch(url: str) -> Tuple[int, bytes]:
        if url not in pages:
            return 404, b"Not Found"
        return 200, pages[url].encode("utf-8")
    return AsyncMock(side_effect=fetch)


def page_url(base: str, page: int) -> str:
    separator = "&" if "?" in base else "?"
    return f"{base}{separator}currentpage={page}"


def create_mock_session(status: int = 200, body: bytes = b"", error: Exception = None):
    """Create a mock aiohttp ClientSession answering every GET the same way."""
    mock_response = MagicMock()
    mock_response.status = status
    mock_response.read = AsyncMock(return_value=body)
    mock_response.__aenter__ = AsyncMock(return_value=mock_response)
    mock_response.__aexit__ = AsyncMock(return_value=None)

    mock_session = MagicMock()
    mock_session.closed = False
    mock_session.close = AsyncMock()
    if error is not None:
        mock_session.get = MagicMock(side_effect=error)
    else:
        mock_session.get = MagicMock(return_value=mock_response)
    return mock_session


class TestFetch:
    """Tests for the transport layer."""

    @pytest.mark.asyncio
    async def test_fetch_returns_status_and_body(self, crawler):
        crawler.session = create_mock_session(status=200, body=b"<html></html>")

        status, body = await crawler._fetch(BASE_URL)

        assert status == 200
        assert body == b"<html></html>"
        crawler.session.get.assert_called_once()
        assert crawler.session.get.call_args[0][0] == BASE_URL

    @pytest.mark.asyncio
    async def test_non_200_status(self, crawler):
        crawler.session = create_mock_session(status=503, body=b"Service Unavailable")

        with pytest.raises(HTTPStatusError) as exc_info:
            await crawler.parse_listing_page(BASE_URL)

        assert exc_info.value.status_code == 503
        assert "503" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_connection_error(self, crawler):
        crawler.session = create_mock_session(error=aiohttp.ClientConnectionError("refused"))

        with pytest.raises(TransportError) as exc_info:
            await crawler._fetch(BASE_URL)

        assert exc_info.value.url == BASE_URL

    @pytest.mark.asyncio
    async def test_timeout(self, crawler):
        crawler.session = create_mock_session(error=asyncio.TimeoutError())

        with pytest.raises(RequestTimeoutError):
            await crawler._fetch(BASE_URL)

    @pytest.mark.asyncio
    async def test_timeout_is_passed_to_requests(self):
        crawler = WamCrawler(timeout=7)
        crawler.session = create_mock_session(body=b"<html></html>")

        await crawler._fetch(BASE_URL)

        assert crawler.session.get.call_args.kwargs["timeout"].total == 7

    @pytest.mark.asyncio
    async def test_context_manager_closes_session(self):
        async with WamCrawler() as crawler:
            session = crawler.session
            assert not session.closed

        assert session.closed


class TestWalkListing:
    """Tests for listing pagination."""

    @pytest.mark.asyncio
    async def test_stops_at_first_empty_page(self, crawler):
        """Pages 1..P with links and an empty page P+1 take exactly P+1 fetches."""
        crawler._fetch = fake_site({
            BASE_URL: listing_page(["a1", "a2"]),
            page_url(BASE_URL, 2): listing_page(["b1", "b2"]),
            page_url(BASE_URL, 3): listing_page(["c1"]),
            page_url(BASE_URL, 4): listing_page([]),
        })

        links = await crawler.walk_listing(BASE_URL)

        assert links == [f"{BASE_URL}{slug}" for slug in ["a1", "a2", "b1", "b2", "c1"]]
        assert crawler._fetch.await_count == 4

    @pytest.mark.asyncio
    async def test_page_numbers_use_ampersand_after_query(self, crawler):
        crawler._fetch = fake_site({
            LETTER_A_URL: listing_page(["aalto"]),
            f"{LETTER_A_URL}&currentpage=2": listing_page([]),
        })

        links = await crawler.walk_listing(LETTER_A_URL)

        assert links == [f"{BASE_URL}aalto"]
        requested = [call.args[0] for call in crawler._fetch.await_args_list]
        assert requested == [LETTER_A_URL, f"{LETTER_A_URL}&currentpage=2"]

    @pytest.mark.asyncio
    async def test_empty_first_page_still_checks_second(self, crawler):
        crawler._fetch = fake_site({
            BASE_URL: listing_page([]),
            page_url(BASE_URL, 2): listing_page([]),
        })

        assert await crawler.walk_listing(BASE_URL) == []
        assert crawler._fetch.await_count == 2

    @pytest.mark.asyncio
    async def test_failed_page_does_not_end_walk(self, crawler):
        """An error is not the termination signal; the next page is requested."""
        crawler._fetch = fake_site({
            BASE_URL: listing_page(["a1"]),
            page_url(BASE_URL, 3): listing_page(["c1"]),
            page_url(BASE_URL, 4): listing_page([]),
        })

        links = await crawler.walk_listing(BASE_URL)

        assert links == [f"{BASE_URL}a1", f"{BASE_URL}c1"]
        assert crawler._fetch.await_count == 4

    @pytest.mark.asyncio
    async def test_gives_up_after_consecutive_errors(self, crawler):
        crawler._fetch = AsyncMock(side_effect=TransportError("refused", BASE_URL))

        links = await crawler.walk_listing(BASE_URL)

        assert links == []
        assert crawler._fetch.await_count == crawler.max_consecutive_errors

    @pytest.mark.asyncio
    async def test_rejected_markup_does_not_end_walk(self, crawler, caplog):
        crawler._fetch = fake_site({
            BASE_URL: listing_page(["a1"]),
            page_url(BASE_URL, 2): listing_page(["b1"]),
            page_url(BASE_URL, 3): listing_page([]),
        })
        parsed = []

        def soup(markup, features):
            parsed.append(markup)
            if len(parsed) == 1:
                raise ParserRejectedMarkup("unreadable markup")
            return BeautifulSoup(markup, features)

        with patch("crawlers.wam.parser.BeautifulSoup", side_effect=soup), caplog.at_level(logging.ERROR):
            links = await crawler.walk_listing(BASE_URL)

        assert links == [f"{BASE_URL}b1"]
        assert crawler._fetch.await_count == 3
        assert f"Error when parsing {BASE_URL}: " in caplog.text

    @pytest.mark.asyncio
    async def test_stops_at_page_limit(self):
        crawler = WamCrawler(max_pages=3)
        crawler._fetch = AsyncMock(return_value=(200, listing_page(["again"]).encode("utf-8")))

        links = await crawler.walk_listing(BASE_URL)

        assert len(links) == 3
        assert crawler._fetch.await_count == 3


class TestDiscovery:
    """Tests for combining the listings."""

    def test_listing_urls(self, crawler):
        urls = crawler.listing_urls()

        assert len(urls) == 27
        assert urls[0] == BASE_URL
        assert urls[1] == LETTER_A_URL
        assert urls[-1] == f"{BASE_URL}?letter=z"

    @pytest.mark.asyncio
    async def test_duplicates_are_kept(self):
        crawler = WamCrawler(letters=["a"])
        crawler._fetch = fake_site({
            BASE_URL: listing_page(["x", "y"]),
            page_url(BASE_URL, 2): listing_page([]),
            LETTER_A_URL: listing_page(["y", "z"]),
            page_url(LETTER_A_URL, 2): listing_page([]),
        })

        urls = await crawler.discover_building_urls()

        assert urls == [f"{BASE_URL}{slug}" for slug in ["x", "y", "y", "z"]]

    @pytest.mark.asyncio
    async def test_deduplicate(self):
        crawler = WamCrawler(letters=["a"], deduplicate=True)
        crawler._fetch = fake_site({
            BASE_URL: listing_page(["x", "y"]),
            page_url(BASE_URL, 2): listing_page([]),
            LETTER_A_URL: listing_page(["y", "z"]),
            page_url(LETTER_A_URL, 2): listing_page([]),
        })

        urls = await crawler.discover_building_urls()

        assert urls == [f"{BASE_URL}{slug}" for slug in ["x", "y", "z"]]


class TestExtraction:
    """Tests for building extraction and failure isolation."""

    @pytest.mark.asyncio
    async def test_extract_building(self, crawler):
        url = f"{BASE_URL}casa-batllo"
        crawler._fetch = fake_site({url: FULL_DETAIL_PAGE})

        building = await crawler.extract_building(url)

        assert building.name == "Casa Batlló"
        assert building.architect == "Antoni Gaudí"

    @pytest.mark.asyncio
    async def test_extract_nonexistent_building(self, crawler):
        url = f"{BASE_URL}casa-batlo"
        crawler._fetch = fake_site({url: NONEXISTENT_DETAIL_PAGE})

        with pytest.raises(BuildingNotFoundError):
            await crawler.extract_building(url)

    @pytest.mark.asyncio
    async def test_one_failure_in_fifty(self, crawler):
        """A transport error on one URL leaves the other 49 buildings."""
        urls = [f"{BASE_URL}building-{i}" for i in range(50)]
        pages = {url: detail_page(ARCHITECT_ROW, name=f"Building {i}") for i, url in enumerate(urls)}
        site = fake_site(pages)
        broken = urls[17]

        async def fetch(url):
            if url == broken:
                raise TransportError("Connection reset", url)
            return await site(url)

        crawler._fetch = AsyncMock(side_effect=fetch)

        result = await crawler.extract_buildings(urls)

        assert result.discovered == 50
        assert result.succeeded == 49
        assert result.failed == 1
        assert result.failures[0].url == broken
        assert "Connection reset" in result.failures[0].error
        assert {b.name for b in result.buildings} == {f"Building {i}" for i in range(50) if i != 17}

    @pytest.mark.asyncio
    async def test_requests_are_bounded_by_concurrency(self):
        """No more than ``concurrency`` requests are in flight at once."""
        crawler = WamCrawler(concurrency=2)
        crawler.session = create_mock_session()
        in_flight = 0
        peak = 0

        async def slow_read():
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return FULL_DETAIL_PAGE.encode("utf-8")

        crawler.session.get.return_value.read = AsyncMock(side_effect=slow_read)
        urls = [f"{BASE_URL}building-{i}" for i in range(10)]

        result = await crawler.extract_buildings(urls)

        assert result.succeeded == 10
        assert crawler.session.get.call_count == 10
        assert peak == 2

    @pytest.mark.asyncio
    async def test_http_errors_are_recorded(self, crawler):
        url = f"{BASE_URL}missing"
        crawler._fetch = fake_site({})

        result = await crawler.extract_buildings([url])

        assert result.buildings == []
        assert result.failures[0].url == url
        assert "404" in result.failures[0].error


class TestCrawl:
    """Tests for the full crawl."""

    @pytest.mark.asyncio
    async def test_crawl_excludes_nonexistent_buildings(self):
        crawler = WamCrawler(letters=["a"])
        crawler._fetch = fake_site({
            BASE_URL: listing_page(["casa-batllo", "casa-batlo"]),
            page_url(BASE_URL, 2): listing_page([]),
            LETTER_A_URL: listing_page([]),
            page_url(LETTER_A_URL, 2): listing_page([]),
            f"{BASE_URL}casa-batllo": FULL_DETAIL_PAGE,
            f"{BASE_URL}casa-batlo": NONEXISTENT_DETAIL_PAGE,
        })

        result = await crawler.crawl()

        assert result.discovered == 2
        assert [b.name for b in result.buildings] == ["Casa Batlló"]
        assert result.failures[0].url == f"{BASE_URL}casa-batlo"

        rows = parse_export(format_buildings(result.buildings))
        assert len(rows) == 1
        assert rows[0][0] == "Casa Batlló"

    def test_sync_crawler(self):
        """Test the synchronous wrapper functionality."""
        expected = CrawlResult(discovered=1, buildings=[Building(name="Fallingwater")])
        with patch.object(WamCrawler, "crawl", AsyncMock(return_value=expected)):
            result = SyncWamCrawler(concurrency=2).crawl()

        assert result == expected


# Integration Tests with real network requests
@pytest.mark.skipif("not config.getoption('--run-network-tests')", reason="Network tests disabled")
class TestIntegration:
    """Integration tests with real network requests."""

    def test_sync_walk_listing(self):
        crawler = SyncWamCrawler(max_pages=2)
        links = crawler.walk_listing(f"{BASE_URL}?letter=z")

        assert isinstance(links, list)
        assert all(link.startswith(BASE_URL) for link in links)

    def test_sync_extract_building(self):
        crawler = SyncWamCrawler(max_pages=1)
        links = crawler.walk_listing(f"{BASE_URL}?letter=z")
        if not links:
            pytest.skip("No buildings listed for letter z")

        building = crawler.extract_building(links[0])
        assert building.is_valid
