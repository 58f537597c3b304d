"""
World Architecture Map crawler implementation.

This module provides the crawler that pages through the building listings of
worldarchitecturemap.org, collects every building detail URL and extracts the
building information from each detail page. Page fetches run concurrently
through a bounded pool; a failed page or building is logged and skipped.
"""

import asyncio
import logging
from typing import List, Optional, Tuple

import aiohttp

from .constants import (
    BASE_URL, LETTERS, LETTER_PARAM, PAGE_PARAM,
    CONCURRENT_TASKS, REQUEST_TIMEOUT, MAX_PAGES, MAX_CONSECUTIVE_ERRORS,
    PROGRESS_INTERVAL, DEFAULT_HEADERS, ERROR_MESSAGES,
)
from .exceptions import (
    WamCrawlerError, TransportError, RequestTimeoutError, HTTPStatusError,
)
from .models import Building, CrawlFailure, CrawlResult
from .parser import BuildingDetailParser, ListingPageParser

# Configure logger
logger = logging.getLogger(__name__)


def add_query_param(url: str, name: str, value) -> str:
    """Append a query parameter, using ``&`` when the URL already has a query."""
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{name}={value}"


class WamCrawler:
    """Crawler for worldarchitecturemap.org."""

    def __init__(
        self,
        base_url: str = BASE_URL,
        concurrency: int = CONCURRENT_TASKS,
        timeout: float = REQUEST_TIMEOUT,
        max_pages: int = MAX_PAGES,
        max_consecutive_errors: int = MAX_CONSECUTIVE_ERRORS,
        progress_interval: int = PROGRESS_INTERVAL,
        deduplicate: bool = False,
        letters: Optional[List[str]] = None
    ):
        """
        Initialize World Architecture Map crawler.

        Args:
            base_url: Listing URL, also the prefix of every detail URL
            concurrency: Maximum number of requests in flight
            timeout: Request timeout in seconds
            max_pages: Maximum number of pages walked per listing
            max_consecutive_errors: Failed pages in a row that end a listing walk
            progress_interval: Number of extracted buildings between progress logs
            deduplicate: Whether to drop repeated detail URLs before extraction
            letters: Letters whose listings are walked, defaults to a-z
        """
        self.base_url = base_url
        self.concurrency = concurrency
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.max_pages = max_pages
        self.max_consecutive_errors = max_consecutive_errors
        self.progress_interval = progress_interval
        self.deduplicate = deduplicate
        self.letters = LETTERS if letters is None else letters
        self.semaphore = asyncio.Semaphore(concurrency)
        self.session = None

        logger.info(f"Initialized World Architecture Map crawler (concurrency={concurrency}, timeout={timeout}s)")

    async def _init_session(self):
        """Initialize aiohttp session if not already created."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(headers=DEFAULT_HEADERS)

    async def _close_session(self):
        """Close aiohttp session if open."""
        if self.session and not self.session.closed:
            await self.session.close()

    async def __aenter__(self):
        """Async context manager entry."""
        await self._init_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self._close_session()

    async def _fetch(self, url: str) -> Tuple[int, bytes]:
        """
        Fetch a URL through the bounded request pool.

        Args:
            url: URL to request

        Returns:
            Tuple of (HTTP status, response body)

        Raises:
            TransportError: If connection to the site fails
            RequestTimeoutError: If the request times out
        """
        await self._init_session()

        async with self.semaphore:
            logger.debug(f"Making GET request to {url}")
            try:
                async with self.session.get(url, timeout=self.timeout) as response:
                    body = await response.read()
                    return response.status, body
            except asyncio.TimeoutError as e:
                raise RequestTimeoutError(ERROR_MESSAGES["TIMEOUT_ERROR"], url) from e
            except aiohttp.ClientError as e:
                raise TransportError(f"{ERROR_MESSAGES['CONNECTION_ERROR']}: {e}", url) from e

    async def _get_page(self, url: str) -> bytes:
        """Fetch a page and reject any status other than 200 OK."""
        status, body = await self._fetch(url)
        if status != 200:
            raise HTTPStatusError(ERROR_MESSAGES["HTTP_ERROR"].format(status=status), status, url)
        return body

    async def parse_listing_page(self, page_url: str) -> List[str]:
        """
        Get the building detail URLs listed on one listing page.

        Args:
            page_url: URL of the listing page

        Returns:
            List of detail page URLs, empty when the page lists no buildings

        Raises:
            TransportError: If the page cannot be retrieved
            HTTPStatusError: If the response status is not 200
            ParsingError: If the page cannot be parsed
        """
        body = await self._get_page(page_url)
        return ListingPageParser(body, page_url, self.base_url).parse_links()

    async def walk_listing(self, base_url: str) -> List[str]:
        """
        Collect the detail URLs of every page of a listing.

        Page 1 is the listing URL itself; later pages add a ``currentpage``
        parameter. The walk ends at the first empty page after page 1. Failed
        pages are logged and the walk moves on to the next page, until
        ``max_consecutive_errors`` pages in a row have failed or ``max_pages``
        pages have been requested.

        Args:
            base_url: URL of the first listing page

        Returns:
            Detail URLs in discovery order
        """
        links = []
        consecutive_errors = 0
        page = 1

        while page <= self.max_pages:
            url = base_url if page == 1 else add_query_param(base_url, PAGE_PARAM, page)
            try:
                page_links = await self.parse_listing_page(url)
            except WamCrawlerError as e:
                consecutive_errors += 1
                logger.error(f"Error when parsing {url}: {e}")
                if consecutive_errors >= self.max_consecutive_errors:
                    logger.warning(f"Giving up on {base_url} after {consecutive_errors} consecutive failed pages")
                    return links
            else:
                consecutive_errors = 0
                if page > 1 and not page_links:
                    return links
                links.extend(page_links)
            page += 1

        logger.warning(f"Stopped {base_url} at the {self.max_pages} page limit")
        return links

    def listing_urls(self) -> List[str]:
        """Return the global listing URL followed by one listing URL per letter."""
        return [self.base_url] + [
            add_query_param(self.base_url, LETTER_PARAM, letter) for letter in self.letters
        ]

    async def discover_building_urls(self) -> List[str]:
        """
        Walk every listing and combine the detail URLs found.

        Listings are walked concurrently; results are merged in listing order.

        Returns:
            Combined list of detail URLs
        """
        logger.info("Starting to get all buildings urls")
        listings = self.listing_urls()
        results = await asyncio.gather(*(self.walk_listing(url) for url in listings))

        urls = []
        for listing, links in zip(listings, results):
            logger.info(f"Collected {len(links)} buildings urls from {listing}")
            urls.extend(links)

        if self.deduplicate:
            unique = list(dict.fromkeys(urls))
            logger.info(f"Dropped {len(urls) - len(unique)} duplicate buildings urls")
            urls = unique

        logger.info(f"Finished getting all the buildings urls. Total urls collected: {len(urls)}")
        return urls

    async def extract_building(self, url: str) -> Building:
        """
        Get the information of a single building.

        Args:
            url: Building detail page URL

        Returns:
            Extracted building

        Raises:
            TransportError: If the page cannot be retrieved
            HTTPStatusError: If the response status is not 200
            ParsingError: If the page cannot be parsed
            BuildingNotFoundError: If the URL does not correspond to a building
        """
        body = await self._get_page(url)
        return BuildingDetailParser(body, url).parse_building()

    async def extract_buildings(self, urls: List[str]) -> CrawlResult:
        """
        Extract every building concurrently, isolating failures per URL.

        Args:
            urls: Building detail page URLs

        Returns:
            Crawl result with the extracted buildings and the failed URLs
        """
        logger.info("Starting to download buildings information")
        total = len(urls)
        completed = 0

        async def extract(url: str):
            nonlocal completed
            try:
                return await self.extract_building(url)
            except WamCrawlerError as e:
                logger.error(f"Error when parsing {url}: {e}")
                return CrawlFailure(url=url, error=str(e))
            finally:
                completed += 1
                if completed % self.progress_interval == 0:
                    logger.info(f"Downloaded information from {completed}/{total} buildings")

        outcomes = await asyncio.gather(*(extract(url) for url in urls))

        result = CrawlResult(discovered=total)
        for outcome in outcomes:
            if isinstance(outcome, Building):
                result.buildings.append(outcome)
            else:
                result.failures.append(outcome)

        logger.info(f"Extracted {result.succeeded} buildings, {result.failed} failed")
        return result

    async def crawl(self) -> CrawlResult:
        """
        Run the full crawl: discover every detail URL, then extract each building.

        Returns:
            Crawl result with the extracted buildings and the failed URLs
        """
        urls = await self.discover_building_urls()
        return await self.extract_buildings(urls)


# Synchronous wrapper for convenience
class SyncWamCrawler:
    """Synchronous wrapper for WamCrawler."""

    def __init__(self, **kwargs):
        """Initialize with same parameters as async version."""
        self.crawler_params = kwargs

    def _run_async(self, coro):
        """Run coroutine in a new event loop."""
        return asyncio.run(self._run_with_crawler(coro))

    async def _run_with_crawler(self, coro):
        """Run coroutine with crawler context manager."""
        async with WamCrawler(**self.crawler_params) as crawler:
            return await coro(crawler)

    def crawl(self) -> CrawlResult:
        """Synchronous version of crawl."""
        return self._run_async(lambda crawler: crawler.crawl())

    def walk_listing(self, base_url: str) -> List[str]:
        """Synchronous version of walk_listing."""
        return self._run_async(lambda crawler: crawler.walk_listing(base_url))

    def extract_building(self, url: str) -> Building:
        """Synchronous version of extract_building."""
        return self._run_async(lambda crawler: crawler.extract_building(url))
