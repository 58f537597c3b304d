"""
World Architecture Map Crawler Package

This package provides functionality for crawling worldarchitecturemap.org,
collecting every building detail page from the alphabetical listings and
extracting the building information into flat records.

Main components:
- WamCrawler: Asynchronous crawler for worldarchitecturemap.org
- SyncWamCrawler: Synchronous wrapper around WamCrawler
- ListingPageParser: Parser for the building listing pages
- BuildingDetailParser: Parser for building detail pages
- export_buildings: Writer for the quoted comma-separated export

Usage:
    from crawlers.wam import SyncWamCrawler, export_buildings

    result = SyncWamCrawler(concurrency=5).crawl()
    export_buildings(result.buildings, "wam-export.csv")

    # Or using the async version with an async context manager
    async with WamCrawler() as crawler:
        result = await crawler.crawl()
"""

__version__ = "0.1.0"

# Import main components for easier access
from .crawler import WamCrawler, SyncWamCrawler

from .parser import (
    ListingPageParser,
    BuildingDetailParser,
    get_string_in_between,
    parse_coordinates,
)

from .exporter import export_buildings, format_buildings, parse_export

from .models import Building, CrawlFailure, CrawlResult

from .exceptions import (
    WamCrawlerError,
    TransportError,
    RequestTimeoutError,
    HTTPStatusError,
    ParsingError,
    RowParseError,
    BuildingNotFoundError,
    WriteError,
)

from .constants import (
    BASE_URL,
    LISTING_URL,
    LETTERS,
    REQUEST_TIMEOUT,
    CONCURRENT_TASKS,
    EXPORT_FIELDS,
    Selectors,
    TableLabel,
)

# Define public API
__all__ = [
    "WamCrawler",
    "SyncWamCrawler",
    "ListingPageParser",
    "BuildingDetailParser",
    "get_string_in_between",
    "parse_coordinates",
    "export_buildings",
    "format_buildings",
    "parse_export",
    "Building",
    "CrawlFailure",
    "CrawlResult",
    "WamCrawlerError",
    "TransportError",
    "RequestTimeoutError",
    "HTTPStatusError",
    "ParsingError",
    "RowParseError",
    "BuildingNotFoundError",
    "WriteError",
    "BASE_URL",
    "LISTING_URL",
    "LETTERS",
    "REQUEST_TIMEOUT",
    "CONCURRENT_TASKS",
    "EXPORT_FIELDS",
    "Selectors",
    "TableLabel",
]
