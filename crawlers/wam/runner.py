#!/usr/bin/env python3
"""
World Architecture Map crawl runner.

This script walks every building listing of worldarchitecturemap.org, extracts
each building and writes the result to a quoted comma-separated file.

Usage:
    python -m crawlers.wam.runner --output wam-export.csv

Environment Variables:
    WAM_SCRAPING_CONCURRENT_TASKS: Maximum number of requests in flight
    WAM_SCRAPING_REQUEST_TIMEOUT: Request timeout in seconds
    WAM_OUTPUT_PATH: Default export file
    WAM_LOG_LEVEL: Logging level
"""

import argparse
import logging
import sys
from typing import List, Optional

from archmap.core.config import settings

from .constants import LETTERS
from .crawler import SyncWamCrawler
from .exceptions import WriteError
from .exporter import export_buildings
from .models import CrawlResult

logger = logging.getLogger("wam_crawler")

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"{value} is not a positive integer")
    return number


def letter_list(value: str) -> List[str]:
    letters = list(value.lower())
    unknown = [letter for letter in letters if letter not in LETTERS]
    if unknown:
        raise argparse.ArgumentTypeError(f"not letters a-z: {''.join(unknown)}")
    return letters


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments, defaulting to the configured settings."""
    parser = argparse.ArgumentParser(description="Crawl worldarchitecturemap.org and export every building")
    parser.add_argument("--output", default=settings.OUTPUT_PATH, help="File the buildings are written to")
    parser.add_argument("--concurrency", type=positive_int, default=settings.SCRAPING_CONCURRENT_TASKS,
                        help="Maximum number of requests in flight")
    parser.add_argument("--timeout", type=positive_int, default=settings.SCRAPING_REQUEST_TIMEOUT,
                        help="Request timeout in seconds")
    parser.add_argument("--max-pages", type=positive_int, default=settings.MAX_PAGES,
                        help="Maximum number of pages walked per listing")
    parser.add_argument("--max-consecutive-errors", type=positive_int, default=settings.MAX_CONSECUTIVE_ERRORS,
                        help="Failed pages in a row that end a listing walk")
    parser.add_argument("--dedupe", action="store_true", default=settings.DEDUPLICATE,
                        help="Drop repeated building urls before extraction")
    parser.add_argument("--letters", type=letter_list, default=None,
                        help="Only walk the listings of these letters, e.g. 'abc'")
    parser.add_argument("--log-level", choices=LOG_LEVELS, default=settings.LOG_LEVEL, help="Logging level")
    return parser.parse_args(argv)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()]
    )


def run_crawl(args: argparse.Namespace) -> CrawlResult:
    """Run the crawl described by the parsed arguments."""
    crawler = SyncWamCrawler(
        base_url=settings.BASE_URL,
        concurrency=args.concurrency,
        timeout=args.timeout,
        max_pages=args.max_pages,
        max_consecutive_errors=args.max_consecutive_errors,
        progress_interval=settings.PROGRESS_INTERVAL,
        deduplicate=args.dedupe,
        letters=args.letters,
    )
    return crawler.crawl()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)

    result = run_crawl(args)
    logger.info(
        f"Crawl finished: {result.discovered} urls, {result.succeeded} buildings, {result.failed} failed"
    )

    try:
        export_buildings(result.buildings, args.output)
    except WriteError as e:
        logger.error(f"Unable to write buildings to a file: {e}")
        return 1

    logger.info("Job finished, exiting...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
