"""
Pytest configuration for World Architecture Map tests.
"""

import pytest

from crawlers.wam import WamCrawler


def pytest_addoption(parser):
    """Add command-line options for tests."""
    parser.addoption(
        "--run-network-tests", action="store_true", default=False,
        help="Run tests that crawl the live worldarchitecturemap.org site"
    )


@pytest.fixture
def crawler():
    """Create a crawler with small limits so failing walks end quickly."""
    return WamCrawler(max_consecutive_errors=3, max_pages=10, progress_interval=10)
