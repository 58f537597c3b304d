"""
Constants and configuration settings for the World Architecture Map crawler.

This module contains base URLs, HTML selectors, detail-table labels and other
constants needed for scraping worldarchitecturemap.org.
"""

import string
from enum import Enum
from typing import List

# Base URLs
BASE_URL = "http://www.worldarchitecturemap.org/buildings/"
LISTING_URL = BASE_URL

# Query parameters used by the listing pages
LETTER_PARAM = "letter"
PAGE_PARAM = "currentpage"
LETTERS: List[str] = list(string.ascii_lowercase)

# HTML Selectors
class Selectors:
    # Listing page selectors
    BUILDINGS_TABLE = "#buildings-tbl"

    # Building detail page selectors
    BUILDING_INFO = ".building_info"
    BUILDING_NAME = "h1"
    BUILDING_INFO_TABLE = "#building_info_tbl"

# Fixed rows of the building info table
ARCHITECT_ROW = 0
GPS_ROW = 2
FIRST_LABELLED_ROW = 3


# Labels of the optional rows, in the order they appear on the page
class TableLabel(str, Enum):
    DATE = "Date"
    STYLE = "Style"
    TYPE = "Type"
    ALIAS = "Alias"
    NOTES = "Notes"

# Crawl limits
CONCURRENT_TASKS = 5
REQUEST_TIMEOUT = 30  # Seconds
MAX_PAGES = 1000  # Per listing
MAX_CONSECUTIVE_ERRORS = 5  # Per listing
PROGRESS_INTERVAL = 100

# Default headers to use in requests
DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Connection": "keep-alive",
}

# Export format
EXPORT_FIELDS = [
    "name",
    "architect",
    "city",
    "state",
    "country",
    "latitude",
    "longitude",
    "date",
    "style",
    "type",
    "alias",
    "notes",
]
EXPORT_SEPARATOR = ", "
DEFAULT_OUTPUT_FILE = "wam-export.csv"

# Error messages
ERROR_MESSAGES = {
    "CONNECTION_ERROR": "Failed to connect to worldarchitecturemap.org",
    "TIMEOUT_ERROR": "Request timed out while connecting to worldarchitecturemap.org",
    "HTTP_ERROR": "Unexpected response from the web. HTTP code: {status}",
    "PARSING_ERROR": "Failed to parse worldarchitecturemap.org response",
    "ROW_ERROR": "Could not parse a listing row",
    "BUILDING_NOT_FOUND": "The building doesn't exist",
    "WRITE_ERROR": "Unable to write buildings to {path}",
}
