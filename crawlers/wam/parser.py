"""
HTML Parser for worldarchitecturemap.org.

This module provides parser classes for extracting building links from the
listing pages and building attributes from the detail pages using
BeautifulSoup.
"""

import logging
from typing import Dict, List, Optional, Tuple, Union

from bs4 import BeautifulSoup, Tag
from bs4.builder import ParserRejectedMarkup

from .constants import (
    BASE_URL, ERROR_MESSAGES, Selectors, TableLabel,
    ARCHITECT_ROW, GPS_ROW, FIRST_LABELLED_ROW,
)
from .exceptions import BuildingNotFoundError, ParsingError, RowParseError
from .models import Building

# Configure logger
logger = logging.getLogger(__name__)

# Optional rows after the GPS row: (label, field, value taken from the row's links)
LABELLED_FIELDS = [
    (TableLabel.DATE, "date", False),
    (TableLabel.STYLE, "style", True),
    (TableLabel.TYPE, "type", True),
    (TableLabel.ALIAS, "alias", False),
    (TableLabel.NOTES, "notes", False),
]


def get_string_in_between(text: str, start: str, end: str) -> str:
    """
    Return the substring between the first ``start`` and the next ``end``.

    Args:
        text: Text to search
        start: Opening delimiter
        end: Closing delimiter

    Returns:
        The enclosed substring, or an empty string if either delimiter is missing
    """
    begin = text.find(start)
    if begin == -1:
        return ""
    begin += len(start)
    finish = text.find(end, begin)
    if finish == -1:
        return ""
    return text[begin:finish]


def parse_coordinates(markup: str) -> Tuple[str, str]:
    """
    Extract latitude and longitude from the GPS row markup.

    The latitude is the first parenthesised value. The longitude is the first
    parenthesised value after the first comma. When a single pair of
    parentheses holds both coordinates they are split on the comma.

    Args:
        markup: Inner HTML of the GPS row

    Returns:
        Tuple of (latitude, longitude), empty strings when not found
    """
    latitude = get_string_in_between(markup, "(", ")")
    if "," in latitude:
        latitude, longitude = latitude.split(",", 1)
        return latitude.strip(), longitude.strip()

    comma = markup.find(",")
    if comma == -1:
        return latitude, ""
    return latitude, get_string_in_between(markup[comma:], "(", ")")


def _child_elements(element: Tag) -> List[Tag]:
    return element.find_all(recursive=False)


class BaseParser:
    """Base class for all World Architecture Map parsers."""

    def __init__(self, html_content: Union[str, bytes], url: Optional[str] = None):
        """
        Initialize the parser with HTML content.

        Args:
            html_content: Raw HTML content to parse
            url: URL the content was fetched from, used in error messages

        Raises:
            ParsingError: If the content cannot be turned into a document tree
        """
        self.url = url
        try:
            self.soup = BeautifulSoup(html_content, "html.parser")
        except ParserRejectedMarkup as e:
            logger.error(f"Could not parse {url}: {e}")
            raise ParsingError(ERROR_MESSAGES["PARSING_ERROR"], url) from e


class ListingPageParser(BaseParser):
    """Parser for the paginated building listing pages."""

    def __init__(
        self,
        html_content: Union[str, bytes],
        url: Optional[str] = None,
        base_url: str = BASE_URL
    ):
        super().__init__(html_content, url)
        self.base_url = base_url

    def parse_links(self) -> List[str]:
        """
        Parse building detail URLs from a listing page.

        The first row of the buildings table is the header and is skipped.
        Rows that cannot be parsed are logged and skipped.

        Returns:
            List of detail page URLs, empty when the page lists no buildings
        """
        table = self.soup.select_one(Selectors.BUILDINGS_TABLE)
        if table is None:
            logger.debug(f"No buildings table found on {self.url}")
            return []

        container = table.find(recursive=False)
        if container is None:
            return []
        # Markup without a row group keeps the rows directly under the table
        if container.name == "tr":
            container = table

        links = []
        for index, row in enumerate(_child_elements(container)):
            if index == 0:
                continue
            try:
                links.append(self._parse_row(row))
            except RowParseError as e:
                logger.warning(f"Could not parse a row on {self.url}: {e}")
        return links

    def _parse_row(self, row: Tag) -> str:
        """
        Build the detail URL for a single listing row.

        Args:
            row: Table row element

        Returns:
            Absolute detail page URL

        Raises:
            RowParseError: If the row has no cell or the cell has no quoted href
        """
        cell = row.find(recursive=False)
        if cell is None:
            raise RowParseError(ERROR_MESSAGES["ROW_ERROR"], self.url)

        href = get_string_in_between(cell.decode_contents(), '"', '"')
        if not href:
            raise RowParseError(ERROR_MESSAGES["ROW_ERROR"], self.url)

        return f"{self.base_url}{href}"


class BuildingDetailParser(BaseParser):
    """Parser for building detail pages."""

    def parse_building(self) -> Building:
        """
        Parse a building detail page.

        Returns:
            The extracted building

        Raises:
            BuildingNotFoundError: If the page has neither a name nor an architect
        """
        fields: Dict[str, str] = {}
        info = self.soup.select_one(Selectors.BUILDING_INFO)

        heading = info.find(Selectors.BUILDING_NAME) if info else None
        fields["name"] = heading.get_text() if heading else ""

        rows = self._info_rows(info)

        if rows:
            fields["architect"] = self._first_link_text(rows[ARCHITECT_ROW])
            fields.update(self._parse_location(rows[ARCHITECT_ROW]))

        fields.update(self._parse_gps(rows))
        fields.update(self._parse_labelled_rows(rows))

        building = Building(**fields)
        if not building.is_valid:
            raise BuildingNotFoundError(ERROR_MESSAGES["BUILDING_NOT_FOUND"], self.url)
        return building

    def _info_rows(self, info: Optional[Tag]) -> List[Tag]:
        if info is None:
            return []
        table = info.select_one(Selectors.BUILDING_INFO_TABLE)
        if table is None:
            return []
        body = table.find("tbody") or table
        return body.find_all("tr")

    @staticmethod
    def _first_link_text(row: Tag) -> str:
        link = row.find("a")
        return link.get_text() if link else ""

    @staticmethod
    def _parse_location(architect_row: Tag) -> Dict[str, str]:
        """Map the links of the row after the architect to city, state and country."""
        location = {"city": "", "state": "", "country": ""}
        location_row = architect_row.find_next_sibling("tr")
        if location_row is None:
            return location

        for field, link in zip(location, location_row.find_all("a")):
            location[field] = link.get_text()
        return location

    def _parse_gps(self, rows: List[Tag]) -> Dict[str, str]:
        if len(rows) <= GPS_ROW:
            logger.warning(f"Error parsing GPS HTML on {self.url}: no GPS row")
            return {"latitude": "", "longitude": ""}

        latitude, longitude = parse_coordinates(rows[GPS_ROW].decode_contents())
        return {"latitude": latitude, "longitude": longitude}

    @classmethod
    def _parse_labelled_rows(cls, rows: List[Tag]) -> Dict[str, str]:
        """
        Extract the optional rows following the GPS row.

        Each expected label is tested against the row under the cursor. A
        match consumes the row; a miss leaves the field empty and the same
        row is tested against the next label.
        """
        values = {}
        cursor = FIRST_LABELLED_ROW

        for label, field, from_links in LABELLED_FIELDS:
            row = rows[cursor] if cursor < len(rows) else None
            if row is None or cls._row_label(row) != label.value:
                values[field] = ""
                continue

            if from_links:
                values[field] = "".join(link.get_text() for link in row.find_all("a"))
            else:
                cells = _child_elements(row)
                values[field] = cells[1].get_text() if len(cells) > 1 else ""
            cursor += 1

        return values

    @staticmethod
    def _row_label(row: Tag) -> str:
        first_cell = row.find(recursive=False)
        return first_cell.get_text().strip() if first_cell else ""
