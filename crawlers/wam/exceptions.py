"""Custom exceptions for the World Architecture Map crawler."""

from typing import Optional


class WamCrawlerError(Exception):
    """Base exception for World Architecture Map crawler errors."""

    def __init__(self, message: str, url: Optional[str] = None):
        """Initialize with error message and the URL being processed."""
        self.url = url
        super().__init__(message)


class TransportError(WamCrawlerError):
    """Exception raised when a page cannot be retrieved."""
    pass


class RequestTimeoutError(TransportError):
    """Exception raised when a request times out."""
    pass


class HTTPStatusError(WamCrawlerError):
    """Exception raised when the site answers with a non-200 status."""

    def __init__(self, message: str, status_code: int, url: Optional[str] = None):
        self.status_code = status_code
        super().__init__(message, url)


class ParsingError(WamCrawlerError):
    """Exception raised when a page cannot be parsed."""
    pass


class RowParseError(ParsingError):
    """Exception raised when a single listing row is malformed."""
    pass


class BuildingNotFoundError(WamCrawlerError):
    """Exception raised when a detail page has neither name nor architect."""
    pass


class WriteError(WamCrawlerError):
    """Exception raised when the export file cannot be written."""
    pass
