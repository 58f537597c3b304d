"""
Pydantic models for World Architecture Map crawl results.

This module contains the building record extracted from a detail page and
the collector the crawler fills while it runs.
"""

from typing import List, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .constants import EXPORT_FIELDS


class Building(BaseModel):
    """Model for a building extracted from its detail page."""
    model_config = ConfigDict(frozen=True)

    name: str = Field("", description="Building name")
    architect: str = Field("", description="Architect name")
    city: str = Field("", description="City")
    state: str = Field("", description="State or region")
    country: str = Field("", description="Country")
    latitude: str = Field("", description="GPS latitude as shown on the page")
    longitude: str = Field("", description="GPS longitude as shown on the page")
    date: str = Field("", description="Construction date")
    style: str = Field("", description="Architectural style")
    type: str = Field("", description="Building type")
    alias: str = Field("", description="Alternative name")
    notes: str = Field("", description="Free-form notes")

    @property
    def is_valid(self) -> bool:
        """A building exists when it has a name or an architect."""
        return bool(self.name.strip() or self.architect.strip())

    def as_row(self) -> Tuple[str, ...]:
        """Return field values in export order."""
        return tuple(getattr(self, field) for field in EXPORT_FIELDS)


class CrawlFailure(BaseModel):
    """Model for a detail page that could not be extracted."""
    model_config = ConfigDict(frozen=True)

    url: str = Field(..., description="Detail page URL")
    error: str = Field(..., description="Error message")


class CrawlResult(BaseModel):
    """Model collecting the outcome of a full crawl."""
    discovered: int = Field(0, ge=0, description="Number of detail URLs discovered")
    buildings: List[Building] = Field(default_factory=list, description="Extracted buildings")
    failures: List[CrawlFailure] = Field(default_factory=list, description="Failed detail pages")

    @property
    def succeeded(self) -> int:
        return len(self.buildings)

    @property
    def failed(self) -> int:
        return len(self.failures)
