"""
Configuration settings for the ArchMap crawler.

This module loads settings from environment variables and provides
configuration values for the crawler runner.
"""

import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from crawlers.wam.constants import (
    BASE_URL, CONCURRENT_TASKS, REQUEST_TIMEOUT, MAX_PAGES,
    MAX_CONSECUTIVE_ERRORS, PROGRESS_INTERVAL, DEFAULT_OUTPUT_FILE,
)


class Settings(BaseSettings):
    """
    Crawler settings loaded from environment variables.
    """
    # Target site
    BASE_URL: str = BASE_URL

    # Scraping Settings
    SCRAPING_CONCURRENT_TASKS: int = CONCURRENT_TASKS
    SCRAPING_REQUEST_TIMEOUT: int = REQUEST_TIMEOUT
    MAX_PAGES: int = MAX_PAGES
    MAX_CONSECUTIVE_ERRORS: int = MAX_CONSECUTIVE_ERRORS
    PROGRESS_INTERVAL: int = PROGRESS_INTERVAL
    DEDUPLICATE: bool = False

    # Export Settings
    OUTPUT_PATH: str = DEFAULT_OUTPUT_FILE

    # Logging Settings
    LOG_LEVEL: str = "INFO"

    # Custom validators
    @field_validator(
        "SCRAPING_CONCURRENT_TASKS", "SCRAPING_REQUEST_TIMEOUT", "MAX_PAGES",
        "MAX_CONSECUTIVE_ERRORS", "PROGRESS_INTERVAL",
    )
    @classmethod
    def check_positive(cls, v: int) -> int:
        """Limits and intervals must be at least 1."""
        if v < 1:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def check_log_level(cls, v: str) -> str:
        """Normalize the log level name and reject unknown ones."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {v}")
        return level

    model_config = SettingsConfigDict(
        env_prefix="WAM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


# Create instance of settings to be imported by other modules
settings = Settings()
