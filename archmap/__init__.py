"""
ArchMap - Crawler and exporter for the World Architecture Map building directory.

This package holds the application settings shared by the site crawlers.
"""

__version__ = "0.1.0"
