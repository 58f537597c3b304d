"""Site crawlers."""
