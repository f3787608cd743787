"""
Error kinds raised across menu scraping collaborators.
"""

from __future__ import annotations


class ScrapeError(Exception):
    """Base exception for menu scraping failures."""


class ScrapeConfigError(ScrapeError):
    """Raised when the locations configuration is missing or malformed."""


class FetchError(ScrapeError):
    """Raised when a URL could not be retrieved or normalized."""

    def __init__(self, message: str, *, url: str | None = None) -> None:
        self.url = url
        super().__init__(message)


class ExtractionError(ScrapeError):
    """Raised when structured extraction fails for a combined document."""


class StoreError(ScrapeError):
    """Raised when reading from or writing to the menu store fails."""
