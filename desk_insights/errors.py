"""Exception types shared across the service desk insights modules."""
from __future__ import annotations


class DeskInsightsError(RuntimeError):
    """Base class for errors raised by this package."""


class ConfigError(DeskInsightsError):
    """Raised when configuration cannot be loaded."""


class EmptyDatasetError(DeskInsightsError):
    """Raised when there are no issue records to analyse."""

    def __init__(self, message: str = "No data found") -> None:
        super().__init__(message)


class UpstreamFetchError(DeskInsightsError):
    """Raised when issue records could not be retrieved from the service desk API."""


class InvalidInputError(DeskInsightsError):
    """Raised when a saved issues file cannot be read as a list of issues."""
