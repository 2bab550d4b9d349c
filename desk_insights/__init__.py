"""Shared modules for the service desk issue insights tools."""

from .config import load_config, resolve_path
from .errors import ConfigError, DeskInsightsError, EmptyDatasetError, UpstreamFetchError
from .logging_setup import configure_logging
from .service_desk_client import ServiceDeskClient, create_client
from .analytics import IssueAnalyticsEngine, IssueRecord, IssueReport, analyze
from .server import create_app

__all__ = [
    "load_config",
    "resolve_path",
    "configure_logging",
    "ConfigError",
    "DeskInsightsError",
    "EmptyDatasetError",
    "UpstreamFetchError",
    "ServiceDeskClient",
    "create_client",
    "IssueAnalyticsEngine",
    "IssueRecord",
    "IssueReport",
    "analyze",
    "create_app",
]
