"""Polite, incremental web scraper publishing pages to a data-fair dataset."""

__version__ = "0.1.0"

from webscraper.config import AnchorRule, DatasetRef, PluginConfig, ProcessingConfig, settings
from webscraper.engine import CancellationToken, WebScraper
from webscraper.exceptions import (
    ConfigError,
    DatasetCreationError,
    DatasetError,
    DatasetNotFoundError,
    ScraperError,
)
from webscraper.models import CrawlSummary, FetchResult, FetchStatus, Page
from webscraper.sink import DataFairSink, DatasetSink, MemorySink, get_sink
from webscraper.url_identity import get_id, normalize_url

__all__ = [
    "AnchorRule",
    "DatasetRef",
    "PluginConfig",
    "ProcessingConfig",
    "settings",
    "CancellationToken",
    "WebScraper",
    "ConfigError",
    "DatasetCreationError",
    "DatasetError",
    "DatasetNotFoundError",
    "ScraperError",
    "CrawlSummary",
    "FetchResult",
    "FetchStatus",
    "Page",
    "DataFairSink",
    "DatasetSink",
    "MemorySink",
    "get_sink",
    "get_id",
    "normalize_url",
]
