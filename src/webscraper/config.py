"""
Configuration for the web scraper.

Two layers:
- Settings: deployment values read from the environment (and a .env file).
- ProcessingConfig / PluginConfig: validated Pydantic models describing one
  scraping job, loaded from a YAML or JSON file.
"""
import json
import os
from pathlib import Path
from typing import List, Literal, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from webscraper.constants import (
    DEFAULT_CRAWL_DELAY_SECONDS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
)
from webscraper.exceptions import ConfigError

load_dotenv()  # Loads variables from .env file


class Settings:
    """
    Manages application settings loaded from environment variables.
    """
    DATA_FAIR_URL = os.getenv("DATA_FAIR_URL", "http://localhost:8080/data-fair/")
    DATA_FAIR_API_KEY = os.getenv("DATA_FAIR_API_KEY")

    # Sink backend: 'datafair' or 'local'
    SINK_BACKEND = os.getenv("SINK_BACKEND", "datafair")

    REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", str(DEFAULT_REQUEST_TIMEOUT_SECONDS)))


settings = Settings()


class DatasetRef(BaseModel):
    """Reference to the dataset receiving the page records."""

    id: Optional[str] = Field(default=None, description="Dataset identifier")
    title: Optional[str] = Field(default=None, description="Dataset title")


class AnchorRule(BaseModel):
    """Rule promoting an in-page anchor target to its own record."""

    tags: List[str] = Field(
        default_factory=list,
        description="Tags given to every sub-page extracted by this rule"
    )

    wrapper_selector: Optional[str] = Field(
        default=None,
        alias="wrapperSelector",
        description="Selector of the ancestor wrapping the anchor target"
    )

    title_selector: Optional[str] = Field(
        default=None,
        alias="titleSelector",
        description="Selector of the sub-page title, searched inside the fragment"
    )

    class Config:
        """Pydantic model configuration."""
        populate_by_name = True


class ProcessingConfig(BaseModel):
    """
    Configuration of one scraping job.

    Field aliases follow the camelCase option names used in job files.
    """

    dataset_mode: Literal["create", "update"] = Field(
        default="create",
        alias="datasetMode",
        description="Create a new dataset or update an existing one"
    )

    dataset: DatasetRef = Field(default_factory=DatasetRef)

    base_urls: List[str] = Field(
        default_factory=list,
        alias="baseURLs",
        description="Only URLs starting with one of these prefixes are crawled"
    )

    start_urls: List[str] = Field(
        default_factory=list,
        alias="startURLs",
        description="Seed URLs"
    )

    exclude_url_patterns: List[str] = Field(
        default_factory=list,
        alias="excludeURLPatterns",
        description="Full URL patterns of pages to skip (e.g. 'https://site/en(/*)')"
    )

    sitemaps: List[str] = Field(
        default_factory=list,
        description="Sitemap URLs used as additional seeds"
    )

    title_prefix: Optional[str] = Field(
        default=None,
        alias="titlePrefix",
        description="Prefix removed from page titles"
    )

    title_selectors: List[str] = Field(
        default_factory=list,
        alias="titleSelectors",
        description="Selectors tried before 'title' and 'h1'"
    )

    tags_selectors: List[str] = Field(
        default_factory=list,
        alias="tagsSelectors",
        description="Selectors whose text becomes page tags"
    )

    prune: List[str] = Field(
        default_factory=list,
        description="Selectors removed from the page before storage"
    )

    anchors: List[AnchorRule] = Field(default_factory=list)

    class Config:
        """Pydantic model configuration."""
        populate_by_name = True
        validate_assignment = True

    @classmethod
    def from_file(cls, path: str) -> "ProcessingConfig":
        """Load a processing configuration from a YAML or JSON file.

        Args:
            path: Path to the configuration file

        Returns:
            Validated ProcessingConfig

        Raises:
            ConfigError: If the file does not exist
        """
        file_path = Path(path)
        if not file_path.exists():
            raise ConfigError(f"configuration file not found: {path}")

        with open(file_path, 'r') as f:
            if file_path.suffix == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f) or {}

        return cls.model_validate(data.get("processingConfig", data))

    def save_to_file(self, path: str) -> None:
        """Save the configuration back to a YAML or JSON file.

        Args:
            path: Path to save configuration
        """
        data = self.model_dump(by_alias=True, exclude_none=True)
        with open(path, 'w') as f:
            if Path(path).suffix == ".json":
                json.dump(data, f, indent=2)
            else:
                yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)

    def require_dataset_id(self) -> str:
        """Return the dataset id, which update mode cannot do without."""
        if not self.dataset.id:
            raise ConfigError("dataset.id is required when datasetMode is 'update'")
        return self.dataset.id


class PluginConfig(BaseModel):
    """Settings shared by every job run by this deployment."""

    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        alias="userAgent",
        description="User agent sent to sites and matched in robots.txt"
    )

    default_crawl_delay: float = Field(
        default=DEFAULT_CRAWL_DELAY_SECONDS,
        alias="defaultCrawlDelay",
        description="Seconds between page fetches when robots.txt declares no crawl-delay",
        ge=0
    )

    class Config:
        """Pydantic model configuration."""
        populate_by_name = True

    @classmethod
    def from_env(cls) -> "PluginConfig":
        """Load plugin configuration from environment variables.

        Returns:
            PluginConfig with values from environment
        """
        return cls(
            user_agent=os.getenv("USER_AGENT", DEFAULT_USER_AGENT),
            default_crawl_delay=float(os.getenv("DEFAULT_CRAWL_DELAY", str(DEFAULT_CRAWL_DELAY_SECONDS))),
        )
