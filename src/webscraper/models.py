"""Data models for the web scraper."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional
from urllib.parse import SplitResult, urlsplit, urlunsplit

from webscraper.url_identity import get_id


@dataclass
class Page:
    """A page discovered during a crawl, and the unit of storage.

    The id is always derived from the URL. Only records listed from a
    previous run are rehydrated with their stored id (see from_listing).
    """

    url: str
    title: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    etag: Optional[str] = None
    last_modified: Optional[str] = None
    noindex: bool = False
    nofollow: bool = False
    source: Optional[str] = None  # provenance, diagnostic only
    parent_id: Optional[str] = None  # anchor pages: id of the page they come from
    _id: Optional[str] = field(default=None, init=False, repr=False, compare=False)

    @classmethod
    def from_listing(cls, record: dict[str, Any], source: Optional[str] = None) -> "Page":
        """Rehydrate a record listed from the dataset by a previous run."""
        page = cls(
            url=record["url"],
            etag=record.get("etag") or None,
            last_modified=record.get("lastModified") or None,
            source=source,
        )
        page._id = record.get("_id") or get_id(page.url)
        if page.parsed_url.fragment:
            page.parent_id = get_id(page.url_without_fragment)
        return page

    @property
    def id(self) -> str:
        if self._id is None:
            self._id = get_id(self.url)
        return self._id

    def refresh_id(self) -> str:
        """Recompute the id from the URL, dropping any rehydrated value."""
        self._id = get_id(self.url)
        return self._id

    @property
    def parsed_url(self) -> SplitResult:
        return urlsplit(self.url)

    @property
    def origin(self) -> str:
        parsed = self.parsed_url
        return f"{parsed.scheme}://{parsed.netloc}"

    @property
    def fragment(self) -> str:
        return self.parsed_url.fragment

    @property
    def url_without_fragment(self) -> str:
        return urlunsplit(self.parsed_url._replace(fragment=""))

    def to_record(self) -> dict[str, Any]:
        """Structured fields stored alongside the page content.

        Provenance and directives are crawl-time state and are not stored.
        """
        record: dict[str, Any] = {"_id": self.id, "url": self.url, "tags": list(self.tags)}
        if self.title is not None:
            record["title"] = self.title
        if self.etag is not None:
            record["etag"] = self.etag
        if self.last_modified is not None:
            record["lastModified"] = self.last_modified
        return record


class FetchStatus(str, Enum):
    """Outcome classes of a page fetch."""

    OK = "ok"
    NOT_MODIFIED = "not_modified"
    REDIRECT = "redirect"
    FAILED = "failed"


@dataclass
class FetchResult:
    """Result of fetching a single page."""

    url: str
    status: FetchStatus
    status_code: Optional[int] = None
    headers: dict[str, str] = field(default_factory=dict)
    text: str = ""
    location: Optional[str] = None  # absolute redirect target
    error: Optional[str] = None

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")


@dataclass
class CrawlSummary:
    """Counters reported at the end of a run."""

    dataset_id: Optional[str] = None
    pages_sent: int = 0
    anchor_pages_sent: int = 0
    pages_unchanged: int = 0
    pages_redirected: int = 0
    pages_failed: int = 0
    pages_skipped: int = 0  # fetched but noindex or not HTML
    pages_deleted: int = 0
    cancelled: bool = False

    def to_dict(self) -> dict:
        return {
            "dataset_id": self.dataset_id,
            "pages_sent": self.pages_sent,
            "anchor_pages_sent": self.anchor_pages_sent,
            "pages_unchanged": self.pages_unchanged,
            "pages_redirected": self.pages_redirected,
            "pages_failed": self.pages_failed,
            "pages_skipped": self.pages_skipped,
            "pages_deleted": self.pages_deleted,
            "cancelled": self.cancelled,
        }
