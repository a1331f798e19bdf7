"""Frontier: the ordered, deduplicated queue of pages awaiting a fetch."""

import logging
from typing import Callable, List, Optional, Tuple, Union

from webscraper.models import Page
from webscraper.robots import PolitenessPolicy
from webscraper.url_pattern import URLPattern

logger = logging.getLogger(__name__)


class Frontier:
    """FIFO sequence of admitted pages plus a single-consumer cursor.

    Pages pushed while the sequence is being consumed are appended and
    visited later in the same pass.

    Admission gates run in a fixed order: base URL scope, fragment, exclusion
    patterns, robots rules, then dedup on the page id. Rejections are silent.
    """

    def __init__(
        self,
        base_urls: List[str],
        politeness: PolitenessPolicy,
        exclude_url_patterns: Optional[List[str]] = None,
        on_progress: Optional[Callable[[int, int], None]] = None,
    ):
        """Initialize the frontier.

        Args:
            base_urls: Only URLs starting with one of these prefixes are admitted
            politeness: Robots rules of the crawled origins
            exclude_url_patterns: Full URL patterns of pages to reject
            on_progress: Optional callback for progress updates (cursor, total)
        """
        self.base_urls = list(base_urls)
        self.politeness = politeness
        self.exclude_patterns = [URLPattern(p) for p in exclude_url_patterns or []]
        self.on_progress = on_progress
        self.pages: List[Page] = []
        self.cursor = -1
        self._ids: set[str] = set()

    def rejection_reason(self, page: Page) -> Optional[str]:
        """Name the first admission gate the page fails, or None if admitted."""
        if not any(page.url.startswith(base_url) for base_url in self.base_urls):
            return "outside base URLs"
        if page.fragment:
            return "has a fragment"
        if any(pattern.matches(page.url) for pattern in self.exclude_patterns):
            return "excluded by pattern"
        if not self.politeness.is_allowed(page.url):
            return "disallowed by robots.txt"
        if page.id in self._ids:
            return "already queued"
        return None

    def push(self, candidate: Union[Page, str]) -> bool:
        """Offer a page to the frontier.

        Args:
            candidate: Page or bare URL

        Returns:
            True if the page was admitted
        """
        page = Page(url=candidate) if isinstance(candidate, str) else candidate

        reason = self.rejection_reason(page)
        if reason is not None:
            if reason in ("excluded by pattern", "disallowed by robots.txt"):
                logger.debug(f"{reason} {page.url}")
            return False

        self._ids.add(page.id)
        self.pages.append(page)
        return True

    def next(self) -> Tuple[Optional[Page], bool]:
        """Advance the cursor.

        Returns:
            (page, exhausted): page is None once the frontier is exhausted
        """
        self.cursor += 1
        if self.on_progress:
            self.on_progress(self.cursor, len(self.pages))
        if self.cursor >= len(self.pages):
            return None, True
        page = self.pages[self.cursor]
        logger.debug(f"next page {page.url}")
        return page, False

    def __len__(self) -> int:
        return len(self.pages)
