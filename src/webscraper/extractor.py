"""Directive and content extraction from fetched HTML pages."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from urllib.parse import unquote, urljoin, urlsplit

from webscraper.config import AnchorRule, ProcessingConfig
from webscraper.constants import SOURCE_ANCHOR
from webscraper.dom import HtmlDocument
from webscraper.models import FetchResult, Page
from webscraper.url_identity import normalize_url

logger = logging.getLogger(__name__)

DEFAULT_TITLE_SELECTORS = ["title", "h1"]


def is_html(result: FetchResult) -> bool:
    if result.content_type.startswith("text/html"):
        return True
    return result.text.strip().startswith("<html")


def parse_directives(value: Optional[str]) -> Tuple[bool, bool]:
    """Read noindex / nofollow tokens from a comma separated directive list."""
    noindex = nofollow = False
    for part in (value or "").split(","):
        token = part.strip().lower()
        if token == "noindex":
            noindex = True
        elif token == "nofollow":
            nofollow = True
    return noindex, nofollow


def wrap_fragment(fragment_html: str) -> str:
    return f"<body>\n  {fragment_html}\n</body>"


@dataclass
class Extraction:
    """What a fetched page contributes to the crawl."""

    anchor_pages: List[Tuple[Page, str]] = field(default_factory=list)
    links: List[str] = field(default_factory=list)
    content: Optional[str] = None  # None when the page must not be stored


class ContentExtractor:
    """Resolves directives, title and tags, splits anchor fragments into
    sub-pages, collects links and prunes the markup before storage."""

    def __init__(self, config: ProcessingConfig):
        self.config = config

    def extract(self, page: Page, result: FetchResult) -> Optional[Extraction]:
        """Extract everything the engine needs from a fetched page.

        The page is updated in place with its directives, title and tags.

        Args:
            page: The fetched page
            result: Successful fetch result

        Returns:
            Extraction, or None when the response is not HTML
        """
        header_value = result.headers.get("x-robots-tag")
        if header_value:
            logger.debug(f"x-robots-tag header {header_value}")
            noindex, nofollow = parse_directives(header_value)
            page.noindex = page.noindex or noindex
            page.nofollow = page.nofollow or nofollow

        if not is_html(result):
            logger.debug(f"not an HTML page {page.url} ({result.content_type})")
            return None

        document = HtmlDocument.load(result.text)
        page.title = self._extract_title(document)
        page.tags = self._extract_tags(document)
        self._apply_meta_directives(page, document)

        extraction = Extraction()
        if not page.noindex and self.config.anchors:
            extraction.anchor_pages = self._extract_anchor_pages(page, document)

        if not page.nofollow:
            extraction.links = self._extract_links(page, document)

        if not page.noindex:
            for selector in self.config.prune:
                document.remove_matches(selector)
            extraction.content = document.serialize()

        return extraction

    def _extract_title(self, document: HtmlDocument) -> Optional[str]:
        for selector in self.config.title_selectors + DEFAULT_TITLE_SELECTORS:
            title = document.select_text(selector)
            if title.strip():
                logger.debug(f'used title selector "{selector}" -> {title.strip()}')
                return title
        return None

    def _extract_tags(self, document: HtmlDocument) -> List[str]:
        tags = []
        for selector in self.config.tags_selectors:
            for node in document.select(selector):
                tag = document.text(node).strip()
                if tag:
                    tags.append(tag)
        return tags

    def _apply_meta_directives(self, page: Page, document: HtmlDocument) -> None:
        for meta in document.select("meta"):
            if document.attr(meta, "name") != "robots":
                continue
            content = document.attr(meta, "content")
            logger.debug(f"robots meta {content}")
            noindex, nofollow = parse_directives(content)
            page.noindex = page.noindex or noindex
            page.nofollow = page.nofollow or nofollow

    def _extract_anchor_pages(self, page: Page, document: HtmlDocument) -> List[Tuple[Page, str]]:
        """Promote same-page anchor targets to their own pages.

        Each extracted fragment is detached from the document so that its
        content is not stored twice.
        """
        page_key = normalize_url(page.url, ignore_hash=True, add_slash=True)
        anchor_pages: List[Tuple[Page, str]] = []

        for link in document.select("a"):
            href = document.attr(link, "href")
            if not href:
                continue
            try:
                target_url = urljoin(page.url, href)
                fragment = urlsplit(target_url).fragment
            except ValueError:
                continue
            if not fragment or normalize_url(target_url, ignore_hash=True, add_slash=True) != page_key:
                continue

            target = document.by_id(unquote(fragment))
            if target is None:
                continue

            for rule in self.config.anchors:
                anchor_page, fragment_html = self._build_anchor_page(page, document, rule, target, target_url)
                if anchor_page is not None:
                    anchor_pages.append((anchor_page, fragment_html))

        return anchor_pages

    def _build_anchor_page(
        self,
        page: Page,
        document: HtmlDocument,
        rule: AnchorRule,
        target,
        target_url: str,
    ) -> Tuple[Optional[Page], str]:
        root = document.closest(target, rule.wrapper_selector) if rule.wrapper_selector else target
        if root is None:
            return None, ""
        fragment_html = document.inner_html(root)
        if not fragment_html:
            return None, ""

        if rule.title_selector:
            title = "".join(document.text(n) for n in document.select(rule.title_selector, root=root))
        else:
            title = document.text(target)

        anchor_page = Page(
            url=target_url,
            title=title or page.title,
            tags=list(rule.tags),
            source=f"{SOURCE_ANCHOR} {page.url}",
            parent_id=page.id,
        )
        document.detach(root)
        return anchor_page, fragment_html

    def _extract_links(self, page: Page, document: HtmlDocument) -> List[str]:
        links = []
        for link in document.select("a"):
            href = document.attr(link, "href")
            if not href:
                continue
            try:
                links.append(urljoin(page.url, href))
            except ValueError:
                # Skip malformed URLs
                continue
        return links
