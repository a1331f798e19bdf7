"""Incremental crawl engine.

A run creates or checks the dataset, loads robots.txt rules, seeds the
frontier from the previous run, the start URLs and the sitemaps, then visits
pages one at a time:

    CHECK_CANCEL -> AWAIT_DELAY -> FETCH -> EXTRACT -> EMIT

and finally deletes the stored records that were not confirmed.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, List, Optional

import httpx

from webscraper.config import DatasetRef, PluginConfig, ProcessingConfig, settings
from webscraper.constants import (
    DATASET_SCHEMA,
    EXISTING_LINES_PAGE_SIZE,
    EXISTING_LINES_SELECT,
    SOURCE_LINK,
    SOURCE_PREVIOUS,
    SOURCE_REDIRECT,
    SOURCE_SITEMAP,
    SOURCE_START_URLS,
)
from webscraper.exceptions import DatasetNotFoundError
from webscraper.extractor import ContentExtractor, Extraction, wrap_fragment
from webscraper.fetcher import PageFetcher
from webscraper.frontier import Frontier
from webscraper.models import CrawlSummary, FetchResult, FetchStatus, Page
from webscraper.reconcile import Reconciler
from webscraper.robots import PolitenessPolicy
from webscraper.sink import DatasetSink, get_sink
from webscraper.sitemap_parser import SitemapParser

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative stop signal, polled once per frontier iteration."""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class PageState(Enum):
    """Steps of the visit of one page."""

    AWAIT_DELAY = "await_delay"
    FETCH = "fetch"
    EXTRACT = "extract"
    EMIT = "emit"
    DONE = "done"


class WebScraper:
    """Crawls the configured site into a dataset, one page at a time.

    Only one request is in flight at any time, each preceded by the crawl
    delay of the page's origin, so the crawl order is the frontier admission
    order.
    """

    def __init__(
        self,
        processing_config: ProcessingConfig,
        plugin_config: Optional[PluginConfig] = None,
        sink: Optional[DatasetSink] = None,
        client: Optional[httpx.AsyncClient] = None,
        on_config_patch: Optional[Callable[[ProcessingConfig], None]] = None,
        on_progress: Optional[Callable[[int, int], None]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        processing_id: Optional[str] = None,
    ):
        """Initialize the scraper.

        Args:
            processing_config: Job configuration
            plugin_config: Deployment configuration (user agent, default delay)
            sink: Dataset receiving the pages
            client: HTTP client for the crawled sites (one is created per run if None)
            on_config_patch: Called with the updated configuration once a
                             dataset was created (mode switches to 'update')
            on_progress: Optional callback for progress updates (visited, total)
            sleep: Coroutine used for the politeness delay
            processing_id: Stored in the extras of a created dataset
        """
        if sink is None:
            sink = get_sink()
        self.config = processing_config
        self.plugin_config = plugin_config or PluginConfig()
        self.sink = sink
        self.client = client
        self.on_config_patch = on_config_patch
        self.on_progress = on_progress or self._log_progress
        self.sleep = sleep
        self.processing_id = processing_id

        # Per-run state, rebuilt by run()
        self.dataset_id: Optional[str] = None
        self.politeness: Optional[PolitenessPolicy] = None
        self.frontier: Optional[Frontier] = None
        self.reconciler: Optional[Reconciler] = None
        self.summary = CrawlSummary()

    @property
    def user_agent(self) -> str:
        return self.plugin_config.user_agent

    async def run(self, cancel_token: Optional[CancellationToken] = None) -> CrawlSummary:
        """Run one incremental crawl.

        Args:
            cancel_token: Stops the crawl before the next page when cancelled;
                          reconciliation is then skipped

        Returns:
            CrawlSummary of the run

        Raises:
            DatasetNotFoundError: Update mode and the dataset does not exist
            DatasetCreationError: Create mode and the dataset could not be created
        """
        cancel_token = cancel_token or CancellationToken()
        self.summary = CrawlSummary()

        client = self.client or httpx.AsyncClient(timeout=settings.REQUEST_TIMEOUT)
        try:
            await self._crawl(client, cancel_token)
        finally:
            if self.client is None:
                await client.aclose()

        return self.summary

    async def _crawl(self, client: httpx.AsyncClient, cancel_token: CancellationToken) -> None:
        existing_mode = self.config.dataset_mode == "update"
        self.dataset_id = await self._prepare_dataset()
        self.summary.dataset_id = self.dataset_id

        self.politeness = PolitenessPolicy(
            self.user_agent,
            default_crawl_delay=self.plugin_config.default_crawl_delay,
            sitemaps=self.config.sitemaps,
        )
        await self.politeness.load(client, self.config.base_urls)

        self.frontier = Frontier(
            self.config.base_urls,
            self.politeness,
            exclude_url_patterns=self.config.exclude_url_patterns,
            on_progress=self.on_progress,
        )

        logger.info("Init pages list")
        existing_pages = await self._load_existing_pages() if existing_mode else []
        self.reconciler = Reconciler(existing_pages)
        for page in existing_pages:
            self.frontier.push(page)

        logger.info(f"add {len(self.config.start_urls)} pages from config")
        for url in self.config.start_urls:
            self.frontier.push(Page(url=url, source=SOURCE_START_URLS))

        await self._push_sitemap_pages(client)

        logger.info("Crawl pages")
        fetcher = PageFetcher(client, self.user_agent)
        extractor = ContentExtractor(self.config)
        while True:
            page, exhausted = self.frontier.next()
            if exhausted:
                break
            if cancel_token.cancelled:
                logger.info(f"crawl stopped before {page.url}")
                self.summary.cancelled = True
                break
            await self._visit(page, fetcher, extractor)

        if self.summary.cancelled:
            logger.info("crawl was stopped, previously explored pages are kept")
            return

        logger.info("Reconcile previously explored pages")
        deleted = await self.reconciler.apply(self.sink, self.dataset_id)
        self.summary.pages_deleted = len(deleted)

    async def _prepare_dataset(self) -> str:
        """Create or check the dataset and return its id."""
        if self.config.dataset_mode == "create":
            logger.info("Dataset creation")
            extras = {"processingId": self.processing_id} if self.processing_id else None
            dataset = await self.sink.create_dataset(
                self.config.dataset.id,
                self.config.dataset.title,
                DATASET_SCHEMA,
                extras=extras,
            )
            if dataset.get("status") != "finalized":
                await self.sink.wait_finalized(dataset["id"])
            logger.info(f'dataset created, id="{dataset["id"]}", title="{dataset.get("title")}"')
            self.config.dataset_mode = "update"
            self.config.dataset = DatasetRef(id=dataset["id"], title=dataset.get("title"))
            if self.on_config_patch:
                self.on_config_patch(self.config)
            return dataset["id"]

        logger.info("Check dataset")
        dataset_id = self.config.require_dataset_id()
        dataset = await self.sink.get_dataset(dataset_id)
        if not dataset:
            raise DatasetNotFoundError(dataset_id)
        logger.info(f'the dataset exists, id="{dataset["id"]}", title="{dataset.get("title")}"')
        return dataset["id"]

    async def _load_existing_pages(self) -> List[Page]:
        records = await self.sink.list_lines(
            self.dataset_id, EXISTING_LINES_SELECT, EXISTING_LINES_PAGE_SIZE
        )
        logger.info(f"add {len(records)} pages from previous crawls")
        return [Page.from_listing(record, source=SOURCE_PREVIOUS) for record in records]

    async def _push_sitemap_pages(self, client: httpx.AsyncClient) -> None:
        parser = SitemapParser(client, self.user_agent)
        for sitemap_url in self.politeness.sitemaps:
            logger.info(f"fetch start URLs from sitemap {sitemap_url}")
            try:
                urls = await parser.parse(sitemap_url)
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                logger.warning(f"failed to fetch sitemap {sitemap_url} - {e}")
                continue
            for url in urls:
                self.frontier.push(Page(url=url, source=SOURCE_SITEMAP))

    async def _visit(self, page: Page, fetcher: PageFetcher, extractor: ContentExtractor) -> None:
        """Drive one page through delay, fetch, extraction and emission."""
        state = PageState.AWAIT_DELAY
        result: Optional[FetchResult] = None
        extraction: Optional[Extraction] = None

        while state is not PageState.DONE:
            if state is PageState.AWAIT_DELAY:
                await self.sleep(self.politeness.crawl_delay(page.origin))
                state = PageState.FETCH

            elif state is PageState.FETCH:
                result = await fetcher.fetch(page)
                state = self._handle_fetch_result(page, result)

            elif state is PageState.EXTRACT:
                extraction = extractor.extract(page, result)
                if extraction is None:
                    self.summary.pages_skipped += 1
                    state = PageState.DONE
                else:
                    state = PageState.EMIT

            elif state is PageState.EMIT:
                await self._emit(page, extraction)
                state = PageState.DONE

    def _handle_fetch_result(self, page: Page, result: FetchResult) -> PageState:
        if result.status is FetchStatus.NOT_MODIFIED:
            logger.debug(f"page was not modified since last exploration {page.url}")
            self.reconciler.confirm_unchanged(page)
            self.summary.pages_unchanged += 1
            return PageState.DONE

        if result.status is FetchStatus.REDIRECT:
            logger.debug(f"page redirected {page.url} -> {result.location}")
            self.frontier.push(Page(url=result.location, source=f"{SOURCE_REDIRECT} {page.url}"))
            self.summary.pages_redirected += 1
            return PageState.DONE

        if result.status is FetchStatus.FAILED:
            logger.warning(f"failed to fetch page {page.url} - {result.error}")
            if page.source:
                logger.warning(f"this broken URL comes from {page.source}")
            self.summary.pages_failed += 1
            return PageState.DONE

        page.last_modified = result.headers.get("last-modified")
        page.etag = result.headers.get("etag")
        return PageState.EXTRACT

    async def _emit(self, page: Page, extraction: Extraction) -> None:
        for anchor_page, fragment_html in extraction.anchor_pages:
            await self.send_page(anchor_page, wrap_fragment(fragment_html))
            self.summary.anchor_pages_sent += 1

        for link in extraction.links:
            self.frontier.push(Page(url=link, source=f"{SOURCE_LINK} {page.url}"))

        if extraction.content is None:
            logger.debug(f"noindex page is not stored {page.url}")
            self.summary.pages_skipped += 1
            return
        await self.send_page(page, extraction.content)
        self.summary.pages_sent += 1

    async def send_page(self, page: Page, content: str) -> None:
        """Store a page and confirm its id for this run."""
        logger.debug(f"send page {page.url}")
        if page.title:
            page.title = page.title.strip()
            prefix = self.config.title_prefix
            if prefix and page.title.startswith(prefix):
                page.title = page.title.replace(prefix, "", 1)
        page_id = page.refresh_id()
        self.reconciler.confirm(page_id)
        await self.sink.upsert_line(self.dataset_id, page.to_record(), content)

    @staticmethod
    def _log_progress(position: int, total: int) -> None:
        logger.debug(f"Crawl pages {position}/{total}")
