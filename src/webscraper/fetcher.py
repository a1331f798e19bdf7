"""Conditional page fetches and outcome classification."""

import logging
from typing import Optional
from urllib.parse import urljoin

import httpx

from webscraper.models import FetchResult, FetchStatus, Page

logger = logging.getLogger(__name__)


class PageFetcher:
    """Fetches pages one at a time without following redirects.

    Pages carrying an etag or last-modified value from a previous run are
    requested conditionally so that unchanged pages cost a 304.
    """

    def __init__(self, client: httpx.AsyncClient, user_agent: str, timeout: Optional[float] = None):
        """Initialize the fetcher.

        Args:
            client: HTTP client used for the requests
            user_agent: User agent header value
            timeout: Request timeout in seconds (client default if None)
        """
        self.client = client
        self.user_agent = user_agent
        self.timeout = timeout

    def build_headers(self, page: Page) -> dict[str, str]:
        headers = {"User-Agent": self.user_agent}
        if page.last_modified:
            headers["If-Modified-Since"] = page.last_modified
        if page.etag:
            headers["If-None-Match"] = page.etag
        return headers

    async def fetch(self, page: Page) -> FetchResult:
        """Fetch a page and classify the outcome.

        Args:
            page: Page to fetch

        Returns:
            FetchResult; transport errors are reported as FAILED, never raised
        """
        headers = self.build_headers(page)
        if len(headers) > 1:
            logger.debug(f"conditional fetch {page.url} (etag={page.etag}, last-modified={page.last_modified})")
        kwargs = {"headers": headers, "follow_redirects": False}
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout

        try:
            response = await self.client.get(page.url, **kwargs)
        except httpx.TimeoutException:
            return FetchResult(url=page.url, status=FetchStatus.FAILED, error="timeout")
        except httpx.InvalidURL as e:
            return FetchResult(url=page.url, status=FetchStatus.FAILED, error=f"invalid URL - {e}")
        except httpx.HTTPError as e:
            error_msg = str(e) if str(e) else type(e).__name__
            return FetchResult(url=page.url, status=FetchStatus.FAILED, error=error_msg)

        response_headers = {k.lower(): v for k, v in response.headers.items()}

        if response.status_code == 304:
            return FetchResult(
                url=page.url,
                status=FetchStatus.NOT_MODIFIED,
                status_code=304,
                headers=response_headers,
            )

        if response.is_redirect:
            return FetchResult(
                url=page.url,
                status=FetchStatus.REDIRECT,
                status_code=response.status_code,
                headers=response_headers,
                location=urljoin(page.url, response_headers["location"]),
            )

        if not response.is_success:
            return FetchResult(
                url=page.url,
                status=FetchStatus.FAILED,
                status_code=response.status_code,
                headers=response_headers,
                error=str(response.status_code),
            )

        return FetchResult(
            url=page.url,
            status=FetchStatus.OK,
            status_code=response.status_code,
            headers=response_headers,
            text=response.text,
        )
