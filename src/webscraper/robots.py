"""Politeness policy derived from robots.txt files."""

import logging
from typing import Dict, List, Optional
from urllib.parse import urlsplit

import httpx
from protego import Protego

from webscraper.constants import DEFAULT_CRAWL_DELAY_SECONDS, ROBOTS_TXT_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


def get_origin(url: str) -> str:
    parsed = urlsplit(url)
    return f"{parsed.scheme}://{parsed.netloc}"


class RobotsPolicy:
    """Parsed robots.txt of one origin. Immutable once built.

    Rules follow RFC 9309: `*` and `$` wildcards in paths, and the longest
    matching rule wins, an Allow winning a tie.
    """

    def __init__(self, robots_url: str, content: str):
        self.robots_url = robots_url
        self._parser = Protego.parse(content)

    def is_allowed(self, url: str, user_agent: str) -> bool:
        return self._parser.can_fetch(url, user_agent)

    def crawl_delay(self, user_agent: str) -> Optional[float]:
        delay = self._parser.crawl_delay(user_agent)
        return float(delay) if delay is not None else None

    @property
    def sitemaps(self) -> List[str]:
        return list(self._parser.sitemaps)


class PolitenessPolicy:
    """
    Robots rules and crawl delays for every origin of a crawl.

    Origins without a parsed robots.txt (fetch failure, non-200 response or
    origin outside the base URLs) are unrestricted and use the default delay.
    """

    def __init__(
        self,
        user_agent: str,
        default_crawl_delay: Optional[float] = None,
        sitemaps: Optional[List[str]] = None,
    ):
        """
        Initialize the policy.

        Args:
            user_agent: User agent matched against robots.txt groups
            default_crawl_delay: Delay used when robots.txt declares none
            sitemaps: Sitemaps configured by the user, extended with the
                      ones declared in robots.txt files
        """
        self.user_agent = user_agent
        self.default_crawl_delay = default_crawl_delay or DEFAULT_CRAWL_DELAY_SECONDS
        self.policies: Dict[str, RobotsPolicy] = {}
        self._checked_origins: set[str] = set()
        self.sitemaps: List[str] = []
        for sitemap in sitemaps or []:
            self._add_sitemap(sitemap)

    async def load(self, client: httpx.AsyncClient, base_urls: List[str]) -> None:
        """Fetch the robots.txt of every base URL origin once.

        Args:
            client: HTTP client used for the requests
            base_urls: Configured base URLs
        """
        for base_url in base_urls:
            origin = get_origin(base_url)
            if origin in self._checked_origins:
                continue
            self._checked_origins.add(origin)
            await self._load_origin(client, origin)

    async def _load_origin(self, client: httpx.AsyncClient, origin: str) -> None:
        robots_url = f"{origin}/robots.txt"
        try:
            response = await client.get(
                robots_url,
                headers={"User-Agent": self.user_agent},
                timeout=ROBOTS_TXT_TIMEOUT_SECONDS,
                follow_redirects=True,
            )
        except httpx.HTTPError as e:
            logger.info(f"failed to fetch {robots_url} - {e}")
            return

        if response.status_code != 200:
            logger.info(f"failed to fetch {robots_url} - {response.status_code}")
            return

        policy = RobotsPolicy(robots_url, response.text)
        self.policies[origin] = policy
        logger.info(f"Loaded robots.txt from {robots_url}")
        for sitemap in policy.sitemaps:
            self._add_sitemap(sitemap)

    def _add_sitemap(self, sitemap: str) -> None:
        if sitemap not in self.sitemaps:
            self.sitemaps.append(sitemap)

    def is_allowed(self, url: str, user_agent: Optional[str] = None) -> bool:
        """Check if URL can be crawled according to robots.txt.

        Args:
            url: URL to check
            user_agent: Overrides the policy user agent

        Returns:
            True if URL can be crawled
        """
        policy = self.policies.get(get_origin(url))
        if policy is None:
            return True  # If no robots.txt, allow
        return policy.is_allowed(url, user_agent or self.user_agent)

    def crawl_delay(self, origin: str) -> float:
        """Seconds to wait before fetching a page of this origin."""
        policy = self.policies.get(origin)
        delay = policy.crawl_delay(self.user_agent) if policy else None
        return delay or self.default_crawl_delay
