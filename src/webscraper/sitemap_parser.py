"""Sitemap parser used to seed the frontier."""

import logging
import re
from typing import List
from xml.etree import ElementTree as ET

import httpx

from webscraper.constants import MAX_SITEMAP_INDEX_DEPTH

logger = logging.getLogger(__name__)


class SitemapParser:
    """
    Parse XML sitemaps to extract page URLs.

    Supports:
    - Standard sitemap.xml files (``<urlset><url><loc>``)
    - Sitemap index files, followed one level deep
    """

    # XML namespaces used in sitemaps
    NAMESPACES = {
        'sm': 'http://www.sitemaps.org/schemas/sitemap/0.9',
    }

    def __init__(self, client: httpx.AsyncClient, user_agent: str):
        """
        Initialize the sitemap parser.

        Args:
            client: HTTP client used to fetch sitemaps
            user_agent: User agent sent with sitemap requests
        """
        self.client = client
        self.user_agent = user_agent

    async def parse(self, sitemap_url: str) -> List[str]:
        """
        Fetch a sitemap and return its page URLs in document order.

        Args:
            sitemap_url: URL to the sitemap.xml or sitemap index

        Returns:
            List of URLs found in the sitemap

        Raises:
            httpx.HTTPError: If the top-level sitemap cannot be fetched
            httpx.InvalidURL: If the top-level sitemap URL cannot be requested
        """
        urls: List[str] = []
        await self._fetch_and_parse(sitemap_url, urls, depth=0)
        return urls

    async def _fetch_and_parse(self, sitemap_url: str, urls: List[str], depth: int) -> None:
        headers = {
            'User-Agent': self.user_agent,
            'Accept': 'application/xml, text/xml, */*',
        }
        response = await self.client.get(sitemap_url, headers=headers, follow_redirects=True)
        response.raise_for_status()

        root = self._parse_xml(response.text)
        if root is None:
            return

        # Get the root tag without namespace
        root_tag = root.tag.split('}')[-1] if '}' in root.tag else root.tag

        if root_tag == 'urlset':
            found = self._parse_urlset(root)
            logger.info(f"Extracted {len(found)} URLs from sitemap {sitemap_url}")
            for url in found:
                if url not in urls:
                    urls.append(url)
        elif root_tag == 'sitemapindex':
            if depth >= MAX_SITEMAP_INDEX_DEPTH:
                logger.warning(f"Ignoring nested sitemap index {sitemap_url}")
                return
            for child_url in self._locs(root, 'sitemap'):
                logger.info(f"Found child sitemap: {child_url}")
                try:
                    await self._fetch_and_parse(child_url, urls, depth + 1)
                except (httpx.HTTPError, httpx.InvalidURL) as e:
                    logger.warning(f"Failed to fetch sitemap {child_url}: {e}")
        else:
            logger.warning(f"Unknown sitemap root element: {root_tag}")

    def _parse_xml(self, content: str):
        # Remove DOCTYPE if present
        content = re.sub(r'<!DOCTYPE[^>]*>', '', content).strip()
        try:
            return ET.fromstring(content)
        except ET.ParseError as e:
            logger.error(f"Failed to parse sitemap XML: {e}")
            return None

    def _parse_urlset(self, root: ET.Element) -> List[str]:
        return self._locs(root, 'url')

    def _locs(self, root: ET.Element, entry_tag: str) -> List[str]:
        locs = []
        for entry in root:
            tag = entry.tag.split('}')[-1]
            if tag != entry_tag:
                continue
            loc = entry.find('sm:loc', self.NAMESPACES)
            if loc is None:
                loc = entry.find('loc')
            if loc is not None and loc.text and loc.text.strip():
                locs.append(loc.text.strip())
        return locs
