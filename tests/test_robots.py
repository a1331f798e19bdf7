"""Tests for the robots.txt politeness policy."""

import httpx
import pytest

pytest_plugins = ('pytest_asyncio',)

from webscraper.robots import PolitenessPolicy, RobotsPolicy, get_origin

USER_AGENT = "data-fair-web-scraper-test"

ROBOTS_TXT = """
User-agent: *
Disallow: /private/

User-agent: data-fair-web-scraper-test
Disallow: /site1/robots-disallow.html
Crawl-delay: 2

Sitemap: http://test.local/sitemap.xml
"""


def make_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestGetOrigin:
    """Test cases for get_origin."""

    def test_origin_keeps_scheme_and_port(self):
        assert get_origin("http://test.local:3343/site1/page.html?a=1") == "http://test.local:3343"


class TestRobotsPolicy:
    """Test cases for RobotsPolicy."""

    @pytest.fixture
    def policy(self):
        return RobotsPolicy("http://test.local/robots.txt", ROBOTS_TXT)

    def test_specific_group_applies(self, policy):
        assert not policy.is_allowed("http://test.local/site1/robots-disallow.html", USER_AGENT)
        assert policy.is_allowed("http://test.local/site1/page2/", USER_AGENT)

    def test_default_group_applies_to_other_agents(self, policy):
        assert not policy.is_allowed("http://test.local/private/page.html", "OtherBot")
        assert policy.is_allowed("http://test.local/site1/robots-disallow.html", "OtherBot")

    def test_crawl_delay(self, policy):
        assert policy.crawl_delay(USER_AGENT) == 2.0
        assert policy.crawl_delay("OtherBot") is None

    def test_sitemaps(self, policy):
        assert policy.sitemaps == ["http://test.local/sitemap.xml"]

    def test_wildcard_and_end_anchor_rules(self):
        policy = RobotsPolicy(
            "http://test.local/robots.txt",
            "User-agent: *\nDisallow: /*.pdf$\nDisallow: /site1/*private\n",
        )
        assert not policy.is_allowed("http://test.local/site1/report.pdf", USER_AGENT)
        assert not policy.is_allowed("http://test.local/site1/team/private.html", USER_AGENT)
        assert policy.is_allowed("http://test.local/site1/team/public.html", USER_AGENT)

    def test_longest_match_wins(self):
        policy = RobotsPolicy(
            "http://test.local/robots.txt",
            "User-agent: *\nDisallow: /site1/\nAllow: /site1/public/\n",
        )
        assert policy.is_allowed("http://test.local/site1/public/page.html", USER_AGENT)
        assert not policy.is_allowed("http://test.local/site1/other.html", USER_AGENT)

    def test_fractional_crawl_delay(self):
        policy = RobotsPolicy(
            "http://test.local/robots.txt", "User-agent: *\nCrawl-delay: 2.5\n"
        )
        assert policy.crawl_delay(USER_AGENT) == 2.5

    def test_empty_robots_allows_everything(self):
        policy = RobotsPolicy("http://test.local/robots.txt", "")
        assert policy.is_allowed("http://test.local/anything", USER_AGENT)
        assert policy.sitemaps == []


class TestPolitenessPolicy:
    """Test cases for PolitenessPolicy."""

    @pytest.mark.asyncio
    async def test_load_fetches_each_origin_once(self):
        requested = []

        def handler(request):
            requested.append(str(request.url))
            return httpx.Response(200, text=ROBOTS_TXT)

        politeness = PolitenessPolicy(USER_AGENT, default_crawl_delay=0.1)
        async with make_client(handler) as client:
            await politeness.load(client, ["http://test.local/site1/", "http://test.local/site2/"])

        assert requested == ["http://test.local/robots.txt"]
        assert "http://test.local" in politeness.policies
        assert not politeness.is_allowed("http://test.local/site1/robots-disallow.html")
        assert politeness.crawl_delay("http://test.local") == 2.0

    @pytest.mark.asyncio
    async def test_robots_user_agent_header(self):
        seen = {}

        def handler(request):
            seen["ua"] = request.headers["user-agent"]
            return httpx.Response(404)

        politeness = PolitenessPolicy(USER_AGENT)
        async with make_client(handler) as client:
            await politeness.load(client, ["http://test.local/"])

        assert seen["ua"] == USER_AGENT

    @pytest.mark.asyncio
    async def test_missing_robots_leaves_origin_unrestricted(self):
        politeness = PolitenessPolicy(USER_AGENT, default_crawl_delay=0.5)
        async with make_client(lambda request: httpx.Response(404)) as client:
            await politeness.load(client, ["http://test.local/site1/"])

        assert politeness.policies == {}
        assert politeness.is_allowed("http://test.local/site1/robots-disallow.html")
        assert politeness.crawl_delay("http://test.local") == 0.5

    @pytest.mark.asyncio
    async def test_unreachable_robots_leaves_origin_unrestricted(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        politeness = PolitenessPolicy(USER_AGENT)
        async with make_client(handler) as client:
            await politeness.load(client, ["http://test.local/site1/"])

        assert politeness.is_allowed("http://test.local/private/page.html")

    @pytest.mark.asyncio
    async def test_robots_sitemaps_extend_configured_ones(self):
        politeness = PolitenessPolicy(
            USER_AGENT,
            sitemaps=["http://test.local/custom-sitemap.xml", "http://test.local/sitemap.xml"],
        )
        async with make_client(lambda request: httpx.Response(200, text=ROBOTS_TXT)) as client:
            await politeness.load(client, ["http://test.local/"])

        assert politeness.sitemaps == [
            "http://test.local/custom-sitemap.xml",
            "http://test.local/sitemap.xml",
        ]

    @pytest.mark.asyncio
    async def test_fractional_robots_delay_overrides_default(self):
        robots = "User-agent: *\nCrawl-delay: 2.5\nDisallow: /*.pdf$\n"
        politeness = PolitenessPolicy(USER_AGENT, default_crawl_delay=0.1)
        async with make_client(lambda request: httpx.Response(200, text=robots)) as client:
            await politeness.load(client, ["http://test.local/site1/"])

        assert politeness.crawl_delay("http://test.local") == 2.5
        assert not politeness.is_allowed("http://test.local/site1/files/doc.pdf")

    def test_unknown_origin_uses_default_delay(self):
        politeness = PolitenessPolicy(USER_AGENT, default_crawl_delay=0.1)
        assert politeness.crawl_delay("http://elsewhere.local") == 0.1
        assert politeness.is_allowed("http://elsewhere.local/private/")

    def test_zero_default_delay_falls_back_to_one_second(self):
        politeness = PolitenessPolicy(USER_AGENT, default_crawl_delay=0)
        assert politeness.crawl_delay("http://test.local") == 1.0
