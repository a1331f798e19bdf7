"""Tests for directive and content extraction."""

import pytest

from webscraper.config import ProcessingConfig
from webscraper.extractor import ContentExtractor, is_html, parse_directives, wrap_fragment
from webscraper.models import FetchResult, FetchStatus, Page
from webscraper.url_identity import get_id

PAGE_URL = "http://test.local/site1/sections.html"

SECTIONS_HTML = """<html>
<head><title>Sections</title></head>
<body>
  <p>This page contains sections</p>
  <ul>
    <li><a href="#section1">Go to section 1</a></li>
    <li><a href="sections.html#section2">Go to section 2</a></li>
    <li><a href="#missing">Nowhere</a></li>
  </ul>
  <div class="section" id="section1"><h2><a href="#section1">Section 1 title</a></h2><p>Section 1 content</p></div>
  <div class="section" id="section2"><h2><a href="#section2">Section 2 title</a></h2><p>Section 2 content</p></div>
  <a href="page2/">Page 2</a>
</body>
</html>"""


def html_result(body: str, headers=None) -> FetchResult:
    all_headers = {"content-type": "text/html; charset=utf-8"}
    all_headers.update(headers or {})
    return FetchResult(url=PAGE_URL, status=FetchStatus.OK, status_code=200, headers=all_headers, text=body)


def make_config(**options) -> ProcessingConfig:
    return ProcessingConfig.model_validate({"baseURLs": ["http://test.local/site1/"], **options})


class TestHelpers:
    """Test cases for module helpers."""

    def test_parse_directives(self):
        assert parse_directives("noindex, nofollow") == (True, True)
        assert parse_directives("NOINDEX") == (True, False)
        assert parse_directives("index,follow") == (False, False)
        assert parse_directives(None) == (False, False)

    def test_is_html_by_content_type(self):
        assert is_html(html_result("plain text"))

    def test_is_html_by_content(self):
        result = FetchResult(url=PAGE_URL, status=FetchStatus.OK, headers={}, text="  <html><body></body></html>")
        assert is_html(result)

    def test_not_html(self):
        result = FetchResult(url=PAGE_URL, status=FetchStatus.OK, headers={"content-type": "application/pdf"}, text="%PDF")
        assert not is_html(result)

    def test_wrap_fragment(self):
        assert wrap_fragment("<p>x</p>") == "<body>\n  <p>x</p>\n</body>"


class TestTitleAndTags:
    """Test cases for title and tags selection."""

    def test_default_title_selector(self):
        page = Page(url=PAGE_URL)
        ContentExtractor(make_config()).extract(page, html_result("<html><head><title>Hello</title></head></html>"))
        assert page.title == "Hello"

    def test_h1_fallback_when_title_is_blank(self):
        page = Page(url=PAGE_URL)
        body = "<html><head><title>  </title></head><body><h1>Heading</h1></body></html>"
        ContentExtractor(make_config()).extract(page, html_result(body))
        assert page.title == "Heading"

    def test_configured_selectors_come_first(self):
        page = Page(url=PAGE_URL)
        body = "<html><head><title>Site</title></head><body><h2 class='t'>Specific</h2></body></html>"
        ContentExtractor(make_config(titleSelectors=["h2.t"])).extract(page, html_result(body))
        assert page.title == "Specific"

    def test_no_title(self):
        page = Page(url=PAGE_URL)
        ContentExtractor(make_config()).extract(page, html_result("<html><body><p>x</p></body></html>"))
        assert page.title is None

    def test_tags(self):
        page = Page(url=PAGE_URL)
        body = "<html><body><span class='tag'> api </span><span class='tag'>doc</span><span class='tag'> </span></body></html>"
        ContentExtractor(make_config(tagsSelectors=[".tag"])).extract(page, html_result(body))
        assert page.tags == ["api", "doc"]


class TestDirectives:
    """Test cases for robots directives."""

    def test_meta_noindex(self):
        page = Page(url=PAGE_URL)
        body = '<html><head><meta name="robots" content="noindex"></head><body><a href="child.html">c</a></body></html>'
        extraction = ContentExtractor(make_config()).extract(page, html_result(body))
        assert page.noindex
        assert extraction.content is None
        assert extraction.links == ["http://test.local/site1/child.html"]

    def test_meta_nofollow(self):
        page = Page(url=PAGE_URL)
        body = '<html><head><meta name="robots" content="nofollow"></head><body><a href="child.html">c</a></body></html>'
        extraction = ContentExtractor(make_config()).extract(page, html_result(body))
        assert page.nofollow
        assert extraction.links == []
        assert extraction.content is not None

    def test_other_meta_is_ignored(self):
        page = Page(url=PAGE_URL)
        body = '<html><head><meta name="googlebot" content="noindex"></head></html>'
        ContentExtractor(make_config()).extract(page, html_result(body))
        assert not page.noindex

    def test_x_robots_tag_header(self):
        page = Page(url=PAGE_URL)
        extraction = ContentExtractor(make_config()).extract(
            page, html_result("<html><body>x</body></html>", {"x-robots-tag": "noindex, nofollow"})
        )
        assert page.noindex and page.nofollow
        assert extraction.content is None
        assert extraction.links == []

    def test_header_applies_to_non_html(self):
        page = Page(url=PAGE_URL)
        result = FetchResult(
            url=PAGE_URL,
            status=FetchStatus.OK,
            headers={"content-type": "application/pdf", "x-robots-tag": "noindex"},
            text="%PDF",
        )
        assert ContentExtractor(make_config()).extract(page, result) is None
        assert page.noindex


class TestLinksAndContent:
    """Test cases for links and stored content."""

    def test_links_are_resolved(self):
        page = Page(url="http://test.local/site1/")
        body = '<html><body><a href="page2/">a</a><a href="/site1/page3/">b</a><a>no href</a><a href="http://[bad">c</a></body></html>'
        extraction = ContentExtractor(make_config()).extract(page, html_result(body))
        assert extraction.links == ["http://test.local/site1/page2/", "http://test.local/site1/page3/"]

    def test_prune(self):
        page = Page(url=PAGE_URL)
        body = "<html><body><nav class='menu'><a href='a.html'>menu</a></nav><p>kept</p></body></html>"
        extraction = ContentExtractor(make_config(prune=[".menu"])).extract(page, html_result(body))
        assert "kept" in extraction.content
        assert "menu" not in extraction.content
        # Links are collected before pruning
        assert extraction.links == ["http://test.local/site1/a.html"]


class TestAnchors:
    """Test cases for anchor sub-pages."""

    @pytest.fixture
    def config(self):
        return make_config(anchors=[{"tags": ["section"], "wrapperSelector": ".section", "titleSelector": "a"}])

    def test_sections_become_pages(self, config):
        page = Page(url=PAGE_URL, title=None)
        extraction = ContentExtractor(config).extract(page, html_result(SECTIONS_HTML))

        assert [p.url for p, _ in extraction.anchor_pages] == [PAGE_URL + "#section1", PAGE_URL + "#section2"]
        section1, section1_html = extraction.anchor_pages[0]
        assert section1.title == "Section 1 title"
        assert section1.tags == ["section"]
        assert section1.parent_id == get_id(PAGE_URL)
        assert "Section 1 content" in section1_html
        assert "Section 2 content" not in section1_html

    def test_sections_are_removed_from_the_page(self, config):
        page = Page(url=PAGE_URL)
        extraction = ContentExtractor(config).extract(page, html_result(SECTIONS_HTML))

        assert "This page contains sections" in extraction.content
        assert "Section 1 content" not in extraction.content
        assert "Section 2 content" not in extraction.content

    def test_other_links_are_still_collected(self, config):
        page = Page(url=PAGE_URL)
        extraction = ContentExtractor(config).extract(page, html_result(SECTIONS_HTML))
        assert "http://test.local/site1/page2/" in extraction.links

    def test_target_without_wrapper_is_used_directly(self):
        config = make_config(anchors=[{"tags": ["faq"]}])
        body = '<html><body><a href="#q1">Q1</a><div id="q1"><b>Question 1</b> answer</div></body></html>'
        page = Page(url=PAGE_URL, title="FAQ")
        extraction = ContentExtractor(config).extract(page, html_result(body))

        anchor_page, html = extraction.anchor_pages[0]
        assert anchor_page.title == "Question 1 answer"
        assert html == "<b>Question 1</b> answer"

    def test_unmatched_wrapper_is_skipped(self):
        config = make_config(anchors=[{"wrapperSelector": ".section"}])
        body = '<html><body><a href="#q1">Q1</a><div id="q1">text</div></body></html>'
        extraction = ContentExtractor(config).extract(Page(url=PAGE_URL), html_result(body))
        assert extraction.anchor_pages == []

    def test_empty_fragment_is_skipped(self):
        config = make_config(anchors=[{"tags": []}])
        body = '<html><body><a href="#q1">Q1</a><div id="q1"></div></body></html>'
        extraction = ContentExtractor(config).extract(Page(url=PAGE_URL), html_result(body))
        assert extraction.anchor_pages == []

    def test_links_to_other_pages_are_ignored(self):
        config = make_config(anchors=[{"tags": []}])
        body = '<html><body><a href="other.html#q1">Q1</a><div id="q1">text</div></body></html>'
        extraction = ContentExtractor(config).extract(Page(url=PAGE_URL), html_result(body))
        assert extraction.anchor_pages == []

    def test_noindex_page_has_no_anchor_pages(self, config):
        body = SECTIONS_HTML.replace("<head>", '<head><meta name="robots" content="noindex">')
        extraction = ContentExtractor(config).extract(Page(url=PAGE_URL), html_result(body))
        assert extraction.anchor_pages == []
        assert extraction.content is None
