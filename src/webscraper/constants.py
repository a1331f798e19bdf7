# src/webscraper/constants.py
"""Centralized constants for the web scraper.

This module contains magic numbers and fixed values that are used across
multiple modules. For user-configurable options, see config.py and
ProcessingConfig / PluginConfig.
"""

# =============================================================================
# Crawler Constants
# =============================================================================

# User agent sent to remote sites and matched against robots.txt groups
DEFAULT_USER_AGENT = "data-fair-web-scraper"

# Delay between two page fetches when robots.txt declares none (seconds)
DEFAULT_CRAWL_DELAY_SECONDS = 1.0

# Default request timeout in seconds
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30

# Timeout used for robots.txt fetches (seconds)
ROBOTS_TXT_TIMEOUT_SECONDS = 5.0

# Index filenames stripped from the final path segment during normalization
INDEX_SUFFIXES = ("index.html", "index.php", "index.jsp", "index.cgi")

# Length of the content-addressed page identifier
PAGE_ID_LENGTH = 20

# Maximum sitemap index depth (an index may reference plain sitemaps only)
MAX_SITEMAP_INDEX_DEPTH = 1


# =============================================================================
# Provenance labels
# =============================================================================

SOURCE_START_URLS = "config start URLs"
SOURCE_SITEMAP = "sitemap"
SOURCE_PREVIOUS = "previous exploration"
SOURCE_LINK = "link"
SOURCE_REDIRECT = "redirect"
SOURCE_ANCHOR = "anchor"


# =============================================================================
# Dataset Constants
# =============================================================================

# Fields read back from a previous run to drive conditional fetches
EXISTING_LINES_SELECT = "_id,url,etag,lastModified"

# Maximum number of previously stored records listed in one request
EXISTING_LINES_PAGE_SIZE = 10000

# Attachment defaults for stored page bodies
DEFAULT_CONTENT_TYPE = "text/html"
DEFAULT_CONTENT_FILENAME = "content.html"

# Polling used while waiting for a freshly created dataset to be finalized
DATASET_FINALIZE_POLL_SECONDS = 1.0
DATASET_FINALIZE_MAX_ATTEMPTS = 60

_NO_TEXT_CAPABILITIES = {
    "text": False,
    "textStandard": False,
    "textAgg": False,
    "insensitive": False,
}

# Schema of the REST dataset that receives page records
DATASET_SCHEMA = [
    {
        "key": "title",
        "type": "string",
        "x-refersTo": "http://www.w3.org/2000/01/rdf-schema#label",
        "x-capabilities": {"textAgg": False},
    },
    {
        "key": "url",
        "type": "string",
        "x-refersTo": "https://schema.org/WebPage",
        "x-capabilities": {"text": False, "values": False, "textAgg": False, "insensitive": False},
    },
    {
        "key": "tags",
        "type": "string",
        "separator": ",",
        "x-refersTo": "https://schema.org/DefinedTermSet",
        "x-capabilities": dict(_NO_TEXT_CAPABILITIES),
    },
    {
        "key": "etag",
        "type": "string",
        "separator": ",",
        "x-capabilities": {"index": False, "values": False, **_NO_TEXT_CAPABILITIES},
    },
    {
        "key": "lastModified",
        "type": "string",
        "x-capabilities": {"index": False, "values": False, **_NO_TEXT_CAPABILITIES},
    },
    {
        "key": "attachmentPath",
        "type": "string",
        "x-refersTo": "http://schema.org/DigitalDocument",
        "x-capabilities": {"values": False, **_NO_TEXT_CAPABILITIES},
    },
]
