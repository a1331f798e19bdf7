"""URL normalization and content-addressed page identifiers.

Ids are the first 20 characters of the base64url encoded SHA-256 digest of
the normalized URL. Truncation keeps keys short at the price of a small
collision risk: two URLs whose ids collide are merged into a single record,
there is no detection or resolution.
"""

import base64
import hashlib
from urllib.parse import urlsplit, urlunsplit

from webscraper.constants import INDEX_SUFFIXES, PAGE_ID_LENGTH


def normalize_url(url: str, ignore_hash: bool = False, add_slash: bool = False) -> str:
    """Canonical form of a URL, used for identity only.

    Args:
        url: Absolute URL
        ignore_hash: Drop the fragment
        add_slash: Force a trailing slash on the path

    Returns:
        Normalized URL
    """
    parts = urlsplit(url)
    path = parts.path or "/"
    for suffix in INDEX_SUFFIXES:
        if path.endswith("/" + suffix):
            path = path[:-len(suffix)]
    if add_slash and not path.endswith("/"):
        path += "/"
    fragment = "" if ignore_hash else parts.fragment
    return urlunsplit((parts.scheme, parts.netloc.lower(), path, parts.query, fragment))


def get_id(url: str) -> str:
    """Stable identifier of the page behind a URL."""
    digest = hashlib.sha256(normalize_url(url).encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")[:PAGE_ID_LENGTH]
