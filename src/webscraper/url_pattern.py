"""Exclusion patterns for crawled URLs.

A pattern is a full URL. Its hostname must equal the candidate's hostname and
its path is matched against the whole candidate path with a small syntax:

- ``*`` matches any characters, slashes included
- ``:name`` matches one run of ``[a-zA-Z0-9-_~ %]``
- ``(...)`` makes the enclosed part optional

Everything else matches literally, e.g. ``https://example.com/docs/en(/*)``
excludes ``/docs/en`` and everything below it.
"""

import re
from typing import Optional
from urllib.parse import urlsplit

NAMED_SEGMENT_CHARSET = r"[a-zA-Z0-9\-_~ %]+"
_NAME_RE = re.compile(r"[a-zA-Z0-9_]+")


def compile_path_pattern(pattern: str) -> re.Pattern:
    """Translate a path pattern into an anchored regular expression."""
    regex, position = _compile_group(pattern, 0)
    if position != len(pattern):
        raise ValueError(f"unbalanced ')' in URL pattern {pattern!r}")
    return re.compile(f"^{regex}$")


def _compile_group(pattern: str, position: int) -> tuple[str, int]:
    parts: list[str] = []
    while position < len(pattern):
        char = pattern[position]
        if char == ")":
            return "".join(parts), position
        if char == "(":
            inner, position = _compile_group(pattern, position + 1)
            if position >= len(pattern):
                raise ValueError(f"unclosed '(' in URL pattern {pattern!r}")
            parts.append(f"(?:{inner})?")
            position += 1
        elif char == "*":
            parts.append(".*?")
            position += 1
        elif char == ":" and _NAME_RE.match(pattern, position + 1):
            name = _NAME_RE.match(pattern, position + 1)
            parts.append(NAMED_SEGMENT_CHARSET)
            position = name.end()
        else:
            parts.append(re.escape(char))
            position += 1
    return "".join(parts), position


class URLPattern:
    """Hostname plus path pattern, built from a full URL."""

    def __init__(self, url_pattern: str):
        parsed = urlsplit(url_pattern)
        self.source = url_pattern
        self.hostname: Optional[str] = parsed.hostname
        self.path_regex = compile_path_pattern(parsed.path or "/")

    def matches(self, url: str) -> bool:
        parsed = urlsplit(url)
        if parsed.hostname != self.hostname:
            return False
        return self.path_regex.match(parsed.path or "/") is not None

    def __repr__(self) -> str:
        return f"URLPattern({self.source!r})"
