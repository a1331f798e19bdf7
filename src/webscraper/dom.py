"""Narrow DOM capability interface over BeautifulSoup.

The extractor only needs to load markup, query it with CSS selectors, read
text and attributes, detach or remove nodes and serialize the result.
"""

from typing import List, Optional

from bs4 import BeautifulSoup, Tag


class HtmlDocument:
    """A parsed HTML document."""

    def __init__(self, soup: BeautifulSoup):
        self.soup = soup

    @classmethod
    def load(cls, markup: str) -> "HtmlDocument":
        return cls(BeautifulSoup(markup, "html.parser"))

    def select(self, selector: str, root: Optional[Tag] = None) -> List[Tag]:
        """Elements matching a CSS selector, in document order.

        Args:
            selector: CSS selector
            root: Restrict the search to the descendants of this element
        """
        return (root or self.soup).select(selector)

    def select_text(self, selector: str) -> str:
        """Concatenated text of every element matching the selector."""
        return "".join(self.text(node) for node in self.select(selector))

    def by_id(self, element_id: str) -> Optional[Tag]:
        if not element_id:
            return None
        return self.soup.find(id=element_id)

    @staticmethod
    def text(node: Tag) -> str:
        return node.get_text()

    @staticmethod
    def attr(node: Tag, name: str) -> Optional[str]:
        value = node.get(name)
        if isinstance(value, list):  # multi-valued attributes such as class
            return " ".join(value)
        return value

    @staticmethod
    def closest(node: Tag, selector: str) -> Optional[Tag]:
        """Nearest ancestor-or-self matching the selector."""
        return node.css.closest(selector)

    @staticmethod
    def inner_html(node: Tag) -> str:
        return "".join(str(child) for child in node.contents)

    @staticmethod
    def detach(node: Tag) -> None:
        """Take a node out of the document, keeping it usable on its own."""
        node.extract()

    def remove_matches(self, selector: str) -> int:
        """Remove every element matching the selector.

        Returns:
            Number of removed elements
        """
        nodes = self.select(selector)
        for node in nodes:
            node.extract()
        return len(nodes)

    def serialize(self) -> str:
        return str(self.soup)
