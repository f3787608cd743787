"""
BeautifulSoup-based cleanup of fetched menu pages.
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup, Comment, Tag

REMOVED_TAGS = [
    "head",
    "script",
    "style",
    "noscript",
    "template",
    "svg",
    "canvas",
    "iframe",
    "object",
    "embed",
    "link",
    "meta",
    "form",
    "input",
    "button",
    "select",
    "nav",
]
KEPT_ATTRIBUTES = frozenset({"colspan", "rowspan", "datetime"})
VOID_TAGS = ["br", "hr", "img", "wbr"]

_WHITESPACE_RE = re.compile(r"\s+")
_BETWEEN_TAGS_RE = re.compile(r">\s+<")


class DocumentCleaner:
    """
    Strips non-semantic markup so page content can be hashed and extracted.

    Output is deterministic for identical input HTML.
    """

    @classmethod
    def clean(cls, html: str) -> str:
        soup = BeautifulSoup(html, "html.parser")

        for comment in soup.find_all(string=lambda node: isinstance(node, Comment)):
            comment.extract()
        for tag in soup.find_all(REMOVED_TAGS):
            tag.decompose()
        for tag in soup.find_all(True):
            cls._strip_attributes(tag)
        cls._drop_empty_tags(soup)

        root = soup.body or soup
        markup = root.decode_contents() if isinstance(root, Tag) else str(root)
        markup = _WHITESPACE_RE.sub(" ", markup)
        return _BETWEEN_TAGS_RE.sub("><", markup).strip()

    @staticmethod
    def _strip_attributes(tag: Tag) -> None:
        tag.attrs = {
            name: value
            for name, value in tag.attrs.items()
            if name in KEPT_ATTRIBUTES
        }

    @staticmethod
    def _drop_empty_tags(soup: BeautifulSoup) -> None:
        # Innermost first so parents emptied by the pass are removed too.
        for tag in reversed(soup.find_all(True)):
            if tag.name in VOID_TAGS or tag.name in {"html", "body"}:
                continue
            if tag.find(VOID_TAGS) is None and not tag.get_text(strip=True):
                tag.decompose()
