"""Selector-based access to a parsed markup tree.

Extractors only talk to :class:`MarkupDocument` and :class:`Element`; they
never look at the raw markup text.
"""
import copy
from typing import List, Optional

from bs4 import BeautifulSoup, Tag
from bs4.builder import ParserRejectedMarkup

from .config import MARKUP_PARSER
from .errors import ElementMissingError, ParseError


class Element:
    def __init__(self, tag: Tag):
        self.tag = tag

    def select(self, selector: str) -> List["Element"]:
        return [Element(t) for t in self.tag.select(selector)]

    def select_one(self, selector: str) -> Optional["Element"]:
        found = self.tag.select_one(selector)
        return Element(found) if found is not None else None

    def require(self, selector: str) -> "Element":
        found = self.select_one(selector)
        if found is None:
            raise ElementMissingError(selector)
        return found

    def attr(self, name: str, default: str = "") -> str:
        value = self.tag.get(name)
        if value is None:
            return default
        if isinstance(value, list):
            # multi-valued attributes (class, rel) come back as lists
            return " ".join(value)
        return str(value)

    def has_class(self, name: str) -> bool:
        return name in (self.tag.get("class") or [])

    def text(self) -> str:
        return " ".join(self.tag.get_text(" ").split())

    def html(self) -> str:
        return self.tag.decode_contents()

    def outer_html(self) -> str:
        return str(self.tag)

    def copy(self) -> "Element":
        return Element(copy.copy(self.tag))

    def __repr__(self) -> str:
        return f"Element(<{self.tag.name}>)"


class MarkupDocument(Element):
    """A parsed page.

    Raises ParseError when the input is not markup at all: not a string,
    rejected by the parser, or containing no elements.
    """

    def __init__(self, raw_html: str, *, parser: str = MARKUP_PARSER):
        if not isinstance(raw_html, str):
            raise ParseError(f"expected markup text, got {type(raw_html).__name__}")
        try:
            soup = BeautifulSoup(raw_html, parser)
        except ParserRejectedMarkup as e:
            raise ParseError(f"markup rejected by {parser}: {e}") from e
        if soup.find(True) is None:
            raise ParseError("markup contains no elements")
        super().__init__(soup)
