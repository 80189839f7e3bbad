from typing import List, Optional, Union

from bs4 import BeautifulSoup, Tag
from bs4.builder import ParserRejectedMarkup

from site_analyzer.core.exceptions import ParseError

AttrPredicate = Union[bool, str]


class HTMLDocument:
    """
    Queryable view over a parsed HTML page.

    Attribute predicates passed to ``find_all``/``find_first`` are combined
    with AND: ``True`` means the attribute must be present, a string means
    it must equal that value exactly.
    """

    def __init__(self, soup: BeautifulSoup):
        self.soup = soup
        self._serialized: Optional[str] = None

    def find_all(self, tag: str, within: Optional[Tag] = None, **attrs: AttrPredicate) -> List[Tag]:
        root = within if within is not None else self.soup
        return root.find_all(tag, attrs=dict(attrs))

    def find_first(self, tag: str, within: Optional[Tag] = None, **attrs: AttrPredicate) -> Optional[Tag]:
        root = within if within is not None else self.soup
        return root.find(tag, attrs=dict(attrs))

    def count(self, tag: str, **attrs: AttrPredicate) -> int:
        return len(self.find_all(tag, **attrs))

    def serialize(self) -> str:
        """Re-serialize the parsed tree (cached, the tree is never modified)."""
        if self._serialized is None:
            self._serialized = str(self.soup)
        return self._serialized


def parse_document(body: Union[bytes, str]) -> HTMLDocument:
    """
    Parse a response body into an HTMLDocument.

    Uses the ``html5lib`` builder, so the tree is the one a browser builds:
    an unclosed heading ends at the next heading, a nested ``<form>`` is
    dropped, and a missing DOCTYPE or other tag soup never aborts parsing.

    Raises:
        ParseError: if the markup cannot be tokenized at all
    """
    try:
        soup = BeautifulSoup(body, "html5lib")
    except ParserRejectedMarkup as e:
        raise ParseError(str(e) or "markup rejected by parser") from e
    except (TypeError, UnicodeDecodeError) as e:
        raise ParseError(str(e)) from e
    return HTMLDocument(soup)
