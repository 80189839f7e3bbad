from typing import Callable, Generator, List

import pytest
from aioresponses import aioresponses

from site_analyzer.services.analyzer.seo_analyzer import PageAnalyzer
from site_analyzer.services.parser.document import HTMLDocument, parse_document

BASE_URL = "https://example.com/"


def make_page(body: str = "", head: str = "", doctype: str = "<!DOCTYPE html>") -> str:
    """Wrap body/head fragments in a minimal HTML page."""
    return f"{doctype}<html><head>{head}</head><body>{body}</body></html>"


@pytest.fixture
def make_doc() -> Callable[..., HTMLDocument]:
    def _make(body: str = "", head: str = "", doctype: str = "<!DOCTYPE html>") -> HTMLDocument:
        return parse_document(make_page(body, head, doctype).encode("utf-8"))

    return _make


@pytest.fixture
def mock_http() -> Generator[aioresponses, None, None]:
    """Intercept every aiohttp request; unregistered URLs fail to connect."""
    with aioresponses() as m:
        yield m


@pytest.fixture
def analyzer() -> PageAnalyzer:
    return PageAnalyzer(fetch_timeout=5, link_check_timeout=2, sample_limit=10)


@pytest.fixture
def requests_made(mock_http: aioresponses) -> Callable[[str], List[str]]:
    """URLs requested through the mock with a given method, as strings."""

    def _requests(method: str) -> List[str]:
        return [str(url) for (m, url) in mock_http.requests if m == method.upper()]

    return _requests
