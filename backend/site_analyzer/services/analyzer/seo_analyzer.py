import asyncio
from typing import Any, Dict, Optional

import aiohttp
from loguru import logger

from site_analyzer.core.config import settings
from site_analyzer.core.exceptions import HTTPStatusError, ParseError
from site_analyzer.core.logging import setup_logging
from site_analyzer.core.urls import validate_target_url
from site_analyzer.schemas.analysis import AnalysisResult
from site_analyzer.services.analyzer.forms import analyze_forms
from site_analyzer.services.analyzer.headings import extract_headings
from site_analyzer.services.analyzer.html_version import detect_html_version
from site_analyzer.services.analyzer.link_checker import LinkChecker
from site_analyzer.services.analyzer.links import classify_links, count_images
from site_analyzer.services.analyzer.metadata import (
    extract_meta_description,
    extract_meta_title,
)
from site_analyzer.services.parser.document import HTMLDocument, parse_document
from site_analyzer.services.parser.fetcher import Fetcher, FetchOutcome


def _parse_outcome(outcome: FetchOutcome) -> HTMLDocument:
    if outcome.status_code >= 400:
        raise HTTPStatusError(outcome.status_code)
    return parse_document(outcome.body)


def page_size(content_length: Optional[int], doc: HTMLDocument) -> int:
    """
    Transport-reported size when it is known, otherwise the byte length of
    the re-serialized document (an approximation of the payload).
    """
    if content_length is not None and content_length > 0:
        return content_length
    return len(doc.serialize().encode("utf-8"))


class PageAnalyzer:
    """
    Fetches one page and derives its SEO metrics.

    Failures after URL validation never raise: the result comes back with
    ``error_message`` set and every metric computed before the failure.
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        fetch_timeout: Optional[float] = None,
        link_check_timeout: Optional[float] = None,
        sample_limit: Optional[int] = None,
        user_agent: Optional[str] = None,
    ):
        self.session = session
        self.fetch_timeout = fetch_timeout or settings.ANALYZER_FETCH_TIMEOUT
        self.link_check_timeout = link_check_timeout or settings.ANALYZER_LINK_CHECK_TIMEOUT
        self.sample_limit = sample_limit or settings.ANALYZER_LINK_SAMPLE_LIMIT
        self.user_agent = user_agent or settings.ANALYZER_USER_AGENT

    async def analyze(self, url: str) -> AnalysisResult:
        """
        Analyze a page.

        Args:
            url: Absolute URL of the page

        Returns:
            AnalysisResult, possibly partial with ``error_message`` set

        Raises:
            InvalidURLError: if ``url`` has no scheme or host; nothing is fetched
        """
        validate_target_url(url)
        logger.info(f"Starting analysis of {url}")

        if self.session is not None:
            result = await self._analyze(self.session, url)
        else:
            async with aiohttp.ClientSession() as session:
                result = await self._analyze(session, url)

        if result.error_message:
            logger.warning(f"Analysis of {url} finished with error: {result.error_message}")
        else:
            logger.info(
                f"Finished analysis of {url}: HTTP {result.status_code}, "
                f"{result.total_links} links, {result.broken_link_count} broken, "
                f"{result.load_time:.2f}s"
            )
        return result

    async def _analyze(self, session: aiohttp.ClientSession, url: str) -> AnalysisResult:
        fields: Dict[str, Any] = {"url": url}

        fetcher = Fetcher(session, timeout=self.fetch_timeout, user_agent=self.user_agent)
        outcome = await fetcher.fetch(url)

        if outcome.error is not None:
            fields["error_message"] = f"Failed to fetch URL: {outcome.error}"
            return AnalysisResult(**fields)

        fields["status_code"] = outcome.status_code
        fields["load_time"] = outcome.elapsed

        try:
            doc = _parse_outcome(outcome)
        except HTTPStatusError as e:
            fields["error_message"] = str(e)
            return AnalysisResult(**fields)
        except ParseError as e:
            fields["error_message"] = f"Failed to parse HTML: {e}"
            return AnalysisResult(**fields)

        fields["page_size"] = page_size(outcome.content_length, doc)
        fields["html_version"] = detect_html_version(doc.serialize())
        fields["meta_title"] = extract_meta_title(doc)
        fields["meta_description"] = extract_meta_description(doc)

        for level, texts in extract_headings(doc).items():
            fields[f"h{level}_tags"] = texts

        fields["image_count"] = count_images(doc)

        links = classify_links(doc, url)
        fields["total_links"] = links.total
        fields["internal_links"] = links.internal
        fields["external_links"] = links.external

        forms = analyze_forms(doc)
        fields["form_count"] = forms.form_count
        fields["has_login_form"] = forms.has_login_form

        checker = LinkChecker(
            session,
            sample_limit=self.sample_limit,
            timeout=self.link_check_timeout,
            user_agent=self.user_agent,
        )
        try:
            fields["broken_links"] = await checker.find_broken_links(links.links)
        except Exception as e:
            logger.exception(f"Broken link check failed for {url}")
            fields["error_message"] = f"Broken link check failed: {e}"

        return AnalysisResult(**fields)


async def analyze_url(url: str, **kwargs: Any) -> AnalysisResult:
    """Analyze a single page with a fresh PageAnalyzer."""
    return await PageAnalyzer(**kwargs).analyze(url)


def analyze_url_sync(url: str, **kwargs: Any) -> AnalysisResult:
    """Blocking variant of analyze_url for callers without an event loop."""
    setup_logging()
    return asyncio.run(analyze_url(url, **kwargs))
