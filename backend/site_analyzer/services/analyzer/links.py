from dataclasses import dataclass, field
from typing import List
from urllib.parse import urljoin

from loguru import logger

from site_analyzer.core.urls import parse_reference, url_host, validate_target_url
from site_analyzer.services.parser.document import HTMLDocument


@dataclass
class LinkSummary:
    """Resolved anchors of a page, in document order, with their buckets."""

    links: List[str] = field(default_factory=list)
    internal: int = 0
    external: int = 0

    @property
    def total(self) -> int:
        return len(self.links)

    @property
    def other(self) -> int:
        """Resolved links with no host (mailto:, javascript:, ...)."""
        return self.total - self.internal - self.external


def classify_links(doc: HTMLDocument, base_url: str) -> LinkSummary:
    """
    Resolve every ``<a href>`` against the page URL and bucket it.

    Internal links share the page's host exactly (case-sensitive, port
    included), external links have a different non-empty host, and links
    without a host count only toward the total. Duplicates are kept and
    references that do not parse are skipped.

    Args:
        doc: Parsed document
        base_url: Absolute URL of the page

    Returns:
        LinkSummary holding the ordered resolved links and bucket counts
    """
    base_host = url_host(validate_target_url(base_url))
    summary = LinkSummary()

    for a_tag in doc.find_all("a", href=True):
        href = a_tag.get("href", "").strip()
        if not href:
            continue

        if parse_reference(href) is None:
            logger.debug(f"Skipping unparseable link {href!r} on {base_url}")
            continue

        try:
            resolved = urljoin(base_url, href)
        except ValueError:
            logger.debug(f"Skipping unresolvable link {href!r} on {base_url}")
            continue

        resolved_parts = parse_reference(resolved)
        if resolved_parts is None:
            continue

        summary.links.append(resolved)
        host = url_host(resolved_parts)
        if host == base_host:
            summary.internal += 1
        elif host:
            summary.external += 1

    return summary


def count_images(doc: HTMLDocument) -> int:
    return doc.count("img")
