import asyncio
import time
from dataclasses import dataclass
from typing import Dict, Optional

import aiohttp
from loguru import logger

from site_analyzer.core.config import settings
from site_analyzer.core.exceptions import NetworkError


@dataclass
class FetchOutcome:
    """Raw outcome of the single timed GET against the analysis target."""

    url: str
    status_code: int = 0
    elapsed: float = 0.0
    content_length: Optional[int] = None
    body: bytes = b""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and 0 < self.status_code < 400


class Fetcher:
    """
    Issues one GET per analysis and times the full request/response cycle.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        verify_ssl: Optional[bool] = None,
    ):
        self.session = session
        self.timeout = timeout or settings.ANALYZER_FETCH_TIMEOUT
        self.user_agent = user_agent or settings.ANALYZER_USER_AGENT
        self.verify_ssl = settings.ANALYZER_VERIFY_SSL if verify_ssl is None else verify_ssl

    def _headers(self) -> Dict[str, str]:
        return {
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
        }

    async def fetch(self, url: str) -> FetchOutcome:
        """
        Fetch a URL. Transport failures are reported on the outcome, not raised.

        Args:
            url: Absolute URL to fetch

        Returns:
            FetchOutcome with status code, elapsed seconds and body bytes,
            or with ``error`` set when no response was received
        """
        started = time.perf_counter()
        try:
            status_code, content_length, body = await self._get(url)
        except NetworkError as e:
            elapsed = time.perf_counter() - started
            logger.warning(f"Failed to fetch {url} after {elapsed:.2f}s: {e}")
            return FetchOutcome(url=url, elapsed=elapsed, error=str(e))

        elapsed = time.perf_counter() - started
        logger.debug(
            f"Fetched {url}: HTTP {status_code}, {len(body)} bytes in {elapsed:.2f}s"
        )
        return FetchOutcome(
            url=url,
            status_code=status_code,
            elapsed=elapsed,
            content_length=content_length,
            body=body,
        )

    async def _get(self, url: str):
        try:
            async with self.session.get(
                url,
                headers=self._headers(),
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                allow_redirects=True,
                ssl=self.verify_ssl,
            ) as response:
                # Error pages are never parsed, so their body is not read
                if response.status >= 400:
                    return response.status, response.content_length, b""
                body = await response.read()
                return response.status, response.content_length, body
        except asyncio.TimeoutError as e:
            raise NetworkError(f"request timed out after {self.timeout:g}s") from e
        except (aiohttp.ClientError, ValueError) as e:
            raise NetworkError(str(e) or e.__class__.__name__) from e
