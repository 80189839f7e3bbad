import asyncio
from typing import List, Optional, Sequence

import aiohttp
from loguru import logger

from site_analyzer.core.config import settings
from site_analyzer.core.exceptions import ProbeError
from site_analyzer.schemas.analysis import BrokenLink


class LinkChecker:
    """
    Probes a bounded sample of links with HEAD requests.

    Only the first ``sample_limit`` links are ever checked, to keep the load
    placed on third-party servers small. The sampled probes run concurrently
    and each one has its own timeout.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        sample_limit: Optional[int] = None,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        verify_ssl: Optional[bool] = None,
    ):
        self.session = session
        self.sample_limit = sample_limit or settings.ANALYZER_LINK_SAMPLE_LIMIT
        self.timeout = timeout or settings.ANALYZER_LINK_CHECK_TIMEOUT
        self.user_agent = user_agent or settings.ANALYZER_USER_AGENT
        self.verify_ssl = settings.ANALYZER_VERIFY_SSL if verify_ssl is None else verify_ssl

    async def find_broken_links(self, links: Sequence[str]) -> List[BrokenLink]:
        """
        Check the sampled prefix of ``links`` and report the broken ones.

        Args:
            links: Resolved absolute links in document order

        Returns:
            Broken links in the same relative order as ``links``
        """
        sample = list(links[: self.sample_limit])
        if not sample:
            return []

        logger.debug(f"Checking {len(sample)} of {len(links)} links")
        # gather() keeps input order whatever order the probes finish in
        results = await asyncio.gather(*(self.check_link(link) for link in sample))
        broken = [result for result in results if result is not None]

        if broken:
            logger.info(f"Found {len(broken)} broken links out of {len(sample)} checked")
        return broken

    async def check_link(self, url: str) -> Optional[BrokenLink]:
        """
        Probe one link.

        Returns:
            BrokenLink when the probe failed or answered with status >= 400,
            otherwise None
        """
        try:
            status = await self._head(url)
        except ProbeError as e:
            logger.debug(f"Link check failed for {url}: {e}")
            return BrokenLink(url=url, status_code=0, error=str(e))
        except Exception as e:
            # One failing check must not discard the other results
            logger.exception(f"Unexpected error while checking link {url}")
            return BrokenLink(url=url, status_code=0, error=str(e) or e.__class__.__name__)

        if status >= 400:
            logger.debug(f"Link {url} answered HTTP {status}")
            return BrokenLink(url=url, status_code=status)
        return None

    async def _head(self, url: str) -> int:
        try:
            async with self.session.head(
                url,
                headers={"User-Agent": self.user_agent},
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                allow_redirects=True,
                ssl=self.verify_ssl,
            ) as response:
                return response.status
        except asyncio.TimeoutError as e:
            raise ProbeError(url, f"request timed out after {self.timeout:g}s") from e
        except (aiohttp.ClientError, ValueError) as e:
            raise ProbeError(url, str(e) or e.__class__.__name__) from e
