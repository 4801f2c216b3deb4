"""Breadth-first website crawler."""
import asyncio
import logging
import time
from collections import deque
from datetime import datetime, timezone
from typing import Callable, Optional

import httpx

from .extraction import extract_page
from .links import extract_links, normalize_url
from .models import CrawlError, CrawlOptions, CrawlResult, CrawlState
from .robots import RobotsPolicy

logger = logging.getLogger(__name__)

ClientFactory = Callable[[CrawlOptions], httpx.AsyncClient]


def default_client_factory(options: CrawlOptions) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=options.request_timeout,
        follow_redirects=True,
        headers={
            "User-Agent": options.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
        },
    )


class SiteCrawler:
    """
    Polite single-connection crawler.

    Fetches one URL at a time in breadth-first order, sleeping ``crawl_delay``
    after every fetch. Page counts and errors are written to a ``CrawlState`` so
    callers can poll them while the crawl runs. The ``in_progress`` flag is left
    to the caller, which may hold it beyond the fetch phase.
    """

    def __init__(
        self,
        state: Optional[CrawlState] = None,
        client_factory: Optional[ClientFactory] = None,
    ):
        """
        Initialize crawler.

        Args:
            state: Shared crawl state to update (a private one if omitted)
            client_factory: Builds the HTTP client for a crawl
        """
        self.state = state or CrawlState()
        self.client_factory = client_factory or default_client_factory

    async def crawl(
        self,
        seed_url: str,
        options: Optional[CrawlOptions] = None,
    ) -> CrawlResult:
        """
        Crawl a site starting from ``seed_url``.

        Args:
            seed_url: First URL to fetch; its hostname defines the site
            options: Crawl options

        Returns:
            CrawlResult with extracted pages and per-URL errors
        """
        options = options or CrawlOptions()
        start_time = time.time()

        self.state.pages_crawled = 0
        self.state.errors = []

        seed = normalize_url(seed_url)
        result = CrawlResult(seed_url=seed)
        frontier = deque([seed])
        queued = {seed}
        visited = set()

        logger.info(
            f"Starting crawl of {seed} (max pages {options.max_pages}, "
            f"delay {options.crawl_delay}s)"
        )

        try:
            async with self.client_factory(options) as client:
                robots = RobotsPolicy()
                if options.respect_robots:
                    robots = await RobotsPolicy.load(
                        client,
                        seed,
                        options.user_agent,
                        timeout=options.robots_timeout,
                    )

                while frontier and len(result.pages) < options.max_pages:
                    url = frontier.popleft()
                    queued.discard(url)

                    if url in visited:
                        continue
                    visited.add(url)
                    result.visited.append(url)

                    if not robots.allows(url, options.user_agent):
                        logger.info(f"Robots.txt disallows: {url}")
                        continue

                    try:
                        await self._visit(client, url, seed, options, result, frontier, queued, visited)
                    except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
                        message = self._describe_error(e)
                        logger.error(f"Error crawling {url}: {message}")
                        error = CrawlError(url=url, message=message)
                        result.errors.append(error)
                        self.state.errors.append(error)
                    finally:
                        if options.crawl_delay > 0:
                            await asyncio.sleep(options.crawl_delay)
        finally:
            self.state.last_crawl_timestamp = datetime.now(timezone.utc)

        result.frontier_remaining = len(frontier)
        result.duration_seconds = time.time() - start_time
        logger.info(result.summary())
        return result

    async def _visit(
        self,
        client: httpx.AsyncClient,
        url: str,
        seed: str,
        options: CrawlOptions,
        result: CrawlResult,
        frontier: deque,
        queued: set,
        visited: set,
    ) -> None:
        logger.debug(f"Crawling: {url}")
        response = await client.get(url, timeout=options.request_timeout)
        response.raise_for_status()

        content_type = response.headers.get("content-type", "")
        if "text/html" not in content_type:
            logger.debug(f"Skipping non-HTML content at {url}: {content_type}")
            return

        html = response.text
        page = extract_page(html, url)

        if len(page.body_text.strip()) > options.min_content_length:
            result.pages.append(page)
            self.state.pages_crawled += 1
            logger.info(f"Extracted content from: {page.title or url}")
        else:
            logger.debug(f"Skipping {url}: content too short")

        if len(result.pages) >= options.max_pages:
            return

        for link in extract_links(html, url, seed, options.include_external_links):
            if link not in visited and link not in queued:
                frontier.append(link)
                queued.add(link)

    @staticmethod
    def _describe_error(error: Exception) -> str:
        if isinstance(error, httpx.HTTPStatusError):
            return f"HTTP {error.response.status_code}"
        if isinstance(error, httpx.TimeoutException):
            return f"Timeout: {error}"
        return str(error) or error.__class__.__name__
