"""robots.txt loading and permission checks."""
import logging
from typing import Optional
from urllib import robotparser
from urllib.parse import urljoin

import httpx

logger = logging.getLogger(__name__)


class RobotsPolicy:
    """robots.txt rules for one site, loaded once per crawl."""

    def __init__(self, parser: Optional[robotparser.RobotFileParser] = None):
        self._parser = parser

    @property
    def restricted(self) -> bool:
        """True when a robots.txt was loaded."""
        return self._parser is not None

    def allows(self, url: str, user_agent: str) -> bool:
        if self._parser is None:
            return True
        return self._parser.can_fetch(user_agent, url)

    @classmethod
    def from_text(cls, body: str, robots_url: str = "") -> "RobotsPolicy":
        parser = robotparser.RobotFileParser()
        parser.set_url(robots_url)
        parser.parse(body.splitlines())
        return cls(parser)

    @classmethod
    async def load(
        cls,
        client: httpx.AsyncClient,
        base_url: str,
        user_agent: str,
        timeout: float = 5.0,
    ) -> "RobotsPolicy":
        """
        Fetch robots.txt for the site of ``base_url``.

        A missing or unreachable robots.txt yields an unrestricted policy.
        """
        robots_url = urljoin(base_url, "/robots.txt")
        try:
            response = await client.get(
                robots_url,
                timeout=timeout,
                headers={"User-Agent": user_agent},
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.info(f"No robots.txt found or accessible at {robots_url}: {e}")
            return cls()

        if response.status_code != 200 or not response.text.strip():
            logger.info(f"No robots.txt found at {robots_url} (HTTP {response.status_code})")
            return cls()

        logger.info(f"Loaded robots.txt from {robots_url}")
        return cls.from_text(response.text, robots_url)
