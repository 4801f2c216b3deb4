"""Pydantic models for the crawling package."""
from typing import List, Optional
from pydantic import BaseModel, Field
from datetime import datetime

from ..models import Page


class CrawlOptions(BaseModel):
    """Options controlling a single crawl."""

    max_pages: int = Field(
        default=50,
        ge=1,
        description="Stop after this many pages with substantial content"
    )
    respect_robots: bool = Field(
        default=True,
        description="Honour robots.txt rules for the user agent"
    )
    include_external_links: bool = Field(
        default=False,
        description="Follow links to other hostnames"
    )
    crawl_delay: float = Field(
        default=1.0,
        ge=0,
        description="Delay after each fetch in seconds"
    )
    user_agent: str = Field(
        default="WebAppChatbot/1.0",
        description="User agent for HTTP requests and robots.txt matching"
    )
    request_timeout: float = Field(
        default=10.0,
        description="Per-page fetch timeout in seconds"
    )
    robots_timeout: float = Field(
        default=5.0,
        description="robots.txt fetch timeout in seconds"
    )
    min_content_length: int = Field(
        default=100,
        description="Pages with less body text than this are not kept"
    )


class CrawlError(BaseModel):
    """A URL that could not be fetched."""

    url: str
    message: str


class CrawlState(BaseModel):
    """Progress of the current or most recent crawl."""

    last_crawl_timestamp: Optional[datetime] = None
    in_progress: bool = False
    pages_crawled: int = 0
    errors: List[CrawlError] = Field(default_factory=list)


class CrawlResult(BaseModel):
    """Pages and errors produced by one crawl."""

    seed_url: str
    pages: List[Page] = Field(default_factory=list)
    errors: List[CrawlError] = Field(default_factory=list)
    visited: List[str] = Field(default_factory=list)
    frontier_remaining: int = 0
    duration_seconds: float = 0.0

    def summary(self) -> str:
        """Generate a summary string."""
        return (
            f"Crawled {self.seed_url}: {len(self.pages)} pages kept, "
            f"{len(self.visited)} URLs visited, {len(self.errors)} errors "
            f"in {self.duration_seconds:.1f}s"
        )
