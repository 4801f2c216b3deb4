"""
Website crawling and content extraction.

Features:
- Breadth-first crawl bounded by a page budget
- robots.txt policy with a permissive fallback
- Main-content extraction with BeautifulSoup
- Same-host link discovery with extension and path filters
"""
from .models import (
    CrawlOptions,
    CrawlError,
    CrawlState,
    CrawlResult,
)
from .crawler import SiteCrawler
from .robots import RobotsPolicy

__all__ = [
    "CrawlOptions",
    "CrawlError",
    "CrawlState",
    "CrawlResult",
    "SiteCrawler",
    "RobotsPolicy",
]
