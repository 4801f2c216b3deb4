"""Outbound link extraction for crawl frontier expansion."""
from typing import List
from urllib.parse import urljoin, urldefrag, urlparse

import httpx

from .extraction import parse_html

SKIP_EXTENSIONS = (
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
    ".zip", ".tar", ".gz",
    ".jpg", ".jpeg", ".png", ".gif", ".svg",
    ".mp3", ".mp4", ".avi",
)

SKIP_PATH_FRAGMENTS = (
    "/wp-admin/", "/admin/", "/login/", "/logout/",
    "/register/", "/cart/", "/checkout/",
)


def normalize_url(url: str) -> str:
    """Drop the fragment so anchors on one page share a visited-set key."""
    return urldefrag(url)[0]


def is_crawlable(url: str, base_host: str, include_external_links: bool) -> bool:
    """Apply the scheme, extension, host and path filters to an absolute URL."""
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        return False

    path = parsed.path.lower()
    if path.endswith(SKIP_EXTENSIONS):
        return False

    if not include_external_links and parsed.hostname != base_host:
        return False

    if any(fragment in parsed.path for fragment in SKIP_PATH_FRAGMENTS):
        return False

    return True


def extract_links(
    html: str,
    current_url: str,
    base_url: str,
    include_external_links: bool = False,
) -> List[str]:
    """
    Collect crawlable links from a page.

    Args:
        html: Raw HTML of the page
        current_url: URL the page was fetched from, used to resolve hrefs
        base_url: Seed URL whose hostname defines the site
        include_external_links: Keep links to other hostnames

    Returns:
        Absolute URLs in first-seen order, without duplicates
    """
    soup = parse_html(html)
    base_host = urlparse(base_url).hostname
    links = []
    seen = set()

    for anchor in soup.find_all("a", href=True):
        try:
            absolute = normalize_url(urljoin(current_url, anchor["href"].strip()))
            if not is_crawlable(absolute, base_host, include_external_links):
                continue
            httpx.URL(absolute)
        except (ValueError, httpx.InvalidURL):
            # Malformed URL (e.g. bad IPv6 literal or non-numeric port)
            continue

        if absolute not in seen:
            seen.add(absolute)
            links.append(absolute)

    return links
