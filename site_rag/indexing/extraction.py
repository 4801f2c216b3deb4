"""HTML content extraction."""
import re
from bs4 import BeautifulSoup

from ..models import Heading, Page

# Elements that never hold page content
NON_CONTENT_SELECTORS = [
    "script",
    "style",
    "nav",
    "header",
    "footer",
    ".sidebar",
    ".menu",
    ".navigation",
]

# Main-content containers, most specific first
CONTENT_SELECTORS = [
    "main",
    '[role="main"]',
    ".content",
    ".main-content",
    ".post-content",
    ".article-content",
    "article",
    ".page-content",
]

UNTITLED = "Untitled Page"

_SPACES = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """Flatten text to one line: every whitespace run, newlines included, becomes a space."""
    return _SPACES.sub(" ", text).strip()


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "lxml")


def extract_page(html: str, url: str) -> Page:
    """
    Extract normalized content from an HTML page.

    Args:
        html: Raw HTML
        url: URL the page was fetched from

    Returns:
        Page with title, description, body text and headings
    """
    soup = parse_html(html)

    for element in soup.select(", ".join(NON_CONTENT_SELECTORS)):
        element.decompose()

    title = ""
    title_tag = soup.find("title")
    if title_tag:
        title = title_tag.get_text(strip=True)
    if not title:
        h1 = soup.find("h1")
        if h1:
            title = h1.get_text(strip=True)
    title = title or UNTITLED

    description = ""
    meta = soup.find("meta", attrs={"name": "description"})
    if meta and meta.get("content"):
        description = meta["content"].strip()

    body_text = ""
    for selector in CONTENT_SELECTORS:
        element = soup.select_one(selector)
        if element is not None:
            body_text = element.get_text(" ").strip()
            if body_text:
                break

    if not body_text:
        container = soup.body or soup
        body_text = container.get_text(" ").strip()

    body_text = normalize_whitespace(body_text)

    headings = []
    for tag in soup.find_all(["h1", "h2", "h3", "h4", "h5", "h6"]):
        text = normalize_whitespace(tag.get_text(" "))
        if text:
            headings.append(Heading(level=tag.name.lower(), text=text))

    return Page(
        url=url,
        title=title,
        description=description,
        body_text=body_text,
        headings=headings,
        word_count=len(body_text.split()),
    )
