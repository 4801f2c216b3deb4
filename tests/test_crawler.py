"""Test the breadth-first site crawler."""
import pytest

from site_rag.indexing import CrawlOptions, CrawlState, SiteCrawler

from conftest import SITE, client_factory_for, html_page, site_transport


def options(**overrides):
    values = {"crawl_delay": 0, "max_pages": 5}
    values.update(overrides)
    return CrawlOptions(**values)


@pytest.mark.asyncio
async def test_crawl_single_page_with_two_internal_links():
    """Seed plus its two linked pages are kept and the frontier drains."""
    state = CrawlState()
    crawler = SiteCrawler(state, client_factory_for(site_transport(SITE)))

    result = await crawler.crawl("https://example.com/", options())

    assert [p.url for p in result.pages] == [
        "https://example.com/",
        "https://example.com/about",
        "https://example.com/contact",
    ]
    assert result.frontier_remaining == 0
    assert result.errors == []
    assert state.pages_crawled == 3
    assert state.in_progress is False
    assert state.last_crawl_timestamp is not None


@pytest.mark.asyncio
async def test_crawl_respects_max_pages():
    pages = {"https://example.com/": html_page("Home", links=[f"/p{i}" for i in range(5)])}
    for i in range(5):
        pages[f"https://example.com/p{i}"] = html_page(f"Page {i}")
    state = CrawlState()
    crawler = SiteCrawler(state, client_factory_for(site_transport(pages)))

    result = await crawler.crawl("https://example.com/", options(max_pages=2))

    assert len(result.pages) == 2
    assert state.pages_crawled == 2
    assert result.frontier_remaining == 4
    assert len(result.visited) == len(set(result.visited))


@pytest.mark.asyncio
async def test_crawl_skips_robots_disallowed_urls():
    pages = dict(SITE)
    pages["https://example.com/"] = html_page("Home", links=["/about", "/private/secret"])
    pages["https://example.com/private/secret"] = html_page("Secret")
    robots = "User-agent: *\nDisallow: /private\n"
    crawler = SiteCrawler(client_factory=client_factory_for(site_transport(pages, robots)))

    result = await crawler.crawl("https://example.com/", options())
    urls = [p.url for p in result.pages]

    assert "https://example.com/private/secret" not in urls
    assert urls == ["https://example.com/", "https://example.com/about"]
    assert result.errors == []

    ignoring = SiteCrawler(client_factory=client_factory_for(site_transport(pages, robots)))
    result = await ignoring.crawl("https://example.com/", options(respect_robots=False))
    assert "https://example.com/private/secret" in [p.url for p in result.pages]


@pytest.mark.asyncio
async def test_crawl_records_http_errors_and_continues():
    pages = dict(SITE)
    pages["https://example.com/"] = html_page("Home", links=["/missing", "/about"])
    state = CrawlState()
    crawler = SiteCrawler(state, client_factory_for(site_transport(pages)))

    result = await crawler.crawl("https://example.com/", options())

    assert [(e.url, e.message) for e in result.errors] == [("https://example.com/missing", "HTTP 404")]
    assert state.errors == result.errors
    assert [p.url for p in result.pages] == ["https://example.com/", "https://example.com/about"]


@pytest.mark.asyncio
async def test_crawl_skips_thin_pages_but_follows_their_links():
    pages = {
        "https://example.com/": html_page("Home", body="Short.", links=["/about"]),
        "https://example.com/about": SITE["https://example.com/about"],
    }
    crawler = SiteCrawler(client_factory=client_factory_for(site_transport(pages)))

    result = await crawler.crawl("https://example.com/", options())

    assert [p.url for p in result.pages] == ["https://example.com/about"]
    assert len(result.visited) == 2


@pytest.mark.asyncio
async def test_crawl_leaves_in_progress_to_caller():
    """The owner of the flag decides when a crawl is over."""
    state = CrawlState(in_progress=True)
    crawler = SiteCrawler(state, client_factory_for(site_transport(SITE)))

    await crawler.crawl("https://example.com/", options())

    assert state.in_progress is True
    assert state.pages_crawled == 3


@pytest.mark.asyncio
async def test_crawl_stamps_timestamp_on_failure():
    def broken_factory(options):
        raise RuntimeError("no network")

    state = CrawlState()
    crawler = SiteCrawler(state, broken_factory)

    with pytest.raises(RuntimeError):
        await crawler.crawl("https://example.com/", options())

    assert state.last_crawl_timestamp is not None


@pytest.mark.asyncio
async def test_crawl_drops_links_with_invalid_port():
    pages = dict(SITE)
    pages["https://example.com/"] = html_page("Home", links=["https://example.com:abc/x", "/about"])
    crawler = SiteCrawler(client_factory=client_factory_for(site_transport(pages)))

    result = await crawler.crawl("https://example.com/", options())

    assert [p.url for p in result.pages] == ["https://example.com/", "https://example.com/about"]
    assert result.errors == []


@pytest.mark.asyncio
async def test_crawl_records_unfetchable_url_instead_of_aborting():
    state = CrawlState()
    crawler = SiteCrawler(state, client_factory_for(site_transport(SITE)))

    result = await crawler.crawl("https://example.com:abc/", options())

    assert result.pages == []
    assert [e.url for e in result.errors] == ["https://example.com:abc/"]
    assert state.errors == result.errors
