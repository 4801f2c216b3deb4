"""CLI interface for crawling and asking questions."""
import asyncio
import logging
import sys

import click
from dotenv import load_dotenv

from ..config import RAGConfig
from ..errors import GenerationError
from ..service import RAGService
from .crawler import SiteCrawler

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """Site RAG CLI - crawl a website and ask questions about it."""
    load_dotenv()
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


@cli.command()
@click.argument("url")
@click.option("--max-pages", "-n", type=int, help="Maximum pages to keep (default: WEBSITE_MAX_PAGES)")
@click.option("--delay", type=float, help="Delay between requests in seconds")
@click.option("--no-robots", is_flag=True, help="Ignore robots.txt")
@click.option("--external", is_flag=True, help="Follow links to other hosts")
@click.option("--dry-run", is_flag=True, help="Crawl and extract without indexing")
def crawl(
    url: str,
    max_pages: int,
    delay: float,
    no_robots: bool,
    external: bool,
    dry_run: bool,
):
    """Crawl a website and index its pages in memory."""
    config = RAGConfig.from_env()
    service = RAGService(config)
    options = service.default_crawl_options(
        max_pages=max_pages,
        crawl_delay=delay,
        respect_robots=not no_robots,
        include_external_links=external,
    )

    async def run():
        if dry_run:
            result = await SiteCrawler().crawl(url, options)
        else:
            result = await service.crawl_and_index(url, options)
        await service.shutdown()
        return result

    result = asyncio.run(run())

    # Print results
    click.echo("\n" + "=" * 60)
    click.echo("CRAWL RESULTS")
    click.echo("=" * 60)
    click.echo(result.summary())

    for page in result.pages:
        click.echo(f"  {page.title} ({page.url}) - {page.word_count} words")

    if not dry_run:
        stats = service.index_stats()
        click.echo(f"\nIndexed: {stats.website_page_count} pages, {stats.website_chunk_count} chunks")

    if result.errors:
        click.echo(f"\nErrors: {len(result.errors)}")
        for err in result.errors[:5]:
            click.echo(f"  - {err.url}: {err.message[:80]}")
        sys.exit(1)


@cli.command()
@click.argument("message")
@click.option("--crawl", "crawl_url", help="Crawl and index this URL before answering")
@click.option("--no-rag", is_flag=True, help="Answer without retrieved context")
def ask(message: str, crawl_url: str, no_rag: bool):
    """Answer one chat message."""
    config = RAGConfig.from_env()
    service = RAGService(config)

    async def run():
        try:
            if crawl_url:
                result = await service.crawl_and_index(crawl_url)
                click.echo(result.summary())
            if config.use_local_model:
                await service.initialize_local_model()
            return await service.respond(message, rag_enabled=not no_rag)
        finally:
            await service.shutdown()

    try:
        result = asyncio.run(run())
    except GenerationError as e:
        click.echo(f"Error ({type(e).__name__}): {e}", err=True)
        sys.exit(1)

    click.echo("\n" + result.response)
    click.echo(
        f"\n[{result.metadata.backend} / {result.metadata.model or 'unknown'} "
        f"in {result.metadata.duration_ms}ms]"
    )


def main():
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
