"""RAG service - owns the index, crawl state and generation backends."""
import asyncio
import logging
import time
from typing import List, Optional, Tuple
from urllib.parse import urlparse

from .chunking import WordChunker
from .config import RAGConfig, detect_base_url
from .documents import extract_document_text
from .embeddings import SentenceEmbedder
from .generation import AzureOpenAIClient, GenerationDispatcher, LocalEngine, get_local_model_info
from .indexing.crawler import ClientFactory, SiteCrawler
from .indexing.models import CrawlOptions, CrawlResult, CrawlState
from .models import (
    ChatMetadata,
    ChatResult,
    ChunkRecord,
    ContentKind,
    CrawlStartResult,
    DocumentEntry,
    HealthResponse,
    IndexStats,
    ModelInitResult,
    ModelStatus,
    Page,
)
from .vector_index import InMemoryIndex, SimilarityIndex

logger = logging.getLogger(__name__)

ALREADY_IN_PROGRESS = "already-in-progress"


def _valid_seed(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class RAGService:
    """
    Process-wide RAG service.

    Constructed once at startup and closed at shutdown. Every operation the
    HTTP layer and CLI need goes through this object.
    """

    def __init__(
        self,
        config: RAGConfig,
        index: Optional[SimilarityIndex] = None,
        embedder: Optional[SentenceEmbedder] = None,
        local: Optional[LocalEngine] = None,
        remote: Optional[AzureOpenAIClient] = None,
        client_factory: Optional[ClientFactory] = None,
    ):
        """
        Initialize service.

        Args:
            config: Server configuration
            index: Chunk index (in-memory by default)
            embedder: Sentence embedder
            local: Local generation engine
            remote: Azure OpenAI client
            client_factory: HTTP client factory for crawls
        """
        self.config = config
        self.index = index or InMemoryIndex()
        self.embedder = embedder or SentenceEmbedder(
            model_name=config.embedding_model,
            enabled=config.embeddings_enabled,
        )
        self.local = local or LocalEngine(config.local_model_name)
        self.remote = remote or AzureOpenAIClient(config)
        self.chunker = WordChunker(config.chunk_size, config.chunk_overlap)

        self.crawl_state = CrawlState()
        self.crawler = SiteCrawler(self.crawl_state, client_factory)
        self.documents: List[DocumentEntry] = []

        self.dispatcher = GenerationDispatcher(
            index=self.index,
            embedder=self.embedder,
            remote=self.remote,
            local=self.local,
            use_local_model=config.use_local_model,
            top_k=config.rag_top_k,
        )

        self._crawl_task: Optional[asyncio.Task] = None
        self._auto_crawl_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def startup(self):
        """Warm up backends and schedule the auto-crawl if enabled."""
        logger.info("Starting site RAG service...")

        missing = self.config.missing_azure_settings()
        if missing:
            logger.warning(f"Azure OpenAI configuration incomplete. Missing: {', '.join(missing)}")
        else:
            endpoint = self.config.azure_openai_endpoint
            logger.info(
                f"Azure OpenAI ready: {endpoint[:30]}... "
                f"(deployment {self.config.azure_openai_deployment})"
            )

        if self.config.use_local_model:
            await self.initialize_local_model(self.config.local_model_name)

        if await self.embedder.initialize():
            logger.info("Embedder ready for RAG functionality")
        else:
            logger.warning("Embedder not available - will use text search fallback")

        if self.config.website_auto_crawl:
            self._auto_crawl_task = asyncio.create_task(self._delayed_auto_crawl(5.0))

        logger.info("Startup complete")

    async def shutdown(self):
        """Cancel background crawls and close HTTP clients."""
        for task in (self._auto_crawl_task, self._crawl_task):
            if task and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        await self.remote.close()
        logger.info("Shutdown complete")

    # ------------------------------------------------------------------
    # Crawling
    # ------------------------------------------------------------------

    def default_crawl_options(self, **overrides) -> CrawlOptions:
        values = {
            "max_pages": self.config.website_max_pages,
            "crawl_delay": self.config.website_crawl_delay,
            "user_agent": self.config.crawl_user_agent,
            "request_timeout": self.config.request_timeout,
            "robots_timeout": self.config.robots_timeout,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return CrawlOptions(**values)

    def start_crawl(
        self,
        seed_url: Optional[str] = None,
        options: Optional[CrawlOptions] = None,
    ) -> CrawlStartResult:
        """
        Launch a background crawl-and-index task.

        Returns immediately. A crawl already running causes a rejection,
        not a queued request.
        """
        seed_url = seed_url or detect_base_url()

        if not _valid_seed(seed_url):
            return CrawlStartResult(
                accepted=False,
                seed_url=seed_url,
                reason="Invalid URL. Please provide a valid HTTP(S) URL",
            )

        # Check and set with no await in between
        if self.crawl_state.in_progress:
            return CrawlStartResult(accepted=False, seed_url=seed_url, reason=ALREADY_IN_PROGRESS)
        self.crawl_state.in_progress = True

        options = options or self.default_crawl_options()
        self._crawl_task = asyncio.create_task(self._run_crawl(seed_url, options))
        logger.info(f"Website crawl started for: {seed_url}")
        return CrawlStartResult(accepted=True, seed_url=seed_url)

    def start_auto_crawl(self) -> CrawlStartResult:
        """Crawl this deployment's own site, ignoring robots.txt."""
        options = self.default_crawl_options(
            respect_robots=False,
            include_external_links=False,
        )
        return self.start_crawl(detect_base_url(), options)

    async def _delayed_auto_crawl(self, delay: float):
        await asyncio.sleep(delay)
        result = self.start_auto_crawl()
        if not result.accepted:
            logger.warning(f"Auto-crawl not started: {result.reason}")

    async def _run_crawl(self, seed_url: str, options: CrawlOptions):
        try:
            await self.crawl_and_index(seed_url, options)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Website crawl failed: {e}", exc_info=True)
        finally:
            # A stale task must not release a newer crawl's gate
            if self._crawl_task is asyncio.current_task():
                self.crawl_state.in_progress = False

    async def crawl_and_index(
        self,
        seed_url: str,
        options: Optional[CrawlOptions] = None,
    ) -> CrawlResult:
        """
        Crawl a site and replace all website chunks with the result.

        Document chunks are never touched.
        """
        result = await self.crawler.crawl(seed_url, options or self.default_crawl_options())
        if not result.pages:
            logger.info("No pages found to index")
            return result

        await self.index_pages(result.pages, result.seed_url)
        return result

    async def index_pages(self, pages: List[Page], base_url: str) -> int:
        """
        Chunk, embed and index crawled pages as website content.

        Returns:
            Number of chunks indexed
        """
        records: List[ChunkRecord] = []
        embedded = await self.embedder.initialize()

        for page_index, page in enumerate(pages):
            logger.info(f"Processing: {page.title}")
            chunks = self.chunker.chunk(page.structured_text())
            records.extend(await self._build_records(
                chunks,
                embedded,
                kind="website",
                source_label=f"{page.title} ({page.url})",
                url=page.url,
                title=page.title,
                page_index=page_index,
            ))

        self.index.replace_kind("website", records)

        entry = DocumentEntry(
            name=f"Website: {base_url}",
            kind="website",
            chunks=len(records),
            pages=len(pages),
            total_length=sum(len(page.body_text) for page in pages),
            base_url=base_url,
            note="With embeddings" if embedded else "No embeddings - text search only",
        )
        self.documents = [d for d in self.documents if d.kind != "website"] + [entry]

        logger.info(
            f"Website indexing complete ({'with' if embedded else 'without'} embeddings): "
            f"{len(pages)} pages, {len(records)} chunks"
        )
        return len(records)

    async def _build_records(
        self,
        chunks: List[str],
        embedded: bool,
        kind: ContentKind,
        source_label: str,
        url: Optional[str] = None,
        title: Optional[str] = None,
        page_index: int = 0,
    ) -> List[ChunkRecord]:
        records = []
        for chunk_index, chunk in enumerate(chunks):
            embedding = None
            if embedded:
                try:
                    embedding = await self.embedder.embed(chunk)
                except Exception as e:
                    logger.error(
                        f"Error generating embedding for chunk {chunk_index} of {source_label}: {e}"
                    )
                    continue
            records.append(ChunkRecord(
                text=chunk,
                embedding=embedding,
                source_label=source_label,
                url=url,
                title=title,
                chunk_index=chunk_index,
                page_index=page_index,
                kind=kind,
            ))
        return records

    def crawl_status(self) -> CrawlState:
        """Snapshot of the crawl state."""
        return self.crawl_state.model_copy(deep=True)

    def website_status(self) -> dict:
        website_records = self.index.records(kind_filter="website")
        return {
            "crawl": self.crawl_status(),
            "website_content": {
                "pages": len({r.url for r in website_records}),
                "chunks": len(website_records),
            },
        }

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def ingest_document(self, filename: str, data: bytes) -> DocumentEntry:
        """
        Extract, chunk, embed and index an uploaded document.

        Website chunks are never touched.
        """
        text = extract_document_text(filename, data)
        chunks = self.chunker.chunk(text)
        embedded = await self.embedder.initialize()

        records = await self._build_records(
            chunks,
            embedded,
            kind="document",
            source_label=filename,
            title=filename,
        )
        self.index.insert(records)

        entry = DocumentEntry(
            name=filename,
            kind="document",
            chunks=len(records),
            total_length=len(text),
            note=None if embedded else "No embeddings - text search only",
        )
        self.documents.append(entry)
        logger.info(f"Indexed document {filename}: {len(records)} chunks")
        return entry

    def index_stats(self) -> IndexStats:
        website_records = self.index.records(kind_filter="website")
        return IndexStats(
            document_count=len(self.documents),
            chunk_count=self.index.count(),
            website_chunk_count=len(website_records),
            website_page_count=len({r.url for r in website_records}),
        )

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def respond(
        self,
        message: str,
        rag_enabled: bool = True,
        include_website_content: bool = True,
    ) -> ChatResult:
        """Answer a chat message. GenerationError propagates to the caller."""
        start_time = time.time()
        result = await self.dispatcher.respond(message, rag_enabled, include_website_content)
        duration_ms = int((time.time() - start_time) * 1000)

        logger.info(f"Response generated by {result.backend} backend in {duration_ms}ms")
        return ChatResult(
            response=result.text,
            metadata=ChatMetadata(
                backend=result.backend,
                model=result.model,
                duration_ms=duration_ms,
                rag_enabled=rag_enabled,
                website_content_included=include_website_content,
                sources=result.sources,
            ),
        )

    async def test_remote_connection(self, message: str) -> Tuple[str, str]:
        """Send a probe message straight to Azure OpenAI."""
        text = await self.remote.generate_with_context(message)
        return self.remote.deployment, text

    async def initialize_local_model(self, name: Optional[str] = None) -> ModelInitResult:
        target = name or self.config.local_model_name
        logger.info(f"Local model initialization requested: {target}")

        if await self.local.initialize(target):
            return ModelInitResult(
                success=True,
                model=self.local.model_name,
                info=get_local_model_info(self.local.model_name),
            )
        return ModelInitResult(
            success=False,
            model=target,
            reason=self.local.error or "No models could be loaded",
        )

    def model_status(self) -> ModelStatus:
        return ModelStatus(
            name=self.local.model_name,
            loaded=self.local.loaded,
            loading=self.local.loading,
            error=self.local.error,
            embedder_ready=self.embedder.ready,
            info=get_local_model_info(self.local.model_name),
        )

    def health(self) -> HealthResponse:
        stats = self.index_stats()
        return HealthResponse(
            status="healthy",
            documents=stats.document_count,
            chunks=stats.chunk_count,
            embedder_ready=self.embedder.ready,
            local_model_loaded=self.local.loaded,
            remote_configured=self.remote.configured,
            crawl_in_progress=self.crawl_state.in_progress,
        )
