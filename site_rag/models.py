"""Pydantic models for the site RAG server."""
from typing import List, Dict, Any, Optional, Literal
from pydantic import BaseModel, Field
from datetime import datetime, timezone


ContentKind = Literal["website", "document"]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Indexed content
# =============================================================================

class Heading(BaseModel):
    """A heading found on a page."""

    level: str = Field(..., description="Tag name, h1 through h6")
    text: str

    class Config:
        frozen = True


class Page(BaseModel):
    """Normalized content of one crawled HTML page."""

    url: str
    title: str
    description: str = ""
    body_text: str = Field(
        ...,
        description="Main content with whitespace collapsed"
    )
    headings: List[Heading] = Field(default_factory=list)
    word_count: int = 0
    extracted_at: datetime = Field(default_factory=utc_now)

    class Config:
        frozen = True

    def structured_text(self) -> str:
        """Title, description and body joined for chunking."""
        parts = [self.title]
        if self.description:
            parts.append(self.description)
        parts.append(self.body_text)
        return "\n\n".join(parts)


class ChunkRecord(BaseModel):
    """A chunk of indexed text with its embedding and provenance."""

    text: str
    embedding: Optional[List[float]] = Field(
        default=None,
        description="Sentence embedding, absent when the embedder is unavailable"
    )
    source_label: str = Field(
        ...,
        description="Human-readable citation for this chunk"
    )
    url: Optional[str] = None
    title: Optional[str] = None
    chunk_index: int = 0
    page_index: int = 0
    kind: ContentKind = "document"


class RetrievedChunk(BaseModel):
    """A chunk returned by similarity search."""

    record: ChunkRecord
    source: str
    url: Optional[str] = None
    similarity: float


class DocumentEntry(BaseModel):
    """Summary of one indexing event (a crawl or an upload)."""

    name: str
    kind: ContentKind
    uploaded_at: datetime = Field(default_factory=utc_now)
    chunks: int = 0
    pages: int = 0
    total_length: int = 0
    base_url: Optional[str] = None
    note: Optional[str] = None


class IndexStats(BaseModel):
    """Counts over the in-memory index."""

    document_count: int
    chunk_count: int
    website_chunk_count: int
    website_page_count: int = 0


# =============================================================================
# Chat
# =============================================================================

class ChatRequest(BaseModel):
    """Request for a chat answer."""

    message: str = Field(
        ...,
        min_length=1,
        description="User message"
    )
    use_rag: bool = Field(
        default=True,
        alias="useRAG",
        description="Inject retrieved context into the prompt"
    )
    include_website_content: bool = Field(
        default=True,
        alias="includeWebsiteContent",
        description="Allow crawled website chunks as context"
    )

    class Config:
        populate_by_name = True


class ChatMetadata(BaseModel):
    """Metadata describing how an answer was produced."""

    backend: Literal["local", "remote"]
    model: Optional[str] = None
    duration_ms: int
    rag_enabled: bool
    website_content_included: bool
    sources: List[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=utc_now)


class ChatResult(BaseModel):
    """Answer text plus metadata."""

    response: str
    metadata: ChatMetadata


# =============================================================================
# Crawl and model management
# =============================================================================

class CrawlRequest(BaseModel):
    """Request to crawl and index a website."""

    base_url: Optional[str] = Field(
        default=None,
        alias="baseUrl",
        description="Seed URL (auto-detected if omitted)"
    )
    max_pages: int = Field(default=20, ge=1, alias="maxPages")
    respect_robots: bool = Field(default=True, alias="respectRobots")
    include_external_links: bool = Field(default=False, alias="includeExternalLinks")
    crawl_delay: int = Field(
        default=1000,
        ge=0,
        alias="crawlDelay",
        description="Delay between requests in milliseconds"
    )

    class Config:
        populate_by_name = True


class CrawlStartResult(BaseModel):
    """Outcome of asking the service to start a crawl."""

    accepted: bool
    seed_url: Optional[str] = None
    reason: Optional[str] = None


class ModelInitRequest(BaseModel):
    """Request to load a local generation model."""

    model_name: Optional[str] = Field(default=None, alias="modelName")

    class Config:
        populate_by_name = True
        protected_namespaces = ()


class ModelInitResult(BaseModel):
    """Outcome of loading a local generation model."""

    success: bool
    model: str
    reason: Optional[str] = None
    info: Dict[str, Any] = Field(default_factory=dict)


class ModelStatus(BaseModel):
    """Local model and embedder readiness."""

    name: str
    loaded: bool
    loading: bool
    error: Optional[str] = None
    embedder_ready: bool
    info: Dict[str, Any] = Field(default_factory=dict)


class RemoteTestRequest(BaseModel):
    """Request to send a probe message to the remote backend."""

    message: str = "Hello, this is a test message. Please respond briefly."


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    documents: int
    chunks: int
    embedder_ready: bool
    local_model_loaded: bool
    remote_configured: bool
    crawl_in_progress: bool
