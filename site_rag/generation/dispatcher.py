"""RAG generation dispatcher: context retrieval plus backend selection."""
import logging
from typing import List, Literal, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from .local_engine import LocalEngine
from .prompts import format_sources
from .remote_client import AzureOpenAIClient
from ..embeddings import SentenceEmbedder
from ..errors import EmbedderUnavailableError, GenerationError, LocalModelError
from ..models import ChunkRecord
from ..vector_index import SimilarityIndex

logger = logging.getLogger(__name__)

KEYWORD_FALLBACK_LIMIT = 3


class RetrievedContext(BaseModel):
    """Context text and its deduplicated citations."""

    context: str = ""
    sources: List[str] = Field(default_factory=list)
    method: Literal["none", "vector", "keyword"] = "none"


class GenerationResult(BaseModel):
    """Answer produced by one backend."""

    text: str
    sources: List[str] = Field(default_factory=list)
    backend: Literal["local", "remote"]
    model: Optional[str] = None


def _dedupe(labels: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(labels))


def keyword_fallback(
    message: str,
    candidates: Sequence[ChunkRecord],
    limit: int = KEYWORD_FALLBACK_LIMIT,
) -> List[ChunkRecord]:
    """
    Chunks containing the lower-cased message, else the first few chunks.

    Never returns an empty list when candidates exist.
    """
    needle = message.lower()
    matching = [c for c in candidates if needle in c.text.lower()][:limit]
    if matching:
        logger.info(f"Keyword fallback found {len(matching)} matching chunks")
        return matching
    logger.info("No keyword matches, using fallback chunks for context")
    return list(candidates[:limit])


class GenerationDispatcher:
    """Builds context for a message and routes it to a generation backend."""

    def __init__(
        self,
        index: SimilarityIndex,
        embedder: SentenceEmbedder,
        remote: AzureOpenAIClient,
        local: Optional[LocalEngine] = None,
        use_local_model: bool = False,
        top_k: int = 3,
    ):
        """
        Initialize dispatcher.

        Args:
            index: Chunk index to retrieve from
            embedder: Query embedder
            remote: Azure OpenAI backend
            local: Local pipeline backend
            use_local_model: Try the local backend first when it is loaded
            top_k: Chunks retrieved per message
        """
        self.index = index
        self.embedder = embedder
        self.remote = remote
        self.local = local
        self.use_local_model = use_local_model
        self.top_k = top_k

    async def retrieve_context(
        self,
        message: str,
        include_website_content: bool = True,
    ) -> RetrievedContext:
        """
        Find context for a message.

        Uses vector similarity when the embedder works, otherwise keyword
        containment over the stored chunks.
        """
        exclude_kind = None if include_website_content else "website"
        candidates = self.index.records(exclude_kind=exclude_kind)
        if not candidates:
            return RetrievedContext()

        if await self.embedder.initialize():
            try:
                query_vector = await self.embedder.embed(message)
            except EmbedderUnavailableError as e:
                logger.warning(f"Query embedding unavailable: {e}")
            except Exception as e:
                logger.error(f"RAG error while embedding query: {e}")
            else:
                hits = self.index.retrieve(
                    query_vector,
                    top_k=self.top_k,
                    exclude_kind=exclude_kind,
                )
                if hits:
                    sources = _dedupe([hit.source for hit in hits])
                    logger.info(f"Found {len(hits)} relevant chunks from: {', '.join(sources)}")
                    return RetrievedContext(
                        context="\n\n".join(hit.record.text for hit in hits),
                        sources=sources,
                        method="vector",
                    )
                logger.info("No embedded chunks available, using keyword fallback")

        chunks = keyword_fallback(message, candidates)
        return RetrievedContext(
            context="\n\n".join(chunk.text for chunk in chunks),
            sources=_dedupe([chunk.source_label for chunk in chunks]),
            method="keyword",
        )

    def local_available(self) -> bool:
        return self.use_local_model and self.local is not None and self.local.loaded

    async def respond(
        self,
        message: str,
        rag_enabled: bool = True,
        include_website_content: bool = True,
    ) -> GenerationResult:
        """
        Answer a message, appending citations when context was used.

        The local backend is tried first when enabled and loaded; any local
        failure falls back once to the remote backend. Remote failures
        propagate as GenerationError subclasses.
        """
        retrieved = RetrievedContext()
        if rag_enabled:
            retrieved = await self.retrieve_context(message, include_website_content)

        if self.local_available():
            try:
                text = await self.local.generate(message, retrieved.context)
                logger.info("Local model response generated")
                return GenerationResult(
                    text=text + format_sources(retrieved.sources),
                    sources=retrieved.sources,
                    backend="local",
                    model=self.local.model_name,
                )
            except LocalModelError as e:
                logger.error(f"Local model error: {e}")
                logger.info("Falling back to Azure OpenAI...")
        elif self.use_local_model:
            logger.warning("Local model not available, using Azure OpenAI")

        try:
            text = await self.remote.generate_with_context(message, retrieved.context)
        except GenerationError:
            raise
        except Exception as e:
            raise GenerationError(f"Azure OpenAI error: {e}") from e

        return GenerationResult(
            text=text + format_sources(retrieved.sources),
            sources=retrieved.sources,
            backend="remote",
            model=self.remote.deployment,
        )
