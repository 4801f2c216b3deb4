"""Site RAG Server Package."""

__version__ = "1.0.0"

from .config import RAGConfig
from .models import (
    ChatRequest,
    ChatResult,
    ChunkRecord,
    DocumentEntry,
    Page,
)
from .service import RAGService

__all__ = [
    "RAGConfig",
    "RAGService",
    "ChatRequest",
    "ChatResult",
    "ChunkRecord",
    "DocumentEntry",
    "Page",
]
