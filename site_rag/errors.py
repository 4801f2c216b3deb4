"""Exception hierarchy for the site RAG server."""
from typing import List, Optional


class RAGError(Exception):
    """Base class for all site RAG errors."""


class UnsupportedDocumentError(RAGError):
    """Uploaded file type cannot be turned into text."""


class EmbedderUnavailableError(RAGError):
    """The sentence embedder failed to load or is disabled."""


class GenerationError(RAGError):
    """A chat request could not be answered by any backend."""


class LocalModelError(GenerationError):
    """The local transformers pipeline is missing or failed during inference."""


class RemoteConfigurationError(GenerationError):
    """Azure OpenAI settings are incomplete or malformed."""

    def __init__(self, message: str, missing: Optional[List[str]] = None):
        super().__init__(message)
        self.missing = missing or []


class RemoteAPIError(GenerationError):
    """Azure OpenAI returned an error response."""

    def __init__(self, message: str, kind: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
