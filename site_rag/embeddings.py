"""Sentence embedder with lazy, single-flight loading."""
import asyncio
import logging
from typing import List, Optional

from .errors import EmbedderUnavailableError

logger = logging.getLogger(__name__)


class SentenceEmbedder:
    """
    Wraps a sentence-transformers model behind a lazily-initialized handle.

    The model is loaded on first use. Concurrent callers during loading wait
    on the same lock and share its outcome. A failed load marks the embedder
    unavailable for the rest of the process; there is no retry.
    """

    def __init__(
        self,
        model_name: str = "sentence-transformers/all-MiniLM-L6-v2",
        enabled: bool = True,
    ):
        """
        Initialize embedder.

        Args:
            model_name: sentence-transformers model name
            enabled: When False, never load and report unavailable
        """
        self.model_name = model_name
        self.enabled = enabled
        self._model = None
        self._failed = False
        self._error: Optional[str] = None
        self._lock = asyncio.Lock()

    @property
    def ready(self) -> bool:
        return self._model is not None

    @property
    def unavailable(self) -> bool:
        return self._failed or not self.enabled

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def dimension(self) -> Optional[int]:
        if self._model is None:
            return None
        return self._model.get_sentence_embedding_dimension()

    def _load_model(self):
        from sentence_transformers import SentenceTransformer

        return SentenceTransformer(self.model_name)

    async def initialize(self) -> bool:
        """
        Load the model if needed.

        Returns:
            True if the embedder is ready, False if unavailable
        """
        if self._model is not None:
            return True
        if self.unavailable:
            return False

        async with self._lock:
            # Another caller may have finished loading while we waited
            if self._model is not None:
                return True
            if self._failed:
                return False

            try:
                logger.info(f"Loading embedding model: {self.model_name}")
                self._model = await asyncio.to_thread(self._load_model)
                logger.info(
                    f"Embedder ready (dimension {self.dimension})"
                )
                return True
            except Exception as e:
                self._failed = True
                self._error = str(e)
                logger.error(f"Failed to load embedding model {self.model_name}: {e}")
                return False

    async def embed(self, text: str) -> List[float]:
        """
        Embed a single text.

        Args:
            text: Text to embed

        Returns:
            L2-normalized, mean-pooled embedding vector
        """
        if not await self.initialize():
            raise EmbedderUnavailableError(
                self._error or f"Embedder '{self.model_name}' is disabled"
            )

        vector = await asyncio.to_thread(
            self._model.encode,
            text,
            convert_to_numpy=True,
            normalize_embeddings=True,
        )
        return vector.astype("float32").tolist()

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """Embed several texts one at a time, preserving order."""
        return [await self.embed(text) for text in texts]
