"""Text chunking into overlapping word windows."""
from typing import List, Dict, Any, Optional


def chunk_text(text: str, size: int = 500, overlap: int = 50) -> List[str]:
    """
    Split text into overlapping windows of words.

    Windows start every ``size - overlap`` words. The last window may be
    shorter than ``size``; windowing stops once a window reaches the end of
    the text, so adjacent chunks share exactly ``overlap`` words.

    Args:
        text: Text to chunk
        size: Window size in words
        overlap: Words shared by consecutive windows

    Returns:
        List of non-empty chunks
    """
    if size <= 0:
        raise ValueError("size must be positive")
    if overlap < 0 or overlap >= size:
        raise ValueError("overlap must be >= 0 and smaller than size")

    words = text.split()
    step = size - overlap
    chunks = []

    for start in range(0, len(words), step):
        chunk = " ".join(words[start:start + size]).strip()
        if chunk:
            chunks.append(chunk)
        if start + size >= len(words):
            break

    return chunks


class WordChunker:
    """Fixed-size word window chunker with overlap."""

    def __init__(self, chunk_size: int = 500, chunk_overlap: int = 50):
        """
        Initialize chunker.

        Args:
            chunk_size: Window size in words
            chunk_overlap: Overlap between windows in words
        """
        if chunk_overlap >= chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    def chunk(self, text: str) -> List[str]:
        """Split text into chunks."""
        if not text:
            return []
        return chunk_text(text, self.chunk_size, self.chunk_overlap)

    def chunk_with_metadata(
        self,
        text: str,
        base_metadata: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Chunk text and attach metadata to each chunk.

        Args:
            text: Text to chunk
            base_metadata: Metadata copied onto every chunk

        Returns:
            List of dicts with 'content' and 'metadata' keys
        """
        chunks = self.chunk(text)
        base_metadata = base_metadata or {}

        return [
            {
                "content": chunk,
                "metadata": {
                    **base_metadata,
                    "chunk_index": idx,
                    "total_chunks": len(chunks),
                },
            }
            for idx, chunk in enumerate(chunks)
        ]
