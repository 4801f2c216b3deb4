"""Similarity index interface."""
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from ..models import ChunkRecord, ContentKind, RetrievedChunk


class SimilarityIndex(ABC):
    """Abstract base class for chunk stores with similarity search."""

    @abstractmethod
    def insert(self, records: Sequence[ChunkRecord]) -> int:
        """
        Add chunk records to the index.

        Args:
            records: Records to add; embeddings may be absent

        Returns:
            Number of records inserted
        """
        pass

    @abstractmethod
    def purge_by_kind(self, kind: ContentKind) -> int:
        """Remove every record of the given kind and return how many went."""
        pass

    @abstractmethod
    def replace_kind(self, kind: ContentKind, records: Sequence[ChunkRecord]) -> int:
        """
        Atomically swap all records of ``kind`` for ``records``.

        Readers see either the old records or the new ones, never neither.
        """
        pass

    @abstractmethod
    def retrieve(
        self,
        query_vector: Sequence[float],
        top_k: int = 3,
        kind_filter: Optional[ContentKind] = None,
        exclude_kind: Optional[ContentKind] = None,
    ) -> List[RetrievedChunk]:
        """
        Find the chunks most similar to a query vector.

        Args:
            query_vector: Query embedding
            top_k: Maximum number of results
            kind_filter: Only consider records of this kind
            exclude_kind: Skip records of this kind

        Returns:
            Results sorted by similarity, highest first
        """
        pass

    @abstractmethod
    def records(
        self,
        kind_filter: Optional[ContentKind] = None,
        exclude_kind: Optional[ContentKind] = None,
    ) -> List[ChunkRecord]:
        """Stored records in insertion order, optionally filtered by kind."""
        pass

    @abstractmethod
    def count(self, kind: Optional[ContentKind] = None) -> int:
        """Number of stored records, optionally of one kind."""
        pass
