"""In-memory similarity index using a linear cosine scan."""
import logging
from typing import List, Optional, Sequence

import numpy as np

from .interface import SimilarityIndex
from ..models import ChunkRecord, ContentKind, RetrievedChunk

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors.

    Returns 0.0 when either vector has zero magnitude.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise ValueError(f"Vector dimensions differ: {va.shape[0]} != {vb.shape[0]}")

    norm = np.linalg.norm(va) * np.linalg.norm(vb)
    if norm == 0:
        return 0.0
    return float(np.dot(va, vb) / norm)


def _matches(
    record: ChunkRecord,
    kind_filter: Optional[ContentKind],
    exclude_kind: Optional[ContentKind],
) -> bool:
    if kind_filter is not None and record.kind != kind_filter:
        return False
    if exclude_kind is not None and record.kind == exclude_kind:
        return False
    return True


class InMemoryIndex(SimilarityIndex):
    """
    Chunk store held in a Python list.

    Mutations build a new list and rebind it in one assignment, so a reader
    iterating the old list is never disturbed.
    """

    def __init__(self):
        self._records: List[ChunkRecord] = []
        self._dimension: Optional[int] = None

    @property
    def dimension(self) -> Optional[int]:
        return self._dimension

    def _check_dimensions(self, records: Sequence[ChunkRecord]) -> None:
        dimension = self._dimension
        for record in records:
            if record.embedding is None:
                continue
            if dimension is None:
                dimension = len(record.embedding)
            elif len(record.embedding) != dimension:
                raise ValueError(
                    f"Embedding dimension {len(record.embedding)} does not match "
                    f"index dimension {dimension}"
                )
        self._dimension = dimension

    def insert(self, records: Sequence[ChunkRecord]) -> int:
        self._check_dimensions(records)
        self._records = self._records + list(records)
        return len(records)

    def purge_by_kind(self, kind: ContentKind) -> int:
        kept = [r for r in self._records if r.kind != kind]
        removed = len(self._records) - len(kept)
        self._records = kept
        if not any(r.embedding is not None for r in kept):
            self._dimension = None
        return removed

    def replace_kind(self, kind: ContentKind, records: Sequence[ChunkRecord]) -> int:
        records = list(records)
        kept = [r for r in self._records if r.kind != kind]
        for record in records:
            if record.kind != kind:
                raise ValueError(f"Record of kind '{record.kind}' passed to replace '{kind}'")

        previous_dimension = self._dimension
        if not any(r.embedding is not None for r in kept):
            self._dimension = None
        try:
            self._check_dimensions(records)
        except ValueError:
            self._dimension = previous_dimension
            raise

        self._records = kept + records
        logger.debug(f"Replaced '{kind}' records: {len(records)} now indexed")
        return len(records)

    def retrieve(
        self,
        query_vector: Sequence[float],
        top_k: int = 3,
        kind_filter: Optional[ContentKind] = None,
        exclude_kind: Optional[ContentKind] = None,
    ) -> List[RetrievedChunk]:
        if top_k <= 0:
            return []

        scored = []
        for record in self._records:
            if record.embedding is None or not _matches(record, kind_filter, exclude_kind):
                continue
            scored.append((cosine_similarity(query_vector, record.embedding), record))

        # sorted() is stable, so ties keep insertion order
        scored.sort(key=lambda item: item[0], reverse=True)

        return [
            RetrievedChunk(
                record=record,
                source=record.source_label,
                url=record.url,
                similarity=similarity,
            )
            for similarity, record in scored[:top_k]
        ]

    def records(
        self,
        kind_filter: Optional[ContentKind] = None,
        exclude_kind: Optional[ContentKind] = None,
    ) -> List[ChunkRecord]:
        return [r for r in self._records if _matches(r, kind_filter, exclude_kind)]

    def count(self, kind: Optional[ContentKind] = None) -> int:
        if kind is None:
            return len(self._records)
        return sum(1 for r in self._records if r.kind == kind)
