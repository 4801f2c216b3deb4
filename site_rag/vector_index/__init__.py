"""Similarity index package."""
from .interface import SimilarityIndex
from .memory_index import InMemoryIndex, cosine_similarity

__all__ = ["SimilarityIndex", "InMemoryIndex", "cosine_similarity"]
