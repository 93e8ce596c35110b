"""Similarity module: the shared cosine primitive and sparse vector spaces."""

from .cosine import cosine_similarity, cosine_similarity_rows
from .vectors import SparseVectorSpace

__all__ = ["cosine_similarity", "cosine_similarity_rows", "SparseVectorSpace"]
