"""
Sparse vector spaces over string-keyed mappings.

A SparseVectorSpace fixes a sorted vocabulary and an ordered list of row
identifiers, and stores the rows as a CSR matrix. Sorting both makes the
matrix layout, and therefore every floating point sum, reproducible across runs.
"""

import logging
from typing import Iterable, List, Mapping

from scipy.sparse import csr_matrix
from sklearn.feature_extraction import DictVectorizer

logger = logging.getLogger(__name__)


class SparseVectorSpace:
    """
    Row-indexed sparse matrix built from key -> weight mappings.

    Attributes:
        ids: Row identifiers in matrix order
        matrix: CSR matrix (len(ids) x vocabulary size)
        vectorizer: Fitted DictVectorizer holding the vocabulary
    """

    def __init__(self, ids: Iterable[str], vectors: Mapping[str, Mapping[str, float]]):
        """
        Build the space.

        Args:
            ids: Row identifiers; the matrix keeps this order
            vectors: Vectors keyed by identifier. The vocabulary is fitted on every
                vector in this mapping, including ones not listed in ids, so
                projected vectors keep their full norm. Identifiers without a
                vector get a zero row.
        """
        self.ids: List[str] = list(ids)

        rows = [dict(vectors.get(entity_id, {})) for entity_id in self.ids]
        self.vectorizer = DictVectorizer(sparse=True, sort=True)
        # DictVectorizer refuses an empty sample list
        self.vectorizer.fit([dict(vectors[key]) for key in sorted(vectors)] or [{}])
        if rows:
            self.matrix: csr_matrix = self.vectorizer.transform(rows).tocsr()
        else:
            self.matrix = csr_matrix((0, self.dimension), dtype=float)

        logger.debug(f"Built vector space: {len(self.ids)} rows x {self.dimension} columns")

    @property
    def dimension(self) -> int:
        return len(self.vectorizer.vocabulary_)

    def __len__(self) -> int:
        return len(self.ids)

    def transform(self, vector: Mapping[str, float]) -> csr_matrix:
        """Project a mapping into this space (unknown keys are dropped)."""
        return self.vectorizer.transform([dict(vector)]).tocsr()
