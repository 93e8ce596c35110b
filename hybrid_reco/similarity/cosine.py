"""
Cosine similarity for sparse non-negative vectors.

This is the single similarity primitive of the engine. Both collaborative
filtering (interaction rows) and content-based filtering (feature vectors)
call cosine_similarity_rows(), so the two strategies share one definition:

    cos(A, B) = sum_k A[k] * B[k] / (|A| * |B|)

- The dot product only runs over keys present in both vectors
- Each norm runs over the vector's own keys
- A zero norm on either side yields 0 (no signal, not an error)
- Inputs are non-negative, so the result lies in [0, 1]; the result is
  clipped to absorb floating point overshoot
"""

import logging
from typing import Mapping

import numpy as np
from scipy.sparse import csr_matrix
from sklearn.feature_extraction import DictVectorizer

logger = logging.getLogger(__name__)


def cosine_similarity_rows(vector: csr_matrix, matrix: csr_matrix) -> np.ndarray:
    """
    Cosine similarity between one sparse vector and every row of a matrix.

    Args:
        vector: Sparse row vector (1 x D)
        matrix: Sparse matrix (N x D) in the same vector space

    Returns:
        Array of similarities in [0, 1] (N,)
    """
    if vector.shape[1] != matrix.shape[1]:
        raise ValueError(
            f"Dimension mismatch: vector has {vector.shape[1]} columns, "
            f"matrix has {matrix.shape[1]}"
        )

    # Compute norms
    norm_vector = float(np.sqrt(vector.multiply(vector).sum()))
    norm_rows = np.sqrt(np.asarray(matrix.multiply(matrix).sum(axis=1)).ravel())

    # Row-wise dot products against the single vector
    dot_products = np.asarray((matrix @ vector.T).toarray()).ravel()

    denominators = norm_rows * norm_vector
    similarity = np.zeros(matrix.shape[0], dtype=float)
    np.divide(dot_products, denominators, out=similarity, where=denominators > 0)

    return np.clip(similarity, 0.0, 1.0)


def cosine_similarity(vec_a: Mapping[str, float], vec_b: Mapping[str, float]) -> float:
    """
    Cosine similarity of two sparse vectors given as key -> weight mappings.

    Args:
        vec_a: First vector
        vec_b: Second vector

    Returns:
        Similarity in [0, 1]; 0 if either vector is empty or all zeros
    """
    vectorizer = DictVectorizer(sparse=True, sort=True)
    stacked = vectorizer.fit_transform([dict(vec_a), dict(vec_b)]).tocsr()
    return float(cosine_similarity_rows(stacked[0], stacked[1])[0])
