"""Tests for the cosine primitive and sparse vector spaces."""

import math

import numpy as np
import pytest
from scipy.sparse import csr_matrix

from hybrid_reco.similarity import SparseVectorSpace, cosine_similarity, cosine_similarity_rows


class TestCosineSimilarity:

    def test_identical_vectors(self):
        assert cosine_similarity({"a": 1.0, "b": 2.0}, {"a": 1.0, "b": 2.0}) == pytest.approx(1.0)

    def test_scaled_vectors_are_identical(self):
        assert cosine_similarity({"a": 1.0, "b": 2.0}, {"a": 3.0, "b": 6.0}) == pytest.approx(1.0)

    def test_disjoint_vectors(self):
        assert cosine_similarity({"a": 1.0}, {"b": 1.0}) == 0.0

    def test_partial_overlap(self):
        # dot = 0.5, norms sqrt(2) and sqrt(1.5)
        similarity = cosine_similarity(
            {"AI": 1.0, "series-a": 1.0},
            {"fintech": 0.5, "AI": 0.5, "seed": 1.0}
        )
        assert similarity == pytest.approx(0.5 / math.sqrt(3))

    def test_empty_vector_yields_zero(self):
        assert cosine_similarity({}, {"a": 1.0}) == 0.0
        assert cosine_similarity({}, {}) == 0.0

    def test_symmetric(self):
        a = {"x": 1.0, "y": 4.0}
        b = {"x": 2.0, "z": 1.0}
        assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))

    def test_result_in_unit_interval(self):
        similarity = cosine_similarity({"a": 1e-3, "b": 1e9}, {"a": 1e9, "b": 1e-3})
        assert 0.0 <= similarity <= 1.0


class TestCosineSimilarityRows:

    def test_row_wise(self):
        vector = csr_matrix(np.array([[1.0, 0.0]]))
        matrix = csr_matrix(np.array([[1.0, 0.0], [0.0, 1.0], [1.0, 1.0], [0.0, 0.0]]))
        similarities = cosine_similarity_rows(vector, matrix)
        assert similarities == pytest.approx([1.0, 0.0, 1 / math.sqrt(2), 0.0])

    def test_dimension_mismatch(self):
        vector = csr_matrix(np.array([[1.0, 0.0, 0.0]]))
        matrix = csr_matrix(np.array([[1.0, 0.0]]))
        with pytest.raises(ValueError, match="Dimension mismatch"):
            cosine_similarity_rows(vector, matrix)


class TestSparseVectorSpace:

    def test_rows_follow_ids(self):
        space = SparseVectorSpace(["b", "a"], {"a": {"x": 1.0}, "b": {"y": 2.0}})
        assert space.ids == ["b", "a"]
        assert space.dimension == 2
        assert space.matrix.toarray().tolist() == [[0.0, 2.0], [1.0, 0.0]]

    def test_vocabulary_covers_vectors_outside_ids(self):
        space = SparseVectorSpace(["a"], {"a": {"x": 1.0}, "other": {"z": 1.0}})
        assert space.dimension == 2
        assert space.transform({"z": 3.0}).toarray().tolist() == [[0.0, 3.0]]

    def test_missing_ids_get_zero_rows(self):
        space = SparseVectorSpace(["a", "ghost"], {"a": {"x": 1.0}})
        assert len(space) == 2
        assert space.matrix.toarray().tolist() == [[1.0], [0.0]]

    def test_unknown_keys_dropped_on_transform(self):
        space = SparseVectorSpace(["a"], {"a": {"x": 1.0}})
        assert space.transform({"x": 2.0, "unseen": 5.0}).toarray().tolist() == [[2.0]]

    def test_empty_space(self):
        space = SparseVectorSpace([], {})
        assert len(space) == 0
        assert space.matrix.shape == (0, 0)
