"""
Precomputed, read-only structures derived from a snapshot.

The index is built once, before any scoring call, and then only read. This
is what lets many batch workers share it without locking.
"""

import logging
from typing import List, Tuple

from ..data_loading.snapshot import ScoringSnapshot
from ..similarity.vectors import SparseVectorSpace
from .popularity import popularity_ranking

logger = logging.getLogger(__name__)


class SnapshotIndex:
    """
    Sparse matrices and popularity ranking for one snapshot.

    Attributes:
        snapshot: Source snapshot
        interaction_space: Interaction rows of every known user
        feature_space: Feature vectors of every entity that has one
        popularity: Global popularity ranking as (target_id, mass) pairs
    """

    def __init__(self, snapshot: ScoringSnapshot):
        self.snapshot = snapshot
        self.interaction_space = SparseVectorSpace(snapshot.user_ids, snapshot.interactions)
        self.feature_space = SparseVectorSpace(sorted(snapshot.features), snapshot.features)
        self.popularity: List[Tuple[str, float]] = popularity_ranking(snapshot)

        logger.info(
            f"Built snapshot index: {len(self.interaction_space)} users x "
            f"{self.interaction_space.dimension} targets, "
            f"{len(self.feature_space)} entities x {self.feature_space.dimension} features, "
            f"{len(self.popularity)} popular targets"
        )
