"""
User-based collaborative filtering.

Candidates come from the behavior of the users whose interaction rows point
in the same direction as the target user's row:

    neighbors = top-k other users by cos(row_user, row_other)
    score[t]  = sum over neighbors of cos(row_user, row_neighbor) * strength(neighbor, t)

Targets the user already interacted with, and the user itself, are never
scored. A user without interactions has similarity 0 to everyone and gets an
empty list, which the hybrid blender reads as a cold-start signal.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Tuple

from ..schema import Recommendation
from ..similarity.cosine import cosine_similarity_rows
from .index import SnapshotIndex
from .ranking import rank_scores, to_recommendations

logger = logging.getLogger(__name__)


def select_neighbors(index: SnapshotIndex, user_id: str, k: int) -> List[Tuple[str, float]]:
    """
    Rank every other known user by interaction similarity and keep the top k.

    Args:
        index: Snapshot index
        user_id: Target user
        k: Number of neighbors; k <= 0 yields an empty list

    Returns:
        List of (neighbor_id, similarity), most similar first, ties by identifier
    """
    if k <= 0:
        return []

    space = index.interaction_space
    target_vector = space.transform(index.snapshot.interactions_for(user_id))
    similarities = cosine_similarity_rows(target_vector, space.matrix)

    scores = {
        other_id: float(similarity)
        for other_id, similarity in zip(space.ids, similarities)
        if other_id != user_id
    }
    return rank_scores(scores, k)


def collaborative_filtering(
    index: SnapshotIndex,
    user_id: str,
    k: int,
    n: int
) -> List[Recommendation]:
    """
    Recommend targets interacted with by the user's nearest neighbors.

    Args:
        index: Snapshot index
        user_id: Target user
        k: Number of neighbors to aggregate over
        n: Number of recommendations to return

    Returns:
        Up to n recommendations sorted by aggregated score (ties by identifier)
    """
    if k <= 0 or n <= 0:
        return []

    snapshot = index.snapshot
    seen = snapshot.interactions_for(user_id)
    scores: Dict[str, float] = defaultdict(float)

    neighbors = select_neighbors(index, user_id, k)
    for neighbor_id, similarity in neighbors:
        # Zero-similarity neighbors carry no signal
        if similarity <= 0:
            continue
        for target_id, strength in snapshot.interactions_for(neighbor_id).items():
            if target_id == user_id or target_id in seen:
                continue
            scores[target_id] += similarity * strength

    logger.debug(
        f"Collaborative filtering for {user_id}: {len(neighbors)} neighbors, "
        f"{len(scores)} candidates"
    )
    return to_recommendations(rank_scores(scores, n), snapshot)
