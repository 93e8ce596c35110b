"""
Content-based filtering.

A user's preference profile is the strength-weighted average of the feature
vectors of the items they interacted with:

    profile[f] = sum_i strength(user, i) * features(i)[f] / sum_i strength(user, i)

Every entity with a feature vector that the user has not interacted with is
then scored by cos(profile, features(entity)). A user with zero total strength
has an empty profile, so every candidate scores 0 (cold-start signal).
"""

import logging
from collections import defaultdict
from typing import Dict, List

from ..data_loading.snapshot import ScoringSnapshot
from ..schema import Recommendation
from ..similarity.cosine import cosine_similarity_rows
from .index import SnapshotIndex
from .ranking import rank_scores, to_recommendations

logger = logging.getLogger(__name__)


def build_user_profile(snapshot: ScoringSnapshot, user_id: str) -> Dict[str, float]:
    """
    Weighted-average feature profile of a user.

    Items without a feature vector add nothing to the profile, but their
    strength still counts towards the normalizing total.

    Args:
        snapshot: Scoring snapshot
        user_id: User to profile

    Returns:
        Feature -> weight mapping (empty for users without interactions)
    """
    interactions = snapshot.interactions_for(user_id)
    total_strength = sum(interactions.values())
    if total_strength <= 0:
        return {}

    profile: Dict[str, float] = defaultdict(float)
    for target_id, strength in interactions.items():
        for feature, weight in snapshot.features_for(target_id).items():
            profile[feature] += strength * weight

    return {feature: profile[feature] / total_strength for feature in sorted(profile)}


def content_based_filtering(index: SnapshotIndex, user_id: str, n: int) -> List[Recommendation]:
    """
    Recommend entities whose features match the user's profile.

    Args:
        index: Snapshot index
        user_id: Target user
        n: Number of recommendations to return

    Returns:
        Up to n recommendations sorted by similarity (ties by identifier);
        scores are 0 for every candidate when the profile is empty
    """
    if n <= 0:
        return []

    snapshot = index.snapshot
    space = index.feature_space
    profile = build_user_profile(snapshot, user_id)
    similarities = cosine_similarity_rows(space.transform(profile), space.matrix)

    seen = snapshot.interactions_for(user_id)
    scores = {
        entity_id: float(similarity)
        for entity_id, similarity in zip(space.ids, similarities)
        if entity_id != user_id and entity_id not in seen
    }

    logger.debug(
        f"Content-based filtering for {user_id}: {len(profile)} profile features, "
        f"{len(scores)} candidates"
    )
    return to_recommendations(rank_scores(scores, n), snapshot)
