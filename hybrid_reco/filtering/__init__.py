"""Filtering module: collaborative, content-based and popularity candidate scorers."""

from .index import SnapshotIndex
from .collaborative import select_neighbors, collaborative_filtering
from .content import build_user_profile, content_based_filtering
from .popularity import compute_popularity, popularity_ranking, popular_items
from .ranking import rank_scores, to_recommendations

__all__ = [
    "SnapshotIndex",
    "select_neighbors",
    "collaborative_filtering",
    "build_user_profile",
    "content_based_filtering",
    "compute_popularity",
    "popularity_ranking",
    "popular_items",
    "rank_scores",
    "to_recommendations"
]
