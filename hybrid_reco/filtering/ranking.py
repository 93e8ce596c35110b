"""
Ranking helpers shared by every candidate scorer.

All rankings in the engine order by score descending and break ties by
identifier ascending, so a list never depends on dict iteration order.
"""

from typing import List, Mapping, Tuple

from ..data_loading.snapshot import ScoringSnapshot
from ..schema import Recommendation


def rank_scores(scores: Mapping[str, float], n: int) -> List[Tuple[str, float]]:
    """
    Top-n (identifier, score) pairs, score descending, identifier ascending.

    Args:
        scores: Identifier -> score
        n: Number of entries to keep; n <= 0 yields an empty list

    Returns:
        List of (identifier, score) tuples
    """
    if n <= 0:
        return []
    ordered = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
    return ordered[:n]


def to_recommendations(
    ranked: List[Tuple[str, float]],
    snapshot: ScoringSnapshot,
    is_fallback: bool = False
) -> List[Recommendation]:
    """Wrap ranked pairs into Recommendation objects tagged with entity kind."""
    return [
        Recommendation(
            target_id=target_id,
            kind=snapshot.kind_of(target_id),
            score=float(score),
            is_fallback=is_fallback
        )
        for target_id, score in ranked
    ]
