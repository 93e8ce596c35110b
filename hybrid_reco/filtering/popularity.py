"""
Popularity fallback.

Global popularity of a target is the sum of all strengths recorded against it
across every interaction row. The ranking is only used to pad personalized
lists for users with too little signal (cold start).
"""

import logging
from typing import Iterable, List, Optional, Tuple

import pandas as pd

from ..data_loading.snapshot import ScoringSnapshot

logger = logging.getLogger(__name__)


def compute_popularity(snapshot: ScoringSnapshot) -> pd.Series:
    """
    Aggregate interaction mass per target.

    Args:
        snapshot: Scoring snapshot

    Returns:
        Series indexed by target_id with the summed strength, ordered by
        mass descending then target_id ascending
    """
    interactions = snapshot.to_frame()
    if interactions.empty:
        return pd.Series(dtype=float, name="mass")

    mass = (
        interactions
        .groupby("target_id", sort=True)["strength"]
        .sum()
        .rename("mass")
        .reset_index()
        .sort_values(["mass", "target_id"], ascending=[False, True], kind="mergesort")
    )
    return pd.Series(mass["mass"].to_numpy(), index=mass["target_id"].to_numpy(), name="mass")


def popularity_ranking(snapshot: ScoringSnapshot) -> List[Tuple[str, float]]:
    """Full popularity ranking as (target_id, mass) pairs."""
    popularity = compute_popularity(snapshot)
    ranking = [(str(target_id), float(mass)) for target_id, mass in popularity.items()]
    logger.debug(f"Popularity ranking over {len(ranking)} targets")
    return ranking


def popular_items(
    ranking: List[Tuple[str, float]],
    n: int,
    exclude: Optional[Iterable[str]] = None
) -> List[str]:
    """
    First n identifiers of a popularity ranking, skipping excluded ones.

    Args:
        ranking: Output of popularity_ranking()
        n: Number of identifiers wanted; n <= 0 yields an empty list
        exclude: Identifiers that must not be returned

    Returns:
        Up to n identifiers, most popular first
    """
    if n <= 0:
        return []
    excluded = set(exclude or ())
    items = []
    for target_id, _ in ranking:
        if target_id in excluded:
            continue
        items.append(target_id)
        if len(items) >= n:
            break
    return items
