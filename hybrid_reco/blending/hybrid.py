"""
Hybrid blending of collaborative and content-based scores.

This module implements score-level fusion of the two filtering strategies
plus a popularity backfill for users with too little signal.

Fusion Formula:
    final_score = alpha * score_collaborative + (1 - alpha) * score_content

A candidate missing from one strategy's list contributes 0 for that term.
Candidates whose fused score is 0 carry no signal and are dropped.

Fallback:
    When fewer than n candidates carry a nonzero score, the shortfall is
    filled from the global popularity ranking, skipping the user, anything
    the user already interacted with and candidates already present.
    Fallback entries get a marker score (see FallbackConfig):
    - fixed: constant score (default 0.5)
    - below_personalized: min(score, 0.5 * lowest personalized score), so
      fallback entries always rank below personalized ones
"""

import json
import logging
import time
from collections import defaultdict
from dataclasses import dataclass, asdict
from typing import Dict, Any, List, Optional

from ..data_loading.snapshot import ScoringSnapshot
from ..errors import validate_parameters
from ..filtering import (
    SnapshotIndex,
    collaborative_filtering,
    content_based_filtering,
    popular_items,
    rank_scores,
    to_recommendations
)
from ..schema import Recommendation, ScoreStatus, UserRecommendations

logger = logging.getLogger(__name__)

FALLBACK_MODES = ["fixed", "below_personalized"]


@dataclass
class FallbackConfig:
    """
    Configuration for popularity backfill.

    Attributes:
        mode: "fixed" or "below_personalized"
        score: Score given to fallback entries (upper bound in below_personalized mode)
    """
    mode: str = "fixed"
    score: float = 0.5

    def validate(self) -> None:
        """Validate configuration values."""
        if self.mode not in FALLBACK_MODES:
            raise ValueError(f"Unknown fallback mode: {self.mode}")
        if not 0 < self.score <= 1:
            raise ValueError(f"fallback score must be in (0, 1], got {self.score}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FallbackConfig":
        """Create from dictionary."""
        return cls(**d)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "FallbackConfig":
        """Create from main config dictionary."""
        fallback_config = config.get("fallback", {})
        return cls(
            mode=fallback_config.get("mode", "fixed"),
            score=fallback_config.get("score", 0.5)
        )


@dataclass
class ScoringConfig:
    """
    Default scoring parameters.

    Attributes:
        neighbors: Number of neighbors k for collaborative filtering
        top_n: Number of recommendations n per user
        alpha: Weight of the collaborative score (1 - alpha for content)
        oversample_factor: Each strategy returns oversample_factor * n candidates
    """
    neighbors: int = 2
    top_n: int = 3
    alpha: float = 0.6
    oversample_factor: int = 2

    def validate(self) -> None:
        """Validate configuration values."""
        validate_parameters(self.neighbors, self.top_n, self.alpha)
        if self.oversample_factor < 1:
            raise ValueError(f"oversample_factor must be >= 1, got {self.oversample_factor}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ScoringConfig":
        """Create from dictionary."""
        return cls(**d)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "ScoringConfig":
        """Create from main config dictionary."""
        scoring_config = config.get("scoring", {})
        return cls(
            neighbors=scoring_config.get("neighbors", 2),
            top_n=scoring_config.get("top_n", 3),
            alpha=scoring_config.get("alpha", 0.6),
            oversample_factor=scoring_config.get("oversample_factor", 2)
        )

    def save(self, filepath: str) -> None:
        """Save to JSON file."""
        with open(filepath, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Saved scoring config to {filepath}")

    @classmethod
    def load(cls, filepath: str) -> "ScoringConfig":
        """Load from JSON file."""
        with open(filepath, "r") as f:
            d = json.load(f)
        return cls.from_dict(d)


class HybridRecommender:
    """
    Hybrid recommender over one immutable snapshot.

    Builds the snapshot index once at construction; every scoring call after
    that only reads shared state, so one instance can serve many threads.

    Attributes:
        snapshot: Scoring snapshot
        index: Precomputed sparse matrices and popularity ranking
        fallback_config: Popularity backfill policy
        oversample_factor: Candidate oversampling per strategy
    """

    def __init__(
        self,
        snapshot: ScoringSnapshot,
        fallback_config: Optional[FallbackConfig] = None,
        oversample_factor: int = 2
    ):
        """
        Initialize the recommender.

        Args:
            snapshot: Scoring snapshot
            fallback_config: Popularity backfill policy (default: fixed 0.5)
            oversample_factor: Each strategy returns oversample_factor * n candidates
        """
        if oversample_factor < 1:
            raise ValueError(f"oversample_factor must be >= 1, got {oversample_factor}")

        self.snapshot = snapshot
        self.fallback_config = fallback_config or FallbackConfig()
        self.fallback_config.validate()
        self.oversample_factor = oversample_factor
        self.index = SnapshotIndex(snapshot)
        logger.info(
            f"Initialized HybridRecommender with fallback mode={self.fallback_config.mode}, "
            f"fallback score={self.fallback_config.score}, oversample={oversample_factor}"
        )

    def score(self, user_id: str, k: int, n: int, alpha: float) -> List[Recommendation]:
        """
        Ranked recommendations for one user.

        Args:
            user_id: Target user
            k: Number of neighbors for collaborative filtering
            n: Maximum number of recommendations
            alpha: Collaborative weight in [0, 1]

        Returns:
            Up to n recommendations, best first; empty for unknown users

        Raises:
            InvalidParameterError: If k, n or alpha are out of range
        """
        return self.score_user(user_id, k, n, alpha).recommendations

    def score_user(self, user_id: str, k: int, n: int, alpha: float) -> UserRecommendations:
        """
        Ranked recommendations for one user, with scoring status.

        The status tells an unknown identifier (UNKNOWN_USER) apart from a known
        user without personalized signal (COLD_START).

        Raises:
            InvalidParameterError: If k, n or alpha are out of range
        """
        validate_parameters(k, n, alpha)
        start = time.perf_counter()

        if not self.snapshot.is_known(user_id):
            logger.warning(f"Unknown user {user_id!r}: no recommendations")
            return UserRecommendations(
                user_id=user_id,
                status=ScoreStatus.UNKNOWN_USER,
                elapsed_seconds=time.perf_counter() - start
            )

        recommendations = self._blend(user_id, k, n, alpha)
        personalized = any(not rec.is_fallback for rec in recommendations)
        return UserRecommendations(
            user_id=user_id,
            recommendations=recommendations,
            status=ScoreStatus.OK if personalized else ScoreStatus.COLD_START,
            elapsed_seconds=time.perf_counter() - start
        )

    def collaborative(self, user_id: str, k: int, n: int) -> List[Recommendation]:
        """Pure collaborative ranking for a user."""
        return collaborative_filtering(self.index, user_id, k, n)

    def content_based(self, user_id: str, n: int) -> List[Recommendation]:
        """Pure content-based ranking for a user."""
        return content_based_filtering(self.index, user_id, n)

    def popular(self, n: int) -> List[str]:
        """Most popular targets overall."""
        return popular_items(self.index.popularity, n)

    def _blend(self, user_id: str, k: int, n: int, alpha: float) -> List[Recommendation]:
        """
        Fuse both strategies and backfill from popularity.

        Args:
            user_id: Known target user
            k: Number of neighbors
            n: Number of recommendations
            alpha: Collaborative weight

        Returns:
            Up to n recommendations sorted by score, ties by identifier
        """
        pool_size = self.oversample_factor * n
        collaborative_recs = collaborative_filtering(self.index, user_id, k, pool_size)
        content_recs = content_based_filtering(self.index, user_id, pool_size)

        combined: Dict[str, float] = defaultdict(float)
        for rec in collaborative_recs:
            combined[rec.target_id] += alpha * rec.score
        for rec in content_recs:
            combined[rec.target_id] += (1 - alpha) * rec.score

        personalized = {target_id: score for target_id, score in combined.items() if score > 0}
        recommendations = to_recommendations(rank_scores(personalized, n), self.snapshot)

        shortfall = n - len(personalized)
        if shortfall > 0:
            exclude = set(personalized) | set(self.snapshot.interactions_for(user_id)) | {user_id}
            fallback_ids = popular_items(self.index.popularity, shortfall, exclude)
            fallback_score = self._fallback_score(list(personalized.values()))
            recommendations.extend(
                to_recommendations(
                    [(target_id, fallback_score) for target_id in fallback_ids],
                    self.snapshot,
                    is_fallback=True
                )
            )
            logger.debug(
                f"User {user_id}: {len(personalized)} personalized candidates, "
                f"padded {len(fallback_ids)} from popularity at {fallback_score:.4f}"
            )

        recommendations.sort(key=lambda rec: (-rec.score, rec.target_id))
        return recommendations[:n]

    def _fallback_score(self, personalized_scores: List[float]) -> float:
        """Score assigned to popularity-padded entries."""
        if self.fallback_config.mode == "below_personalized" and personalized_scores:
            return min(self.fallback_config.score, 0.5 * min(personalized_scores))
        return self.fallback_config.score


def create_recommender_from_config(
    snapshot: ScoringSnapshot,
    config: Dict[str, Any]
) -> HybridRecommender:
    """
    Factory function to create a HybridRecommender from config.

    Args:
        snapshot: Scoring snapshot
        config: Main configuration dictionary

    Returns:
        Configured HybridRecommender instance
    """
    scoring_config = ScoringConfig.from_config(config)
    fallback_config = FallbackConfig.from_config(config)
    return HybridRecommender(
        snapshot,
        fallback_config=fallback_config,
        oversample_factor=scoring_config.oversample_factor
    )
