"""Hybrid blending module for combining filtering strategies."""

from .hybrid import (
    HybridRecommender,
    ScoringConfig,
    FallbackConfig,
    create_recommender_from_config
)

__all__ = [
    "HybridRecommender",
    "ScoringConfig",
    "FallbackConfig",
    "create_recommender_from_config"
]
