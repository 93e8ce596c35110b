"""Data loading module for interaction, feature and entity tables."""

from .loaders import load_interactions, load_features, load_entities, load_snapshot
from .snapshot import (
    ScoringSnapshot,
    build_snapshot,
    snapshot_from_frames,
    load_sample_snapshot
)

__all__ = [
    "load_interactions",
    "load_features",
    "load_entities",
    "load_snapshot",
    "ScoringSnapshot",
    "build_snapshot",
    "snapshot_from_frames",
    "load_sample_snapshot"
]
