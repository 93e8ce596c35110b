"""
Immutable scoring snapshot.

A snapshot bundles the three read-only tables every scoring component needs:

- interactions: user_id -> {target_id -> strength}
- features:     entity_id -> {feature_name -> weight}
- entities:     entity_id -> EntityKind

Key Design Decisions:
- Built once per scoring session and passed explicitly, never global
- Zero strengths and weights are dropped on construction, so absence and
  zero are indistinguishable to every consumer
- Negative values are rejected, never clipped
- Keys are stored in sorted order and wrapped in read-only mappings
"""

import logging
import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Any, Union

import pandas as pd

from ..schema import EntityKind

logger = logging.getLogger(__name__)

Vector = Mapping[str, float]

EMPTY_VECTOR: Vector = MappingProxyType({})


@dataclass(frozen=True)
class ScoringSnapshot:
    """
    Read-only view of interactions, features and entity kinds.

    Use build_snapshot() (or the loaders) rather than the constructor so
    values are validated and normalized.

    Attributes:
        interactions: Interaction rows keyed by acting user
        features: Sparse feature vectors keyed by entity
        entities: Kind tag of every known entity
    """
    interactions: Mapping[str, Vector]
    features: Mapping[str, Vector]
    entities: Mapping[str, EntityKind]

    def interactions_for(self, user_id: str) -> Vector:
        """Interaction row of a user (empty when the user never acted)."""
        return self.interactions.get(user_id, EMPTY_VECTOR)

    def features_for(self, entity_id: str) -> Vector:
        """Feature vector of an entity (empty when none was supplied)."""
        return self.features.get(entity_id, EMPTY_VECTOR)

    def is_known(self, entity_id: str) -> bool:
        return entity_id in self.entities

    def kind_of(self, entity_id: str) -> EntityKind:
        """Kind of an entity; identifiers outside the entity table count as startups."""
        return self.entities.get(entity_id, EntityKind.STARTUP)

    @property
    def user_ids(self) -> List[str]:
        """Sorted identifiers of all entities tagged as users."""
        return sorted(
            entity_id for entity_id, kind in self.entities.items()
            if kind is EntityKind.USER
        )

    def summary(self) -> Dict[str, int]:
        """Sizes of the snapshot tables, for logging."""
        return {
            "entities": len(self.entities),
            "users": len(self.user_ids),
            "interaction_rows": len(self.interactions),
            "interactions": sum(len(row) for row in self.interactions.values()),
            "feature_vectors": len(self.features)
        }

    def to_frame(self) -> pd.DataFrame:
        """Interactions in long format with columns user_id, target_id, strength."""
        records = [
            {"user_id": user_id, "target_id": target_id, "strength": strength}
            for user_id, row in self.interactions.items()
            for target_id, strength in row.items()
        ]
        return pd.DataFrame(records, columns=["user_id", "target_id", "strength"])


def _clean_vector(owner: str, table: str, values: Mapping[str, Any]) -> Vector:
    """
    Validate one sparse row and drop its zero entries.

    Args:
        owner: Identifier owning the row (for error messages)
        table: Table name (for error messages)
        values: Raw key -> value mapping

    Returns:
        Read-only mapping with sorted keys and strictly positive float values

    Raises:
        ValueError: If a key is not a string or a value is negative or not finite
    """
    cleaned = {}
    for key in sorted(values, key=str):
        if not isinstance(key, str):
            raise ValueError(f"{table}[{owner!r}] has non-string key {key!r}")
        value = float(values[key])
        if math.isnan(value) or math.isinf(value):
            raise ValueError(f"{table}[{owner!r}][{key!r}] is not finite: {value}")
        if value < 0:
            raise ValueError(f"{table}[{owner!r}][{key!r}] must be non-negative, got {value}")
        if value > 0:
            cleaned[key] = value
    return MappingProxyType(cleaned)


def _clean_table(table: str, rows: Mapping[str, Mapping[str, Any]]) -> Mapping[str, Vector]:
    cleaned = {}
    for owner in sorted(rows, key=str):
        if not isinstance(owner, str):
            raise ValueError(f"{table} has non-string identifier {owner!r}")
        cleaned[owner] = _clean_vector(owner, table, rows[owner] or {})
    return MappingProxyType(cleaned)


def build_snapshot(
    interactions: Mapping[str, Mapping[str, float]],
    features: Optional[Mapping[str, Mapping[str, float]]] = None,
    entities: Optional[Mapping[str, Union[str, EntityKind]]] = None
) -> ScoringSnapshot:
    """
    Validate raw tables and freeze them into a ScoringSnapshot.

    The input mappings are copied, so later changes by the caller do not leak
    into the snapshot.

    Args:
        interactions: user_id -> {target_id -> strength}
        features: entity_id -> {feature -> weight}
        entities: entity_id -> kind ("user"/"startup" or EntityKind)

    Returns:
        ScoringSnapshot instance

    Raises:
        ValueError: On negative or non-finite values, non-string identifiers
            or unknown kind tags
    """
    clean_interactions = _clean_table("interactions", interactions or {})
    clean_features = _clean_table("features", features or {})

    clean_entities = {}
    for entity_id in sorted((entities or {}), key=str):
        if not isinstance(entity_id, str):
            raise ValueError(f"entities has non-string identifier {entity_id!r}")
        kind = entities[entity_id]
        clean_entities[entity_id] = kind if isinstance(kind, EntityKind) else EntityKind(kind)

    snapshot = ScoringSnapshot(
        interactions=clean_interactions,
        features=clean_features,
        entities=MappingProxyType(clean_entities)
    )
    logger.debug(f"Built snapshot: {snapshot.summary()}")
    return snapshot


def snapshot_from_frames(
    interactions_df: pd.DataFrame,
    features_df: Optional[pd.DataFrame] = None,
    entities_df: Optional[pd.DataFrame] = None
) -> ScoringSnapshot:
    """
    Build a snapshot from long-format DataFrames.

    Expected columns:
        interactions_df: user_id, target_id, strength
        features_df: entity_id, feature, weight
        entities_df: entity_id, kind

    Duplicate (user_id, target_id) and (entity_id, feature) rows are summed.

    Args:
        interactions_df: Interaction records
        features_df: Feature records
        entities_df: Entity kind records

    Returns:
        ScoringSnapshot instance
    """
    interactions: Dict[str, Dict[str, float]] = {}
    if not interactions_df.empty:
        grouped = (
            interactions_df
            .astype({"user_id": str, "target_id": str})
            .groupby(["user_id", "target_id"], sort=True)["strength"]
            .sum()
        )
        for (user_id, target_id), strength in grouped.items():
            interactions.setdefault(user_id, {})[target_id] = float(strength)

    features: Dict[str, Dict[str, float]] = {}
    if features_df is not None and not features_df.empty:
        grouped = (
            features_df
            .astype({"entity_id": str, "feature": str})
            .groupby(["entity_id", "feature"], sort=True)["weight"]
            .sum()
        )
        for (entity_id, feature), weight in grouped.items():
            features.setdefault(entity_id, {})[feature] = float(weight)

    entities: Dict[str, str] = {}
    if entities_df is not None and not entities_df.empty:
        for entity_id, kind in zip(entities_df["entity_id"].astype(str),
                                   entities_df["kind"].astype(str)):
            entities[entity_id] = kind.strip().lower()
        # Entities listed without features still get an (empty) vector
        for entity_id in entities:
            features.setdefault(entity_id, {})

    return build_snapshot(interactions, features, entities)


def load_sample_snapshot() -> ScoringSnapshot:
    """
    Small founder/investor data set for demos and smoke tests.

    u1 is a fintech founder, u2 a fintech/AI seed investor and u3 an AI
    series-a investor; s1 is a fintech seed startup and s2 an AI series-a
    startup, both founded by u1.
    """
    interactions = {
        "u1": {"s2": 1.0},              # liked the AI startup
        "u2": {"s1": 5.0, "u1": 2.0},   # invested in s1, followed its founder
        "u3": {"s2": 5.0},              # invested in s2
    }
    features = {
        "s1": {"fintech": 1.0, "seed": 1.0},
        "s2": {"AI": 1.0, "series-a": 1.0},
        "u1": {"fintech": 1.0, "seed": 1.0},
        "u2": {"fintech": 0.5, "AI": 0.5, "seed": 1.0},
        "u3": {"AI": 1.0, "series-a": 1.0},
    }
    entities = {
        "u1": "user",
        "u2": "user",
        "u3": "user",
        "s1": "startup",
        "s2": "startup",
    }
    return build_snapshot(interactions, features, entities)
