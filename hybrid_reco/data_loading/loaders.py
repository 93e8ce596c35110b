"""
Data loading functions for the scoring engine.

This module reads interaction, feature and entity tables from CSV files.
No scoring logic lives here; the frames are handed to snapshot_from_frames().

Expected layouts (one header row each):
- interactions: user_id, target_id, strength
- features:     entity_id, feature, weight   (long format, one row per weight)
- entities:     entity_id, kind              (kind is "user" or "startup")
"""

import logging
from pathlib import Path
from typing import List, Optional

import pandas as pd

from .snapshot import ScoringSnapshot, snapshot_from_frames

logger = logging.getLogger(__name__)

INTERACTION_COLUMNS = ["user_id", "target_id", "strength"]
FEATURE_COLUMNS = ["entity_id", "feature", "weight"]
ENTITY_COLUMNS = ["entity_id", "kind"]


def _read_table(
    filepath: str,
    name: str,
    required_columns: List[str],
    delimiter: str = ","
) -> pd.DataFrame:
    """
    Read one CSV table and check its columns.

    Args:
        filepath: Path to the CSV file
        name: Table name used in log and error messages
        required_columns: Columns that must be present
        delimiter: Field delimiter

    Returns:
        DataFrame restricted to the required columns

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is empty or lacks required columns
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"{name} file not found: {filepath}")

    logger.info(f"Loading {name} from {filepath} (delimiter: {repr(delimiter)})")
    try:
        df = pd.read_csv(filepath, sep=delimiter, dtype={col: str for col in required_columns[:-1]})
    except pd.errors.EmptyDataError:
        raise ValueError(f"{name} file is empty: {filepath}")

    missing = [col for col in required_columns if col not in df.columns]
    if missing:
        raise ValueError(f"{name} file {filepath} is missing columns: {missing}")

    df = df[required_columns].dropna(subset=required_columns[:-1]).copy()
    logger.info(f"Loaded {len(df)} {name} rows")
    return df


def load_interactions(filepath: str, delimiter: str = ",") -> pd.DataFrame:
    """
    Load interaction records.

    Args:
        filepath: Path to the interactions CSV
        delimiter: Field delimiter (default: comma)

    Returns:
        DataFrame with columns user_id, target_id, strength
    """
    df = _read_table(filepath, "interactions", INTERACTION_COLUMNS, delimiter)
    df["strength"] = pd.to_numeric(df["strength"], errors="raise").fillna(0.0)
    return df


def load_features(filepath: str, delimiter: str = ",") -> pd.DataFrame:
    """
    Load precomputed feature weights in long format.

    Args:
        filepath: Path to the features CSV
        delimiter: Field delimiter (default: comma)

    Returns:
        DataFrame with columns entity_id, feature, weight
    """
    df = _read_table(filepath, "features", FEATURE_COLUMNS, delimiter)
    df["weight"] = pd.to_numeric(df["weight"], errors="raise").fillna(0.0)
    return df


def load_entities(filepath: str, delimiter: str = ",") -> pd.DataFrame:
    """
    Load entity kind tags.

    Args:
        filepath: Path to the entities CSV
        delimiter: Field delimiter (default: comma)

    Returns:
        DataFrame with columns entity_id, kind
    """
    df = _read_table(filepath, "entities", ENTITY_COLUMNS, delimiter)
    duplicated = df["entity_id"].duplicated()
    if duplicated.any():
        raise ValueError(
            f"entities file {filepath} lists identifiers more than once: "
            f"{sorted(df.loc[duplicated, 'entity_id'].unique())}"
        )
    return df


def load_snapshot(
    interactions_path: str,
    features_path: Optional[str] = None,
    entities_path: Optional[str] = None,
    delimiter: str = ","
) -> ScoringSnapshot:
    """
    Load all tables from disk and build a scoring snapshot.

    Args:
        interactions_path: Path to the interactions CSV
        features_path: Optional path to the features CSV
        entities_path: Optional path to the entities CSV
        delimiter: Field delimiter shared by all files

    Returns:
        ScoringSnapshot instance
    """
    interactions_df = load_interactions(interactions_path, delimiter)
    features_df = load_features(features_path, delimiter) if features_path else None
    entities_df = load_entities(entities_path, delimiter) if entities_path else None

    snapshot = snapshot_from_frames(interactions_df, features_df, entities_df)
    logger.info(f"Snapshot ready: {snapshot.summary()}")
    return snapshot
