"""
Shared pytest fixtures for the hybrid scoring engine test suite.

Provides the bundled sample snapshot, a cold-start snapshot, a snapshot
built to exercise collaborative filtering, and on-disk copies of the CSV
tables and configuration.
"""

import textwrap

import pytest

from hybrid_reco.blending import HybridRecommender
from hybrid_reco.data_loading import build_snapshot, load_sample_snapshot
from hybrid_reco.filtering import SnapshotIndex


# =======================
# Snapshots
# =======================

@pytest.fixture
def sample_snapshot():
    """Founder/investor sample data: users u1-u3, startups s1-s2."""
    return load_sample_snapshot()


@pytest.fixture
def cold_start_snapshot():
    """u1 has no interactions and no features; only s1 and s2 carry features."""
    return build_snapshot(
        interactions={
            "u1": {},
            "u2": {"s1": 5.0},
            "u3": {"s1": 1.0, "s2": 1.0},
        },
        features={
            "s1": {"fintech": 1.0},
            "s2": {"AI": 1.0},
        },
        entities={
            "u1": "user",
            "u2": "user",
            "u3": "user",
            "s1": "startup",
            "s2": "startup",
        }
    )


@pytest.fixture
def neighbor_snapshot():
    """
    Four users with graded overlap on interaction targets.

    cos(a, b) = 2 / sqrt(12), cos(a, c) = 1 / sqrt(20), cos(a, d) = 0.
    """
    return build_snapshot(
        interactions={
            "a": {"x": 1.0, "y": 1.0},
            "b": {"x": 1.0, "y": 1.0, "z": 2.0},
            "c": {"x": 1.0, "w": 3.0},
            "d": {"q": 1.0},
        },
        entities={"a": "user", "b": "user", "c": "user", "d": "user"}
    )


@pytest.fixture
def sample_index(sample_snapshot):
    return SnapshotIndex(sample_snapshot)


@pytest.fixture
def recommender(sample_snapshot):
    return HybridRecommender(sample_snapshot)


# =======================
# Files on disk
# =======================

@pytest.fixture
def sample_csv_dir(tmp_path):
    """Sample tables written as CSV files."""
    (tmp_path / "interactions.csv").write_text(textwrap.dedent("""\
        user_id,target_id,strength
        u1,s2,1.0
        u2,s1,5.0
        u2,u1,2.0
        u3,s2,5.0
    """))
    (tmp_path / "features.csv").write_text(textwrap.dedent("""\
        entity_id,feature,weight
        s1,fintech,1.0
        s1,seed,1.0
        s2,AI,1.0
        s2,series-a,1.0
        u1,fintech,1.0
        u1,seed,1.0
        u2,fintech,0.5
        u2,AI,0.5
        u2,seed,1.0
        u3,AI,1.0
        u3,series-a,1.0
    """))
    (tmp_path / "entities.csv").write_text(textwrap.dedent("""\
        entity_id,kind
        u1,user
        u2,user
        u3,user
        s1,startup
        s2,startup
    """))
    return tmp_path


@pytest.fixture
def config_file(sample_csv_dir):
    """Complete YAML configuration pointing at the sample CSV files."""
    path = sample_csv_dir / "config.yaml"
    path.write_text(textwrap.dedent(f"""\
        global:
          log_level: INFO
        data:
          interactions:
            path: {sample_csv_dir / "interactions.csv"}
          features:
            path: {sample_csv_dir / "features.csv"}
          entities:
            path: {sample_csv_dir / "entities.csv"}
          delimiter: ","
        scoring:
          neighbors: 2
          top_n: 3
          alpha: 0.6
          oversample_factor: 2
        fallback:
          mode: fixed
          score: 0.5
        batch:
          max_workers: 2
          task_timeout_seconds: null
        output:
          path: null
          format: json
    """))
    return path
