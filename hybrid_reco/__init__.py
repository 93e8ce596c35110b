"""
Hybrid Recommendation Scoring Engine

This package scores and ranks candidate entities (startups, investors,
founders) for a user by blending collaborative filtering over interaction
rows with content-based filtering over precomputed feature vectors.

Key Design Decisions:
- All inputs live in one immutable snapshot built once per scoring session
- A single cosine primitive is shared by both filtering strategies
- Every ranking breaks ties by identifier so output is reproducible
- Popularity only pads results, it never overrides a personalized score
- Batch scoring runs on a bounded worker pool with per-user error capture
"""

__version__ = "1.0.0"
