"""
Diagnostics for batch recommendation output.

There is no ground truth for these recommendations, so evaluation focuses on
describing the output rather than claiming accuracy:
1. Score distribution of the delivered lists
2. Catalog coverage and how often popularity had to pad lists
3. Status counts (ok, cold start, unknown, failed, timed out)
4. Agreement between the collaborative and content-based rankings
"""

import logging
import math
import warnings
from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional, TYPE_CHECKING
import json

import numpy as np
from scipy.stats import spearmanr

from ..schema import Recommendation

if TYPE_CHECKING:
    from ..batch.orchestrator import BatchResult
    from ..blending.hybrid import HybridRecommender

logger = logging.getLogger(__name__)


@dataclass
class ScoreDistributionStats:
    """Statistics about score distribution."""
    count: int
    mean: float
    std: float
    min: float
    max: float
    quantiles: Dict[str, float]  # e.g., {"p10": 0.2, "p50": 0.5, "p90": 0.8}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": int(self.count),
            "mean": float(self.mean),
            "std": float(self.std),
            "min": float(self.min),
            "max": float(self.max),
            "quantiles": {k: float(v) for k, v in self.quantiles.items()}
        }


@dataclass
class StrategyAgreement:
    """How similarly the two filtering strategies rank one user's candidates."""
    user_id: str
    n_collaborative: int
    n_content: int
    overlap_jaccard: float
    rank_spearman: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "n_collaborative": int(self.n_collaborative),
            "n_content": int(self.n_content),
            "overlap_jaccard": float(self.overlap_jaccard),
            "rank_spearman": None if self.rank_spearman is None else float(self.rank_spearman)
        }


@dataclass
class BatchEvaluationReport:
    """
    Evaluation report for one batch run.

    Documents what was delivered WITHOUT claiming predictive validity.
    """
    n_users: int
    status_counts: Dict[str, int]
    distribution_stats: ScoreDistributionStats
    coverage: float
    fallback_rate: float
    agreements: List[StrategyAgreement] = field(default_factory=list)

    @property
    def mean_rank_spearman(self) -> Optional[float]:
        values = [a.rank_spearman for a in self.agreements if a.rank_spearman is not None]
        return float(np.mean(values)) if values else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "n_users": int(self.n_users),
            "status_counts": dict(self.status_counts),
            "distribution_stats": self.distribution_stats.to_dict(),
            "coverage": float(self.coverage),
            "fallback_rate": float(self.fallback_rate),
            "mean_rank_spearman": self.mean_rank_spearman,
            "agreements": [a.to_dict() for a in self.agreements]
        }

    def save(self, filepath: str) -> None:
        """Save report to JSON file."""
        with open(filepath, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Saved evaluation report to {filepath}")

    def summary(self) -> str:
        """Generate text summary of the report."""
        lines = [
            f"Batch Evaluation Report ({self.n_users} users)",
            "=" * 50,
            "",
            "Status Counts:",
        ]
        for status, count in self.status_counts.items():
            lines.append(f"  {status}: {count}")

        lines.extend([
            "",
            f"Score Distribution ({self.distribution_stats.count} recommendations):",
            f"  Mean: {self.distribution_stats.mean:.4f}",
            f"  Std:  {self.distribution_stats.std:.4f}",
            f"  Min:  {self.distribution_stats.min:.4f}",
            f"  Max:  {self.distribution_stats.max:.4f}",
        ])
        for q_name, q_value in self.distribution_stats.quantiles.items():
            lines.append(f"  {q_name}: {q_value:.4f}")

        lines.extend([
            "",
            f"Catalog coverage: {self.coverage:.2%}",
            f"Fallback rate: {self.fallback_rate:.2%}",
        ])

        if self.agreements:
            spearman = self.mean_rank_spearman
            lines.extend([
                "",
                "Strategy Agreement:",
                f"  Mean Jaccard overlap: {np.mean([a.overlap_jaccard for a in self.agreements]):.4f}",
                f"  Mean rank Spearman: {'n/a' if spearman is None else f'{spearman:.4f}'}",
            ])

        return "\n".join(lines)


def compute_score_distribution_stats(
    scores: np.ndarray,
    quantiles: List[float] = [0.1, 0.25, 0.5, 0.75, 0.9]
) -> ScoreDistributionStats:
    """
    Compute distribution statistics for scores.

    Args:
        scores: Array of recommendation scores
        quantiles: Quantile values to compute (default: p10, p25, p50, p75, p90)

    Returns:
        ScoreDistributionStats instance (all zeros for an empty array)
    """
    scores = np.asarray(scores, dtype=float)
    if scores.size == 0:
        return ScoreDistributionStats(
            count=0, mean=0.0, std=0.0, min=0.0, max=0.0,
            quantiles={f"p{int(q * 100)}": 0.0 for q in quantiles}
        )

    quantile_dict = {
        f"p{int(q * 100)}": float(np.percentile(scores, q * 100))
        for q in quantiles
    }

    return ScoreDistributionStats(
        count=int(scores.size),
        mean=float(np.mean(scores)),
        std=float(np.std(scores)),
        min=float(np.min(scores)),
        max=float(np.max(scores)),
        quantiles=quantile_dict
    )


def compute_coverage(recommendations: Dict[str, List[Recommendation]], catalog_size: int) -> float:
    """
    Fraction of the catalog recommended to at least one user.

    Args:
        recommendations: user_id -> ranked list
        catalog_size: Number of recommendable entities

    Returns:
        Coverage in [0, 1]; 0 for an empty catalog
    """
    if catalog_size <= 0:
        return 0.0
    distinct = {rec.target_id for recs in recommendations.values() for rec in recs}
    return min(1.0, len(distinct) / catalog_size)


def compute_fallback_rate(recommendations: Dict[str, List[Recommendation]]) -> float:
    """Share of delivered recommendations that came from popularity padding."""
    delivered = [rec for recs in recommendations.values() for rec in recs]
    if not delivered:
        return 0.0
    return sum(1 for rec in delivered if rec.is_fallback) / len(delivered)


def compute_strategy_agreement(
    user_id: str,
    collaborative: List[Recommendation],
    content: List[Recommendation]
) -> StrategyAgreement:
    """
    Compare the collaborative and content-based rankings of one user.

    Candidates missing from one ranking are placed just after its last entry.
    Spearman correlation is undefined (None) with fewer than two candidates or
    when one ranking is constant.

    Args:
        user_id: User both rankings belong to
        collaborative: Collaborative ranking, best first
        content: Content-based ranking, best first

    Returns:
        StrategyAgreement instance
    """
    cf_rank = {rec.target_id: position for position, rec in enumerate(collaborative)}
    cb_rank = {rec.target_id: position for position, rec in enumerate(content)}
    union = sorted(set(cf_rank) | set(cb_rank))
    intersection = set(cf_rank) & set(cb_rank)
    jaccard = len(intersection) / len(union) if union else 0.0

    spearman = None
    if len(union) > 1:
        vec_cf = [cf_rank.get(target_id, len(cf_rank)) for target_id in union]
        vec_cb = [cb_rank.get(target_id, len(cb_rank)) for target_id in union]
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            correlation, _ = spearmanr(vec_cf, vec_cb)
        if not math.isnan(correlation):
            spearman = float(correlation)

    return StrategyAgreement(
        user_id=user_id,
        n_collaborative=len(collaborative),
        n_content=len(content),
        overlap_jaccard=jaccard,
        rank_spearman=spearman
    )


def create_batch_report(
    batch_result: "BatchResult",
    recommender: Optional["HybridRecommender"] = None,
    k: Optional[int] = None,
    n: Optional[int] = None
) -> BatchEvaluationReport:
    """
    Create a complete evaluation report for a batch run.

    Args:
        batch_result: BatchResult from BatchScorer.run()
        recommender: HybridRecommender used for the batch; enables catalog
            coverage and strategy agreement
        k: Neighbor count used for the batch (for strategy agreement)
        n: List length used for the batch (for strategy agreement)

    Returns:
        BatchEvaluationReport instance
    """
    recommendations = batch_result.recommendations
    scores = np.array([rec.score for recs in recommendations.values() for rec in recs])

    catalog_size = 0
    agreements = []
    if recommender is not None:
        catalog_size = len(set(recommender.snapshot.features) | set(recommender.snapshot.entities))
        if k is not None and n is not None:
            for user_id in recommendations:
                if not recommender.snapshot.is_known(user_id):
                    continue
                agreements.append(compute_strategy_agreement(
                    user_id,
                    recommender.collaborative(user_id, k, n),
                    recommender.content_based(user_id, n)
                ))

    return BatchEvaluationReport(
        n_users=(
            len(batch_result.results)
            + len(batch_result.timed_out)
            + len(batch_result.not_started)
        ),
        status_counts=batch_result.status_counts(),
        distribution_stats=compute_score_distribution_stats(scores),
        coverage=compute_coverage(recommendations, catalog_size),
        fallback_rate=compute_fallback_rate(recommendations),
        agreements=agreements
    )
