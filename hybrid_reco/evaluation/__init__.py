"""Evaluation module for batch recommendation diagnostics."""

from .metrics import (
    compute_score_distribution_stats,
    compute_coverage,
    compute_fallback_rate,
    compute_strategy_agreement,
    BatchEvaluationReport,
    create_batch_report
)

__all__ = [
    "compute_score_distribution_stats",
    "compute_coverage",
    "compute_fallback_rate",
    "compute_strategy_agreement",
    "BatchEvaluationReport",
    "create_batch_report"
]
