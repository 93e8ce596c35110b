"""Batch module for concurrent multi-user scoring."""

from .orchestrator import BatchScorer, BatchConfig, BatchResult, create_batch_scorer_from_config

__all__ = ["BatchScorer", "BatchConfig", "BatchResult", "create_batch_scorer_from_config"]
