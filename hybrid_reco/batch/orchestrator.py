"""
Concurrent batch scoring.

Runs the hybrid recommender for many users on a bounded thread pool.

Key Design Decisions:
- One task per distinct user; the pool is capped by max_workers
- Tasks only read the shared, immutable snapshot index and return their own
  UserRecommendations object; the calling thread is the single consumer that
  writes the results mapping. The only value a task writes is its own start
  time, under its own key
- An exception in one task is recorded as FAILED for that user only
- With task_timeout_seconds set, each task gets its own deadline counted from
  the moment a worker starts it. A task that runs past it is left out of the
  results and reported in BatchResult.timed_out instead of blocking the batch
- Threads cannot be interrupted, so a timed-out task keeps its worker. Once
  every worker is held that way, users still queued can never start; they are
  cancelled and reported in BatchResult.not_started
- Completion order is irrelevant: results are keyed, and ordered, by the
  order users were given
"""

import json
import logging
import os
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, as_completed, wait
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Dict, Any, Iterable, List, Optional, Set

import pandas as pd

from ..blending.hybrid import HybridRecommender
from ..errors import validate_parameters
from ..schema import Recommendation, ScoreStatus, UserRecommendations

logger = logging.getLogger(__name__)


@dataclass
class BatchConfig:
    """
    Configuration for batch scoring.

    Attributes:
        max_workers: Upper bound on worker threads (None: min(32, cpu_count + 4))
        task_timeout_seconds: Per-user deadline (None: no deadline)
    """
    max_workers: Optional[int] = None
    task_timeout_seconds: Optional[float] = None

    def validate(self) -> None:
        """Validate configuration values."""
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.task_timeout_seconds is not None and self.task_timeout_seconds <= 0:
            raise ValueError(
                f"task_timeout_seconds must be positive, got {self.task_timeout_seconds}"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "BatchConfig":
        """Create from dictionary."""
        return cls(**d)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "BatchConfig":
        """Create from main config dictionary."""
        batch_config = config.get("batch", {})
        return cls(
            max_workers=batch_config.get("max_workers"),
            task_timeout_seconds=batch_config.get("task_timeout_seconds")
        )


@dataclass
class BatchResult:
    """
    Outcome of one batch run.

    Attributes:
        results: Per-user results keyed by user identifier (timed-out and
            not-started users absent)
        timed_out: Users whose task ran past its own deadline
        not_started: Users cancelled before a worker picked them up, because
            every worker was held by a timed-out task
        elapsed_seconds: Wall time of the whole batch
    """
    results: Dict[str, UserRecommendations] = field(default_factory=dict)
    timed_out: List[str] = field(default_factory=list)
    not_started: List[str] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    @property
    def recommendations(self) -> Dict[str, List[Recommendation]]:
        """Plain user_id -> ranked list mapping."""
        return {user_id: result.recommendations for user_id, result in self.results.items()}

    @property
    def failures(self) -> Dict[str, str]:
        """Error message of every failed user."""
        return {
            user_id: result.error or ""
            for user_id, result in self.results.items()
            if result.status is ScoreStatus.FAILED
        }

    def status_counts(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in ScoreStatus}
        for result in self.results.values():
            counts[result.status.value] += 1
        counts["timed_out"] = len(self.timed_out)
        counts["not_started"] = len(self.not_started)
        return counts

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "results": {user_id: result.to_dict() for user_id, result in self.results.items()},
            "timed_out": list(self.timed_out),
            "not_started": list(self.not_started),
            "status_counts": self.status_counts(),
            "elapsed_seconds": float(self.elapsed_seconds)
        }

    def to_frame(self) -> pd.DataFrame:
        """
        Results in long format, one row per recommendation.

        Columns: user_id, status, rank, target_id, kind, score, is_fallback.
        Users without recommendations get a single row with empty target fields.
        """
        columns = ["user_id", "status", "rank", "target_id", "kind", "score", "is_fallback"]
        rows = []
        for user_id, result in self.results.items():
            if not result.recommendations:
                rows.append({"user_id": user_id, "status": result.status.value})
                continue
            for rank, rec in enumerate(result.recommendations, start=1):
                rows.append({
                    "user_id": user_id,
                    "status": result.status.value,
                    "rank": rank,
                    "target_id": rec.target_id,
                    "kind": rec.kind.value,
                    "score": rec.score,
                    "is_fallback": rec.is_fallback
                })
        return pd.DataFrame(rows, columns=columns)

    def save(self, filepath: str) -> None:
        """
        Save results to disk.

        The format follows the file suffix: ".csv" writes the long-format
        frame, anything else writes JSON.
        """
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.suffix.lower() == ".csv":
            self.to_frame().to_csv(path, index=False)
        else:
            with open(path, "w") as f:
                json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Saved batch results for {len(self.results)} users to {filepath}")


class BatchScorer:
    """
    Bounded concurrent scorer for many users.

    Attributes:
        recommender: Shared HybridRecommender (read-only during a batch)
        config: BatchConfig with pool size and deadline
    """

    def __init__(self, recommender: HybridRecommender, config: Optional[BatchConfig] = None):
        self.recommender = recommender
        self.config = config or BatchConfig()
        self.config.validate()
        logger.info(
            f"Initialized BatchScorer with max_workers={self.config.max_workers}, "
            f"task_timeout={self.config.task_timeout_seconds}"
        )

    def batch_score(
        self,
        user_ids: Iterable[str],
        k: int,
        n: int,
        alpha: float
    ) -> Dict[str, UserRecommendations]:
        """
        Score every user and return the per-user results.

        Args:
            user_ids: Users to score (duplicates are scored once)
            k: Number of neighbors for collaborative filtering
            n: Maximum number of recommendations per user
            alpha: Collaborative weight in [0, 1]

        Returns:
            Mapping user_id -> UserRecommendations (timed-out and not-started
            users absent)

        Raises:
            InvalidParameterError: If k, n or alpha are out of range
        """
        return self.run(user_ids, k, n, alpha).results

    def run(self, user_ids: Iterable[str], k: int, n: int, alpha: float) -> BatchResult:
        """
        Score every user and return the full batch outcome.

        Raises:
            InvalidParameterError: If k, n or alpha are out of range
        """
        validate_parameters(k, n, alpha)
        users = list(dict.fromkeys(user_ids))
        if not users:
            return BatchResult()

        start = time.perf_counter()
        max_workers = self._resolve_workers(len(users))
        logger.info(
            f"Scoring batch of {len(users)} users with {max_workers} workers "
            f"(k={k}, n={n}, alpha={alpha})"
        )

        collected: Dict[str, UserRecommendations] = {}
        timed_out: List[str] = []
        not_started: List[str] = []
        started: Dict[str, float] = {}
        executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="hybrid-reco")
        futures: Dict[Future, str] = {
            executor.submit(self._score_one, user_id, k, n, alpha, started): user_id
            for user_id in users
        }

        try:
            if self.config.task_timeout_seconds is None:
                for future in as_completed(futures):
                    self._collect(futures[future], future.result(), collected, timed_out)
            else:
                self._collect_with_deadlines(
                    futures, started, max_workers, collected, timed_out, not_started
                )
        finally:
            executor.shutdown(wait=not timed_out, cancel_futures=True)

        order = {user_id: position for position, user_id in enumerate(users)}
        result = BatchResult(
            results={user_id: collected[user_id] for user_id in users if user_id in collected},
            timed_out=sorted(timed_out, key=order.get),
            not_started=sorted(not_started, key=order.get),
            elapsed_seconds=time.perf_counter() - start
        )
        logger.info(f"Batch finished in {result.elapsed_seconds:.3f}s: {result.status_counts()}")
        return result

    def _collect_with_deadlines(
        self,
        futures: Dict[Future, str],
        started: Dict[str, float],
        max_workers: int,
        collected: Dict[str, UserRecommendations],
        timed_out: List[str],
        not_started: List[str]
    ) -> None:
        """
        Consume results while enforcing the per-task deadline.

        Each task's deadline runs from its own start time, so users waiting in
        the queue are never charged for the time other tasks took.

        Args:
            futures: Future -> user_id for every submitted task
            started: user_id -> start time, written by the tasks themselves
            max_workers: Pool size
            collected: Output mapping for finished users
            timed_out: Output list of users past their deadline
            not_started: Output list of users that could never be scheduled
        """
        task_timeout = self.config.task_timeout_seconds
        pending: Set[Future] = set(futures)
        abandoned: Set[Future] = set()

        while pending:
            now = time.perf_counter()
            remaining = [
                started[futures[future]] + task_timeout - now
                for future in pending if futures[future] in started
            ]
            wait_for = max(0.0, min(remaining)) if remaining else task_timeout
            done, pending = wait(pending, timeout=wait_for + 0.001, return_when=FIRST_COMPLETED)

            for future in done:
                self._collect(futures[future], future.result(), collected, timed_out)

            now = time.perf_counter()
            for future in list(pending):
                user_id = futures[future]
                if user_id in started and now - started[user_id] >= task_timeout:
                    logger.warning(
                        f"User {user_id} still running after the {task_timeout}s deadline; "
                        f"dropping result"
                    )
                    timed_out.append(user_id)
                    pending.discard(future)
                    abandoned.add(future)

            held = sum(1 for future in abandoned if not future.done())
            if pending and held >= max_workers:
                # Every worker is stuck on a timed-out task
                for future in list(pending):
                    if future.cancel():
                        logger.warning(
                            f"User {futures[future]} never started: all workers are held "
                            f"by timed-out tasks"
                        )
                        not_started.append(futures[future])
                        pending.discard(future)

    def _score_one(
        self,
        user_id: str,
        k: int,
        n: int,
        alpha: float,
        started: Optional[Dict[str, float]] = None
    ) -> UserRecommendations:
        """Score one user, turning any exception into a FAILED result."""
        start = time.perf_counter()
        if started is not None:
            started[user_id] = start
        try:
            return self.recommender.score_user(user_id, k, n, alpha)
        except Exception as e:
            logger.exception(f"Scoring failed for user {user_id}: {e}")
            return UserRecommendations(
                user_id=user_id,
                status=ScoreStatus.FAILED,
                error=f"{type(e).__name__}: {e}",
                elapsed_seconds=time.perf_counter() - start
            )

    def _collect(
        self,
        user_id: str,
        result: UserRecommendations,
        collected: Dict[str, UserRecommendations],
        timed_out: List[str]
    ) -> None:
        task_timeout = self.config.task_timeout_seconds
        if task_timeout is not None and result.elapsed_seconds > task_timeout:
            logger.warning(
                f"User {user_id} took {result.elapsed_seconds:.3f}s, "
                f"over the {task_timeout}s deadline; dropping result"
            )
            timed_out.append(user_id)
            return
        collected[user_id] = result

    def _resolve_workers(self, n_tasks: int) -> int:
        max_workers = self.config.max_workers or min(32, (os.cpu_count() or 1) + 4)
        return max(1, min(max_workers, n_tasks))


def create_batch_scorer_from_config(
    recommender: HybridRecommender,
    config: Dict[str, Any]
) -> BatchScorer:
    """
    Factory function to create a BatchScorer from config.

    Args:
        recommender: Shared recommender
        config: Main configuration dictionary

    Returns:
        Configured BatchScorer instance
    """
    return BatchScorer(recommender, BatchConfig.from_config(config))
