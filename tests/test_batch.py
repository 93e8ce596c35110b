"""Tests for concurrent batch scoring."""

import json
import time

import pandas as pd
import pytest

from hybrid_reco.batch import BatchConfig, BatchResult, BatchScorer, create_batch_scorer_from_config
from hybrid_reco.errors import InvalidParameterError
from hybrid_reco.schema import ScoreStatus, UserRecommendations


class TestBatchScoring:

    def test_matches_single_user_scoring(self, recommender, sample_snapshot):
        scorer = BatchScorer(recommender, BatchConfig(max_workers=3))
        results = scorer.batch_score(sample_snapshot.user_ids, 2, 3, 0.6)
        assert list(results) == ["u1", "u2", "u3"]
        for user_id, result in results.items():
            assert result.recommendations == recommender.score(user_id, 2, 3, 0.6)

    def test_results_follow_input_order(self, recommender):
        results = BatchScorer(recommender).batch_score(["u3", "u1", "u2"], 2, 3, 0.6)
        assert list(results) == ["u3", "u1", "u2"]

    def test_duplicates_scored_once(self, recommender, monkeypatch):
        calls = []
        original = recommender.score_user

        def counting_score_user(user_id, k, n, alpha):
            calls.append(user_id)
            return original(user_id, k, n, alpha)

        monkeypatch.setattr(recommender, "score_user", counting_score_user)
        results = BatchScorer(recommender).batch_score(["u1", "u1", "u2"], 2, 3, 0.6)
        assert list(results) == ["u1", "u2"]
        assert sorted(calls) == ["u1", "u2"]

    def test_empty_batch(self, recommender):
        result = BatchScorer(recommender).run([], 2, 3, 0.6)
        assert result.results == {}
        assert result.timed_out == []

    def test_unknown_user_does_not_affect_others(self, recommender):
        results = BatchScorer(recommender).batch_score(["u1", "ghost"], 2, 3, 0.6)
        assert results["ghost"].status is ScoreStatus.UNKNOWN_USER
        assert results["ghost"].recommendations == []
        assert results["u1"].recommendations == recommender.score("u1", 2, 3, 0.6)

    def test_invalid_parameters_rejected_up_front(self, recommender):
        with pytest.raises(InvalidParameterError):
            BatchScorer(recommender).batch_score(["u1"], 2, 3, 1.5)


class TestPartialFailure:

    def test_failure_isolated_to_one_user(self, recommender, monkeypatch):
        original = recommender.score_user

        def flaky_score_user(user_id, k, n, alpha):
            if user_id == "u2":
                raise RuntimeError("feature store unavailable")
            return original(user_id, k, n, alpha)

        monkeypatch.setattr(recommender, "score_user", flaky_score_user)
        result = BatchScorer(recommender, BatchConfig(max_workers=2)).run(["u1", "u2", "u3"], 2, 3, 0.6)

        assert result.results["u2"].status is ScoreStatus.FAILED
        assert result.results["u2"].recommendations == []
        assert result.failures == {"u2": "RuntimeError: feature store unavailable"}
        assert result.results["u1"].status is ScoreStatus.OK
        assert result.results["u3"].recommendations == original("u3", 2, 3, 0.6).recommendations
        assert result.status_counts()["failed"] == 1


class TestTimeouts:

    def test_slow_result_dropped(self, recommender, monkeypatch):
        original = recommender.score_user

        def slow_score_user(user_id, k, n, alpha):
            result = original(user_id, k, n, alpha)
            if user_id == "u2":
                result.elapsed_seconds = 60.0
            return result

        monkeypatch.setattr(recommender, "score_user", slow_score_user)
        scorer = BatchScorer(recommender, BatchConfig(max_workers=2, task_timeout_seconds=30.0))
        result = scorer.run(["u1", "u2", "u3"], 2, 3, 0.6)

        assert list(result.results) == ["u1", "u3"]
        assert result.timed_out == ["u2"]
        assert result.status_counts()["timed_out"] == 1

    def test_hanging_task_does_not_block_batch(self, recommender, monkeypatch):
        original = recommender.score_user

        def hanging_score_user(user_id, k, n, alpha):
            if user_id == "u3":
                time.sleep(1.5)
            return original(user_id, k, n, alpha)

        monkeypatch.setattr(recommender, "score_user", hanging_score_user)
        scorer = BatchScorer(recommender, BatchConfig(max_workers=3, task_timeout_seconds=0.5))
        start = time.perf_counter()
        result = scorer.run(["u1", "u2", "u3"], 2, 3, 0.6)

        assert time.perf_counter() - start < 1.4
        assert list(result.results) == ["u1", "u2"]
        assert result.timed_out == ["u3"]
        assert result.not_started == []

    def test_queued_users_not_charged_for_hanging_task(self, recommender, monkeypatch):
        original = recommender.score_user

        def hanging_score_user(user_id, k, n, alpha):
            if user_id == "u1":
                time.sleep(1.0)
            return original(user_id, k, n, alpha)

        monkeypatch.setattr(recommender, "score_user", hanging_score_user)
        scorer = BatchScorer(recommender, BatchConfig(max_workers=2, task_timeout_seconds=0.3))
        result = scorer.run(["u1", "u2", "u3"], 2, 3, 0.6)

        assert result.timed_out == ["u1"]
        assert list(result.results) == ["u2", "u3"]
        assert result.not_started == []

    def test_single_worker_held_by_hanging_task(self, recommender, monkeypatch):
        original = recommender.score_user

        def hanging_score_user(user_id, k, n, alpha):
            if user_id == "u1":
                time.sleep(1.0)
            return original(user_id, k, n, alpha)

        monkeypatch.setattr(recommender, "score_user", hanging_score_user)
        scorer = BatchScorer(recommender, BatchConfig(max_workers=1, task_timeout_seconds=0.3))
        start = time.perf_counter()
        result = scorer.run(["u1", "u2", "u3"], 2, 3, 0.6)

        assert time.perf_counter() - start < 0.9
        assert result.timed_out == ["u1"]
        assert result.not_started == ["u2", "u3"]
        assert result.results == {}
        assert result.status_counts()["not_started"] == 2
        assert result.to_dict()["not_started"] == ["u2", "u3"]


class TestBatchConfig:

    def test_validate(self, recommender):
        with pytest.raises(ValueError):
            BatchScorer(recommender, BatchConfig(max_workers=0))
        with pytest.raises(ValueError):
            BatchScorer(recommender, BatchConfig(task_timeout_seconds=0))

    def test_from_config(self, recommender):
        scorer = create_batch_scorer_from_config(
            recommender, {"batch": {"max_workers": 3, "task_timeout_seconds": 2.5}}
        )
        assert scorer.config == BatchConfig(max_workers=3, task_timeout_seconds=2.5)

    def test_worker_count_capped_by_tasks(self, recommender):
        assert BatchScorer(recommender, BatchConfig(max_workers=8))._resolve_workers(3) == 3
        assert BatchScorer(recommender, BatchConfig(max_workers=2))._resolve_workers(5) == 2


class TestBatchResult:

    @pytest.fixture
    def batch_result(self, recommender):
        return BatchScorer(recommender).run(["u1", "u2", "ghost"], 2, 3, 0.6)

    def test_status_counts(self, batch_result):
        assert batch_result.status_counts() == {
            "ok": 1,
            "cold_start": 1,
            "unknown_user": 1,
            "failed": 0,
            "timed_out": 0,
            "not_started": 0
        }

    def test_to_frame(self, batch_result):
        frame = batch_result.to_frame()
        assert list(frame.columns) == [
            "user_id", "status", "rank", "target_id", "kind", "score", "is_fallback"
        ]
        assert frame["user_id"].tolist() == ["u1", "u1", "u1", "u2", "ghost"]
        assert frame.loc[frame["user_id"] == "u1", "target_id"].tolist() == ["s1", "u3", "u2"]
        assert pd.isna(frame.loc[frame["user_id"] == "ghost", "target_id"]).all()

    def test_save_json(self, batch_result, tmp_path):
        path = tmp_path / "out" / "recs.json"
        batch_result.save(str(path))
        saved = json.loads(path.read_text())
        assert saved["results"]["u2"]["status"] == "cold_start"
        assert saved["results"]["u2"]["recommendations"] == [
            {"target_id": "s2", "kind": "startup", "score": 0.5, "is_fallback": True}
        ]
        assert saved["status_counts"]["unknown_user"] == 1

    def test_save_csv(self, batch_result, tmp_path):
        path = tmp_path / "recs.csv"
        batch_result.save(str(path))
        frame = pd.read_csv(path)
        assert len(frame) == 5
        assert frame.loc[0, "target_id"] == "s1"

    def test_recommendations_mapping(self, batch_result):
        assert batch_result.recommendations["ghost"] == []
        assert [rec.target_id for rec in batch_result.recommendations["u2"]] == ["s2"]

    def test_failures_empty(self):
        result = BatchResult(results={"u1": UserRecommendations(user_id="u1")})
        assert result.failures == {}
