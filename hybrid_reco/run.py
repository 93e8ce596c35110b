"""
Command line runner for the hybrid scoring engine.

Usage:
    python -m hybrid_reco.run --config configs/config.yaml
    python -m hybrid_reco.run --config configs/config.yaml --users u1 u3 --output out/recs.json

The runner performs the following steps:
1. Load and validate configuration
2. Build the scoring snapshot (CSV files, or the sample data set)
3. Score the requested users (default: every known user) in one batch
4. Log recommendations and the evaluation summary
5. Optionally save results as JSON or CSV
"""

import argparse
import logging
import sys
from typing import Dict, Any, List, Optional

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def setup_logging(log_level: str) -> None:
    """Configure logging level from config."""
    level = getattr(logging, str(log_level).upper(), logging.INFO)
    logging.getLogger().setLevel(level)


def _load_snapshot(config: Dict[str, Any], use_sample: bool):
    """Build the snapshot from configured CSV paths, falling back to sample data."""
    from .configs import get_config_value
    from .data_loading import load_snapshot, load_sample_snapshot

    if use_sample:
        logger.info("Using bundled sample data")
        return load_sample_snapshot()

    interactions_path = get_config_value(config, "data.interactions.path")
    if not interactions_path:
        logger.warning("No interactions path configured, using sample data")
        return load_sample_snapshot()

    try:
        return load_snapshot(
            interactions_path,
            features_path=get_config_value(config, "data.features.path"),
            entities_path=get_config_value(config, "data.entities.path"),
            delimiter=get_config_value(config, "data.delimiter", ",")
        )
    except FileNotFoundError as e:
        logger.error(f"Data not found: {e}")
        logger.info("Falling back to sample data for demonstration...")
        return load_sample_snapshot()


def run_scoring(
    config_path: str,
    user_ids: Optional[List[str]] = None,
    use_sample: bool = False,
    output_path: Optional[str] = None
) -> Dict[str, Any]:
    """
    Run batch scoring end to end.

    Args:
        config_path: Path to the configuration YAML file
        user_ids: Users to score (default: every known user)
        use_sample: Ignore configured data paths and use the sample data set
        output_path: If provided, write results here (overrides config)

    Returns:
        Dictionary with the batch result, evaluation report and output path
    """
    from .configs import load_config, validate_config, get_config_value
    from .blending import ScoringConfig, create_recommender_from_config
    from .batch import create_batch_scorer_from_config
    from .evaluation import create_batch_report

    logger.info("=" * 60)
    logger.info("HYBRID RECOMMENDATION SCORING")
    logger.info("=" * 60)

    config = load_config(config_path)
    issues = validate_config(config)
    if issues:
        for issue in issues:
            logger.warning(f"Config issue: {issue}")

    setup_logging(get_config_value(config, "global.log_level", "INFO"))

    scoring_config = ScoringConfig.from_config(config)
    scoring_config.validate()

    snapshot = _load_snapshot(config, use_sample)
    logger.info(f"Snapshot: {snapshot.summary()}")

    recommender = create_recommender_from_config(snapshot, config)
    scorer = create_batch_scorer_from_config(recommender, config)

    users = user_ids or snapshot.user_ids
    k, n, alpha = scoring_config.neighbors, scoring_config.top_n, scoring_config.alpha
    batch_result = scorer.run(users, k, n, alpha)

    for user_id, result in batch_result.results.items():
        logger.info(f"Recommendations for {user_id} ({result.status.value}):")
        for rec in result.recommendations:
            marker = " [fallback]" if rec.is_fallback else ""
            logger.info(f"  {rec.target_id} ({rec.kind.value}): {rec.score:.2f}{marker}")
        if result.error:
            logger.info(f"  error: {result.error}")
    for user_id in batch_result.timed_out:
        logger.info(f"Recommendations for {user_id}: timed out")
    for user_id in batch_result.not_started:
        logger.info(f"Recommendations for {user_id}: not started")

    report = create_batch_report(batch_result, recommender, k=k, n=n)
    logger.info("\n" + report.summary())

    effective_output = output_path or get_config_value(config, "output.path")
    if effective_output:
        output_format = get_config_value(config, "output.format", "json")
        if output_path is None and not effective_output.lower().endswith(f".{output_format}"):
            effective_output = f"{effective_output}.{output_format}"
        batch_result.save(effective_output)

    return {
        "success": not batch_result.failures,
        "batch_result": batch_result,
        "report": report,
        "output_path": effective_output
    }


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the scoring runner."""
    parser = argparse.ArgumentParser(
        description="Score and rank startups, investors and founders for users"
    )
    parser.add_argument(
        "--config",
        type=str,
        default="configs/config.yaml",
        help="Path to configuration file"
    )
    parser.add_argument(
        "--users",
        nargs="+",
        default=None,
        help="User identifiers to score (default: every known user)"
    )
    parser.add_argument(
        "--sample",
        action="store_true",
        help="Use the bundled sample data set instead of configured files"
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write results to this path (.json or .csv, overrides config)"
    )

    args = parser.parse_args(argv)

    try:
        result = run_scoring(
            args.config,
            user_ids=args.users,
            use_sample=args.sample,
            output_path=args.output
        )
        if result["success"]:
            logger.info("\nScoring completed successfully!")
            return 0
        else:
            logger.error(f"\nScoring failed for users: {sorted(result['batch_result'].failures)}")
            return 1
    except Exception as e:
        logger.exception(f"Scoring failed with error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
