"""CLI for running experiments and listing models.

Usage:
    python -m culturesim run experiments/conformity.yaml
    python -m culturesim run experiments/drift.yaml --workers 4 --output drift.csv
    python -m culturesim models
"""

from __future__ import annotations

import argparse
import logging
import sys

from culturesim.config import load_settings
from culturesim.errors import CultureSimError
from culturesim.experiments.analysis import ResultAnalyzer
from culturesim.experiments.config import ExperimentConfig
from culturesim.experiments.runner import ExperimentDriver
from culturesim.rules import RuleRegistry

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="culturesim",
        description="Agent-based simulations of cultural evolution",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--log-level", help="Override CULTURESIM_LOG_LEVEL")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    run_parser = subparsers.add_parser("run", help="Run experiment from YAML")
    run_parser.add_argument("yaml_path", help="Path to experiment YAML config")
    run_parser.add_argument("--workers", type=int, help="Worker processes (1 = in-process)")
    run_parser.add_argument("--output", help="Write the long-form result table to this CSV")
    run_parser.add_argument(
        "--category",
        help="Category to summarise at the final generation (default: first in the table)",
    )

    subparsers.add_parser("models", help="List registered models")

    args = parser.parse_args(argv)

    try:
        settings = load_settings()
    except CultureSimError as err:
        print(f"Error: {err}", file=sys.stderr)
        return 2
    logging.basicConfig(
        level=(args.log_level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "run":
        return run_experiment(args, settings)
    if args.command == "models":
        list_models()
        return 0
    parser.print_help()
    return 1


def list_models() -> None:
    """Print every registered model with its one-line description."""
    descriptions = RuleRegistry.describe()
    width = max(len(name) for name in descriptions)
    for name, description in descriptions.items():
        print(f"  {name:<{width}}  {description}")


def run_experiment(args: argparse.Namespace, settings) -> int:
    """Run an experiment from YAML and print per-condition final values."""
    try:
        config = ExperimentConfig.from_yaml(args.yaml_path)
        if args.workers is not None:
            config = ExperimentConfig.from_dict({**config.to_dict(), "workers": args.workers})
        result = ExperimentDriver(config, settings).run_all()
    except FileNotFoundError:
        print(f"Error: no such file {args.yaml_path}", file=sys.stderr)
        return 2
    except CultureSimError as err:
        print(f"Error: {err}", file=sys.stderr)
        return 1

    frame = result.to_frame()
    print(f"Experiment: {config.name} ({config.model})")
    print(f"Runs: {len(result.succeeded)} ok, {len(result.failed)} failed")
    for failure in result.failed:
        print(f"  failed {failure.condition_name} replicate {failure.replicate}: {failure.error}")

    if args.output:
        frame.to_csv(args.output, index=False)
        print(f"Results written to {args.output}")

    if frame.empty:
        return 1

    category = args.category or frame["category"].iloc[0]
    try:
        summaries = ResultAnalyzer(frame).condition_summaries(category)
    except CultureSimError as err:
        print(f"Error: {err}", file=sys.stderr)
        return 1

    print(f"\nFinal '{category}' per condition:")
    for summary in summaries:
        stats = summary.stats
        print(
            f"  {summary.condition_name}: mean={stats['mean']:.4f} "
            f"sd={stats['std']:.4f} "
            f"95% CI [{stats['ci_95_lower']:.4f}, {stats['ci_95_upper']:.4f}] (n={summary.n})"
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
