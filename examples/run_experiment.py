"""Tutorial: Running Batch Experiments Programmatically

This demonstrates two approaches for running experiments with culturesim:

1. APPROACH A: Load from existing YAML config
   - Useful when you have pre-defined experiment configurations
   - Supports full reproducibility and version control

2. APPROACH B: Create config programmatically
   - Useful for dynamic experiment generation and parameter sweeps

Both approaches use:
- ExperimentConfig: model, population size, generations, replicates, grid
- ExperimentDriver: executes every (cell, replicate) run, optionally in parallel
- ExperimentResult: all runs plus provenance, convertible to a pandas table

Quick Concepts:
- Cells: one per combination of grid values (e.g. D = 0, 0.5, 1)
- Replicates: independent runs per cell, each with its own random stream
- Categories: the per-generation summary values (trait frequencies, mean skill ...)
"""

import sys

from culturesim.experiments.analysis import ResultAnalyzer
from culturesim.experiments.config import ExperimentConfig
from culturesim.experiments.runner import ExperimentDriver


def print_summary_table(analyzer, category):
    """Print final-generation statistics of one category per condition."""
    print("\n" + "=" * 72)
    print(f"FINAL '{category}' PER CONDITION")
    print("=" * 72)
    print(f"\n{'Condition':<24} {'Mean':<10} {'Min':<10} {'Max':<10} {'Runs':<6}")
    print("-" * 62)
    for summary in analyzer.condition_summaries(category):
        stats = summary.stats
        print(
            f"{summary.condition_name:<24} {stats['mean']:<10.3f} "
            f"{stats['min']:<10.3f} {stats['max']:<10.3f} {summary.n:<6}"
        )


def approach_a_load_from_yaml():
    """APPROACH A: Load the conformity experiment from YAML and run it."""
    print("\n" + "=" * 72)
    print("APPROACH A: Load from YAML")
    print("=" * 72)

    yaml_path = "examples/experiments/conformity.yaml"
    config = ExperimentConfig.from_yaml(yaml_path)
    cells = config.expand_cells()

    print(f"Experiment: {config.name}")
    print(f"Cells: {[cell.name for cell in cells]}")
    print(f"Replicates per cell: {config.replicates}")
    print(f"Total runs: {len(cells) * config.replicates}")

    result = ExperimentDriver(config).run_all()
    analyzer = ResultAnalyzer(result.to_frame())
    print_summary_table(analyzer, "A")

    print("\nFraction of runs fixed at 0 or 1:")
    for condition, fraction in analyzer.fixation_fraction("A").items():
        print(f"  {condition}: {fraction:.0%}")
    return result


def approach_b_programmatic_config():
    """APPROACH B: Sweep direct bias strength in code, using four workers."""
    print("\n" + "=" * 72)
    print("APPROACH B: Programmatic Config")
    print("=" * 72)

    config = ExperimentConfig(
        name="direct_bias_sweep",
        description="How quickly a rare trait spreads as its copying advantage grows",
        model="direct_bias",
        n=1000,
        t_max=150,
        replicates=5,
        seed=42,
        parameters={"p0": 0.01, "s_b": 0.0},
        grid={"s_a": [0.05, 0.1, 0.2]},
        workers=4,
    )

    result = ExperimentDriver(config).run_all()
    frame = result.to_frame()
    analyzer = ResultAnalyzer(frame)
    print_summary_table(analyzer, "A")

    # Generation at which the mean frequency of A first passes one half
    print("\nGeneration where mean p(A) first exceeds 0.5:")
    trajectory = analyzer.summarize("A")
    for condition, rows in trajectory.groupby("condition", sort=False):
        above = rows[rows["mean"] > 0.5]
        when = int(above["generation"].iloc[0]) if not above.empty else None
        print(f"  {condition}: {when}")

    print(f"\nProvenance: config {result.provenance.config_hash[:12]}, "
          f"{result.provenance.task_count} runs in {result.provenance.duration_seconds:.1f}s")
    return result


def main():
    """Run both demonstration approaches."""
    choice = sys.argv[1].lower() if len(sys.argv) > 1 else "both"

    if choice in ["1", "a", "yaml"]:
        approach_a_load_from_yaml()
    elif choice in ["2", "b", "programmatic", "code"]:
        approach_b_programmatic_config()
    elif choice in ["3", "both"]:
        approach_a_load_from_yaml()
        approach_b_programmatic_config()
    else:
        print(f"Invalid choice: {choice}")
        print("Usage: python examples/run_experiment.py [1|2|3]")
        sys.exit(1)


if __name__ == "__main__":
    main()
