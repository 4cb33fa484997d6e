"""Statistical analysis of experiment results."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
import pandas as pd

from culturesim.errors import ConfigurationError

# Two-sided 95% critical values of Student's t by degrees of freedom
T_VALUES = {
    1: 12.706,
    2: 4.303,
    3: 3.182,
    4: 2.776,
    5: 2.571,
    6: 2.447,
    7: 2.365,
    8: 2.306,
    9: 2.262,
    10: 2.228,
    15: 2.131,
    20: 2.086,
    30: 2.042,
    40: 2.021,
    50: 2.009,
    100: 1.984,
}


def t_critical(df: int) -> float:
    """95% t critical value, interpolated between table entries."""
    if df in T_VALUES:
        return T_VALUES[df]
    if df < 1:
        return T_VALUES[1]
    if df > 100:
        return 1.96  # Normal approximation
    keys = sorted(T_VALUES)
    lower_key = max(k for k in keys if k <= df)
    upper_key = min(k for k in keys if k >= df)
    frac = (df - lower_key) / (upper_key - lower_key)
    return T_VALUES[lower_key] * (1 - frac) + T_VALUES[upper_key] * frac


@dataclass
class ConditionSummary:
    """Summary statistics of one category's final values within a condition."""

    condition_name: str
    n: int
    category: str
    stats: dict[str, float]  # "mean", "std", "min", "max", "ci_95_lower", "ci_95_upper"


class ResultAnalyzer:
    """Summaries over the long-form result table of an experiment.

    Expects the columns produced by ``ExperimentResult.to_frame()``.
    """

    GROUP = ["cell", "condition"]

    def __init__(self, frame: pd.DataFrame):
        missing = {"run_id", "cell", "condition", "generation", "category", "value"} - set(
            frame.columns
        )
        if missing:
            raise ConfigurationError(f"Result table is missing columns {sorted(missing)}")
        self.frame = frame

    def _category(self, category: str) -> pd.DataFrame:
        rows = self.frame[self.frame["category"] == category]
        if rows.empty:
            known = sorted(self.frame["category"].unique())
            raise ConfigurationError(f"No rows for category '{category}'; known: {known}")
        return rows

    def summarize(self, category: str | None = None) -> pd.DataFrame:
        """Mean, std, and 95% CI across replicates per (cell, generation, category).

        Args:
            category: Restrict to one category (all categories when None)

        Returns:
            DataFrame with columns cell, condition, generation, category,
            n, mean, std, ci_95_lower, ci_95_upper
        """
        rows = self.frame if category is None else self._category(category)
        grouped = rows.groupby(self.GROUP + ["generation", "category"], sort=True)["value"]
        table = grouped.agg(n="count", mean="mean", std="std").reset_index()
        table["std"] = table["std"].fillna(0.0)
        t_vals = table["n"].map(lambda n: t_critical(n - 1))
        margin = np.where(table["n"] > 1, t_vals * table["std"] / np.sqrt(table["n"]), 0.0)
        table["ci_95_lower"] = table["mean"] - margin
        table["ci_95_upper"] = table["mean"] + margin
        return table

    def final_values(self, category: str) -> pd.DataFrame:
        """Value of ``category`` in each run's last generation.

        Returns:
            DataFrame with columns run_id, cell, condition, generation, value
        """
        rows = self._category(category)
        last = rows.loc[rows.groupby("run_id")["generation"].idxmax()]
        columns = ["run_id"] + self.GROUP + ["generation", "value"]
        return last[columns].sort_values(["cell", "run_id"]).reset_index(drop=True)

    def fixation_fraction(self, category: str, tolerance: float = 1e-9) -> pd.Series:
        """Fraction of runs per condition whose final value is 0 or 1.

        Returns:
            Series indexed by condition name
        """
        final = self.final_values(category)
        fixed = (final["value"] <= tolerance) | (final["value"] >= 1.0 - tolerance)
        return fixed.groupby(final["condition"], sort=False).mean()

    def fixation_generations(self, category: str, tolerance: float = 1e-9) -> pd.DataFrame:
        """First generation at which each run reached 0 or 1 (NaN if it never did).

        Returns:
            DataFrame with columns run_id, cell, condition, fixation_generation
        """
        rows = self._category(category)
        fixed = rows[(rows["value"] <= tolerance) | (rows["value"] >= 1.0 - tolerance)]
        first = fixed.groupby("run_id")["generation"].min()
        runs = rows[["run_id"] + self.GROUP].drop_duplicates().set_index("run_id")
        runs["fixation_generation"] = first.reindex(runs.index).astype(float)
        return runs.reset_index().sort_values(["cell", "run_id"]).reset_index(drop=True)

    def condition_summaries(self, category: str) -> list[ConditionSummary]:
        """Statistics of the final value of ``category`` per condition."""
        final = self.final_values(category)
        summaries = []
        for condition, group in final.groupby("condition", sort=False):
            values = group["value"].tolist()
            summaries.append(
                ConditionSummary(
                    condition_name=condition,
                    n=len(values),
                    category=category,
                    stats=self._compute_stats(values),
                )
            )
        return summaries

    def pairwise_comparison(self, category: str) -> list[dict]:
        """Compare the final values of every pair of conditions.

        Args:
            category: Category whose final value is compared

        Returns:
            List of comparison dicts with keys:
            - condition_a: First condition name
            - condition_b: Second condition name
            - category: Category compared
            - mean_diff: Difference in means (b - a)
            - effect_size: Cohen's d
        """
        final = self.final_values(category)
        by_condition = {
            condition: group["value"].tolist()
            for condition, group in final.groupby("condition", sort=False)
        }
        conditions = list(by_condition)
        comparisons = []
        for i, cond_a in enumerate(conditions):
            for cond_b in conditions[i + 1 :]:
                values_a = by_condition[cond_a]
                values_b = by_condition[cond_b]
                mean_diff = float(np.mean(values_b) - np.mean(values_a))

                # Cohen's d: (mean_b - mean_a) / pooled_std
                dof = len(values_a) + len(values_b) - 2
                pooled_std = 0.0
                if dof > 0:
                    pooled_std = math.sqrt(
                        (
                            (len(values_a) - 1) * self._std(values_a) ** 2
                            + (len(values_b) - 1) * self._std(values_b) ** 2
                        )
                        / dof
                    )
                effect_size = mean_diff / pooled_std if pooled_std > 0 else 0.0

                comparisons.append(
                    {
                        "condition_a": cond_a,
                        "condition_b": cond_b,
                        "category": category,
                        "mean_diff": mean_diff,
                        "effect_size": effect_size,
                    }
                )
        return comparisons

    def _compute_stats(self, values: list[float]) -> dict[str, float]:
        """Compute summary statistics for a list of values.

        Args:
            values: List of numeric values

        Returns:
            Dict with keys: mean, std, min, max, ci_95_lower, ci_95_upper
        """
        n = len(values)
        if n == 0:
            return dict.fromkeys(
                ("mean", "std", "min", "max", "ci_95_lower", "ci_95_upper"), 0.0
            )

        mean = float(np.mean(values))
        std = self._std(values)
        margin = t_critical(n - 1) * std / math.sqrt(n) if n > 1 else 0.0
        return {
            "mean": mean,
            "std": std,
            "min": float(min(values)),
            "max": float(max(values)),
            "ci_95_lower": mean - margin,
            "ci_95_upper": mean + margin,
        }

    @staticmethod
    def _std(values: list[float]) -> float:
        """Sample standard deviation (0 for fewer than two values)."""
        if len(values) < 2:
            return 0.0
        return float(np.std(values, ddof=1))
