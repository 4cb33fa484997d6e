"""Experiment driver: replicated runs over a parameter grid, in parallel."""

from __future__ import annotations

import logging
import time
import uuid
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from culturesim.config import SimulationConfig, load_settings
from culturesim.core.random_source import RandomSource
from culturesim.errors import CultureSimError, ExperimentError
from culturesim.experiments.config import ExperimentCell, ExperimentConfig
from culturesim.experiments.provenance import ExperimentProvenance, capture_provenance
from culturesim.rules import RuleRegistry
from culturesim.simulation.aggregators import Aggregator, Summary, create_aggregator
from culturesim.simulation.runner import simulate

logger = logging.getLogger(__name__)

FRAME_COLUMNS = [
    "run_id",
    "cell",
    "condition",
    "replicate",
    "seed",
    "generation",
    "category",
    "value",
]


@dataclass(frozen=True)
class RunTask:
    """Everything a worker needs to execute one (cell, replicate) run."""

    model: str
    cell: ExperimentCell
    replicate: int
    seed: int
    t_max: int
    rule_params: dict[str, Any]
    aggregator: str | None = None
    aggregator_params: dict[str, Any] = field(default_factory=dict)

    @property
    def run_id(self) -> str:
        return f"{self.cell.index}:{self.replicate}"


@dataclass
class RunResult:
    """Result from a single simulation run."""

    cell_index: int
    condition_name: str
    replicate: int
    seed: int
    parameters: dict[str, Any]
    summaries: list[Summary]
    duration_seconds: float
    status: str = "ok"  # "ok" | "failed"
    error: str | None = None

    @property
    def run_id(self) -> str:
        return f"{self.cell_index}:{self.replicate}"

    @property
    def ok(self) -> bool:
        return self.status == "ok"


def build_aggregator(task: RunTask, rule) -> Aggregator:
    if task.aggregator is None:
        return rule.default_aggregator()
    return create_aggregator(task.aggregator, **task.aggregator_params)


def execute_task(task: RunTask) -> RunResult:
    """Run one replicate with its own random stream.

    Module-level so it can be shipped to worker processes.
    """
    rng = RandomSource.for_task(task.seed, task.cell.index, task.replicate)
    rule = RuleRegistry.create(task.model, **task.rule_params)
    aggregator = build_aggregator(task, rule)

    start_time = time.time()
    summaries = simulate(rule, task.cell.n, task.t_max, rng, aggregator)
    duration = time.time() - start_time
    logger.debug(f"Run {task.run_id} ({task.cell.name}) finished in {duration:.3f}s")

    return RunResult(
        cell_index=task.cell.index,
        condition_name=task.cell.name,
        replicate=task.replicate,
        seed=task.seed,
        parameters={"n": task.cell.n, **task.rule_params},
        summaries=summaries,
        duration_seconds=duration,
    )


@dataclass
class ExperimentResult:
    """All runs of one experiment plus its provenance."""

    config: ExperimentConfig
    results: list[RunResult]
    provenance: ExperimentProvenance | None = None

    @property
    def failed(self) -> list[RunResult]:
        return [r for r in self.results if not r.ok]

    @property
    def succeeded(self) -> list[RunResult]:
        return [r for r in self.results if r.ok]

    def to_frame(self) -> pd.DataFrame:
        """Long-form table: one row per (run, generation, category).

        Failed runs contribute no rows. Parameter columns follow the fixed
        columns; parameters a cell does not set are left empty.
        """
        rows = []
        param_columns: list[str] = []
        for result in sorted(self.succeeded, key=lambda r: (r.cell_index, r.replicate)):
            for name in result.parameters:
                if name not in param_columns and name not in FRAME_COLUMNS:
                    param_columns.append(name)
            base = {
                "cell": result.cell_index,
                "condition": result.condition_name,
                "replicate": result.replicate,
                "seed": result.seed,
            }
            for summary in result.summaries:
                for record in summary.records(result.run_id):
                    rows.append({**record, **base, **result.parameters})

        frame = pd.DataFrame(rows, columns=FRAME_COLUMNS + param_columns)
        return frame.reset_index(drop=True)


class ExperimentDriver:
    """Executes every (cell, replicate) task of an experiment.

    Tasks run in-process when ``workers == 1`` and in a process pool
    otherwise. Each task owns a random stream seeded from
    (base seed, cell index, replicate), so results are identical whichever
    way they are executed and in whatever order they complete.
    """

    def __init__(self, config: ExperimentConfig, settings: SimulationConfig | None = None):
        """Initialize experiment driver.

        Args:
            config: Experiment configuration
            settings: Global settings; read from the environment when omitted
        """
        self.config = config
        self.settings = settings or load_settings()
        self.seed = config.seed if config.seed is not None else self.settings.seed
        self.workers = config.workers if config.workers is not None else self.settings.workers
        self.fail_fast = (
            config.fail_fast if config.fail_fast is not None else self.settings.fail_fast
        )
        self._experiment_id = str(uuid.uuid4())

    def resolve_parameters(self, cell: ExperimentCell) -> dict[str, Any]:
        """Cell parameters completed with the rule's settings-backed defaults."""
        rule_cls = RuleRegistry.get(self.config.model)
        params = dict(cell.parameters)
        for key, attr in rule_cls.settings_defaults.items():
            params.setdefault(key, getattr(self.settings, attr))
        return params

    def build_tasks(self) -> tuple[list[RunTask], list[RunResult]]:
        """Validate every cell up front and expand it into replicate tasks.

        A cell whose parameters are rejected raises immediately under
        fail-fast; otherwise each of its replicates is recorded as failed.

        Returns:
            (tasks to run, failed results for invalid cells)
        """
        tasks = []
        invalid = []
        for cell in self.config.expand_cells():
            try:
                params = self.resolve_parameters(cell)
                rule = RuleRegistry.create(self.config.model, **params)
                first_task = RunTask(
                    self.config.model,
                    cell,
                    0,
                    self.seed,
                    self.config.t_max,
                    params,
                    self.config.aggregator,
                    dict(self.config.aggregator_params),
                )
                build_aggregator(first_task, rule)
            except CultureSimError as err:
                if self.fail_fast:
                    raise
                logger.warning(f"Cell {cell.name} is invalid and will be skipped: {err}")
                invalid.extend(
                    self._failed(cell, replicate, cell.parameters, err)
                    for replicate in range(self.config.replicates)
                )
                continue

            for replicate in range(self.config.replicates):
                tasks.append(
                    RunTask(
                        model=self.config.model,
                        cell=cell,
                        replicate=replicate,
                        seed=self.seed,
                        t_max=self.config.t_max,
                        rule_params=params,
                        aggregator=self.config.aggregator,
                        aggregator_params=dict(self.config.aggregator_params),
                    )
                )
        return tasks, invalid

    def run_all(self) -> ExperimentResult:
        """Execute all cells × replicates.

        Returns:
            ExperimentResult with results sorted by (cell, replicate)

        Raises:
            ConfigurationError: If a cell is invalid and fail-fast is on
            ExperimentError: If a run fails and fail-fast is on
        """
        start_time = time.time()
        tasks, results = self.build_tasks()
        logger.info(
            f"Experiment '{self.config.name}': {len(tasks)} runs of {self.config.model} "
            f"on {self.workers} worker(s)"
        )

        if self.workers == 1:
            results.extend(self._run_serial(tasks))
        else:
            results.extend(self._run_parallel(tasks))
        results.sort(key=lambda r: (r.cell_index, r.replicate))

        duration = time.time() - start_time
        provenance = capture_provenance(
            experiment_id=self._experiment_id,
            config_resolved=self._get_resolved_config(),
            base_seed=self.seed,
            task_count=len(tasks),
            duration_seconds=duration,
        )
        failed = sum(1 for r in results if not r.ok)
        logger.info(
            f"Experiment '{self.config.name}' finished in {duration:.2f}s "
            f"({len(results) - failed} ok, {failed} failed)"
        )
        return ExperimentResult(self.config, results, provenance)

    def _run_serial(self, tasks: list[RunTask]) -> list[RunResult]:
        results = []
        for task in tasks:
            try:
                results.append(execute_task(task))
            except CultureSimError as err:
                results.append(self._handle_failure(task, err))
        return results

    def _run_parallel(self, tasks: list[RunTask]) -> list[RunResult]:
        results = []
        with ProcessPoolExecutor(max_workers=self.workers) as executor:
            future_map = {executor.submit(execute_task, task): task for task in tasks}
            for future in as_completed(future_map):
                task = future_map[future]
                try:
                    results.append(future.result())
                except CultureSimError as err:
                    if self.fail_fast:
                        for pending in future_map:
                            pending.cancel()
                    results.append(self._handle_failure(task, err))
        return results

    def _handle_failure(self, task: RunTask, err: CultureSimError) -> RunResult:
        if self.fail_fast:
            raise ExperimentError(task.cell.name, task.replicate, err) from err
        logger.warning(f"Run {task.run_id} ({task.cell.name}) failed: {err}")
        return self._failed(task.cell, task.replicate, task.rule_params, err)

    def _failed(
        self, cell: ExperimentCell, replicate: int, params: dict[str, Any], err: Exception
    ) -> RunResult:
        return RunResult(
            cell_index=cell.index,
            condition_name=cell.name,
            replicate=replicate,
            seed=self.seed,
            parameters={"n": cell.n, **params},
            summaries=[],
            duration_seconds=0.0,
            status="failed",
            error=f"{type(err).__name__}: {err}",
        )

    def _get_resolved_config(self) -> dict[str, Any]:
        resolved = self.config.to_dict()
        resolved.update(seed=self.seed, workers=self.workers, fail_fast=self.fail_fast)
        return resolved
