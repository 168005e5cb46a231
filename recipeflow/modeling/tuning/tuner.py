"""Resampled evaluation of candidate configurations and selection of the best one."""

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from scipy import stats

from ...config import get_settings
from ...data.split import Fold, InitialSplit, Resamples
from ...data.table import Table
from ...exceptions import RecipeflowError, TuningCancelled, TuningError
from ...workflow import FittedWorkflow, Workflow
from ..evaluation.metrics import Metric, MetricSet, as_metric_set
from ..evaluation.schemas import LastFitReport, MetricEstimate, MetricSummary
from ..hyperparameters import HyperparameterField, get_hyperparameter
from .grid import grid_explicit, grid_regular
from .schemas import CellResult, Grid, GridEntry, TunerStatus

logger = logging.getLogger(__name__)


def _param_key(value: Any) -> Tuple[bool, Any]:
    # None (e.g. an unlimited max_depth) sorts above every other value
    return (value is None, 0 if value is None else value)


class TieBreak:
    """
    Ordering applied to configurations whose scores are tied.

    ``grid_order()`` prefers the earliest grid entry. ``by_params`` sorts on
    parameter values first (e.g. ``penalty="desc"`` for the most regularized
    model) and falls back to grid order. ``None`` counts as larger than any
    value: last in ascending order, first in descending order.
    """

    def __init__(self, keys: Sequence[Tuple[str, str]] = ()):
        for name, direction in keys:
            if direction not in ("asc", "desc"):
                raise ValueError(f"Tie-break direction for '{name}' must be 'asc' or 'desc', got {direction!r}")
        self.keys = tuple(keys)

    @classmethod
    def grid_order(cls) -> "TieBreak":
        return cls()

    @classmethod
    def by_params(cls, **directions: str) -> "TieBreak":
        return cls(tuple(directions.items()))

    def order(self, grid: Grid, config_ids: Sequence[str]) -> List[str]:
        """Sort ``config_ids`` by this tie-break. Deterministic for any input order."""
        entries = sorted((grid[grid.position(c)] for c in config_ids), key=lambda e: grid.position(e.config_id))
        # Stable sorts, least significant key first
        for name, direction in reversed(self.keys):
            entries.sort(key=lambda e: _param_key(e[name]), reverse=(direction == "desc"))
        return [e.config_id for e in entries]

    def __repr__(self) -> str:
        if not self.keys:
            return "TieBreak.grid_order()"
        return "TieBreak.by_params(" + ", ".join(f"{k}={d!r}" for k, d in self.keys) + ")"


class TuningResults:
    """Per-cell scores of a finished tuning run plus their aggregation."""

    def __init__(self, grid: Grid, fold_ids: Sequence[str], metrics: MetricSet, cells: Sequence[CellResult]):
        self._grid = grid
        self._fold_ids = list(fold_ids)
        self._metrics = metrics
        # Aggregation never depends on completion order
        fold_pos = {f: i for i, f in enumerate(self._fold_ids)}
        self._cells = sorted(cells, key=lambda c: (grid.position(c.config_id), fold_pos[c.fold_id]))
        self._summaries = self._summarize()

    @property
    def grid(self) -> Grid:
        return self._grid

    @property
    def metrics(self) -> MetricSet:
        return self._metrics

    @property
    def cells(self) -> List[CellResult]:
        return list(self._cells)

    @property
    def failed_configs(self) -> List[str]:
        """Configurations for which every fold failed."""
        failed = []
        for entry in self._grid:
            cells = [c for c in self._cells if c.config_id == entry.config_id]
            if cells and all(c.failed for c in cells):
                failed.append(entry.config_id)
        return failed

    def failures(self) -> pd.DataFrame:
        rows = [
            {"config_id": c.config_id, "fold_id": c.fold_id, "error_type": c.error_type, "error": c.error}
            for c in self._cells if c.failed
        ]
        return pd.DataFrame(rows, columns=["config_id", "fold_id", "error_type", "error"])

    def _summarize(self) -> List[MetricSummary]:
        summaries = []
        for entry in self._grid:
            cells = [c for c in self._cells if c.config_id == entry.config_id and not c.failed]
            for metric in self._metrics:
                values = np.array([c.scores.get(metric.name, np.nan) for c in cells], dtype=float)
                values = values[np.isfinite(values)]
                n = int(values.size)
                mean = float(np.mean(values)) if n else None
                std_err = float(stats.sem(values, ddof=1)) if n > 1 else None
                summaries.append(MetricSummary(
                    config_id=entry.config_id,
                    params=entry.as_dict(),
                    metric=metric.name,
                    mean=mean,
                    std_err=std_err,
                    n=n,
                ))
        return summaries

    def collect_metrics(self, summarize: bool = True) -> pd.DataFrame:
        """
        One row per (configuration, metric) with mean, std_err and n; or,
        with ``summarize=False``, one row per (configuration, fold, metric).
        """
        params = self._grid.param_names
        if summarize:
            rows = []
            for s in self._summaries:
                row = {"config_id": s.config_id}
                row.update(s.params)
                row.update({"metric": s.metric, "mean": s.mean, "std_err": s.std_err, "n": s.n})
                rows.append(row)
            columns = ["config_id"] + params + ["metric", "mean", "std_err", "n"]
            return pd.DataFrame(rows, columns=columns)

        rows = []
        for cell in self._cells:
            entry = self._grid[self._grid.position(cell.config_id)]
            for metric in self._metrics:
                row = {"config_id": cell.config_id, "fold_id": cell.fold_id}
                row.update(entry.as_dict())
                row.update({"metric": metric.name, "estimate": cell.scores.get(metric.name, np.nan)})
                rows.append(row)
        return pd.DataFrame(rows, columns=["config_id", "fold_id"] + params + ["metric", "estimate"])

    def _metric(self, metric: Union[None, str, Metric]) -> Metric:
        if metric is None:
            return self._metrics.metrics[0]
        name = metric.name if isinstance(metric, Metric) else metric
        if name not in self._metrics:
            raise ValueError(f"Metric '{name}' was not computed; available: {self._metrics.names}")
        return self._metrics[name]

    def _ranked(self, metric: Metric) -> List[MetricSummary]:
        """Summaries with a usable mean, best first; equal means keep grid order."""
        usable = [s for s in self._summaries if s.metric == metric.name and s.mean is not None]
        sign = -1.0 if metric.direction == "maximize" else 1.0
        return sorted(usable, key=lambda s: (sign * s.mean, self._grid.position(s.config_id)))

    def show_best(self, metric: Union[None, str, Metric] = None, n: int = 5) -> pd.DataFrame:
        metric = self._metric(metric)
        ranked = self._ranked(metric)[:n]
        table = self.collect_metrics()
        table = table[table["metric"] == metric.name].set_index("config_id")
        return table.loc[[s.config_id for s in ranked]].reset_index()

    def select_best(self, metric: Union[None, str, Metric] = None, tie_break: Optional[TieBreak] = None) -> GridEntry:
        """
        The configuration with the best mean. Means within ``Settings.TIE_TOLERANCE``
        of the best are tied and resolved by ``tie_break`` (grid order by default).
        """
        metric = self._metric(metric)
        ranked = self._ranked(metric)
        if not ranked:
            raise TuningError(f"No configuration produced a usable '{metric.name}' estimate")

        best = ranked[0].mean
        tolerance = get_settings().TIE_TOLERANCE
        tied = [s.config_id for s in ranked if np.isclose(s.mean, best, rtol=0.0, atol=tolerance)]
        winner = (tie_break or TieBreak.grid_order()).order(self._grid, tied)[0]
        return self._grid[self._grid.position(winner)]

    def select_by_one_std_err(self, metric: Union[None, str, Metric] = None, tie_break: Optional[TieBreak] = None) -> GridEntry:
        """
        Among configurations within one standard error of the best mean, pick
        the first by ``tie_break``. Pass ``TieBreak.by_params`` ordering the
        simplest models first.
        """
        metric = self._metric(metric)
        ranked = self._ranked(metric)
        if not ranked:
            raise TuningError(f"No configuration produced a usable '{metric.name}' estimate")

        best = ranked[0]
        margin = best.std_err or 0.0
        if metric.direction == "maximize":
            candidates = [s.config_id for s in ranked if s.mean >= best.mean - margin]
        else:
            candidates = [s.config_id for s in ranked if s.mean <= best.mean + margin]
        winner = (tie_break or TieBreak.grid_order()).order(self._grid, candidates)[0]
        return self._grid[self._grid.position(winner)]

    def __repr__(self) -> str:
        return (
            f"TuningResults(configs={len(self._grid)}, folds={len(self._fold_ids)}, "
            f"metrics={self._metrics.names}, failed={len(self.failed_configs)})"
        )


class Tuner:
    """
    Evaluates every (grid entry, fold) cell of a workflow.

    Cells run in a bounded joblib thread pool of ``n_jobs`` workers and check
    ``cancel_event`` before starting. A cell that raises a RecipeflowError is
    recorded as failed and does not stop the run.
    """

    def __init__(
        self,
        workflow: Workflow,
        resamples: Resamples,
        grid: Optional[Grid] = None,
        metrics: Union[None, str, Metric, MetricSet, Sequence[Union[str, Metric]]] = None,
        n_jobs: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        tunable = set(workflow.tunable().values())
        if grid is None:
            grid = grid_regular(workflow.estimator) if tunable else grid_explicit([{}])
        if set(grid.param_names) != tunable:
            raise ValueError(
                f"Grid parameters {sorted(grid.param_names)} do not match the workflow's tunable "
                f"parameters {sorted(tunable)}"
            )
        if len(resamples) == 0:
            raise ValueError("Cannot tune without resamples")

        self.workflow = workflow
        self.resamples = resamples
        self.grid = grid
        self.metrics = as_metric_set(metrics, workflow.problem_type)
        if self.metrics.problem_type != workflow.problem_type:
            raise ValueError(
                f"Metrics {self.metrics.names} do not apply to a {workflow.problem_type} workflow"
            )
        self.n_jobs = get_settings().N_JOBS if n_jobs is None else n_jobs
        self.cancel_event = cancel_event or threading.Event()
        self.cells: List[CellResult] = []
        self._status = TunerStatus.CONFIGURED
        self._results: Optional[TuningResults] = None

    @property
    def status(self) -> TunerStatus:
        return self._status

    @property
    def results(self) -> Optional[TuningResults]:
        return self._results

    def cancel(self) -> None:
        self.cancel_event.set()

    def _evaluate_cell(self, entry: GridEntry, fold: Fold) -> Optional[CellResult]:
        if self.cancel_event.is_set():
            return None

        table = self.resamples.table
        try:
            fitted = self.workflow.finalize(entry).fit(fold.training(table))
            scores = fitted.evaluate(fold.holdout(table), self.metrics)
        except RecipeflowError as exc:
            logger.warning(f"Cell {entry.config_id}/{fold.id} failed: {type(exc).__name__}: {exc}")
            return CellResult(entry.config_id, fold.id, error=str(exc), error_type=type(exc).__name__)
        return CellResult(entry.config_id, fold.id, scores=scores)

    def run(self) -> TuningResults:
        if self._status is not TunerStatus.CONFIGURED:
            raise TuningError(f"Tuner has already run (status: {self._status.value})")

        self._status = TunerStatus.RUNNING
        tasks = [(entry, fold) for entry in self.grid for fold in self.resamples]
        logger.info(
            f"Tuning {len(self.grid)} configuration(s) x {len(self.resamples)} fold(s) "
            f"with n_jobs={self.n_jobs}"
        )
        start = time.time()

        try:
            outputs = Parallel(n_jobs=self.n_jobs, backend="threading")(
                delayed(self._evaluate_cell)(entry, fold) for entry, fold in tasks
            )
        except Exception:
            self._status = TunerStatus.FAILED
            raise

        self.cells = [c for c in outputs if c is not None]
        if len(self.cells) < len(tasks):
            self._status = TunerStatus.FAILED
            raise TuningCancelled(
                f"Tuning cancelled after {len(self.cells)} of {len(tasks)} cells",
                {"completed": len(self.cells), "total": len(tasks)},
            )

        results = TuningResults(self.grid, self.resamples.ids(), self.metrics, self.cells)
        if len(results.failed_configs) == len(self.grid):
            self._status = TunerStatus.FAILED
            raise TuningError(
                "Every configuration failed on every fold",
                {"failures": results.failures().to_dict(orient="records")},
            )

        self._results = results
        self._status = TunerStatus.COMPLETED
        logger.info(
            f"Tuning completed in {time.time() - start:.2f}s; "
            f"{len(results.failed_configs)} configuration(s) failed"
        )
        return results


def tune_grid(
    workflow: Workflow,
    resamples: Resamples,
    grid: Union[None, int, Grid, pd.DataFrame, Sequence[Mapping[str, Any]]] = None,
    metrics: Union[None, str, Metric, MetricSet, Sequence[Union[str, Metric]]] = None,
    n_jobs: Optional[int] = None,
    cancel_event: Optional[threading.Event] = None,
) -> TuningResults:
    """
    Tune ``workflow`` over ``resamples``. ``grid`` may be a Grid, explicit
    candidates, or an int giving the number of levels per parameter of a
    regular grid.
    """
    if grid is None:
        grid = grid_regular(workflow.estimator, levels=3)
    elif isinstance(grid, int):
        if grid < 1:
            raise ValueError(f"grid must be at least 1 level per parameter, got {grid}")
        grid = grid_regular(workflow.estimator, levels=grid)
    elif not isinstance(grid, Grid):
        grid = grid_explicit(grid)
    return Tuner(workflow, resamples, grid, metrics, n_jobs, cancel_event).run()


def fit_resamples(
    workflow: Workflow,
    resamples: Resamples,
    metrics: Union[None, str, Metric, MetricSet, Sequence[Union[str, Metric]]] = None,
    n_jobs: Optional[int] = None,
) -> TuningResults:
    """Resampled performance of a fully specified workflow."""
    if workflow.tunable():
        raise ValueError(f"Workflow still has tunable parameters: {sorted(workflow.tunable().values())}")
    return Tuner(workflow, resamples, grid_explicit([{}]), metrics, n_jobs).run()


def _suggest(trial, name: str, field: HyperparameterField) -> Any:
    if field.type == "select":
        return trial.suggest_categorical(name, list(field.options or []))
    if field.min is None or field.max is None:
        raise ValueError(f"Hyperparameter '{name}' has no range to search")
    if field.type == "integer":
        return trial.suggest_int(name, int(field.min), int(field.max), log=field.log_scale)
    return trial.suggest_float(name, float(field.min), float(field.max), log=field.log_scale)


def tune_iterative(
    workflow: Workflow,
    resamples: Resamples,
    metrics: Union[None, str, Metric, MetricSet, Sequence[Union[str, Metric]]] = None,
    n_trials: int = 20,
    param_info: Optional[Mapping[str, HyperparameterField]] = None,
    seed: Optional[int] = None,
    n_jobs: Optional[int] = None,
    cancel_event: Optional[threading.Event] = None,
) -> TuningResults:
    """
    Sequential model-based search with optuna's ask-and-tell interface.
    Each proposed configuration is scored on every fold; the first metric's
    mean drives the search. Requires the ``tuning`` extra.
    """
    import optuna

    metric_set_ = as_metric_set(metrics, workflow.problem_type)
    target = metric_set_.metrics[0]
    tune_ids = workflow.tunable()
    if not tune_ids:
        raise ValueError("Workflow has no tunable parameters")
    if n_trials < 1:
        raise ValueError("n_trials must be at least 1")

    fields = dict(param_info or {})
    for name, tune_id in tune_ids.items():
        if tune_id not in fields:
            fields[tune_id] = get_hyperparameter(workflow.estimator.name, name)

    seed = get_settings().RANDOM_STATE if seed is None else seed
    cancel_event = cancel_event or threading.Event()
    study = optuna.create_study(
        direction=target.direction,
        sampler=optuna.samplers.TPESampler(seed=seed),
    )

    entries: List[GridEntry] = []
    cells: List[CellResult] = []
    width = len(str(n_trials))
    for i in range(n_trials):
        if cancel_event.is_set():
            raise TuningCancelled(f"Iterative search cancelled after {i} trial(s)")

        trial = study.ask()
        values = tuple((tune_id, _suggest(trial, tune_id, fields[tune_id])) for tune_id in tune_ids.values())
        entry = GridEntry(f"Iter{i + 1:0{width}d}", values)
        entries.append(entry)

        tuner = Tuner(workflow, resamples, Grid([entry]), metric_set_, n_jobs, cancel_event)
        try:
            results = tuner.run()
        except TuningCancelled:
            raise
        except TuningError:
            cells.extend(tuner.cells)
            study.tell(trial, state=optuna.trial.TrialState.FAIL)
            continue

        cells.extend(tuner.cells)
        score = results.collect_metrics()
        score = score.loc[score["metric"] == target.name, "mean"].iloc[0]
        if score is None or not np.isfinite(score):
            study.tell(trial, state=optuna.trial.TrialState.FAIL)
        else:
            study.tell(trial, float(score))
        logger.debug(f"Trial {entry.config_id} {entry.as_dict()}: {target.name}={score}")

    results = TuningResults(Grid(entries), resamples.ids(), metric_set_, cells)
    if len(results.failed_configs) == len(entries):
        raise TuningError("Every proposed configuration failed on every fold")
    return results


@dataclass(frozen=True)
class LastFit:
    """A workflow fit on the training part of a split and scored on its testing part."""
    fitted: FittedWorkflow
    report: LastFitReport
    predictions: Table

    def collect_metrics(self) -> pd.DataFrame:
        return pd.DataFrame([m.model_dump() for m in self.report.metrics], columns=["metric", "direction", "estimate"])


def last_fit(
    workflow: Workflow,
    split: InitialSplit,
    metrics: Union[None, str, Metric, MetricSet, Sequence[Union[str, Metric]]] = None,
) -> LastFit:
    metric_set_ = as_metric_set(metrics, workflow.problem_type)
    training, testing = split.training(), split.testing()

    fitted = workflow.fit(training)
    scores = fitted.evaluate(testing, metric_set_)
    report = LastFitReport(
        generated_at=datetime.now(timezone.utc),
        problem_type=fitted.problem_type,
        outcome=fitted.outcome,
        predictors=fitted.predictors,
        n_train=training.n_rows,
        n_test=testing.n_rows,
        metrics=[
            MetricEstimate(
                metric=m.name,
                direction=m.direction,
                estimate=None if np.isnan(scores[m.name]) else scores[m.name],
            )
            for m in metric_set_
        ],
    )
    return LastFit(fitted=fitted, report=report, predictions=fitted.augment(testing))
