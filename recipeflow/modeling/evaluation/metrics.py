"""Performance metrics consumed by workflows, resampling and tuning."""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Mapping, Sequence, Union

import numpy as np
import pandas as pd
from sklearn.metrics import (
    accuracy_score,
    cohen_kappa_score,
    log_loss,
    mean_absolute_error,
    mean_squared_error,
    r2_score,
    roc_auc_score,
)

logger = logging.getLogger(__name__)

MAXIMIZE = "maximize"
MINIMIZE = "minimize"

Estimate = Union[pd.Series, pd.DataFrame]


@dataclass(frozen=True)
class Metric:
    """
    A named scoring function.

    ``kind`` is the prediction mode the metric consumes ("numeric", "class"
    or "prob"); ``direction`` tells the tuner whether larger is better.
    """
    name: str
    func: Callable[[pd.Series, Estimate], float]
    direction: str
    kind: str

    def __post_init__(self):
        if self.direction not in (MAXIMIZE, MINIMIZE):
            raise ValueError(f"Metric direction must be '{MAXIMIZE}' or '{MINIMIZE}', got {self.direction!r}")
        if self.kind not in ("numeric", "class", "prob"):
            raise ValueError(f"Unknown metric kind: {self.kind!r}")

    @property
    def problem_type(self) -> str:
        return "regression" if self.kind == "numeric" else "classification"

    def __call__(self, truth: pd.Series, estimate: Estimate) -> float:
        return float(self.func(truth, estimate))

    def better(self, a: float, b: float) -> bool:
        return a > b if self.direction == MAXIMIZE else a < b


# --- Regression ---

def _rmse(truth, estimate):
    return np.sqrt(mean_squared_error(truth, estimate))


def _mae(truth, estimate):
    return mean_absolute_error(truth, estimate)


def _rsq(truth, estimate):
    # Squared correlation; undefined when either side is constant
    y = np.asarray(truth, dtype=float)
    y_hat = np.asarray(estimate, dtype=float)
    if len(y) < 2 or np.std(y) == 0 or np.std(y_hat) == 0:
        return np.nan
    return np.corrcoef(y, y_hat)[0, 1] ** 2


def _rsq_trad(truth, estimate):
    return r2_score(truth, estimate)


# --- Classification ---

def _accuracy(truth, estimate):
    return accuracy_score(truth, estimate)


def _kap(truth, estimate):
    return cohen_kappa_score(truth, estimate)


def _roc_auc(truth, estimate: pd.DataFrame):
    classes = list(estimate.columns)
    if len(classes) == 2:
        return roc_auc_score(np.asarray(truth) == classes[1], estimate[classes[1]].to_numpy())
    return roc_auc_score(truth, estimate.to_numpy(), multi_class="ovr", labels=classes)


def _mn_log_loss(truth, estimate: pd.DataFrame):
    return log_loss(truth, estimate.to_numpy(), labels=list(estimate.columns))


rmse = Metric("rmse", _rmse, MINIMIZE, "numeric")
mae = Metric("mae", _mae, MINIMIZE, "numeric")
rsq = Metric("rsq", _rsq, MAXIMIZE, "numeric")
rsq_trad = Metric("rsq_trad", _rsq_trad, MAXIMIZE, "numeric")
accuracy = Metric("accuracy", _accuracy, MAXIMIZE, "class")
kap = Metric("kap", _kap, MAXIMIZE, "class")
roc_auc = Metric("roc_auc", _roc_auc, MAXIMIZE, "prob")
mn_log_loss = Metric("mn_log_loss", _mn_log_loss, MINIMIZE, "prob")

METRICS: Dict[str, Metric] = {
    m.name: m for m in (rmse, mae, rsq, rsq_trad, accuracy, kap, roc_auc, mn_log_loss)
}


def get_metric(name: Union[str, Metric]) -> Metric:
    if isinstance(name, Metric):
        return name
    if name not in METRICS:
        raise ValueError(f"Unknown metric '{name}'. Available: {sorted(METRICS)}")
    return METRICS[name]


class MetricSet:
    """An ordered set of metrics that share a problem type."""

    def __init__(self, metrics: Sequence[Metric]):
        if not metrics:
            raise ValueError("A metric set needs at least one metric")
        names = [m.name for m in metrics]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate metric names: {names}")
        problem_types = {m.problem_type for m in metrics}
        if len(problem_types) > 1:
            raise ValueError("Cannot mix regression and classification metrics in one set")
        self._metrics = tuple(metrics)

    @property
    def metrics(self) -> List[Metric]:
        return list(self._metrics)

    @property
    def names(self) -> List[str]:
        return [m.name for m in self._metrics]

    @property
    def problem_type(self) -> str:
        return self._metrics[0].problem_type

    @property
    def kinds(self) -> List[str]:
        """Prediction modes needed to evaluate every metric, in first-use order."""
        return list(dict.fromkeys(m.kind for m in self._metrics))

    def __getitem__(self, name: str) -> Metric:
        for m in self._metrics:
            if m.name == name:
                return m
        raise KeyError(name)

    def __contains__(self, name: str) -> bool:
        return name in self.names

    def __iter__(self):
        return iter(self._metrics)

    def __len__(self) -> int:
        return len(self._metrics)

    def evaluate(self, truth: pd.Series, estimates: Mapping[str, Estimate]) -> Dict[str, float]:
        """
        Score every metric against the estimate of its kind.
        A metric that cannot be computed (e.g. AUC on a single-class fold)
        scores NaN and is logged rather than failing the whole evaluation.
        """
        scores: Dict[str, float] = {}
        for metric in self._metrics:
            try:
                scores[metric.name] = metric(truth, estimates[metric.kind])
            except ValueError as exc:
                logger.warning(f"Metric '{metric.name}' could not be computed: {exc}")
                scores[metric.name] = np.nan
        return scores

    def __repr__(self) -> str:
        return f"MetricSet({self.names})"


def metric_set(*metrics: Union[str, Metric]) -> MetricSet:
    return MetricSet([get_metric(m) for m in metrics])


def as_metric_set(metrics: Union[None, str, Metric, MetricSet, Iterable[Union[str, Metric]]], problem_type: str) -> MetricSet:
    """Normalize user input into a MetricSet, defaulting by problem type."""
    if metrics is None:
        if problem_type == "classification":
            return metric_set(accuracy, roc_auc)
        return metric_set(rmse, rsq)
    if isinstance(metrics, MetricSet):
        return metrics
    if isinstance(metrics, (str, Metric)):
        return metric_set(metrics)
    return metric_set(*metrics)
