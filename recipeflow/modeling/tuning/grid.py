"""Builders for tuning grids."""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd
from sklearn.model_selection import ParameterGrid, ParameterSampler

from ...config import get_settings
from ..base import Estimator
from ..hyperparameters import HyperparameterField, get_hyperparameter
from .schemas import Grid, GridEntry

logger = logging.getLogger(__name__)

ParamSpace = Mapping[str, Union[HyperparameterField, Sequence[Any]]]


def _config_ids(n: int, prefix: str = "Model") -> List[str]:
    width = len(str(n))
    return [f"{prefix}{i:0{width}d}" for i in range(1, n + 1)]


def _entries(rows: Sequence[Mapping[str, Any]], order: Sequence[str], prefix: str = "Model") -> Grid:
    ids = _config_ids(len(rows), prefix)
    return Grid([
        GridEntry(config_id, tuple((name, row[name]) for name in order))
        for config_id, row in zip(ids, rows)
    ])


def grid_explicit(entries: Union[pd.DataFrame, Iterable[Mapping[str, Any]]]) -> Grid:
    """A grid with exactly the given candidates, in the given order."""
    if isinstance(entries, pd.DataFrame):
        rows = entries.to_dict(orient="records")
        order = list(entries.columns)
    else:
        rows = [dict(e) for e in entries]
        order = list(rows[0]) if rows else []
    return _entries(rows, order)


def tunable_space(estimator: Estimator, levels: int = 3) -> Dict[str, List[Any]]:
    """Candidate values for each ``tune()`` parameter, keyed by tune id."""
    space = {}
    for name, tune_id in estimator.tune_ids().items():
        field = get_hyperparameter(estimator.name, name)
        space[tune_id] = field.values(levels)
    return space


def _candidate_values(space: ParamSpace, levels: int) -> Dict[str, List[Any]]:
    values = {}
    for name, candidates in space.items():
        values[name] = candidates.values(levels) if isinstance(candidates, HyperparameterField) else list(candidates)
        if not values[name]:
            raise ValueError(f"No candidate values for '{name}'")
    return values


def grid_regular(space: Union[Estimator, ParamSpace], levels: int = 3) -> Grid:
    """
    Full factorial grid. ``space`` is an estimator with ``tune()`` parameters
    (ranges come from its hyperparameter metadata) or a mapping of name to a
    HyperparameterField or an explicit list of values.
    """
    if isinstance(space, Estimator):
        values = tunable_space(space, levels)
    else:
        values = _candidate_values(space, levels)
    if not values:
        raise ValueError("Nothing to tune: the parameter space is empty")

    order = list(values)
    # ParameterGrid sorts keys; iteration order is still fully deterministic
    rows = list(ParameterGrid(values))
    logger.debug(f"Regular grid over {order}: {len(rows)} candidates")
    return _entries(rows, order)


def grid_random(
    space: Union[Estimator, Mapping[str, Any]],
    size: int = 10,
    seed: Optional[int] = None,
    levels: int = 10,
) -> Grid:
    """
    ``size`` random candidates. Values may be lists or scipy.stats
    distributions; HyperparameterFields are discretized into ``levels`` values.
    """
    if size < 1:
        raise ValueError("size must be at least 1")
    if isinstance(space, Estimator):
        distributions: Dict[str, Any] = tunable_space(space, levels)
    else:
        distributions = {
            k: v.values(levels) if isinstance(v, HyperparameterField) else v
            for k, v in space.items()
        }
    if not distributions:
        raise ValueError("Nothing to tune: the parameter space is empty")

    seed = get_settings().RANDOM_STATE if seed is None else seed
    rows = list(ParameterSampler(distributions, n_iter=size, random_state=seed))
    return _entries(rows, list(distributions))
