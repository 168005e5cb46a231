"""Row-index resampling: initial train/test splits and V-fold cross-validation."""

import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.model_selection import (
    KFold,
    RepeatedKFold,
    RepeatedStratifiedKFold,
    StratifiedKFold,
    train_test_split,
)

from ..config import get_settings
from .table import ColumnType, Table

logger = logging.getLogger(__name__)

POOLED_STRATUM = "__pooled__"


def _frozen_index(indices) -> np.ndarray:
    arr = np.sort(np.asarray(indices, dtype=np.int64))
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class Fold:
    """
    One resample of a table, expressed as row positions.
    Index arrays are sorted and read-only.
    """
    id: str
    train_index: np.ndarray
    holdout_index: np.ndarray

    def __post_init__(self):
        object.__setattr__(self, "train_index", _frozen_index(self.train_index))
        object.__setattr__(self, "holdout_index", _frozen_index(self.holdout_index))

    def training(self, table: Table) -> Table:
        return table.take(self.train_index)

    def holdout(self, table: Table) -> Table:
        return table.take(self.holdout_index)

    def __repr__(self) -> str:
        return f"Fold(id={self.id!r}, n_train={len(self.train_index)}, n_holdout={len(self.holdout_index)})"


class InitialSplit:
    """A single training/testing partition of ``table``."""

    def __init__(self, table: Table, train_index: Sequence[int], test_index: Sequence[int]):
        self._table = table
        self._fold = Fold("Initial", train_index, test_index)

    @property
    def table(self) -> Table:
        return self._table

    @property
    def train_index(self) -> np.ndarray:
        return self._fold.train_index

    @property
    def test_index(self) -> np.ndarray:
        return self._fold.holdout_index

    def training(self) -> Table:
        return self._fold.training(self._table)

    def testing(self) -> Table:
        return self._fold.holdout(self._table)

    def as_fold(self) -> Fold:
        return self._fold

    def __repr__(self) -> str:
        return f"InitialSplit(train={len(self.train_index)}, test={len(self.test_index)}, total={self._table.n_rows})"


class Resamples:
    """An ordered collection of folds over one table."""

    def __init__(self, table: Table, folds: Sequence[Fold], method: str):
        ids = [f.id for f in folds]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Fold ids must be unique, got {ids}")
        self._table = table
        self._folds: Tuple[Fold, ...] = tuple(folds)
        self.method = method

    @property
    def table(self) -> Table:
        return self._table

    @property
    def folds(self) -> Tuple[Fold, ...]:
        return self._folds

    def ids(self) -> List[str]:
        return [f.id for f in self._folds]

    def __len__(self) -> int:
        return len(self._folds)

    def __iter__(self) -> Iterator[Fold]:
        return iter(self._folds)

    def __getitem__(self, item: int) -> Fold:
        return self._folds[item]

    def __repr__(self) -> str:
        return f"Resamples(method={self.method!r}, n_folds={len(self)})"


def _resolve_seed(seed: Optional[int]) -> int:
    return get_settings().RANDOM_STATE if seed is None else seed


def _strata_labels(table: Table, strata: str, min_count: int) -> np.ndarray:
    """
    Class labels used for stratification. Numeric columns are binned into
    quartiles; strata smaller than ``min_count`` are pooled together. A pool
    that is itself still too small joins the smallest remaining stratum.
    """
    table.require([strata])
    values = table.column(strata)
    if values.isna().any():
        raise ValueError(f"Stratification column '{strata}' contains missing values")

    if table.type_of(strata) == ColumnType.NUMERIC:
        labels = pd.qcut(values, q=4, labels=False, duplicates="drop").astype(str)
    else:
        labels = values.astype(str)

    counts = labels.value_counts()
    sparse = counts[counts < min_count].index
    if len(sparse):
        logger.warning(
            f"Pooling {len(sparse)} stratum/strata of '{strata}' with fewer than {min_count} rows"
        )
        labels = labels.where(~labels.isin(sparse), POOLED_STRATUM)

        remaining = counts.drop(sparse)
        if counts[sparse].sum() < min_count and len(remaining):
            target = min(remaining.index, key=lambda label: (remaining[label], label))
            logger.warning(f"Pooled stratum of '{strata}' is still too small; merging it into '{target}'")
            labels = labels.replace(POOLED_STRATUM, target)
    return labels.to_numpy()


def initial_split(
    table: Table,
    prop: float = 0.75,
    strata: Optional[str] = None,
    seed: Optional[int] = None,
) -> InitialSplit:
    """
    Randomly assign a proportion ``prop`` of rows to training, the rest to testing.

    Args:
        table: Table to partition.
        prop: Fraction of rows in the training part, strictly between 0 and 1.
        strata: Optional column whose class proportions are preserved in both parts.
        seed: Random seed; defaults to ``Settings.RANDOM_STATE``.
    """
    if not 0 < prop < 1:
        raise ValueError(f"prop must be strictly between 0 and 1, got {prop}")
    if table.n_rows < 2:
        raise ValueError("Cannot split a table with fewer than two rows")

    positions = np.arange(table.n_rows)
    stratify = _strata_labels(table, strata, min_count=2) if strata else None

    train_idx, test_idx = train_test_split(
        positions,
        train_size=prop,
        random_state=_resolve_seed(seed),
        shuffle=True,
        stratify=stratify,
    )
    logger.debug(f"Initial split: {len(train_idx)} training / {len(test_idx)} testing rows")
    return InitialSplit(table, train_idx, test_idx)


def validation_split(
    table: Table,
    prop: float = 0.75,
    strata: Optional[str] = None,
    seed: Optional[int] = None,
) -> Resamples:
    """Single analysis/assessment resample, usable wherever V-fold resamples are."""
    split = initial_split(table, prop=prop, strata=strata, seed=seed)
    fold = Fold("validation", split.train_index, split.test_index)
    return Resamples(table, [fold], method="validation_split")


def vfold_cv(
    table: Table,
    v: int = 10,
    strata: Optional[str] = None,
    seed: Optional[int] = None,
    repeats: int = 1,
) -> Resamples:
    """
    V-fold cross-validation. Within each repeat every row is held out exactly once.
    """
    if v < 2:
        raise ValueError(f"v must be at least 2, got {v}")
    if v > table.n_rows:
        raise ValueError(f"v={v} exceeds the number of rows ({table.n_rows})")
    if repeats < 1:
        raise ValueError(f"repeats must be at least 1, got {repeats}")

    random_state = _resolve_seed(seed)
    positions = np.arange(table.n_rows)

    if strata:
        labels = _strata_labels(table, strata, min_count=v)
        if repeats == 1:
            splitter = StratifiedKFold(n_splits=v, shuffle=True, random_state=random_state)
        else:
            splitter = RepeatedStratifiedKFold(n_splits=v, n_repeats=repeats, random_state=random_state)
        splits = splitter.split(positions, labels)
    else:
        if repeats == 1:
            splitter = KFold(n_splits=v, shuffle=True, random_state=random_state)
        else:
            splitter = RepeatedKFold(n_splits=v, n_repeats=repeats, random_state=random_state)
        splits = splitter.split(positions)

    width = len(str(v))
    folds = []
    for i, (train_idx, holdout_idx) in enumerate(splits):
        repeat, k = divmod(i, v)
        fold_id = f"Fold{k + 1:0{width}d}"
        if repeats > 1:
            fold_id = f"Repeat{repeat + 1}_{fold_id}"
        folds.append(Fold(fold_id, train_idx, holdout_idx))

    logger.debug(f"Created {len(folds)} folds (v={v}, repeats={repeats}, strata={strata})")
    return Resamples(table, folds, method="vfold_cv")
