import numpy as np
import pandas as pd
import pytest

from recipeflow.data import Table, initial_split, validation_split, vfold_cv
from recipeflow.exceptions import SchemaError


@pytest.fixture
def labelled_table():
    # 80 / 20 class imbalance
    return Table.from_pandas(pd.DataFrame({
        "x": np.arange(100, dtype=float),
        "label": ["maj"] * 80 + ["min"] * 20,
    }))


def test_initial_split_sizes_and_partition(labelled_table):
    split = initial_split(labelled_table, prop=0.75, seed=1)
    assert len(split.train_index) == 75
    assert len(split.test_index) == 25
    combined = np.concatenate([split.train_index, split.test_index])
    assert sorted(combined.tolist()) == list(range(100))
    assert split.training().n_rows == 75
    assert split.testing().n_rows == 25


def test_same_seed_same_split(labelled_table):
    a = initial_split(labelled_table, seed=11)
    b = initial_split(labelled_table, seed=11)
    c = initial_split(labelled_table, seed=12)
    assert np.array_equal(a.train_index, b.train_index)
    assert not np.array_equal(a.train_index, c.train_index)


def test_default_seed_comes_from_settings(monkeypatch, labelled_table):
    monkeypatch.setenv("RECIPEFLOW_RANDOM_STATE", "5")
    assert np.array_equal(
        initial_split(labelled_table).train_index,
        initial_split(labelled_table, seed=5).train_index,
    )


def test_stratified_initial_split_keeps_proportions(labelled_table):
    split = initial_split(labelled_table, prop=0.5, strata="label", seed=2)
    assert (split.training().column("label") == "min").sum() == 10
    assert (split.testing().column("label") == "min").sum() == 10


def test_index_arrays_are_read_only(labelled_table):
    split = initial_split(labelled_table, seed=1)
    with pytest.raises(ValueError):
        split.train_index[0] = 3


def test_invalid_prop(labelled_table):
    for prop in (0, 1, 1.5):
        with pytest.raises(ValueError):
            initial_split(labelled_table, prop=prop)


def test_missing_strata_column(labelled_table):
    with pytest.raises(SchemaError):
        initial_split(labelled_table, strata="nope")


def test_vfold_every_row_held_out_once(labelled_table):
    folds = vfold_cv(labelled_table, v=5, seed=3)
    assert len(folds) == 5
    assert folds.ids() == ["Fold1", "Fold2", "Fold3", "Fold4", "Fold5"]

    held_out = np.concatenate([f.holdout_index for f in folds])
    assert sorted(held_out.tolist()) == list(range(100))
    for fold in folds:
        assert not set(fold.train_index) & set(fold.holdout_index)
        assert len(fold.train_index) + len(fold.holdout_index) == 100


def test_vfold_reproducible(labelled_table):
    a = vfold_cv(labelled_table, v=4, seed=9)
    b = vfold_cv(labelled_table, v=4, seed=9)
    for fa, fb in zip(a, b):
        assert np.array_equal(fa.holdout_index, fb.holdout_index)


def test_stratified_vfold_proportions(labelled_table):
    folds = vfold_cv(labelled_table, v=5, strata="label", seed=4)
    for fold in folds:
        holdout = fold.holdout(labelled_table)
        assert (holdout.column("label") == "min").sum() == 4
        assert holdout.n_rows == 20


def test_numeric_strata_are_binned(labelled_table):
    folds = vfold_cv(labelled_table, v=5, strata="x", seed=4)
    for fold in folds:
        # Quartile bins of 25 rows each: every fold holds 5 rows from each quartile
        quartiles = (fold.holdout_index // 25).tolist()
        assert sorted(set(quartiles)) == [0, 1, 2, 3]


def test_repeated_vfold(labelled_table):
    folds = vfold_cv(labelled_table, v=2, repeats=3, seed=1)
    assert len(folds) == 6
    assert folds.ids()[:2] == ["Repeat1_Fold1", "Repeat1_Fold2"]


def test_vfold_bounds(labelled_table):
    with pytest.raises(ValueError):
        vfold_cv(labelled_table, v=1)
    with pytest.raises(ValueError):
        vfold_cv(labelled_table.take([0, 1]), v=3)


def test_validation_split_is_one_fold(labelled_table):
    resamples = validation_split(labelled_table, prop=0.8, seed=1)
    assert len(resamples) == 1
    fold = resamples[0]
    assert fold.id == "validation"
    assert len(fold.holdout_index) == 20


@pytest.fixture
def single_row_class_table():
    return Table.from_pandas(pd.DataFrame({
        "x": np.arange(100, dtype=float),
        "label": ["a"] * 50 + ["b"] * 49 + ["c"],
    }))


def test_lone_row_stratum_joins_smallest_stratum(single_row_class_table):
    split = initial_split(single_row_class_table, prop=0.75, strata="label", seed=1)
    assert split.training().n_rows == 75
    assert split.testing().n_rows == 25
    combined = np.concatenate([split.train_index, split.test_index])
    assert sorted(combined.tolist()) == list(range(100))


def test_lone_row_stratum_in_folds(single_row_class_table):
    folds = vfold_cv(single_row_class_table, v=5, strata="label", seed=3)
    holdouts = np.concatenate([f.holdout_index for f in folds])
    assert sorted(holdouts.tolist()) == list(range(100))
    for fold in folds:
        assert (fold.holdout(single_row_class_table).column("label") == "a").sum() == 10
