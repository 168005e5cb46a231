import numpy as np
import pandas as pd
import pytest

from recipeflow.data import Role, Table, initial_split
from recipeflow.exceptions import NotRetainedError, SchemaError
from recipeflow.preprocessing import (
    Recipe,
    all_nominal_predictors,
    all_numeric_predictors,
    bake,
    prepare,
)


@pytest.fixture
def base_recipe():
    return (
        Recipe(outcome="y")
        .step_dummy(all_nominal_predictors())
        .step_zv()
        .step_normalize(all_numeric_predictors())
    )


def test_builders_return_new_recipes():
    base = Recipe(outcome="y")
    extended = base.step_log("x1")
    assert len(base) == 0
    assert len(extended) == 1
    # One base recipe can be reused for several variants
    a = base.step_normalize("x1")
    b = base.step_impute("x1")
    assert [s.kind for s in a.steps] == ["normalize"]
    assert [s.kind for s in b.steps] == ["impute"]


def test_duplicate_step_ids_rejected():
    recipe = Recipe(outcome="y").step("log", "x1", id="same")
    with pytest.raises(ValueError):
        recipe.step("log", "x2", id="same")


def test_prepare_and_bake_shapes(regression_table, base_recipe):
    prepared = base_recipe.prepare(regression_table)
    baked = prepared.bake()
    assert baked.n_rows == regression_table.n_rows
    assert "group" not in baked
    assert {"group_a", "group_b", "group_c"} <= set(baked.columns)
    assert prepared.outcome == "y"
    assert "y" not in prepared.predictors
    # Columns created by steps are predictors
    assert prepared.roles["group_a"] is Role.PREDICTOR


def test_statistics_come_from_training_rows_only(regression_table):
    split = initial_split(regression_table, prop=0.5, seed=3)
    recipe = Recipe(outcome="y").step_normalize("x1")
    prepared = recipe.prepare(split.training())

    train_mean = split.training().column("x1").mean()
    assert prepared.states[0].params["mean"][0] == pytest.approx(train_mean)

    # Baked test data keeps its offset from the training mean
    baked = prepared.bake(split.testing())
    assert baked.column("x1").mean() != pytest.approx(0.0, abs=1e-9)


def test_dummy_then_normalize_uses_encoded_columns(regression_table, base_recipe):
    baked = base_recipe.prepare(regression_table).bake()
    for column in ("group_a", "group_b", "group_c", "x1", "x2"):
        assert baked.column(column).mean() == pytest.approx(0.0, abs=1e-9)
    # Outcome untouched
    assert np.allclose(baked.column("y"), regression_table.column("y"))


def test_prepare_is_deterministic(regression_table, base_recipe):
    first = base_recipe.prepare(regression_table)
    second = base_recipe.prepare(regression_table)
    assert first.bake().equals(second.bake())
    new = regression_table.take([0, 5, 7])
    assert first.bake(new).equals(second.bake(new))


def test_bake_without_retained_training(regression_table, base_recipe):
    prepared = base_recipe.with_retain(False).prepare(regression_table)
    assert not prepared.retained
    with pytest.raises(NotRetainedError):
        prepared.bake()
    assert prepared.bake(regression_table).n_rows == regression_table.n_rows


def test_retention_follows_settings(monkeypatch, regression_table):
    monkeypatch.setenv("RECIPEFLOW_RETAIN_TRAINING", "false")
    prepared = Recipe(outcome="y").step_normalize("x1").prepare(regression_table)
    assert not prepared.retained


def test_retained_table_matches_rebake_without_skip(regression_table, base_recipe):
    prepared = base_recipe.prepare(regression_table)
    assert prepared.bake().equals(prepared.bake(regression_table))


def test_skipped_steps_only_run_on_training():
    train = Table.from_dict({"x": [1.0, 10.0, 100.0], "y": [1.0, 2.0, 3.0]})
    recipe = Recipe(outcome="y").step_log("y", base=10, skip=True)
    prepared = recipe.prepare(train)

    assert prepared.bake().column("y").tolist() == pytest.approx([0.0, np.log10(2.0), np.log10(3.0)])
    assert prepared.bake(train).column("y").tolist() == [1.0, 2.0, 3.0]


def test_prediction_data_without_outcome(regression_table):
    recipe = Recipe(outcome="y").step_normalize(["x1", "y"])
    prepared = recipe.prepare(regression_table)
    baked = prepared.bake(regression_table.drop(["y"]))
    assert "y" not in baked
    assert "x1" in baked


def test_missing_role_columns():
    with pytest.raises(SchemaError):
        Recipe(outcome="nope").prepare(Table.from_dict({"x": [1.0]}))


def test_identifiers_are_left_alone():
    table = Table.from_dict({"id": [1.0, 2.0, 3.0], "x": [1.0, 2.0, 4.0], "y": [0.0, 1.0, 0.0]})
    prepared = Recipe(outcome="y", identifiers=["id"]).step_normalize(all_numeric_predictors()).prepare(table)
    baked = prepared.bake()
    assert baked.column("id").tolist() == [1.0, 2.0, 3.0]
    assert prepared.predictors == ["x"]


def test_update_role(regression_table):
    recipe = Recipe(outcome="y").update_role("x2", Role.IDENTIFIER)
    prepared = recipe.step_normalize(all_numeric_predictors()).prepare(regression_table)
    assert "x2" not in prepared.predictors
    assert prepared.bake().column("x2").equals(regression_table.column("x2"))


def test_summary_and_tidy(regression_table, base_recipe):
    summary = base_recipe.summary(regression_table)
    assert summary.set_index("variable").loc["y", "role"] == "outcome"
    assert summary.set_index("variable").loc["group", "type"] == "nominal"

    prepared = base_recipe.prepare(regression_table)
    tidy = prepared.tidy()
    assert tidy["kind"].tolist() == ["dummy", "zv", "normalize"]
    assert tidy["number"].tolist() == [1, 2, 3]
    assert "levels" in tidy.loc[0, "params"]

    out = prepared.summary()
    assert "group_a" in out["variable"].tolist()


def test_module_level_prepare_and_bake(regression_table, base_recipe):
    prepared = prepare(base_recipe, regression_table)
    assert bake(prepared).equals(prepared.bake())
    assert bake(prepared, regression_table).equals(prepared.bake(regression_table))


def test_fit_transform_returns_training_even_when_not_retained(regression_table, base_recipe):
    prepared, training = base_recipe.with_retain(False).fit_transform(regression_table)
    assert not prepared.retained
    assert training.equals(prepared.bake(regression_table))


def test_summary_is_stable(regression_table, base_recipe):
    first = base_recipe.summary(regression_table)
    pd.testing.assert_frame_equal(base_recipe.summary(regression_table), first)

    updated = base_recipe.update_role("group", "identifier")
    pd.testing.assert_frame_equal(updated.summary(regression_table), updated.summary(regression_table))
    assert updated.summary(regression_table).set_index("variable").loc["group", "role"] == "identifier"
