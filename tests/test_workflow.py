import numpy as np
import pandas as pd
import pytest

from recipeflow import FittedWorkflow, Recipe, Table, Workflow, initial_split
from recipeflow.data import Role, RoleMap
from recipeflow.exceptions import EstimatorError, SchemaError
from recipeflow.modeling import (
    LinearRegressionEstimator,
    LogisticRegressionEstimator,
    NullRegressorEstimator,
    PenalizedRegressionEstimator,
    tune,
)
from recipeflow.modeling.evaluation import metric_set
from recipeflow.preprocessing import all_nominal_predictors, all_numeric_predictors


def test_dummy_encoded_mean_baseline_end_to_end():
    rng = np.random.default_rng(0)
    table = Table.from_pandas(pd.DataFrame({
        "x": rng.normal(size=100),
        "y": rng.choice(["P", "Q"], size=100),
    }))
    split = initial_split(table, prop=0.5, seed=1)

    recipe = Recipe(outcome="x").step_dummy("y")
    fitted = Workflow(recipe, NullRegressorEstimator()).fit(split.training())
    predictions = fitted.predict(split.testing())

    assert predictions.columns == [".pred"]
    assert predictions.n_rows == 50
    assert not predictions.column(".pred").isna().any()
    assert np.allclose(predictions.column(".pred"), split.training().column("x").mean())


@pytest.fixture
def regression_workflow():
    recipe = (
        Recipe(outcome="y")
        .step_dummy(all_nominal_predictors())
        .step_normalize(all_numeric_predictors())
    )
    return Workflow(recipe, LinearRegressionEstimator())


def test_regression_fit_predict(regression_table, regression_workflow):
    fitted = regression_workflow.fit(regression_table)
    predictions = fitted.predict(regression_table)
    residuals = predictions.column(".pred") - regression_table.column("y")
    assert np.abs(residuals).max() < 1.0
    assert "group_b" in fitted.predictors


def test_predict_without_outcome(regression_table, regression_workflow):
    fitted = regression_workflow.fit(regression_table)
    new = regression_table.drop(["y"]).take([0, 1, 2])
    assert fitted.predict(new).n_rows == 3


def test_predict_missing_predictor(regression_table, regression_workflow):
    fitted = regression_workflow.fit(regression_table)
    with pytest.raises(SchemaError):
        fitted.predict(regression_table.drop(["x1"]))


def test_classification_modes(classification_table):
    workflow = Workflow(Recipe(outcome="label"), LogisticRegressionEstimator())
    fitted = workflow.fit(classification_table)

    classes = fitted.predict(classification_table)
    assert classes.columns == [".pred_class"]
    assert set(classes.column(".pred_class")) <= {"no", "yes"}

    probs = fitted.predict(classification_table, mode="prob")
    assert probs.columns == [".pred_no", ".pred_yes"]
    assert np.allclose(probs.frame.sum(axis=1), 1.0)

    with pytest.raises(ValueError):
        fitted.predict(classification_table, mode="numeric")


def test_augment_appends_predictions(classification_table):
    fitted = Workflow(Recipe(outcome="label"), LogisticRegressionEstimator()).fit(classification_table)
    augmented = fitted.augment(classification_table)
    assert augmented.columns == ["x1", "x2", "label", ".pred_class", ".pred_no", ".pred_yes"]


def test_evaluate(classification_table):
    fitted = Workflow(Recipe(outcome="label"), LogisticRegressionEstimator()).fit(classification_table)
    scores = fitted.evaluate(classification_table, metric_set("accuracy", "roc_auc"))
    assert scores["accuracy"] > 0.7
    assert scores["roc_auc"] > 0.8

    with pytest.raises(ValueError):
        fitted.evaluate(classification_table, metric_set("rmse"))


def test_requires_exactly_one_outcome(regression_table):
    with pytest.raises(SchemaError):
        Workflow(Recipe(), LinearRegressionEstimator()).fit(regression_table)

    two_outcomes = RoleMap({"y": Role.OUTCOME, "x1": Role.OUTCOME})
    with pytest.raises(SchemaError):
        Workflow(Recipe(roles=two_outcomes), LinearRegressionEstimator()).fit(regression_table)


def test_unresolved_tuning_parameters(regression_table):
    workflow = Workflow(Recipe(outcome="y").step_dummy("group"), PenalizedRegressionEstimator(alpha=tune()))
    with pytest.raises(EstimatorError):
        workflow.fit(regression_table)


def test_training_failure_is_wrapped(regression_table):
    # Nominal predictor left unencoded: the underlying estimator rejects strings
    workflow = Workflow(Recipe(outcome="y"), LinearRegressionEstimator())
    with pytest.raises(EstimatorError) as info:
        workflow.fit(regression_table)
    assert info.value.cause is not None


def test_regression_estimator_on_nominal_outcome(classification_table):
    with pytest.raises(EstimatorError):
        Workflow(Recipe(outcome="label"), LinearRegressionEstimator()).fit(classification_table)


def test_finalize(regression_table):
    workflow = Workflow(Recipe(outcome="y").step_dummy("group"), PenalizedRegressionEstimator(alpha=tune("penalty")))
    assert workflow.tunable() == {"alpha": "penalty"}

    final = workflow.finalize({"penalty": 0.01})
    assert final.tunable() == {}
    assert final.estimator.params["alpha"] == 0.01
    # Original is unchanged
    assert workflow.tunable() == {"alpha": "penalty"}
    final.fit(regression_table)

    with pytest.raises(ValueError):
        workflow.finalize({"not_tunable": 1})


def test_update_recipe_and_estimator(regression_workflow):
    updated = regression_workflow.update_estimator(NullRegressorEstimator())
    assert isinstance(updated.estimator, NullRegressorEstimator)
    assert isinstance(regression_workflow.estimator, LinearRegressionEstimator)
    assert updated.update_recipe(Recipe(outcome="y")).recipe.steps == ()


def test_extractors(regression_table, regression_workflow):
    fitted = regression_workflow.fit(regression_table)
    assert [s.kind for s in fitted.extract_recipe().recipe.steps] == ["dummy", "normalize"]
    assert fitted.extract_model().problem_type == "regression"


def test_works_without_retained_training(regression_table, regression_workflow):
    workflow = regression_workflow.update_recipe(regression_workflow.recipe.with_retain(False))
    fitted = workflow.fit(regression_table)
    assert not fitted.extract_recipe().retained
    expected = regression_workflow.fit(regression_table).predict(regression_table)
    assert fitted.predict(regression_table).equals(expected)


def test_save_and_load_round_trip(tmp_path, regression_table, regression_workflow):
    fitted = regression_workflow.fit(regression_table)
    path = tmp_path / "workflow.joblib"
    fitted.save(str(path))

    loaded = FittedWorkflow.load(str(path))
    assert loaded.predict(regression_table).equals(fitted.predict(regression_table))
