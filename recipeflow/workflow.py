"""Workflow: a recipe bundled with an estimator, fit and used as one unit."""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import joblib
import pandas as pd

from .data.table import ColumnType, Table
from .exceptions import EstimatorError, NotFittedError, RecipeflowError, SchemaError
from .modeling.base import Estimator, Model, PREDICTION_MODES
from .modeling.evaluation.metrics import MetricSet
from .preprocessing.recipe import PreparedRecipe, Recipe

logger = logging.getLogger(__name__)


class Workflow:
    """
    An unfitted pairing of a Recipe and an Estimator.

    ``fit`` prepares the recipe on the training table, bakes it, and trains the
    estimator on the resulting predictors and outcome.
    """

    def __init__(self, recipe: Recipe, estimator: Estimator):
        self._recipe = recipe
        self._estimator = estimator

    @property
    def recipe(self) -> Recipe:
        return self._recipe

    @property
    def estimator(self) -> Estimator:
        return self._estimator

    @property
    def problem_type(self) -> str:
        return self._estimator.problem_type

    def update_recipe(self, recipe: Recipe) -> "Workflow":
        return Workflow(recipe, self._estimator)

    def update_estimator(self, estimator: Estimator) -> "Workflow":
        return Workflow(self._recipe, estimator)

    def tunable(self) -> Dict[str, str]:
        """Tune id for each estimator parameter still marked for tuning."""
        return self._estimator.tune_ids()

    def finalize(self, hyperparameters: Mapping[str, Any]) -> "Workflow":
        """
        Substitute values for ``tune()`` placeholders. Keys may be tune ids or
        parameter names. Returns a new, unfitted workflow.
        """
        tune_ids = self._estimator.tune_ids()
        known = set(tune_ids) | set(tune_ids.values())
        unknown = [k for k in hyperparameters if k not in known]
        if unknown:
            raise ValueError(f"Not tunable in this workflow: {unknown}. Tunable: {sorted(tune_ids.values())}")

        values = {}
        for name, tune_id in tune_ids.items():
            if tune_id in hyperparameters:
                values[name] = hyperparameters[tune_id]
            elif name in hyperparameters:
                values[name] = hyperparameters[name]
        return self.update_estimator(self._estimator.set_params(**values))

    def fit(self, table: Table) -> "FittedWorkflow":
        self._recipe.roles.validate(supervised=True)
        outcome = self._recipe.outcome

        unresolved = self._estimator.tunable()
        if unresolved:
            raise EstimatorError(
                f"Hyperparameters {unresolved} are still marked for tuning; finalize the workflow first"
            )

        prepared, training = self._recipe.fit_transform(table)
        predictors = prepared.predictors
        if not predictors:
            raise SchemaError("No predictor columns remain after preparing the recipe")
        if outcome not in training:
            raise SchemaError(f"Outcome column '{outcome}' was removed by the recipe", [outcome])

        if self.problem_type == "regression" and training.type_of(outcome) != ColumnType.NUMERIC:
            raise EstimatorError(
                f"{self._estimator.name} is a regression estimator but outcome '{outcome}' "
                f"is {training.type_of(outcome).value}"
            )

        features = training.select(predictors)
        logger.info(
            f"Training {self._estimator.name} on {features.n_rows} rows, {len(predictors)} predictors"
        )
        try:
            model = self._estimator.train(features, training.column(outcome), {})
        except RecipeflowError:
            raise
        except Exception as exc:
            raise EstimatorError(f"{self._estimator.name} failed to train: {exc}", cause=exc) from exc

        return FittedWorkflow(self, prepared, model, outcome, predictors)

    def __repr__(self) -> str:
        return f"Workflow(recipe={self._recipe!r}, estimator={self._estimator!r})"


class FittedWorkflow:
    """A prepared recipe plus a trained model. Immutable; safe to share across threads."""

    def __init__(
        self,
        workflow: Workflow,
        prepared: PreparedRecipe,
        model: Model,
        outcome: str,
        predictors: Iterable[str],
    ):
        self._workflow = workflow
        self._prepared = prepared
        self._model = model
        self._outcome = outcome
        self._predictors: List[str] = list(predictors)

    @property
    def workflow(self) -> Workflow:
        return self._workflow

    @property
    def outcome(self) -> str:
        return self._outcome

    @property
    def predictors(self) -> List[str]:
        return list(self._predictors)

    @property
    def problem_type(self) -> str:
        return self._model.problem_type

    @property
    def default_mode(self) -> str:
        return "class" if self.problem_type == "classification" else "numeric"

    def extract_recipe(self) -> PreparedRecipe:
        return self._prepared

    def extract_model(self) -> Model:
        return self._model

    def _features(self, table: Table) -> Table:
        baked = self._prepared.bake(table)
        return baked.select(self._predictors)

    def _raw_predict(self, features: Table, mode: str) -> Union[pd.Series, pd.DataFrame]:
        try:
            return self._model.predict(features, mode)
        except RecipeflowError:
            raise
        except Exception as exc:
            raise EstimatorError(f"Prediction failed: {exc}", cause=exc) from exc

    def _check_mode(self, mode: str) -> None:
        allowed = ("class", "prob") if self.problem_type == "classification" else ("numeric",)
        if mode not in PREDICTION_MODES or mode not in allowed:
            raise ValueError(f"Prediction mode '{mode}' is not available for {self.problem_type}; use one of {allowed}")

    def predict(self, table: Table, mode: Optional[str] = None) -> Table:
        """
        Predict for every row of ``table``. The outcome column may be absent.

        Returns a table with ``.pred`` (numeric), ``.pred_class`` (class) or
        one ``.pred_<level>`` column per class (prob), row-aligned with the input.
        """
        mode = mode or self.default_mode
        self._check_mode(mode)

        estimate = self._raw_predict(self._features(table), mode)
        if mode == "prob":
            frame = estimate.rename(columns=lambda c: f".pred_{c}").reset_index(drop=True)
            types = {c: ColumnType.NUMERIC for c in frame.columns}
        elif mode == "class":
            frame = pd.DataFrame({".pred_class": estimate.to_numpy()})
            types = {".pred_class": ColumnType.NOMINAL}
        else:
            frame = pd.DataFrame({".pred": estimate.to_numpy()})
            types = {".pred": ColumnType.NUMERIC}
        return Table(frame, types)

    def augment(self, table: Table) -> Table:
        """Append prediction columns (every available mode) to ``table``."""
        modes = ("class", "prob") if self.problem_type == "classification" else ("numeric",)
        result = table
        for mode in modes:
            predictions = self.predict(table, mode)
            for column in predictions.columns:
                result = result.with_column(
                    column, predictions.column(column).to_numpy(), predictions.type_of(column)
                )
        return result

    def estimates(self, table: Table, kinds: Iterable[str]) -> Dict[str, Union[pd.Series, pd.DataFrame]]:
        """Raw model output for each requested prediction mode, keyed by mode."""
        features = self._features(table)
        return {kind: self._raw_predict(features, kind) for kind in kinds}

    def evaluate(self, table: Table, metrics: MetricSet) -> Dict[str, float]:
        """Score predictions on ``table``, which must carry the outcome column."""
        if metrics.problem_type != self.problem_type:
            raise ValueError(
                f"Metrics {metrics.names} are for {metrics.problem_type}, "
                f"but the model is {self.problem_type}"
            )
        table.require([self._outcome])
        estimates = self.estimates(table, metrics.kinds)
        truth = table.column(self._outcome).reset_index(drop=True)
        return metrics.evaluate(truth, {k: v.reset_index(drop=True) for k, v in estimates.items()})

    def save(self, path: str) -> None:
        """Persist the fitted workflow with joblib."""
        joblib.dump(self, path, compress=("gzip", 3))
        logger.info(f"Saved fitted workflow to {path}")

    @classmethod
    def load(cls, path: str) -> "FittedWorkflow":
        obj = joblib.load(path)
        if not isinstance(obj, cls):
            raise NotFittedError(f"{path} does not contain a fitted workflow (found {type(obj).__name__})")
        return obj

    def __repr__(self) -> str:
        return (
            f"FittedWorkflow(outcome={self._outcome!r}, predictors={len(self._predictors)}, "
            f"model={type(self._model).__name__})"
        )
