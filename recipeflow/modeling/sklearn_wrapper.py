from typing import Any, Dict, List, Mapping, Optional, Type, Union

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator

from .base import Estimator, Model, PREDICTION_MODES, is_tune
from ..data.table import Table


class SklearnModel(Model):
    def __init__(self, fitted: BaseEstimator, problem_type: str, feature_names: List[str]):
        self._fitted = fitted
        self._problem_type = problem_type
        self._feature_names = list(feature_names)

    @property
    def problem_type(self) -> str:
        return self._problem_type

    @property
    def classes(self) -> Optional[List[Any]]:
        if self._problem_type != "classification":
            return None
        return list(self._fitted.classes_)

    @property
    def feature_names(self) -> List[str]:
        return list(self._feature_names)

    @property
    def fitted_estimator(self) -> BaseEstimator:
        return self._fitted

    def predict(self, features: Table, mode: str) -> Union[pd.Series, pd.DataFrame]:
        allowed = ("class", "prob") if self._problem_type == "classification" else ("numeric",)
        if mode not in PREDICTION_MODES or mode not in allowed:
            raise ValueError(
                f"Prediction mode '{mode}' is not available for {self._problem_type}; use one of {allowed}"
            )

        X = features.frame[self._feature_names]
        if mode == "prob":
            if not hasattr(self._fitted, "predict_proba"):
                raise ValueError(f"{type(self._fitted).__name__} does not provide class probabilities")
            probas = self._fitted.predict_proba(X)
            return pd.DataFrame(probas, columns=self.classes, index=features.frame.index)

        predictions = self._fitted.predict(X)
        if mode == "numeric":
            predictions = np.asarray(predictions, dtype=float)
        return pd.Series(predictions, index=features.frame.index)


class SklearnEstimator(Estimator):
    def __init__(
        self,
        model_class: Type[BaseEstimator],
        default_params: Dict[str, Any],
        problem_type: str,
        **params: Any,
    ):
        super().__init__(**params)
        self.model_class = model_class
        self.default_params = dict(default_params)
        self._problem_type = problem_type

    @property
    def problem_type(self) -> str:
        return self._problem_type

    def accepted_params(self) -> List[str]:
        return list(self.model_class().get_params().keys())

    def resolve_params(self, hyperparameters: Mapping[str, Any]) -> Dict[str, Any]:
        # 1. Merge Config with Defaults
        params = self.default_params.copy()
        params.update({k: v for k, v in self._params.items() if not is_tune(v)})
        params.update(hyperparameters or {})

        unresolved = [k for k, v in params.items() if is_tune(v)]
        if unresolved:
            raise ValueError(f"Hyperparameters still marked for tuning: {unresolved}")
        return params

    def train(self, features: Table, outcome: pd.Series, hyperparameters: Mapping[str, Any]) -> Model:
        params = self.resolve_params(hyperparameters)

        # 2. Instantiate Model
        model = self.model_class(**params)

        # 3. Fit
        model.fit(features.frame, outcome.to_numpy())

        return SklearnModel(model, self._problem_type, features.columns)
