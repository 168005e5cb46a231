from typing import Any

from sklearn.dummy import DummyRegressor
from sklearn.ensemble import RandomForestRegressor
from sklearn.linear_model import ElasticNet, LinearRegression
from sklearn.tree import DecisionTreeRegressor

from .sklearn_wrapper import SklearnEstimator


# --- Linear Regression ---
class LinearRegressionEstimator(SklearnEstimator):
    def __init__(self, **params: Any):
        super().__init__(
            model_class=LinearRegression,
            default_params={},
            problem_type="regression",
            **params
        )


# --- Penalized (Elastic Net) Regression ---
class PenalizedRegressionEstimator(SklearnEstimator):
    """alpha is the penalty amount, l1_ratio the lasso/ridge mixture (1.0 is pure lasso)."""

    def __init__(self, **params: Any):
        super().__init__(
            model_class=ElasticNet,
            default_params={
                "alpha": 1.0,
                "l1_ratio": 1.0,
                "max_iter": 10000,
                "random_state": 42,
            },
            problem_type="regression",
            **params
        )


# --- Decision Tree Regressor ---
class DecisionTreeRegressorEstimator(SklearnEstimator):
    def __init__(self, **params: Any):
        super().__init__(
            model_class=DecisionTreeRegressor,
            default_params={
                "random_state": 42,
            },
            problem_type="regression",
            **params
        )


# --- Random Forest Regressor ---
class RandomForestRegressorEstimator(SklearnEstimator):
    def __init__(self, **params: Any):
        super().__init__(
            model_class=RandomForestRegressor,
            default_params={
                "n_estimators": 100,
                "n_jobs": 1,
                "random_state": 42,
            },
            problem_type="regression",
            **params
        )


# --- Null Model (mean baseline) ---
class NullRegressorEstimator(SklearnEstimator):
    def __init__(self, **params: Any):
        super().__init__(
            model_class=DummyRegressor,
            default_params={"strategy": "mean"},
            problem_type="regression",
            **params
        )
