from typing import Any

from sklearn.dummy import DummyClassifier
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.tree import DecisionTreeClassifier

from .sklearn_wrapper import SklearnEstimator


# --- Logistic Regression ---
class LogisticRegressionEstimator(SklearnEstimator):
    """C is the inverse penalty; pass solver='saga' with penalty='elasticnet' for a glmnet-style fit."""

    def __init__(self, **params: Any):
        super().__init__(
            model_class=LogisticRegression,
            default_params={
                "max_iter": 1000,
                "solver": "lbfgs",
                "random_state": 42,
            },
            problem_type="classification",
            **params
        )


# --- Decision Tree Classifier ---
class DecisionTreeClassifierEstimator(SklearnEstimator):
    def __init__(self, **params: Any):
        super().__init__(
            model_class=DecisionTreeClassifier,
            default_params={
                "random_state": 42,
            },
            problem_type="classification",
            **params
        )


# --- Random Forest Classifier ---
class RandomForestClassifierEstimator(SklearnEstimator):
    def __init__(self, **params: Any):
        super().__init__(
            model_class=RandomForestClassifier,
            default_params={
                "n_estimators": 100,
                "n_jobs": 1,
                "random_state": 42,
            },
            problem_type="classification",
            **params
        )


# --- Null Model (most frequent class) ---
class NullClassifierEstimator(SklearnEstimator):
    def __init__(self, **params: Any):
        super().__init__(
            model_class=DummyClassifier,
            default_params={"strategy": "prior"},
            problem_type="classification",
            **params
        )
