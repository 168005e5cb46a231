from .base import Estimator, Model, TuneParameter, is_tune, tune
from .sklearn_wrapper import SklearnEstimator, SklearnModel
from .classification import (
    DecisionTreeClassifierEstimator,
    LogisticRegressionEstimator,
    NullClassifierEstimator,
    RandomForestClassifierEstimator,
)
from .regression import (
    DecisionTreeRegressorEstimator,
    LinearRegressionEstimator,
    NullRegressorEstimator,
    PenalizedRegressionEstimator,
    RandomForestRegressorEstimator,
)
from .hyperparameters import HyperparameterField, get_hyperparameter, get_hyperparameters
