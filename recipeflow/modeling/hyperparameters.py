"""Hyperparameter definitions used to build regular tuning grids."""

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence

import numpy as np


@dataclass(frozen=True)
class HyperparameterField:
    """Describe a single tunable hyperparameter."""
    name: str
    label: str
    type: str  # "number", "integer", "select"
    default: Any
    description: str = ""
    min: Optional[float] = None
    max: Optional[float] = None
    log_scale: bool = False
    options: Optional[Sequence[Any]] = None  # For 'select' type

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def values(self, levels: int = 3) -> List[Any]:
        """Evenly spaced candidate values (on a log scale where configured)."""
        if self.type == "select":
            return list(self.options or [])
        if levels < 1:
            raise ValueError("levels must be at least 1")
        if self.min is None or self.max is None:
            raise ValueError(f"Hyperparameter '{self.name}' has no range to sample from")
        if levels == 1:
            return [self.default]

        if self.log_scale:
            points = np.logspace(np.log10(self.min), np.log10(self.max), levels)
        else:
            points = np.linspace(self.min, self.max, levels)

        if self.type == "integer":
            # Rounding can merge neighbouring levels on narrow ranges
            return sorted(set(int(round(p)) for p in points))
        return [float(p) for p in points]


# --- Penalized / Logistic Regression ---
PENALTY_PARAMS = [
    HyperparameterField(
        name="alpha",
        label="Penalty",
        type="number",
        default=1.0,
        min=1e-4,
        max=1.0,
        log_scale=True,
        description="Amount of regularization.",
    ),
    HyperparameterField(
        name="l1_ratio",
        label="Mixture",
        type="number",
        default=1.0,
        min=0.0,
        max=1.0,
        description="Proportion of lasso penalty; 0 is pure ridge.",
    ),
]

LOGISTIC_REGRESSION_PARAMS = [
    HyperparameterField(
        name="C",
        label="Inverse Regularization Strength (C)",
        type="number",
        default=1.0,
        min=1e-3,
        max=1e3,
        log_scale=True,
        description="Smaller values specify stronger regularization.",
    ),
    HyperparameterField(
        name="l1_ratio",
        label="Mixture",
        type="number",
        default=0.5,
        min=0.0,
        max=1.0,
        description="Elastic-net mixing parameter (penalty='elasticnet' only).",
    ),
]

# --- Decision Trees ---
DECISION_TREE_PARAMS = [
    HyperparameterField(
        name="ccp_alpha",
        label="Cost Complexity",
        type="number",
        default=0.0,
        min=1e-10,
        max=1e-1,
        log_scale=True,
        description="Complexity parameter for minimal cost-complexity pruning.",
    ),
    HyperparameterField(
        name="max_depth",
        label="Tree Depth",
        type="integer",
        default=None,
        min=1,
        max=15,
        description="The maximum depth of the tree.",
    ),
    HyperparameterField(
        name="min_samples_split",
        label="Min Samples Split",
        type="integer",
        default=2,
        min=2,
        max=40,
        description="The minimum number of samples required to split an internal node.",
    ),
]

# --- Random Forest (Classifier & Regressor) ---
RANDOM_FOREST_PARAMS = [
    HyperparameterField(
        name="n_estimators",
        label="Number of Trees",
        type="integer",
        default=100,
        min=10,
        max=1000,
        description="The number of trees in the forest.",
    ),
    HyperparameterField(
        name="max_features",
        label="Features per Split",
        type="number",
        default=1.0,
        min=0.1,
        max=1.0,
        description="Fraction of predictors sampled at each split.",
    ),
    HyperparameterField(
        name="min_samples_leaf",
        label="Min Samples Leaf",
        type="integer",
        default=1,
        min=1,
        max=40,
        description="The minimum number of samples in a leaf.",
    ),
]

MODEL_HYPERPARAMETERS = {
    "PenalizedRegressionEstimator": PENALTY_PARAMS,
    "LogisticRegressionEstimator": LOGISTIC_REGRESSION_PARAMS,
    "DecisionTreeClassifierEstimator": DECISION_TREE_PARAMS,
    "DecisionTreeRegressorEstimator": DECISION_TREE_PARAMS,
    "RandomForestClassifierEstimator": RANDOM_FOREST_PARAMS,
    "RandomForestRegressorEstimator": RANDOM_FOREST_PARAMS,
}


def get_hyperparameters(model_key: str) -> List[HyperparameterField]:
    return list(MODEL_HYPERPARAMETERS.get(model_key, []))


def get_hyperparameter(model_key: str, name: str) -> HyperparameterField:
    for field in get_hyperparameters(model_key):
        if field.name == name:
            return field
    raise KeyError(f"No hyperparameter metadata for '{name}' on {model_key}")
