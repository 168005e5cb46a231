from .base import BaseApplier, BaseCalculator, FitState, Step, register_step, registered_steps
from .selectors import (
    Selector,
    all_nominal,
    all_nominal_predictors,
    all_numeric,
    all_numeric_predictors,
    all_outcomes,
    all_predictors,
    by_name,
    by_role,
    by_type,
    starts_with,
)

# Step modules register their kinds on import
from . import dates, encoding, feature_generation, feature_selection, imputation, scaling, transformations  # noqa: F401
from .recipe import PreparedRecipe, Recipe, bake, prepare

__all__ = [
    "BaseApplier",
    "BaseCalculator",
    "FitState",
    "Step",
    "register_step",
    "registered_steps",
    "Selector",
    "all_nominal",
    "all_nominal_predictors",
    "all_numeric",
    "all_numeric_predictors",
    "all_outcomes",
    "all_predictors",
    "by_name",
    "by_role",
    "by_type",
    "starts_with",
    "PreparedRecipe",
    "Recipe",
    "bake",
    "prepare",
]
