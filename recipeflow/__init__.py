"""
Recipeflow

Declarative preprocessing recipes, model workflows, resampling and
hyperparameter tuning on top of pandas and scikit-learn.
"""

import logging

from .config import Settings, get_settings, setup_logging
from .exceptions import (
    DegenerateScaleError,
    DomainError,
    EstimatorError,
    NotFittedError,
    NotRetainedError,
    RecipeflowError,
    SchemaError,
    TuningCancelled,
    TuningError,
    UnknownLevelError,
)
from .data import (
    ColumnType,
    Fold,
    InitialSplit,
    Resamples,
    Role,
    RoleMap,
    Table,
    initial_split,
    validation_split,
    vfold_cv,
)
from .preprocessing import PreparedRecipe, Recipe, Step, bake, prepare
from .modeling import Estimator, Model, tune
from .modeling.evaluation import Metric, MetricSet, metric_set
from .workflow import FittedWorkflow, Workflow
from .modeling.tuning import (
    Grid,
    GridEntry,
    TieBreak,
    Tuner,
    TunerStatus,
    TuningResults,
    fit_resamples,
    grid_explicit,
    grid_random,
    grid_regular,
    last_fit,
    tune_grid,
    tune_iterative,
)

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())
