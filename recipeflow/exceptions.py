"""Exceptions raised by recipeflow."""

from typing import Any, Dict, Optional


class RecipeflowError(Exception):
    """Base exception for recipe, workflow and tuning operations."""

    def __init__(self, message: str, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or {}


class SchemaError(RecipeflowError):
    """Raised when a column is missing or has an incompatible type."""

    def __init__(self, message: str, columns: Optional[list] = None):
        detail = {"columns": list(columns)} if columns else {}
        super().__init__(message, detail)


class DomainError(RecipeflowError):
    """Raised when values fall outside the valid domain of a transformation."""

    def __init__(self, message: str, column: Optional[str] = None):
        detail = {"column": column} if column else {}
        super().__init__(message, detail)


class UnknownLevelError(RecipeflowError):
    """Raised when a categorical level unseen during fit shows up at apply time."""

    def __init__(self, column: str, levels: list):
        super().__init__(
            f"Column '{column}' contains levels not seen during fit: {sorted(map(str, levels))}",
            {"column": column, "levels": list(levels)},
        )


class DegenerateScaleError(RecipeflowError):
    """Raised when a zero-variance column reaches a scale-dependent step."""

    def __init__(self, columns: list):
        super().__init__(
            f"Columns have zero standard deviation and cannot be scaled: {list(columns)}",
            {"columns": list(columns)},
        )


class NotRetainedError(RecipeflowError):
    """Raised when the retained training table is requested but was not kept."""

    def __init__(self):
        super().__init__(
            "The prepared recipe did not retain its training data; pass a table to bake()"
        )


class NotFittedError(RecipeflowError):
    """Raised when a step, recipe or workflow is used before it is fitted."""


class EstimatorError(RecipeflowError):
    """Raised when model training or prediction fails. Carries the underlying cause."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        detail = {"cause": repr(cause)} if cause is not None else {}
        super().__init__(message, detail)
        self.cause = cause


class TuningError(RecipeflowError):
    """Raised when a tuning run cannot produce a usable result."""


class TuningCancelled(TuningError):
    """Raised when a tuning run is cancelled before every cell was evaluated."""
