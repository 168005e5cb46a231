"""Schemas for evaluation results."""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class MetricEstimate(BaseModel):
    """A single metric computed on one set of predictions."""

    metric: str
    direction: Literal["maximize", "minimize"]
    estimate: Optional[float] = None


class MetricSummary(BaseModel):
    """Resampled performance of one candidate configuration for one metric."""

    config_id: str
    params: Dict[str, Any] = Field(default_factory=dict)
    metric: str
    mean: Optional[float] = None
    std_err: Optional[float] = None
    n: int = 0


class LastFitReport(BaseModel):
    """Outcome of fitting on the training part and scoring on the testing part."""

    generated_at: datetime
    problem_type: Literal["classification", "regression"]
    outcome: str
    predictors: List[str] = Field(default_factory=list)
    n_train: int
    n_test: int
    metrics: List[MetricEstimate] = Field(default_factory=list)

    def as_dict(self) -> Dict[str, Optional[float]]:
        return {m.metric: m.estimate for m in self.metrics}
