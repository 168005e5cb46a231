from .metrics import (
    METRICS,
    Metric,
    MetricSet,
    accuracy,
    as_metric_set,
    get_metric,
    kap,
    mae,
    metric_set,
    mn_log_loss,
    rmse,
    roc_auc,
    rsq,
    rsq_trad,
)
from .schemas import LastFitReport, MetricEstimate, MetricSummary
