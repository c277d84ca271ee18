"""Public API for the Paid_media package."""

from .aggregation import EntityMetricsSnapshot, aggregate
from .anomaly import Alert, detect_alerts, rolling_averages
from .classification import classify, campaign_performance
from .config import AlertThresholds, DashboardSettings, RecordColumns, StatusThresholds, TargetColumns
from .data_loader import RawRecord, TargetReference, load_records, load_targets
from .metrics import summarize
from .metrics_registry import compute_one, compute_series, list_metrics
from .pipeline import DashboardPipeline
from .ranking import sort_by_metric
from .trends import DailyMetrics, PeriodComparison, build_trend, compare_periods

__all__ = [
    "Alert",
    "AlertThresholds",
    "DailyMetrics",
    "DashboardPipeline",
    "DashboardSettings",
    "EntityMetricsSnapshot",
    "PeriodComparison",
    "RawRecord",
    "RecordColumns",
    "StatusThresholds",
    "TargetColumns",
    "TargetReference",
    "aggregate",
    "build_trend",
    "campaign_performance",
    "classify",
    "compare_periods",
    "compute_one",
    "compute_series",
    "detect_alerts",
    "list_metrics",
    "load_records",
    "load_targets",
    "rolling_averages",
    "sort_by_metric",
    "summarize",
]
