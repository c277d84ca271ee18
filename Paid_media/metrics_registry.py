"""Centralised paid media KPI registry.

Supported metrics (case-insensitive):

* ``CPA``  = spend / conversions
* ``ROAS`` = revenue / spend
* ``CTR``  = clicks / impressions * 100
* ``CVR``  = conversions / clicks * 100
* ``CPL``  = spend / leads

Every ratio is zero guarded: a denominator ``<= 0`` (or missing) yields ``0`` so
dashboard tables never surface ``NaN`` or infinity.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List

import numpy as np
import pandas as pd


@dataclass(frozen=True)
class MetricColumns:
    spend: str = "spend"
    conversions: str = "conversions"
    revenue: str = "revenue"
    impressions: str = "impressions"
    clicks: str = "clicks"
    leads: str = "leads"


# Column names used by aggregated tables (trend buckets, campaign rollups).
SUMMARY_COLUMNS = MetricColumns()
# Column names used by the normalized record frame.
RECORD_COLUMNS = MetricColumns(
    spend="amount_spent",
    conversions="fulfillment_orders",
    revenue="fulfillment_revenue",
)

_DEFINITIONS = {
    "CPA": ("spend", "conversions", 1.0),
    "ROAS": ("revenue", "spend", 1.0),
    "CTR": ("clicks", "impressions", 100.0),
    "CVR": ("conversions", "clicks", 100.0),
    "CPL": ("spend", "leads", 1.0),
}


def list_metrics() -> List[str]:
    """Return the list of supported metric names."""

    return list(_DEFINITIONS)


def safe_ratio(numerator: float, denominator: float, scale: float = 1.0) -> float:
    if denominator is None or pd.isna(denominator) or denominator <= 0:
        return 0.0
    if numerator is None or pd.isna(numerator):
        return 0.0
    return float(numerator) / float(denominator) * scale


def pct_change(current: float, previous: float) -> float:
    """Percentage change from *previous* to *current*; ``0`` when previous is zero."""

    if not previous or pd.isna(previous):
        return 0.0
    return (float(current) - float(previous)) / float(previous) * 100.0


def ratio_series(numerator: pd.Series, denominator: pd.Series, scale: float = 1.0) -> pd.Series:
    num = pd.to_numeric(numerator, errors="coerce").astype(float)
    den = pd.to_numeric(denominator, errors="coerce").astype(float)
    mask = den > 0
    result = pd.Series(0.0, index=num.index, dtype="float64")
    if mask.any():
        result.loc[mask] = num.loc[mask].fillna(0) / den.loc[mask] * scale
    return result


def compute_series(
    df: pd.DataFrame,
    metrics: Iterable[str],
    columns: MetricColumns = SUMMARY_COLUMNS,
) -> pd.DataFrame:
    """Compute multiple KPI series against *df*."""

    metrics_upper = [metric.upper() for metric in metrics]
    unknown = [m for m in metrics_upper if m not in _DEFINITIONS]
    if unknown:
        raise ValueError(f"Unsupported metrics requested: {unknown}")

    results: Dict[str, pd.Series] = {}
    for metric in metrics_upper:
        num_key, den_key, scale = _DEFINITIONS[metric]
        numerator = _ensure_float(df, getattr(columns, num_key))
        denominator = _ensure_float(df, getattr(columns, den_key))
        results[metric] = ratio_series(numerator, denominator, scale)

    return pd.DataFrame(results, index=df.index)[metrics_upper]


def compute_one(df: pd.DataFrame, metric: str, columns: MetricColumns = SUMMARY_COLUMNS) -> pd.Series:
    """Compute a single KPI series."""

    frame = compute_series(df, [metric], columns)
    return frame.iloc[:, 0]


def compute_totals(totals: Dict[str, float], metric: str) -> float:
    """Compute one KPI from a mapping of summed totals keyed like :data:`SUMMARY_COLUMNS`."""

    key = metric.upper()
    if key not in _DEFINITIONS:
        raise ValueError(f"Unsupported metric requested: {metric}")
    num_key, den_key, scale = _DEFINITIONS[key]
    return safe_ratio(totals.get(num_key, 0.0), totals.get(den_key, 0.0), scale)


def _ensure_float(df: pd.DataFrame, column: str) -> pd.Series:
    if column not in df.columns:
        raise KeyError(f"Expected column '{column}' in dataframe")
    series = pd.to_numeric(df[column], errors="coerce")
    return series.astype(float).replace([np.inf, -np.inf], np.nan)
