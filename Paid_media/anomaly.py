"""Rolling-average alerts for CPA, conversion rate and budget pacing.

The short (7-day) rolling window is compared with the long (30-day) window; a
CPA shift beyond the configured percentage raises a ``high`` alert and a
conversion-rate shift a ``medium`` one. Budget pacing compares the share of the
monthly budget already spent with the share of the month already elapsed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Literal, Optional

import pandas as pd

from Paid_media.config import AlertThresholds
from Paid_media.data_loader import RawRecord, as_record_frame
from Paid_media.metrics_registry import compute_totals, pct_change, safe_ratio
from Paid_media.windows import ROLLING_WINDOWS, MTD_WINDOW, as_of, month_start, window_mask, window_start

Severity = Literal["high", "medium", "low"]


@dataclass(frozen=True)
class RollingMetrics:
    """Per-day averages for a trailing window plus its window-level ratios."""

    spend: float
    conversions: float
    revenue: float
    cpa: float
    roas: float
    conversion_rate: float


@dataclass(frozen=True)
class Alert:
    severity: Severity
    metric: str
    change: float
    message: str


def _window_totals(frame: pd.DataFrame, start: pd.Timestamp, today: pd.Timestamp) -> Dict[str, float]:
    if frame.empty:
        subset = frame
    else:
        subset = frame[window_mask(frame["campaign_date"], start, today)]
    return {
        "spend": float(subset["amount_spent"].sum()),
        "conversions": float(subset["fulfillment_orders"].sum()),
        "revenue": float(subset["fulfillment_revenue"].sum()),
        "clicks": float(subset["clicks"].sum()),
        "impressions": float(subset["impressions"].sum()),
    }


def _rolling_from_totals(totals: Dict[str, float], days: int) -> RollingMetrics:
    return RollingMetrics(
        spend=safe_ratio(totals["spend"], days),
        conversions=safe_ratio(totals["conversions"], days),
        revenue=safe_ratio(totals["revenue"], days),
        cpa=compute_totals(totals, "CPA"),
        roas=compute_totals(totals, "ROAS"),
        conversion_rate=compute_totals(totals, "CVR"),
    )


def rolling_metrics(records: pd.DataFrame | Iterable[RawRecord], days: int, today=None) -> RollingMetrics:
    frame = as_record_frame(records)
    reference = as_of(today)
    totals = _window_totals(frame, window_start(reference, days), reference)
    return _rolling_from_totals(totals, days)


def month_to_date_metrics(records: pd.DataFrame | Iterable[RawRecord], today=None) -> RollingMetrics:
    """Month-to-date averages; per-day values are divided by the day of month."""

    frame = as_record_frame(records)
    reference = as_of(today)
    totals = _window_totals(frame, month_start(reference), reference)
    return _rolling_from_totals(totals, reference.day)


def rolling_averages(records: pd.DataFrame | Iterable[RawRecord], today=None) -> Dict[str, RollingMetrics]:
    frame = as_record_frame(records)
    results = {name: rolling_metrics(frame, days, today) for name, days in ROLLING_WINDOWS.items()}
    results[MTD_WINDOW] = month_to_date_metrics(frame, today)
    return results


def _direction(change: float, up: str, down: str) -> str:
    return up if change > 0 else down


def detect_alerts(
    recent: RollingMetrics,
    baseline: RollingMetrics,
    *,
    period_spend: float,
    monthly_budget: float,
    today=None,
    thresholds: Optional[AlertThresholds] = None,
) -> List[Alert]:
    """Raise CPA, conversion-rate and budget-pacing alerts.

    *recent* and *baseline* are the short and long rolling windows being
    compared. ``period_spend`` is the spend of the selected analysis window.
    """

    limits = thresholds or AlertThresholds()
    alerts: List[Alert] = []

    cpa_change = pct_change(recent.cpa, baseline.cpa)
    if abs(cpa_change) > limits.cpa_change_pct:
        alerts.append(
            Alert(
                severity="high",
                metric="CPA",
                change=cpa_change,
                message=(
                    f"CPA has {_direction(cpa_change, 'increased', 'decreased')} by "
                    f"{abs(cpa_change):.1f}% in the last {limits.short_window_days} days"
                ),
            )
        )

    rate_change = pct_change(recent.conversion_rate, baseline.conversion_rate)
    if abs(rate_change) > limits.conversion_rate_change_pct:
        alerts.append(
            Alert(
                severity="medium",
                metric="Conversion Rate",
                change=rate_change,
                message=(
                    f"Conversion rate has {_direction(rate_change, 'increased', 'decreased')} by "
                    f"{abs(rate_change):.1f}% in the last {limits.short_window_days} days"
                ),
            )
        )

    if monthly_budget > 0:
        reference = as_of(today)
        expected_pacing = reference.day / reference.days_in_month * 100.0
        actual_pacing = safe_ratio(period_spend, monthly_budget, 100.0)
        gap = actual_pacing - expected_pacing
        if abs(gap) > limits.pacing_gap_points:
            alerts.append(
                Alert(
                    severity="high" if abs(gap) > limits.pacing_gap_high_points else "medium",
                    metric="Budget Pacing",
                    change=gap,
                    message=(
                        f"Campaign is {_direction(gap, 'overspending', 'underspending')} by "
                        f"{abs(gap):.1f}% relative to monthly target"
                    ),
                )
            )

    return alerts


def alerts_for(
    records: pd.DataFrame | Iterable[RawRecord],
    *,
    period_spend: float,
    monthly_budget: float,
    today=None,
    thresholds: Optional[AlertThresholds] = None,
) -> List[Alert]:
    """Compare the short and long rolling windows of *records* with :func:`detect_alerts`."""

    limits = thresholds or AlertThresholds()
    frame = as_record_frame(records)
    return detect_alerts(
        rolling_metrics(frame, limits.short_window_days, today),
        rolling_metrics(frame, limits.long_window_days, today),
        period_spend=period_spend,
        monthly_budget=monthly_budget,
        today=today,
        thresholds=limits,
    )
