"""Trailing-window and month-to-date calculations over a record frame.

A window ending on reference day ``today`` and spanning ``N`` days covers every
record dated from ``today - N days`` through ``today`` inclusive, so the 3-day
window touches four calendar days. Records without a usable date never fall
inside a window.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Mapping, Optional

import pandas as pd

from Paid_media.metrics_registry import safe_ratio

ROLLING_WINDOWS: Mapping[str, int] = {
    "three_day": 3,
    "seven_day": 7,
    "fourteen_day": 14,
    "thirty_day": 30,
}
MTD_WINDOW = "mtd"


@dataclass(frozen=True)
class PeriodMetrics:
    cpa: float
    conversions: float


def as_of(today: date | datetime | pd.Timestamp | str | None = None) -> pd.Timestamp:
    """Normalize a reference date to midnight; defaults to the current day."""

    if today is None:
        return pd.Timestamp.today().normalize()
    stamp = pd.Timestamp(today)
    if stamp.tzinfo is not None:
        stamp = stamp.tz_localize(None)
    return stamp.normalize()


def end_of_day(today: date | datetime | pd.Timestamp | str | None = None) -> pd.Timestamp:
    return as_of(today) + pd.Timedelta(days=1) - pd.Timedelta(1, unit="ns")


def window_start(today: date | datetime | pd.Timestamp | str | None, days: int) -> pd.Timestamp:
    return as_of(today) - pd.Timedelta(days=days)


def month_start(today: date | datetime | pd.Timestamp | str | None = None) -> pd.Timestamp:
    return as_of(today).replace(day=1)


def days_in_month(today: date | datetime | pd.Timestamp | str | None = None) -> int:
    return int(as_of(today).days_in_month)


def window_mask(dates: pd.Series, start: pd.Timestamp, today: date | datetime | pd.Timestamp | str | None) -> pd.Series:
    """Boolean mask of rows dated inside ``[start, end-of-day(today)]``."""

    return (dates >= as_of(start)) & (dates <= end_of_day(today))


def period_metrics(records: pd.DataFrame, start: pd.Timestamp, today: Optional[pd.Timestamp] = None) -> PeriodMetrics:
    """CPA and fulfillment-order conversions for records dated in ``[start, today]``."""

    if records.empty:
        return PeriodMetrics(cpa=0.0, conversions=0.0)
    mask = window_mask(records["campaign_date"], start, today)
    spent = float(records.loc[mask, "amount_spent"].sum())
    orders = float(records.loc[mask, "fulfillment_orders"].sum())
    return PeriodMetrics(cpa=safe_ratio(spent, orders), conversions=orders)


def period_spend(records: pd.DataFrame, start: pd.Timestamp, today: Optional[pd.Timestamp] = None) -> float:
    if records.empty:
        return 0.0
    mask = window_mask(records["campaign_date"], start, today)
    return float(records.loc[mask, "amount_spent"].sum())


def window_metrics(records: pd.DataFrame, today: Optional[pd.Timestamp] = None) -> Dict[str, PeriodMetrics]:
    """Metrics for the 3/7/14/30-day trailing windows plus month-to-date."""

    reference = as_of(today)
    results = {
        name: period_metrics(records, window_start(reference, days), reference)
        for name, days in ROLLING_WINDOWS.items()
    }
    results[MTD_WINDOW] = period_metrics(records, month_start(reference), reference)
    return results


def expected_spend(monthly_budget: float, today: Optional[pd.Timestamp] = None) -> float:
    """Calendar-expected spend to date: daily budget times the current day of month."""

    reference = as_of(today)
    return (monthly_budget / reference.days_in_month) * reference.day


def budget_pacing(mtd_spend: float, monthly_budget: float, today: Optional[pd.Timestamp] = None) -> float:
    """Month-to-date spend as a percentage of calendar-expected spend."""

    return safe_ratio(mtd_spend, expected_spend(monthly_budget, today), 100.0)
