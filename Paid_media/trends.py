"""Calendar-bucketed trends and period-over-period comparison."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from Paid_media.data_loader import RawRecord, as_record_frame
from Paid_media.metrics_registry import compute_series, compute_totals, pct_change

BUCKET_UNITS = ("day", "week", "month")


@dataclass(frozen=True)
class DailyMetrics:
    date: str
    spend: float
    conversions: float
    revenue: float
    impressions: float
    clicks: float
    cpa: float
    roas: float
    ctr: float
    conversion_rate: float


@dataclass(frozen=True)
class PeriodComparison:
    """Percentage change of the later half of a trend over the earlier half."""

    spend: float
    conversions: float
    revenue: float
    cpa: float
    roas: float


TREND_COLUMNS: tuple[str, ...] = tuple(item.name for item in fields(DailyMetrics))
_TOTAL_KEYS = ("spend", "conversions", "revenue", "impressions", "clicks")


def bucket_keys(dates: pd.Series, unit: str = "day") -> pd.Series:
    """Map dates to bucket key strings.

    ``day`` -> ``YYYY-MM-DD``; ``week`` -> the Sunday starting the week as
    ``YYYY-MM-DD``; ``month`` -> ``YYYY-MM``.
    """

    if unit not in BUCKET_UNITS:
        raise ValueError(f"unit must be one of {BUCKET_UNITS}, got {unit!r}")
    stamps = pd.to_datetime(dates, errors="coerce")
    if unit == "week":
        stamps = stamps.dt.to_period("W-SAT").dt.start_time
        return stamps.dt.strftime("%Y-%m-%d")
    if unit == "month":
        return stamps.dt.strftime("%Y-%m")
    return stamps.dt.strftime("%Y-%m-%d")


def _sunday_on_or_before(stamp: pd.Timestamp) -> pd.Timestamp:
    return stamp - pd.Timedelta(days=(stamp.weekday() + 1) % 7)


def week_number(key: str) -> int:
    """Sunday-start week of the year; week 1 is the week containing Jan 1."""

    start = _sunday_on_or_before(pd.Timestamp(key).normalize())
    if (start + pd.Timedelta(days=6)).year > start.year:
        return 1
    first = _sunday_on_or_before(pd.Timestamp(year=start.year, month=1, day=1))
    return (start - first).days // 7 + 1


def format_bucket_label(key: str, unit: str) -> str:
    if unit == "week":
        return f"Week {week_number(key)}"
    if unit == "month":
        return pd.Timestamp(f"{key}-01").strftime("%b %Y")
    return key


def build_trend(records: pd.DataFrame | Iterable[RawRecord], unit: str = "day") -> List[DailyMetrics]:
    """Sum a record subset per calendar bucket, ascending by bucket key."""

    frame = as_record_frame(records)
    if unit not in BUCKET_UNITS:
        raise ValueError(f"unit must be one of {BUCKET_UNITS}, got {unit!r}")
    dated = frame[frame["campaign_date"].notna()]
    if dated.empty:
        return []

    keyed = dated.assign(bucket=bucket_keys(dated["campaign_date"], unit))
    buckets = (
        keyed.groupby("bucket", sort=True)
        .agg(
            spend=("amount_spent", "sum"),
            conversions=("fulfillment_orders", "sum"),
            revenue=("fulfillment_revenue", "sum"),
            impressions=("impressions", "sum"),
            clicks=("clicks", "sum"),
        )
    )
    ratios = compute_series(buckets, ["CPA", "ROAS", "CTR", "CVR"])

    return [
        DailyMetrics(
            date=str(key),
            spend=float(row["spend"]),
            conversions=float(row["conversions"]),
            revenue=float(row["revenue"]),
            impressions=float(row["impressions"]),
            clicks=float(row["clicks"]),
            cpa=float(ratios.at[key, "CPA"]),
            roas=float(ratios.at[key, "ROAS"]),
            ctr=float(ratios.at[key, "CTR"]),
            conversion_rate=float(ratios.at[key, "CVR"]),
        )
        for key, row in buckets.iterrows()
    ]


def _half_totals(buckets: Sequence[DailyMetrics]) -> Dict[str, float]:
    totals = {key: 0.0 for key in _TOTAL_KEYS}
    for bucket in buckets:
        for key in _TOTAL_KEYS:
            totals[key] += getattr(bucket, key)
    totals["cpa"] = compute_totals(totals, "CPA")
    totals["roas"] = compute_totals(totals, "ROAS")
    return totals


def compare_periods(trend: Sequence[DailyMetrics]) -> Optional[PeriodComparison]:
    """Compare the second half of *trend* against the first half.

    The split index is ``len(trend) // 2``; ratios are recomputed from summed
    totals and a zero previous value yields a change of ``0``. Returns ``None``
    for an empty trend.
    """

    if not trend:
        return None
    ordered = sorted(trend, key=lambda bucket: bucket.date)
    midpoint = len(ordered) // 2
    previous = _half_totals(ordered[:midpoint])
    current = _half_totals(ordered[midpoint:])
    return PeriodComparison(
        spend=pct_change(current["spend"], previous["spend"]),
        conversions=pct_change(current["conversions"], previous["conversions"]),
        revenue=pct_change(current["revenue"], previous["revenue"]),
        cpa=pct_change(current["cpa"], previous["cpa"]),
        roas=pct_change(current["roas"], previous["roas"]),
    )


def trend_to_frame(trend: Iterable[DailyMetrics]) -> pd.DataFrame:
    return pd.DataFrame([asdict(bucket) for bucket in trend], columns=list(TREND_COLUMNS))
