"""Dashboard summaries over a (filtered) record frame."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Iterable, List, Optional

import pandas as pd

from Paid_media.data_loader import RawRecord, as_record_frame
from Paid_media.metrics_registry import compute_series, safe_ratio
from Paid_media.trends import bucket_keys


@dataclass(frozen=True)
class MetricSummary:
    total_spent: float
    total_revenue: float
    total_impressions: float
    total_clicks: float
    total_leads: float
    total_orders: float
    roas: float
    ctr: float
    cpl: float
    cpa: float
    conversion_rate: float
    average_daily_spend: float

    @property
    def cpo(self) -> float:
        """Cost per fulfillment order; the dashboard headline name for CPA."""

        return self.cpa

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def _total(frame: pd.DataFrame, column: str) -> float:
    return float(frame[column].sum()) if not frame.empty else 0.0


def summarize(records: pd.DataFrame | Iterable[RawRecord], days: Optional[int] = None) -> MetricSummary:
    """Totals and derived ratios for *records*.

    ``days`` is the length of the selected timeframe and only feeds
    ``average_daily_spend`` (0 when not given).
    """

    frame = as_record_frame(records)
    spent = _total(frame, "amount_spent")
    revenue = _total(frame, "fulfillment_revenue")
    impressions = _total(frame, "impressions")
    clicks = _total(frame, "clicks")
    leads = _total(frame, "leads")
    orders = _total(frame, "fulfillment_orders")
    return MetricSummary(
        total_spent=spent,
        total_revenue=revenue,
        total_impressions=impressions,
        total_clicks=clicks,
        total_leads=leads,
        total_orders=orders,
        roas=safe_ratio(revenue, spent),
        ctr=safe_ratio(clicks, impressions, 100.0),
        cpl=safe_ratio(spent, leads),
        cpa=safe_ratio(spent, orders),
        conversion_rate=safe_ratio(orders, clicks, 100.0),
        average_daily_spend=safe_ratio(spent, days or 0),
    )


def publisher_breakdown(records: pd.DataFrame | Iterable[RawRecord]) -> pd.DataFrame:
    """Spend per publisher in first-seen order, with each publisher's share in percent."""

    frame = as_record_frame(records)
    if frame.empty:
        return pd.DataFrame(columns=["publisher", "spend", "share"])
    grouped = frame.groupby("publisher", sort=False)["amount_spent"].sum().reset_index()
    grouped = grouped.rename(columns={"amount_spent": "spend"})
    total = float(grouped["spend"].sum())
    grouped["share"] = grouped["spend"].map(lambda value: safe_ratio(value, total, 100.0))
    return grouped


def campaign_comparison(records: pd.DataFrame | Iterable[RawRecord], goods_name: str) -> pd.DataFrame:
    """Spend, conversions, revenue, CPA and ROAS per campaign of one product, by spend."""

    frame = as_record_frame(records)
    columns = ["campaign_name", "spend", "conversions", "revenue", "cpa", "roas"]
    subset = frame[(frame["goods_name"] == goods_name) & (frame["campaign_name"] != "")]
    if subset.empty:
        return pd.DataFrame(columns=columns)
    grouped = (
        subset.groupby("campaign_name", sort=False)
        .agg(
            spend=("amount_spent", "sum"),
            conversions=("fulfillment_orders", "sum"),
            revenue=("fulfillment_revenue", "sum"),
        )
        .reset_index()
    )
    ratios = compute_series(grouped, ["CPA", "ROAS"])
    grouped["cpa"] = ratios["CPA"]
    grouped["roas"] = ratios["ROAS"]
    return grouped.sort_values("spend", ascending=False, kind="stable").reset_index(drop=True)[columns]


_TABLE_SUMS = {
    "amount_spent": "sum",
    "impressions": "sum",
    "clicks": "sum",
    "plat_result": "sum",
    "plat_value": "sum",
    "fulfillment_orders": "sum",
    "fulfillment_revenue": "sum",
}
_TABLE_LABELS = ("platform", "publisher", "goods_sold", "goods_name")


def filtered_metrics_table(records: pd.DataFrame | Iterable[RawRecord], unit: str = "day") -> pd.DataFrame:
    """Aggregate records per (bucket, campaign name) for the detailed metrics table.

    Descriptive columns come from the first record of each group. ``cpa`` is
    spend per platform-reported result and ``variance`` is the platform result
    minus fulfillment orders. Rows are ordered by bucket, then campaign name.
    """

    frame = as_record_frame(records)
    dated = frame[frame["campaign_date"].notna()]
    label_columns = ["date", *_TABLE_LABELS, "campaign_name"]
    if dated.empty:
        return pd.DataFrame(columns=[*label_columns, *_TABLE_SUMS, "ctr", "cpa", "variance"])

    keyed = dated.assign(date=bucket_keys(dated["campaign_date"], unit))
    aggregations = {column: "first" for column in _TABLE_LABELS}
    aggregations.update(_TABLE_SUMS)
    table = keyed.groupby(["date", "campaign_name"], sort=False).agg(aggregations).reset_index()
    table = table[[*label_columns, *_TABLE_SUMS]]

    ratios = compute_series(
        table.rename(columns={"amount_spent": "spend", "plat_result": "conversions"}),
        ["CTR", "CPA"],
    )
    table["ctr"] = ratios["CTR"]
    table["cpa"] = ratios["CPA"]
    table["variance"] = table["plat_result"] - table["fulfillment_orders"]
    return table.sort_values(["date", "campaign_name"], kind="stable").reset_index(drop=True)


def summary_rows(summary: MetricSummary) -> List[Dict[str, object]]:
    """Headline cards shown above the main table."""

    return [
        {"title": "Total Spend", "value": summary.total_spent, "format": "currency"},
        {"title": "Total Revenue", "value": summary.total_revenue, "format": "currency"},
        {"title": "ROAS", "value": summary.roas, "format": "ratio"},
        {"title": "CTR", "value": summary.ctr, "format": "percent"},
        {"title": "Cost per Lead", "value": summary.cpl, "format": "currency"},
        {"title": "Cost per Order", "value": summary.cpo, "format": "currency"},
    ]
