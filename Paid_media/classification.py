"""Target-relative performance classification."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Literal, Mapping, Optional

import pandas as pd

from Paid_media.config import StatusThresholds
from Paid_media.data_loader import RawRecord, as_record_frame
from Paid_media.metrics_registry import compute_series, safe_ratio

Status = Literal["performing", "at-risk", "underperforming"]
STATUSES: tuple[Status, ...] = ("performing", "at-risk", "underperforming")

_DEFAULT_THRESHOLDS = StatusThresholds()


@dataclass(frozen=True)
class CampaignPerformance:
    name: str
    spend: float
    conversions: float
    revenue: float
    impressions: float
    clicks: float
    cpa: float
    roas: float
    ctr: float
    status: Status
    budget_pacing: float


def _value(row: object, key: str) -> float:
    if isinstance(row, Mapping):
        return float(row.get(key, 0.0) or 0.0)
    return float(getattr(row, key, 0.0) or 0.0)


def classify(row: object, target_cpa: float, thresholds: StatusThresholds | None = None) -> Status:
    """Label a row carrying ``cpa`` and ``roas`` against its target CPA.

    ``performing`` needs CPA at or under target and ROAS of at least 1;
    ``at-risk`` needs CPA within 120% of target or ROAS of at least 0.8.
    """

    limits = thresholds or _DEFAULT_THRESHOLDS
    cpa = _value(row, "cpa")
    roas = _value(row, "roas")
    if cpa <= target_cpa and roas >= limits.performing_roas:
        return "performing"
    if cpa <= target_cpa * limits.at_risk_cpa_multiplier or roas >= limits.at_risk_roas:
        return "at-risk"
    return "underperforming"


def campaign_performance(
    records: pd.DataFrame | Iterable[RawRecord],
    target_cpa: float,
    monthly_budget: float,
    thresholds: StatusThresholds | None = None,
) -> List[CampaignPerformance]:
    """Roll an analysis window up per campaign name and classify each campaign.

    Rows without a campaign name are skipped; output is ordered by spend,
    highest first.
    """

    frame = as_record_frame(records)
    named = frame[frame["campaign_name"] != ""]
    if named.empty:
        return []

    grouped = (
        named.groupby("campaign_name", sort=False)
        .agg(
            spend=("amount_spent", "sum"),
            conversions=("fulfillment_orders", "sum"),
            revenue=("fulfillment_revenue", "sum"),
            impressions=("impressions", "sum"),
            clicks=("clicks", "sum"),
        )
        .reset_index()
    )
    ratios = compute_series(grouped, ["CPA", "ROAS", "CTR"])

    rows: List[CampaignPerformance] = []
    for idx, item in grouped.iterrows():
        cpa = float(ratios.at[idx, "CPA"])
        roas = float(ratios.at[idx, "ROAS"])
        rows.append(
            CampaignPerformance(
                name=item["campaign_name"],
                spend=float(item["spend"]),
                conversions=float(item["conversions"]),
                revenue=float(item["revenue"]),
                impressions=float(item["impressions"]),
                clicks=float(item["clicks"]),
                cpa=cpa,
                roas=roas,
                ctr=float(ratios.at[idx, "CTR"]),
                status=classify({"cpa": cpa, "roas": roas}, target_cpa, thresholds),
                budget_pacing=safe_ratio(float(item["spend"]), monthly_budget, 100.0),
            )
        )
    return sorted(rows, key=lambda row: row.spend, reverse=True)


def status_counts(rows: Iterable[CampaignPerformance]) -> Dict[str, int]:
    counts: Dict[str, int] = {status: 0 for status in STATUSES}
    total = 0
    for row in rows:
        counts[row.status] += 1
        total += 1
    counts["total"] = total
    return counts


def variance_pct(actual: float, target: float) -> float:
    """Deviation of *actual* from *target* in percent (0 without a target)."""

    if not target:
        return 0.0
    return (actual - target) / target * 100.0


def cpa_status(value: float, target: float) -> str:
    if value == 0:
        return "none"
    return "over" if value > target else "under"


def pacing_status(pacing: float, thresholds: StatusThresholds | None = None) -> str:
    limits = thresholds or _DEFAULT_THRESHOLDS
    if pacing == 0:
        return "none"
    if pacing < limits.pacing_low:
        return "under"
    if pacing > limits.pacing_high:
        return "over"
    return "on-track"


def roas_status(roas: float, thresholds: StatusThresholds | None = None) -> str:
    limits = thresholds or _DEFAULT_THRESHOLDS
    return "bad" if roas < limits.performing_roas else "good"


def performance_targets(
    summary: object,
    tcpa: float,
    monthly_budget: float,
    thresholds: Optional[StatusThresholds] = None,
) -> Dict[str, Dict[str, object]]:
    """Compare an analysis-window summary with its CPA, budget and break-even targets."""

    limits = thresholds or _DEFAULT_THRESHOLDS
    current_cpa = _value(summary, "cpa")
    current_spend = _value(summary, "total_spent")
    current_roas = _value(summary, "roas")
    budget_share = safe_ratio(current_spend, monthly_budget, 100.0)
    return {
        "cpa": {
            "current": current_cpa,
            "target": tcpa,
            "performance": safe_ratio(current_cpa, tcpa, 100.0),
            "status": "good" if current_cpa <= tcpa else "bad",
        },
        "budget": {
            "current": current_spend,
            "target": monthly_budget,
            "performance": budget_share,
            "status": "good" if limits.pacing_low <= budget_share <= limits.pacing_high else "warning",
        },
        "roas": {
            "current": current_roas,
            "target": limits.performing_roas,
            "performance": current_roas * 100.0,
            "status": roas_status(current_roas, limits),
        },
    }
