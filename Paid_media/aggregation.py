"""Per-campaign and per-product rolling metric snapshots."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields
from typing import Iterable, List, Optional, Sequence

import pandas as pd

from Paid_media.data_loader import RawRecord, TargetReference, as_record_frame
from Paid_media.windows import (
    MTD_WINDOW,
    as_of,
    budget_pacing,
    month_start,
    period_spend,
    window_metrics,
)

logger = logging.getLogger(__name__)

UNKNOWN_BRAND = "Unknown Brand"
UNKNOWN_GOODS = "Unknown Goods"


@dataclass(frozen=True)
class EntityMetricsSnapshot:
    """Rolling CPA, conversions and budget pacing for one campaign or product."""

    brand_name: str
    campaign_name: str
    goods_name: str
    group: str
    tcpa: float
    monthly_budget: float
    three_day_cpa: float
    three_day_conv: float
    seven_day_cpa: float
    seven_day_conv: float
    fourteen_day_cpa: float
    fourteen_day_conv: float
    thirty_day_cpa: float
    thirty_day_conv: float
    mtd_cpa: float
    mtd_conv: float
    amount_spent: float
    budget_pacing: float
    remaining_budget: float


SNAPSHOT_COLUMNS: tuple[str, ...] = tuple(item.name for item in fields(EntityMetricsSnapshot))
CPA_COLUMNS: tuple[str, ...] = tuple(name for name in SNAPSHOT_COLUMNS if name.endswith("_cpa"))


def find_target(targets: Sequence[TargetReference], goods_name: str) -> Optional[TargetReference]:
    """First target whose goods name equals *goods_name* (source order wins)."""

    if not goods_name:
        return None
    return next((target for target in targets if target.goods_name == goods_name), None)


def _metrics_for_group(
    group: pd.DataFrame,
    target: Optional[TargetReference],
    *,
    brand_name: str,
    goods_name: str,
    campaign_name: str,
    today: pd.Timestamp,
) -> EntityMetricsSnapshot:
    windows = window_metrics(group, today)
    monthly_budget = target.monthly_budget if target else 0.0
    spent_mtd = period_spend(group, month_start(today), today)
    return EntityMetricsSnapshot(
        brand_name=brand_name,
        campaign_name=campaign_name,
        goods_name=goods_name,
        group=target.group if target else "",
        tcpa=target.tcpa if target else 0.0,
        monthly_budget=monthly_budget,
        three_day_cpa=windows["three_day"].cpa,
        three_day_conv=windows["three_day"].conversions,
        seven_day_cpa=windows["seven_day"].cpa,
        seven_day_conv=windows["seven_day"].conversions,
        fourteen_day_cpa=windows["fourteen_day"].cpa,
        fourteen_day_conv=windows["fourteen_day"].conversions,
        thirty_day_cpa=windows["thirty_day"].cpa,
        thirty_day_conv=windows["thirty_day"].conversions,
        mtd_cpa=windows[MTD_WINDOW].cpa,
        mtd_conv=windows[MTD_WINDOW].conversions,
        amount_spent=spent_mtd,
        budget_pacing=budget_pacing(spent_mtd, monthly_budget, today),
        remaining_budget=monthly_budget - spent_mtd,
    )


def _log_dropped(mode: str, total: int, kept: int) -> None:
    if total > kept:
        logger.debug("%s grouping dropped %d of %d records without key or date", mode, total - kept, total)


def calculate_campaign_metrics(
    records: pd.DataFrame | Iterable[RawRecord],
    targets: Sequence[TargetReference],
    *,
    today=None,
) -> List[EntityMetricsSnapshot]:
    frame = as_record_frame(records)
    reference = as_of(today)
    usable = frame[
        (frame["campaign_id"] != "") & (frame["campaign_name"] != "") & frame["campaign_date"].notna()
    ]
    _log_dropped("campaign", len(frame), len(usable))

    snapshots: List[EntityMetricsSnapshot] = []
    for _, group in usable.groupby(["campaign_id", "campaign_name"], sort=False):
        first = group.iloc[0]
        target = find_target(targets, first["goods_name"])
        brand = first["goods_sold"] or (target.brand_name if target else "") or UNKNOWN_BRAND
        snapshots.append(
            _metrics_for_group(
                group,
                target,
                brand_name=brand,
                goods_name=first["goods_name"] or UNKNOWN_GOODS,
                campaign_name=first["campaign_name"],
                today=reference,
            )
        )
    return snapshots


def calculate_goods_metrics(
    records: pd.DataFrame | Iterable[RawRecord],
    targets: Sequence[TargetReference],
    *,
    today=None,
) -> List[EntityMetricsSnapshot]:
    frame = as_record_frame(records)
    reference = as_of(today)
    usable = frame[(frame["goods_name"] != "") & frame["campaign_date"].notna()]
    _log_dropped("goods", len(frame), len(usable))

    snapshots: List[EntityMetricsSnapshot] = []
    for goods_name, group in usable.groupby("goods_name", sort=False):
        target = find_target(targets, goods_name)
        snapshots.append(
            _metrics_for_group(
                group,
                target,
                brand_name=(target.brand_name if target else "") or goods_name,
                goods_name=goods_name,
                campaign_name=group.iloc[0]["campaign_name"] or goods_name,
                today=reference,
            )
        )
    return snapshots


def aggregate(
    records: pd.DataFrame | Iterable[RawRecord],
    targets: Sequence[TargetReference],
    group_by: str = "goods",
    *,
    today=None,
) -> List[EntityMetricsSnapshot]:
    """Build one :class:`EntityMetricsSnapshot` per campaign or per product.

    ``group_by`` is ``"campaign"`` (campaign id + name) or ``"goods"`` (product
    name). Snapshots come back in first-seen key order.
    """

    if group_by == "campaign":
        return calculate_campaign_metrics(records, targets, today=today)
    if group_by == "goods":
        return calculate_goods_metrics(records, targets, today=today)
    raise ValueError(f"Unsupported group_by mode: {group_by!r}")


def filter_by_group(snapshots: Iterable[EntityMetricsSnapshot], group: Optional[str]) -> List[EntityMetricsSnapshot]:
    if not group:
        return list(snapshots)
    return [snapshot for snapshot in snapshots if snapshot.group == group]


def hide_zero_conversions(snapshots: Iterable[EntityMetricsSnapshot]) -> List[EntityMetricsSnapshot]:
    return [snapshot for snapshot in snapshots if snapshot.mtd_conv > 0]


def available_groups(snapshots: Iterable[EntityMetricsSnapshot]) -> List[str]:
    return sorted({snapshot.group for snapshot in snapshots if snapshot.group})


def snapshots_to_frame(snapshots: Iterable[EntityMetricsSnapshot]) -> pd.DataFrame:
    return pd.DataFrame([asdict(snapshot) for snapshot in snapshots], columns=list(SNAPSHOT_COLUMNS))
