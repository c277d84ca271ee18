"""Configuration models for the paid media dashboard."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date
from pathlib import Path
from typing import MutableMapping, Optional

import pandas as pd


GROUP_BY_MODES = ("campaign", "goods")
TIMEFRAME_UNITS = ("day", "week", "month")
ANALYSIS_DAY_OPTIONS = (7, 14, 30, 90)
SORT_DIRECTIONS = ("asc", "desc")


@dataclass(slots=True)
class RecordColumns:
    """Describe how raw CSV headers map onto canonical record fields."""

    platform: str = "Platform"
    publisher: str = "Publisher"
    goods_sold: str = "GoodsSold"
    goods_name: str = "GoodsName"
    campaign_id: str = "Campaign_ID"
    campaign_name: str = "CampaignName"
    account_number: str = "PlatAccountNbr"
    campaign_date: str = "CampaignDate"
    amount_spent: str = "AmountSpent"
    impressions: str = "Impressions"
    clicks: str = "Clicks"
    lp_views: str = "LPViews"
    lp_view_cost: str = "LPViewCost"
    leads: str = "Leads"
    lead_cost: str = "LeadCost"
    link_clicks: str = "LinkClicks"
    plat_result: str = "PlatBResult"
    plat_value: str = "PlatValue"
    fulfillment_orders: str = "FulfillmentOrders"
    fulfillment_revenue: str = "FulfillmentRevenue"

    def text_fields(self) -> list[str]:
        return [
            "platform",
            "publisher",
            "goods_sold",
            "goods_name",
            "campaign_id",
            "campaign_name",
            "account_number",
        ]

    def numeric_fields(self) -> list[str]:
        return [
            "amount_spent",
            "impressions",
            "clicks",
            "lp_views",
            "lp_view_cost",
            "leads",
            "lead_cost",
            "link_clicks",
            "plat_result",
            "plat_value",
            "fulfillment_orders",
            "fulfillment_revenue",
        ]

    def source_for(self, canonical: str) -> str:
        return getattr(self, canonical)


@dataclass(slots=True)
class TargetColumns:
    """Header names of the TCPA / monthly budget reference sheet."""

    brand_name: str = "BrandName"
    goods_name: str = "GoodsName"
    tcpa: str = "TCPA"
    monthly_budget: str = "MonthlyBudget"
    group: str = "Group"


@dataclass(slots=True)
class StatusThresholds:
    """Business thresholds used when labelling campaign performance."""

    at_risk_cpa_multiplier: float = 1.2
    performing_roas: float = 1.0
    at_risk_roas: float = 0.8
    pacing_low: float = 90.0
    pacing_high: float = 110.0


@dataclass(slots=True)
class AlertThresholds:
    """Rolling-window alert thresholds (percent / percentage points)."""

    cpa_change_pct: float = 20.0
    conversion_rate_change_pct: float = 15.0
    pacing_gap_points: float = 15.0
    pacing_gap_high_points: float = 25.0
    short_window_days: int = 7
    long_window_days: int = 30


@dataclass(slots=True)
class DashboardSettings:
    """Execution parameters for the dashboard pipeline."""

    data_path: Path
    targets_path: Optional[Path] = None
    output_dir: Path = Path("reports")
    columns: RecordColumns = field(default_factory=RecordColumns)
    target_columns: TargetColumns = field(default_factory=TargetColumns)
    group_by: str = "goods"
    group: Optional[str] = None
    hide_zero_conversions: bool = True
    sort_key: Optional[str] = None
    sort_direction: str = "desc"
    timeframe: str = "day"  # trend bucket: 'day', 'week' or 'month'
    analysis_days: int = 30
    reference_date: Optional[date] = None
    focus_goods: tuple[str, ...] = ()
    include_visuals: bool = True
    state_path: Optional[Path] = None
    status_thresholds: StatusThresholds = field(default_factory=StatusThresholds)
    alert_thresholds: AlertThresholds = field(default_factory=AlertThresholds)

    def validate(self) -> None:
        if self.group_by not in GROUP_BY_MODES:
            raise ValueError(f"group_by must be one of {GROUP_BY_MODES}, got {self.group_by!r}")
        if self.timeframe not in TIMEFRAME_UNITS:
            raise ValueError(f"timeframe must be one of {TIMEFRAME_UNITS}, got {self.timeframe!r}")
        if self.sort_direction not in SORT_DIRECTIONS:
            raise ValueError(f"sort_direction must be one of {SORT_DIRECTIONS}, got {self.sort_direction!r}")
        if self.analysis_days <= 0:
            raise ValueError("analysis_days must be positive")

    def resolve_paths(self) -> None:
        self.data_path = self.data_path.expanduser().resolve()
        if self.targets_path is not None:
            self.targets_path = self.targets_path.expanduser().resolve()
        self.output_dir = self.output_dir.expanduser().resolve()
        if self.state_path is not None:
            self.state_path = self.state_path.expanduser().resolve()

    def ensure_output_tree(self) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        (self.output_dir / "figures").mkdir(exist_ok=True)
        (self.output_dir / "exports").mkdir(exist_ok=True)


def _dataclass_from_payload(cls, payload: object):
    if not isinstance(payload, MutableMapping):
        return cls()
    known = {item.name for item in fields(cls)}
    kwargs = {key: value for key, value in payload.items() if key in known}
    return cls(**kwargs)


def _resolve_against(base: Path, value: object | None) -> Optional[Path]:
    if not value:
        return None
    path = Path(str(value)).expanduser()
    if not path.is_absolute():
        path = base / path
    return path.resolve()


def settings_from_dict(payload: MutableMapping[str, object], *, base_path: Path | None = None) -> DashboardSettings:
    """Create :class:`DashboardSettings` from a dictionary (e.g., parsed JSON)."""

    base = base_path or Path.cwd()

    data_path = _resolve_against(base, payload.get("data_path"))
    if data_path is None:
        raise ValueError("`data_path` is required in the configuration payload")

    reference_value = payload.get("reference_date")
    reference_date = pd.Timestamp(str(reference_value)).date() if reference_value else None

    focus = payload.get("focus_goods") or ()
    if isinstance(focus, str):
        focus = (focus,)

    settings = DashboardSettings(
        data_path=data_path,
        targets_path=_resolve_against(base, payload.get("targets_path")),
        output_dir=_resolve_against(base, payload.get("output_dir")) or (base / "reports").resolve(),
        columns=_dataclass_from_payload(RecordColumns, payload.get("columns")),
        target_columns=_dataclass_from_payload(TargetColumns, payload.get("target_columns")),
        group_by=str(payload.get("group_by", "goods")),
        group=str(payload["group"]) if payload.get("group") else None,
        hide_zero_conversions=bool(payload.get("hide_zero_conversions", True)),
        sort_key=str(payload["sort_key"]) if payload.get("sort_key") else None,
        sort_direction=str(payload.get("sort_direction", "desc")),
        timeframe=str(payload.get("timeframe", "day")),
        analysis_days=int(payload.get("analysis_days", 30)),
        reference_date=reference_date,
        focus_goods=tuple(str(item) for item in focus),
        include_visuals=bool(payload.get("include_visuals", True)),
        state_path=_resolve_against(base, payload.get("state_path")),
        status_thresholds=_dataclass_from_payload(StatusThresholds, payload.get("status_thresholds")),
        alert_thresholds=_dataclass_from_payload(AlertThresholds, payload.get("alert_thresholds")),
    )
    settings.validate()
    return settings
