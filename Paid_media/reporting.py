"""Reporting helpers for the paid media dashboard."""

from __future__ import annotations

import re
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence
import json

import pandas as pd

from Paid_media.anomaly import Alert
from Paid_media.classification import CampaignPerformance
from Paid_media.config import DashboardSettings
from Paid_media.metrics import MetricSummary
from Paid_media.quality import QualityReport
from Paid_media.state import MetricsSnapshot
from Paid_media.trends import DailyMetrics, PeriodComparison
from Paid_media.windows import as_of, window_start

_UNSAFE_FILENAME = re.compile(r"[\\/:*?\"<>|]+")
_TOTAL_KEYS = ("total_spent", "total_revenue", "total_impressions", "total_clicks", "total_leads", "total_orders")


def _frame_to_json_records(df: pd.DataFrame) -> list[dict[str, object]]:
    if df.empty:
        return []
    return json.loads(df.to_json(orient="records", date_format="iso"))


def _as_records(items: Iterable[object]) -> List[Dict[str, object]]:
    return [asdict(item) if is_dataclass(item) else dict(item) for item in items]


def dataframe_to_csv(df: pd.DataFrame, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if df.empty:
        path.write_text("", encoding="utf-8")
    else:
        df.to_csv(path, index=False)


def dataframe_to_markdown(df: pd.DataFrame) -> str:
    if df.empty:
        return "_No data available._"
    try:
        return df.to_markdown(index=False)
    except ImportError:
        return df.to_string(index=False)


def write_json(payload: Dict[str, object], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, default=str), encoding="utf-8")
    return path


def export_filename(goods_name: str, today=None) -> str:
    """``metrics-export-<goods>-<YYYY-MM-DD>.json`` for a drill-down export."""

    safe = _UNSAFE_FILENAME.sub("-", goods_name.strip()) or "all"
    return f"metrics-export-{safe}-{as_of(today):%Y-%m-%d}.json"


def build_export_payload(
    *,
    summary: MetricSummary,
    timeframe: int,
    campaigns: Sequence[CampaignPerformance],
    daily_trends: Sequence[DailyMetrics],
    snapshots: Sequence[MetricsSnapshot] = (),
    comparison: Optional[PeriodComparison] = None,
    alerts: Sequence[Alert] = (),
    today=None,
) -> Dict[str, object]:
    """Drill-down export for one product over the selected timeframe."""

    reference = as_of(today)
    values = summary.to_dict()
    totals = {key: values[key] for key in _TOTAL_KEYS}
    derived = {key: value for key, value in values.items() if key not in _TOTAL_KEYS}
    return {
        "overview": {
            "summary": totals,
            "derived_metrics": derived,
            "timeframe": timeframe,
            "date_range": {
                "start": f"{window_start(reference, timeframe):%Y-%m-%d}",
                "end": f"{reference:%Y-%m-%d}",
            },
        },
        "campaigns": _as_records(campaigns),
        "daily_trends": _as_records(daily_trends),
        "period_comparison": asdict(comparison) if comparison else None,
        "alerts": _as_records(alerts),
        "snapshots": _as_records(snapshots),
    }


def build_summary_payload(
    *,
    settings: DashboardSettings,
    rows_loaded: int,
    quality: QualityReport,
    summary: MetricSummary,
    entities: pd.DataFrame,
    status_counts: Dict[str, int],
    exports: Dict[str, str],
    figures: Optional[Dict[str, str]] = None,
) -> Dict[str, object]:
    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "data_path": str(settings.data_path),
        "targets_path": str(settings.targets_path) if settings.targets_path else None,
        "reference_date": f"{as_of(settings.reference_date):%Y-%m-%d}",
        "rows_loaded": rows_loaded,
        "group_by": settings.group_by,
        "group": settings.group,
        "quality_status": quality.status,
        "overall_metrics": summary.to_dict(),
        "status_counts": status_counts,
        "entities": _frame_to_json_records(entities),
        "exports": exports,
        "figures": figures or {},
        "report_version": "paid-media-dashboard/1.0",
    }


def _format_value(key: str, value: float) -> str:
    if key in {"ctr", "conversion_rate"}:
        return f"{value:.2f}%"
    if key == "roas":
        return f"{value:.2f}x"
    if any(token in key for token in ("spent", "revenue", "cpa", "cpl", "spend")):
        return f"${value:,.2f}"
    return f"{value:,.0f}"


def build_markdown_report(
    *,
    settings: DashboardSettings,
    summary: MetricSummary,
    entities: pd.DataFrame,
    quality: QualityReport,
    alerts: Optional[Dict[str, Sequence[Alert]]] = None,
) -> str:
    lines = [
        "# Paid Media Performance Summary",
        "",
        f"**Dataset:** `{settings.data_path.name}`",
        f"**Reference date:** {as_of(settings.reference_date):%Y-%m-%d}",
        f"**Grouped by:** {settings.group_by}" + (f" (group `{settings.group}`)" if settings.group else ""),
        f"**Data quality:** {quality.status}",
        "",
        "## Key Metrics",
    ]
    for key, label in [
        ("total_spent", "Spend"),
        ("total_revenue", "Revenue"),
        ("total_orders", "Fulfillment orders"),
        ("total_leads", "Leads"),
        ("roas", "ROAS"),
        ("ctr", "CTR"),
        ("cpl", "Cost per lead"),
        ("cpa", "Cost per order"),
        ("conversion_rate", "Conversion rate"),
    ]:
        lines.append(f"- **{label}:** {_format_value(key, getattr(summary, key))}")

    lines.extend(["", "## Rolling CPA and pacing", ""])
    lines.append(dataframe_to_markdown(entities))

    if alerts:
        lines.extend(["", "## Alerts", ""])
        for goods_name, items in alerts.items():
            for alert in items:
                lines.append(f"- **{goods_name}** [{alert.severity}] {alert.message}")

    return "\n".join(lines)
