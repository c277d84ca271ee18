from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, List, Literal, Optional

import json
import pandas as pd

from Paid_media.data_loader import RECORD_FIELDS
from Paid_media.windows import as_of

RuleStatus = Literal["PASS", "WARN", "FAIL"]

_SEVERITY = {"PASS": 0, "WARN": 1, "FAIL": 2}
_NON_NEGATIVE = ("amount_spent", "fulfillment_orders", "fulfillment_revenue")
_DUPLICATE_KEYS = ["campaign_id", "campaign_date", "publisher"]


@dataclass(slots=True)
class RuleResult:
    name: str
    status: RuleStatus
    detail: str
    sample_rows: Optional[int] = None


@dataclass(slots=True)
class QualityReport:
    status: RuleStatus
    rules: List[RuleResult]
    stats: Dict[str, object]


def run_quality_checks(df: pd.DataFrame, today=None, freshness_days: int = 7) -> QualityReport:
    """Check a normalized record frame before it feeds the dashboard.

    Degenerate rows are reported, never removed; the aggregation layer already
    skips rows without a date or grouping key.
    """

    rules: List[RuleResult] = []

    # R1 Schema
    missing_cols = [col for col in RECORD_FIELDS if col not in df.columns]
    if missing_cols:
        rules.append(
            RuleResult(
                name="R1 Schema",
                status="FAIL",
                detail=f"Missing record columns: {', '.join(missing_cols)}",
                sample_rows=len(missing_cols),
            )
        )
        return QualityReport(status="FAIL", rules=rules, stats={"rows": int(len(df))})
    rules.append(RuleResult(name="R1 Schema", status="PASS", detail="All record columns present"))

    # R2 Dates
    dates = df["campaign_date"]
    undated = int(dates.isna().sum())
    if undated:
        rules.append(
            RuleResult(
                name="R2 Dates",
                status="WARN",
                detail=f"{undated} rows have a missing or unparseable campaign date",
                sample_rows=undated,
            )
        )
    else:
        rules.append(RuleResult(name="R2 Dates", status="PASS", detail="Every row has a campaign date"))

    # R3 Keys
    no_campaign = int(((df["campaign_id"] == "") | (df["campaign_name"] == "")).sum())
    no_goods = int((df["goods_name"] == "").sum())
    if no_campaign or no_goods:
        rules.append(
            RuleResult(
                name="R3 Keys",
                status="WARN",
                detail=f"Rows without campaign id/name: {no_campaign}; rows without goods name: {no_goods}",
                sample_rows=max(no_campaign, no_goods),
            )
        )
    else:
        rules.append(RuleResult(name="R3 Keys", status="PASS", detail="Campaign and goods keys present"))

    # R4 Range sanity (non-negative)
    negative_columns: Dict[str, int] = {}
    for col in _NON_NEGATIVE:
        count = int((df[col] < 0).sum())
        if count > 0:
            negative_columns[col] = count
    if negative_columns:
        detail = ", ".join(f"{col} ({count})" for col, count in negative_columns.items())
        rules.append(
            RuleResult(
                name="R4 Range",
                status="FAIL",
                detail=f"Negative values detected in: {detail}",
                sample_rows=sum(negative_columns.values()),
            )
        )
    else:
        rules.append(
            RuleResult(
                name="R4 Range",
                status="PASS",
                detail="Spend, fulfillment orders, and fulfillment revenue are non-negative",
            )
        )

    min_date = dates.min() if len(dates) else None
    max_date = dates.max() if len(dates) else None

    # R5 Freshness
    reference = as_of(today)
    if max_date is None or pd.isna(max_date):
        rules.append(
            RuleResult(
                name="R5 Freshness",
                status="WARN",
                detail="No valid dates available to assess freshness",
            )
        )
    else:
        cutoff = (reference - pd.Timedelta(days=freshness_days)).date()
        latest = max_date.date()
        if latest < cutoff:
            rules.append(
                RuleResult(
                    name="R5 Freshness",
                    status="WARN",
                    detail=f"Latest date {latest} older than freshness cutoff {cutoff}",
                )
            )
        else:
            rules.append(
                RuleResult(
                    name="R5 Freshness",
                    status="PASS",
                    detail=f"Latest date {latest} within freshness threshold ({freshness_days} days)",
                )
            )

    # R6 Duplicates (rows already flagged by R2/R3 are left out)
    keyed = df[(df["campaign_id"] != "") & dates.notna()]
    duplicate_count = int(keyed.duplicated(subset=_DUPLICATE_KEYS).sum()) if len(keyed) else 0
    if duplicate_count > 0:
        rules.append(
            RuleResult(
                name="R6 Duplicates",
                status="WARN",
                detail=f"Found {duplicate_count} duplicate campaign/date/publisher rows",
                sample_rows=duplicate_count,
            )
        )
    else:
        rules.append(RuleResult(name="R6 Duplicates", status="PASS", detail="No duplicate campaign/date rows"))

    overall_status: RuleStatus = max((rule.status for rule in rules), key=_SEVERITY.__getitem__)

    stats = {
        "rows": int(len(df)),
        "min_date": min_date.strftime("%Y-%m-%d") if isinstance(min_date, pd.Timestamp) and not pd.isna(min_date) else None,
        "max_date": max_date.strftime("%Y-%m-%d") if isinstance(max_date, pd.Timestamp) and not pd.isna(max_date) else None,
        "freshness_days": freshness_days,
        "undated_rows": undated,
        "duplicate_rows": duplicate_count,
        "campaigns": int(df.loc[df["campaign_id"] != "", "campaign_id"].nunique()),
        "goods": int(df.loc[df["goods_name"] != "", "goods_name"].nunique()),
    }

    return QualityReport(status=overall_status, rules=rules, stats=stats)


def write_quality_artifacts(report: QualityReport, output_dir: Path) -> Dict[str, str]:
    output_dir.mkdir(parents=True, exist_ok=True)

    report_dict = asdict(report)
    json_path = output_dir / "quality_report.json"
    json_path.write_text(json.dumps(report_dict, indent=2), encoding="utf-8")

    lines = [
        "# Data Quality Report",
        f"**Status:** {report.status}",
        "",
        "## Summary",
        f"- Rows: {report.stats.get('rows')}",
        f"- Date range: {report.stats.get('min_date')} -> {report.stats.get('max_date')}",
        f"- Freshness threshold (days): {report.stats.get('freshness_days')}",
        f"- Rows without a date: {report.stats.get('undated_rows')}",
        f"- Duplicate rows: {report.stats.get('duplicate_rows')}",
        "",
        "## Rules",
    ]
    for rule in report.rules:
        sample = f" (count={rule.sample_rows})" if rule.sample_rows else ""
        lines.append(f"- [{rule.status}] {rule.name}: {rule.detail}{sample}")
    markdown_path = output_dir / "quality_report.md"
    markdown_path.write_text("\n".join(lines), encoding="utf-8")

    return {"json": str(json_path), "markdown": str(markdown_path)}
