from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pandas as pd
import pytest

from Paid_media.anomaly import alerts_for
from Paid_media.classification import campaign_performance
from Paid_media.config import DashboardSettings
from Paid_media.data_loader import records_to_frame
from Paid_media.metrics import summarize
from Paid_media.quality import run_quality_checks
from Paid_media.reporting import (
    build_export_payload,
    build_markdown_report,
    dataframe_to_csv,
    dataframe_to_markdown,
    export_filename,
    write_json,
)
from Paid_media.state import MetricsSnapshot
from Paid_media.trends import build_trend, compare_periods


@pytest.fixture()
def records(make_record):
    return [
        make_record(1, amount_spent=300, fulfillment_orders=5, fulfillment_revenue=600, clicks=100),
        make_record(20, amount_spent=100, fulfillment_orders=5, fulfillment_revenue=200, clicks=100),
    ]


def test_export_filename(today):
    assert export_filename("Widget", today) == "metrics-export-Widget-2024-06-10.json"
    assert export_filename("Socks / Tights", today) == "metrics-export-Socks - Tights-2024-06-10.json"
    assert export_filename("  ", today) == "metrics-export-all-2024-06-10.json"


def test_build_export_payload(records, today):
    summary = summarize(records, days=30)
    trend = build_trend(records, "day")
    payload = build_export_payload(
        summary=summary,
        timeframe=30,
        campaigns=campaign_performance(records, 40.0, 1000.0),
        daily_trends=trend,
        snapshots=[MetricsSnapshot(timestamp="2024-06-09T00:00:00+00:00", metrics={"total_spent": 1.0})],
        comparison=compare_periods(trend),
        alerts=alerts_for(records, period_spend=summary.total_spent, monthly_budget=0.0, today=today),
        today=today,
    )

    overview = payload["overview"]
    assert overview["summary"]["total_spent"] == pytest.approx(400.0)
    assert overview["derived_metrics"]["cpa"] == pytest.approx(40.0)
    assert "total_spent" not in overview["derived_metrics"]
    assert overview["date_range"] == {"start": "2024-05-11", "end": "2024-06-10"}
    assert [row["date"] for row in payload["daily_trends"]] == ["2024-05-21", "2024-06-09"]
    assert payload["campaigns"][0]["name"] == "Widget Prospecting"
    assert payload["period_comparison"]["spend"] == pytest.approx(200.0)
    assert payload["alerts"][0]["metric"] == "CPA"
    assert payload["snapshots"][0]["metrics"] == {"total_spent": 1.0}
    # the export is written as JSON
    json.dumps(payload)


def test_export_payload_without_comparison(today):
    payload = build_export_payload(summary=summarize([]), timeframe=7, campaigns=[], daily_trends=[], today=today)
    assert payload["period_comparison"] is None
    assert payload["alerts"] == []
    assert payload["overview"]["date_range"]["start"] == "2024-06-03"


def test_markdown_report_lists_metrics_and_alerts(records, today, tmp_path):
    settings = DashboardSettings(data_path=tmp_path / "records.csv", reference_date=today.date())
    frame = records_to_frame(records)
    alerts = alerts_for(records, period_spend=0.0, monthly_budget=0.0, today=today)
    report = build_markdown_report(
        settings=settings,
        summary=summarize(frame),
        entities=pd.DataFrame({"goods_name": ["Widget"], "mtd_cpa": [60.0]}),
        quality=run_quality_checks(frame, today),
        alerts={"Widget": alerts},
    )

    assert report.startswith("# Paid Media Performance Summary")
    assert "**Reference date:** 2024-06-10" in report
    assert "- **Spend:** $400.00" in report
    assert "- **ROAS:** 2.00x" in report
    assert "- **Widget** [high] CPA has increased by 50.0% in the last 7 days" in report


def test_frame_writers(tmp_path: Path):
    frame = pd.DataFrame({"goods_name": ["Widget"], "spend": [1.5]})
    dataframe_to_csv(frame, tmp_path / "out" / "table.csv")
    assert (tmp_path / "out" / "table.csv").read_text(encoding="utf-8").startswith("goods_name,spend")

    dataframe_to_csv(pd.DataFrame(), tmp_path / "empty.csv")
    assert (tmp_path / "empty.csv").read_text(encoding="utf-8") == ""
    assert dataframe_to_markdown(pd.DataFrame()) == "_No data available._"

    path = write_json({"when": datetime(2024, 6, 10, tzinfo=timezone.utc)}, tmp_path / "payload.json")
    assert json.loads(path.read_text(encoding="utf-8"))["when"].startswith("2024-06-10")
