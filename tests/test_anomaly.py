from __future__ import annotations

import pytest

from Paid_media.anomaly import (
    RollingMetrics,
    alerts_for,
    detect_alerts,
    month_to_date_metrics,
    rolling_averages,
    rolling_metrics,
)
from Paid_media.config import AlertThresholds


def _rolling(cpa: float = 40.0, conversion_rate: float = 5.0) -> RollingMetrics:
    return RollingMetrics(spend=0.0, conversions=0.0, revenue=0.0, cpa=cpa, roas=0.0, conversion_rate=conversion_rate)


@pytest.fixture()
def records(make_record):
    return [
        make_record(1, amount_spent=300, fulfillment_orders=5, fulfillment_revenue=600, clicks=100),
        make_record(20, amount_spent=100, fulfillment_orders=5, fulfillment_revenue=200, clicks=100),
        make_record(None, amount_spent=10_000, fulfillment_orders=1),
    ]


def test_rolling_metrics_are_per_day_averages(records, today):
    seven = rolling_metrics(records, 7, today)
    assert seven.spend == pytest.approx(300 / 7)
    assert seven.conversions == pytest.approx(5 / 7)
    assert seven.cpa == pytest.approx(60.0)
    assert seven.roas == pytest.approx(2.0)
    assert seven.conversion_rate == pytest.approx(5.0)

    thirty = rolling_metrics(records, 30, today)
    assert thirty.cpa == pytest.approx(40.0)
    assert thirty.spend == pytest.approx(400 / 30)


def test_month_to_date_divides_by_day_of_month(records, today):
    mtd = month_to_date_metrics(records, today)
    assert mtd.spend == pytest.approx(30.0)
    assert mtd.revenue == pytest.approx(60.0)


def test_rolling_averages_keys(records, today):
    assert set(rolling_averages(records, today)) == {"three_day", "seven_day", "fourteen_day", "thirty_day", "mtd"}


def test_cpa_increase_raises_high_alert(records, today):
    alerts = alerts_for(records, period_spend=0.0, monthly_budget=0.0, today=today)

    assert len(alerts) == 1
    alert = alerts[0]
    assert alert.severity == "high"
    assert alert.metric == "CPA"
    assert alert.change == pytest.approx(50.0)
    assert alert.message == "CPA has increased by 50.0% in the last 7 days"


def test_conversion_rate_drop_raises_medium_alert(today):
    alerts = detect_alerts(
        _rolling(conversion_rate=3.0),
        _rolling(conversion_rate=4.0),
        period_spend=0.0,
        monthly_budget=0.0,
        today=today,
    )
    assert [(a.metric, a.severity) for a in alerts] == [("Conversion Rate", "medium")]
    assert alerts[0].message == "Conversion rate has decreased by 25.0% in the last 7 days"


def test_changes_inside_thresholds_do_not_alert(today):
    alerts = detect_alerts(
        _rolling(cpa=47.9, conversion_rate=5.7),
        _rolling(cpa=40.0, conversion_rate=5.0),
        period_spend=0.0,
        monthly_budget=0.0,
        today=today,
    )
    assert alerts == []


def test_zero_baseline_never_alerts(today):
    alerts = detect_alerts(
        _rolling(cpa=90.0, conversion_rate=9.0),
        _rolling(cpa=0.0, conversion_rate=0.0),
        period_spend=0.0,
        monthly_budget=0.0,
        today=today,
    )
    assert alerts == []


@pytest.mark.parametrize(
    ("spend", "severity", "message"),
    [
        (600.0, "high", "Campaign is overspending by 26.7% relative to monthly target"),
        (500.0, "medium", "Campaign is overspending by 16.7% relative to monthly target"),
        (100.0, "medium", "Campaign is underspending by 23.3% relative to monthly target"),
    ],
)
def test_budget_pacing_alerts(today, spend, severity, message):
    alerts = detect_alerts(
        _rolling(),
        _rolling(),
        period_spend=spend,
        monthly_budget=1000.0,
        today=today,
    )
    assert [(a.metric, a.severity, a.message) for a in alerts] == [("Budget Pacing", severity, message)]


def test_pacing_within_band_or_without_budget_is_quiet(today):
    assert detect_alerts(_rolling(), _rolling(), period_spend=400.0, monthly_budget=1000.0, today=today) == []
    assert detect_alerts(_rolling(), _rolling(), period_spend=400.0, monthly_budget=0.0, today=today) == []


def test_thresholds_are_configurable(today):
    loose = AlertThresholds(cpa_change_pct=60.0)
    alerts = detect_alerts(
        _rolling(cpa=60.0),
        _rolling(cpa=40.0),
        period_spend=0.0,
        monthly_budget=0.0,
        today=today,
        thresholds=loose,
    )
    assert alerts == []


def test_alerts_compare_the_configured_window_lengths(records, today):
    # both the 3-day and 14-day windows only see the $60 CPA day
    narrow = AlertThresholds(short_window_days=3, long_window_days=14)
    assert alerts_for(records, period_spend=0.0, monthly_budget=0.0, today=today, thresholds=narrow) == []

    wide = AlertThresholds(short_window_days=14, long_window_days=30)
    alerts = alerts_for(records, period_spend=0.0, monthly_budget=0.0, today=today, thresholds=wide)
    assert [alert.message for alert in alerts] == ["CPA has increased by 50.0% in the last 14 days"]
