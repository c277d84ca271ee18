from __future__ import annotations


import numpy as np
import pandas as pd
import pytest


from Paid_media.metrics_registry import (
    RECORD_COLUMNS,
    compute_one,
    compute_series,
    compute_totals,
    list_metrics,
    pct_change,
    safe_ratio,
)


@pytest.fixture
def sample_frame() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "spend": [50.0, 0.0, 20.0, np.nan],
            "conversions": [5.0, 4.0, 0.0, np.nan],
            "revenue": [100.0, 80.0, 60.0, np.nan],
            "impressions": [1000.0, 0.0, 400.0, 10.0],
            "clicks": [40.0, 0.0, 8.0, np.nan],
            "leads": [10.0, 0.0, 0.0, 1.0],
        },
        index=pd.Index(["normal", "zero_spend", "zero_conversions", "nan_den"], name="day"),
    )


def test_compute_series_zero_guards(sample_frame: pd.DataFrame) -> None:
    result = compute_series(sample_frame, ["CPA", "ROAS", "CTR", "CVR", "CPL"])

    assert result.loc["normal", "CPA"] == pytest.approx(10.0)
    assert result.loc["normal", "ROAS"] == pytest.approx(2.0)
    assert result.loc["normal", "CTR"] == pytest.approx(4.0)
    assert result.loc["normal", "CVR"] == pytest.approx(12.5)
    assert result.loc["normal", "CPL"] == pytest.approx(5.0)
    # Zero denominators -> 0, never NaN or inf
    assert result.loc["zero_spend", "ROAS"] == 0
    assert result.loc["zero_spend", "CTR"] == 0
    assert result.loc["zero_conversions", "CPA"] == 0
    assert result.loc["zero_conversions", "CPL"] == 0
    assert result.loc["nan_den", "CPA"] == 0
    assert result.loc["nan_den", "CTR"] == 0
    assert not result.isna().any().any()
    assert np.isfinite(result.to_numpy()).all()


def test_compute_one_matches_series(sample_frame: pd.DataFrame) -> None:
    cpa_series = compute_one(sample_frame, "cpa")
    frame = compute_series(sample_frame, ["CPA"])
    pd.testing.assert_series_equal(cpa_series, frame["CPA"])


def test_compute_series_record_columns() -> None:
    frame = pd.DataFrame(
        {
            "amount_spent": [30.0],
            "fulfillment_orders": [3.0],
            "fulfillment_revenue": [90.0],
            "impressions": [0.0],
            "clicks": [0.0],
            "leads": [0.0],
        }
    )
    result = compute_series(frame, ["CPA", "ROAS"], RECORD_COLUMNS)
    assert result.loc[0, "CPA"] == pytest.approx(10.0)
    assert result.loc[0, "ROAS"] == pytest.approx(3.0)


def test_unknown_metric_raises(sample_frame: pd.DataFrame) -> None:
    with pytest.raises(ValueError):
        compute_series(sample_frame, ["MER"])
    with pytest.raises(ValueError):
        compute_totals({"spend": 1.0}, "AOV")


def test_missing_column_raises() -> None:
    with pytest.raises(KeyError):
        compute_series(pd.DataFrame({"spend": [1.0]}), ["CPA"])


def test_compute_totals() -> None:
    totals = {"spend": 200.0, "conversions": 4.0, "revenue": 300.0, "impressions": 0.0, "clicks": 80.0}
    assert compute_totals(totals, "cpa") == pytest.approx(50.0)
    assert compute_totals(totals, "ROAS") == pytest.approx(1.5)
    assert compute_totals(totals, "CTR") == 0
    assert compute_totals(totals, "CVR") == pytest.approx(5.0)
    assert compute_totals(totals, "CPL") == 0


def test_scalar_helpers() -> None:
    assert safe_ratio(10.0, 4.0) == pytest.approx(2.5)
    assert safe_ratio(10.0, 0.0) == 0
    assert safe_ratio(10.0, -1.0) == 0
    assert safe_ratio(np.nan, 5.0) == 0
    assert safe_ratio(1.0, 4.0, 100.0) == pytest.approx(25.0)
    assert pct_change(150.0, 100.0) == pytest.approx(50.0)
    assert pct_change(50.0, 100.0) == pytest.approx(-50.0)
    assert pct_change(50.0, 0.0) == 0


def test_list_metrics() -> None:
    assert list_metrics() == ["CPA", "ROAS", "CTR", "CVR", "CPL"]
