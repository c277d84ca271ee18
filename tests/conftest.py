from __future__ import annotations

from datetime import date, timedelta
from typing import Callable

import pandas as pd
import pytest

from Paid_media.data_loader import RawRecord, TargetReference


# June 2024 has 30 days; the 10th leaves room on both sides of the month start.
REFERENCE_DAY = date(2024, 6, 10)


@pytest.fixture()
def today() -> pd.Timestamp:
    return pd.Timestamp(REFERENCE_DAY)


@pytest.fixture()
def make_record() -> Callable[..., RawRecord]:
    """Build a :class:`RawRecord` dated ``days_ago`` days before the reference day."""

    def _make(days_ago: int | None = 0, **overrides) -> RawRecord:
        values = {
            "platform": "Meta",
            "publisher": "Facebook",
            "goods_sold": "",
            "goods_name": "Widget",
            "campaign_id": "c-1",
            "campaign_name": "Widget Prospecting",
            "campaign_date": None if days_ago is None else REFERENCE_DAY - timedelta(days=days_ago),
        }
        values.update(overrides)
        return RawRecord(**values)

    return _make


@pytest.fixture()
def widget_target() -> TargetReference:
    return TargetReference(brand_name="Acme", goods_name="Widget", tcpa=40.0, monthly_budget=1000.0, group="Team A")
