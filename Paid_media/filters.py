"""Record filtering for the dashboard views."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Iterable, List, Optional

import pandas as pd

from Paid_media.data_loader import RawRecord, as_record_frame
from Paid_media.windows import as_of, window_mask, window_start

FILTER_FIELDS = ("platform", "publisher", "goods_sold", "goods_name", "campaign_name")


@dataclass(frozen=True)
class RecordFilters:
    """Equality filters; an empty value means "no filter" for that field."""

    platform: str = ""
    publisher: str = ""
    goods_sold: str = ""
    goods_name: str = ""
    campaign_name: str = ""

    def active(self) -> Dict[str, str]:
        return {key: value for key, value in asdict(self).items() if value}

    @classmethod
    def from_mapping(cls, payload: Optional[Dict[str, object]]) -> "RecordFilters":
        if not payload:
            return cls()
        return cls(**{key: str(payload.get(key) or "") for key in FILTER_FIELDS})


def apply_filters(
    records: pd.DataFrame | Iterable[RawRecord],
    filters: Optional[RecordFilters] = None,
    start=None,
    end=None,
) -> pd.DataFrame:
    """Return the records matching *filters* and the inclusive ``[start, end]`` day range.

    Platform matching ignores case; the other fields match exactly. When a
    date bound is given, records without a usable date are dropped.
    """

    frame = as_record_frame(records)
    mask = pd.Series(True, index=frame.index)
    for key, value in (filters or RecordFilters()).active().items():
        if key == "platform":
            mask &= frame["platform"].str.lower() == value.lower()
        else:
            mask &= frame[key] == value
    if start is not None or end is not None:
        dates = frame["campaign_date"]
        lower = as_of(start) if start is not None else dates.min()
        upper = end if end is not None else dates.max()
        if pd.isna(lower) or pd.isna(upper):
            mask &= False
        else:
            mask &= window_mask(dates, lower, upper)
    return frame[mask]


def filter_options(records: pd.DataFrame | Iterable[RawRecord]) -> Dict[str, List[str]]:
    """Distinct non-empty values per filter field, sorted."""

    frame = as_record_frame(records)
    return {key: sorted(value for value in frame[key].unique() if value) for key in FILTER_FIELDS}


def analysis_window(
    records: pd.DataFrame | Iterable[RawRecord],
    goods_name: str,
    days: int,
    today=None,
) -> pd.DataFrame:
    """Records of one product dated inside the trailing *days* window ending *today*."""

    if days <= 0:
        raise ValueError("days must be positive")
    frame = as_record_frame(records)
    reference = as_of(today)
    mask = (frame["goods_name"] == goods_name) & window_mask(
        frame["campaign_date"], window_start(reference, days), reference
    )
    return frame[mask]
