"""Loading and normalizing paid media records and target references.

Everything downstream of this module works on a *record frame*: a DataFrame with
exactly one column per :class:`RawRecord` field, numeric facts as floats (absent
values are ``0``), identifiers as stripped strings (absent values are ``""``) and
``campaign_date`` as a day-normalized ``datetime64`` column (``NaT`` when the
source value is missing or unparseable).
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, fields
from datetime import date
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from Paid_media.config import RecordColumns, TargetColumns

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RawRecord:
    """One row of ingested performance data."""

    platform: str = ""
    publisher: str = ""
    goods_sold: str = ""
    goods_name: str = ""
    campaign_id: str = ""
    campaign_name: str = ""
    account_number: str = ""
    campaign_date: Optional[date] = None
    amount_spent: float = 0.0
    impressions: float = 0.0
    clicks: float = 0.0
    lp_views: float = 0.0
    lp_view_cost: float = 0.0
    leads: float = 0.0
    lead_cost: float = 0.0
    link_clicks: float = 0.0
    plat_result: float = 0.0
    plat_value: float = 0.0
    fulfillment_orders: float = 0.0
    fulfillment_revenue: float = 0.0


@dataclass(frozen=True, slots=True)
class TargetReference:
    """Target CPA and monthly budget for one product."""

    brand_name: str = ""
    goods_name: str = ""
    tcpa: float = 0.0
    monthly_budget: float = 0.0
    group: str = ""


@dataclass(slots=True)
class RecordBundle:
    """Container for the normalized record frame and load metadata."""

    frame: pd.DataFrame
    columns: RecordColumns
    column_aliases: Dict[str, str]
    source_rows: int

    @property
    def unparsed_dates(self) -> int:
        return int(self.frame["campaign_date"].isna().sum())


RECORD_FIELDS: tuple[str, ...] = tuple(item.name for item in fields(RawRecord))
TEXT_FIELDS: tuple[str, ...] = tuple(RecordColumns().text_fields())
NUMERIC_FIELDS: tuple[str, ...] = tuple(RecordColumns().numeric_fields())

_NON_ALNUM_PATTERN = re.compile(r"[^0-9a-zA-Z]+")
_DAY_FIRST_FORMATS = ("%d/%m/%Y", "%d-%m-%Y")


def _normalize_column_name(name: str) -> str:
    return _NON_ALNUM_PATTERN.sub("", str(name).strip().lower())


def _sanitize_numeric_series(series: pd.Series) -> pd.Series:
    if series.dtype.kind not in {"O", "U", "S"}:
        return series
    cleaned = (
        series.astype(str)
        .str.replace(r"[,%$]", "", regex=True)
        .str.replace(r"\s", "", regex=True)
        .str.replace(r"\(([^)]+)\)", r"-\1", regex=True)
        .replace({"": np.nan, "none": np.nan, "nan": np.nan, "None": np.nan})
    )
    return cleaned


def clean_numeric(series: pd.Series) -> pd.Series:
    """Strip currency symbols / separators and coerce to float (missing -> 0)."""

    numeric = pd.to_numeric(_sanitize_numeric_series(series), errors="coerce")
    return numeric.fillna(0).astype(float)


def _clean_text(series: pd.Series) -> pd.Series:
    text = series.astype(object).where(series.notna(), "")
    return text.map(lambda value: str(value).strip())


def parse_campaign_dates(series: pd.Series) -> pd.Series:
    """Parse campaign dates to day-normalized timestamps.

    Values are parsed with pandas' flexible parser first (ISO and month-first
    strings); anything still unparsed is retried as ``dd/mm/yyyy`` or
    ``dd-mm-yyyy``. Unparseable values become ``NaT``.
    """

    if pd.api.types.is_datetime64_any_dtype(series):
        parsed = series
    else:
        raw = series.astype(object).where(series.notna(), None)
        raw = raw.map(lambda value: value.strip() if isinstance(value, str) else value)
        raw = raw.replace({"": None})
        parsed = pd.to_datetime(raw, errors="coerce", format="mixed", utc=True)
        for fmt in _DAY_FIRST_FORMATS:
            retry = parsed.isna() & raw.notna()
            if not retry.any():
                break
            parsed.loc[retry] = pd.to_datetime(raw[retry].astype(str), errors="coerce", format=fmt, utc=True)
    parsed = pd.to_datetime(parsed, errors="coerce")
    if getattr(parsed.dt, "tz", None) is not None:
        parsed = parsed.dt.tz_localize(None)
    return parsed.dt.normalize()


def normalize_records(frame: pd.DataFrame) -> pd.DataFrame:
    """Return a record frame with canonical columns, dtypes and defaults."""

    df = frame.copy()
    for column in TEXT_FIELDS:
        df[column] = _clean_text(df[column]) if column in df.columns else ""
    for column in NUMERIC_FIELDS:
        df[column] = clean_numeric(df[column]) if column in df.columns else 0.0
    if "campaign_date" in df.columns:
        df["campaign_date"] = parse_campaign_dates(df["campaign_date"])
    else:
        df["campaign_date"] = pd.Series(pd.NaT, index=df.index, dtype="datetime64[ns]")
    return df[list(RECORD_FIELDS)].reset_index(drop=True)


def empty_record_frame() -> pd.DataFrame:
    return normalize_records(pd.DataFrame(columns=list(RECORD_FIELDS)))


def records_to_frame(records: Iterable[RawRecord]) -> pd.DataFrame:
    rows = [asdict(record) for record in records]
    if not rows:
        return empty_record_frame()
    return normalize_records(pd.DataFrame(rows, columns=list(RECORD_FIELDS)))


def as_record_frame(records: pd.DataFrame | Iterable[RawRecord]) -> pd.DataFrame:
    """Accept a normalized record frame or an iterable of :class:`RawRecord`."""

    if isinstance(records, pd.DataFrame):
        return records
    return records_to_frame(records)


def frame_to_records(frame: pd.DataFrame) -> List[RawRecord]:
    records: List[RawRecord] = []
    for row in frame[list(RECORD_FIELDS)].itertuples(index=False):
        values = row._asdict()
        stamp = values["campaign_date"]
        values["campaign_date"] = None if pd.isna(stamp) else stamp.date()
        records.append(RawRecord(**values))
    return records


def _match_headers(df: pd.DataFrame, wanted: Dict[str, str]) -> Dict[str, str]:
    lookup = {_normalize_column_name(col): col for col in df.columns}
    renamed: Dict[str, str] = {}
    for canonical, source in wanted.items():
        actual = lookup.get(_normalize_column_name(source))
        if actual is not None:
            renamed[actual] = canonical
    return renamed


def load_records(path: str | Path, columns: RecordColumns | None = None) -> RecordBundle:
    columns = columns or RecordColumns()
    df = pd.read_csv(path, dtype=str, skipinitialspace=True)
    source_rows = int(len(df))
    wanted = {name: columns.source_for(name) for name in RECORD_FIELDS}
    aliases = _match_headers(df, wanted)
    missing = sorted(set(RECORD_FIELDS) - set(aliases.values()))
    if missing:
        logger.debug("Record source %s has no column for: %s (defaults applied)", path, ", ".join(missing))
    frame = normalize_records(df.rename(columns=aliases))
    logger.info(
        "Loaded %d records from %s (%d without a usable date)",
        len(frame),
        path,
        int(frame["campaign_date"].isna().sum()),
    )
    return RecordBundle(frame=frame, columns=columns, column_aliases=aliases, source_rows=source_rows)


def normalize_targets(frame: pd.DataFrame) -> List[TargetReference]:
    """Turn a canonical-column target frame into :class:`TargetReference` rows."""

    df = frame.copy()
    for column in ("brand_name", "goods_name", "group"):
        df[column] = _clean_text(df[column]) if column in df.columns else ""
    for column in ("tcpa", "monthly_budget"):
        df[column] = clean_numeric(df[column]) if column in df.columns else 0.0
    return [
        TargetReference(
            brand_name=row.brand_name,
            goods_name=row.goods_name,
            tcpa=float(row.tcpa),
            monthly_budget=float(row.monthly_budget),
            group=row.group,
        )
        for row in df.itertuples(index=False)
    ]


def load_targets(path: str | Path, columns: TargetColumns | None = None) -> List[TargetReference]:
    columns = columns or TargetColumns()
    df = pd.read_csv(path, dtype=str, skipinitialspace=True)
    wanted = {item.name: getattr(columns, item.name) for item in fields(columns)}
    df = df.rename(columns=_match_headers(df, wanted))
    df = df.dropna(how="all")
    targets = normalize_targets(df)
    logger.info("Loaded %d target references from %s", len(targets), path)
    return targets
