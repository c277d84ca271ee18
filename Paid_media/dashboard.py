"""Streamlit dashboard for paid media performance."""

from __future__ import annotations

import json
import os
from dataclasses import asdict
from datetime import date
from pathlib import Path
from typing import List, Optional

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
from plotly.subplots import make_subplots
import streamlit as st

from Paid_media.aggregation import (
    CPA_COLUMNS,
    aggregate,
    available_groups,
    filter_by_group,
    find_target,
    hide_zero_conversions,
    snapshots_to_frame,
)
from Paid_media.anomaly import alerts_for, rolling_averages
from Paid_media.classification import (
    campaign_performance,
    cpa_status,
    pacing_status,
    performance_targets,
    status_counts,
)
from Paid_media.config import ANALYSIS_DAY_OPTIONS, TIMEFRAME_UNITS, RecordColumns, TargetColumns
from Paid_media.data_loader import TargetReference, load_records, load_targets
from Paid_media.filters import RecordFilters, analysis_window, apply_filters, filter_options
from Paid_media.metrics import (
    campaign_comparison,
    filtered_metrics_table,
    publisher_breakdown,
    summarize,
    summary_rows,
)
from Paid_media.ranking import sort_by_metric
from Paid_media.reporting import build_export_payload, export_filename
from Paid_media.state import DashboardState, JsonFileStateStore
from Paid_media.trends import build_trend, compare_periods, format_bucket_label, trend_to_frame
from Paid_media.visualization import METRIC_COLORS
from Paid_media.windows import as_of, window_start

PAGE_CONFIG = {
    "page_title": "Paid Media Analytics",
    "layout": "wide",
    "initial_sidebar_state": "expanded",
}

st.set_page_config(**PAGE_CONFIG)

DATA_ENV = "PAID_MEDIA_DATA"
TARGETS_ENV = "PAID_MEDIA_TARGETS"
STATE_ENV = "PAID_MEDIA_STATE"
DRILL_DOWN_TABS = ("overview", "campaigns", "trends", "alerts")


def _mtime(path: Path) -> float:
    try:
        return path.stat().st_mtime
    except FileNotFoundError:
        return 0.0


@st.cache_data(show_spinner=False)
def _load_records(path_str: str, stamp: float) -> pd.DataFrame:
    if not path_str or stamp <= 0:
        return pd.DataFrame()
    return load_records(Path(path_str), RecordColumns()).frame


@st.cache_data(show_spinner=False)
def _load_targets(path_str: str, stamp: float) -> List[TargetReference]:
    if not path_str or stamp <= 0:
        return []
    return load_targets(Path(path_str), TargetColumns())


def _state() -> DashboardState:
    path = Path(os.environ.get(STATE_ENV, "reports/dashboard_state.json"))
    return DashboardState(JsonFileStateStore(path))


def _format_currency(value: Optional[float]) -> str:
    if value is None or pd.isna(value):
        return "n/a"
    return f"${value:,.2f}"


def _format_percent(value: Optional[float]) -> str:
    if value is None or pd.isna(value):
        return "n/a"
    return f"{value:.2f}%"


def _style_entities(frame: pd.DataFrame):
    def _cpa_colour(row: pd.Series) -> List[str]:
        styles = []
        for column in row.index:
            if column in CPA_COLUMNS:
                status = cpa_status(row[column], row["tcpa"])
                styles.append({"over": "color: #EF4444", "under": "color: #10B981"}.get(status, "color: #9CA3AF"))
            elif column == "budget_pacing":
                status = pacing_status(row[column])
                styles.append(
                    {"under": "color: #EAB308", "over": "color: #EF4444", "on-track": "color: #10B981"}.get(
                        status, "color: #9CA3AF"
                    )
                )
            else:
                styles.append("")
        return styles

    return frame.style.apply(_cpa_colour, axis=1).format(precision=2)


def _render_filters(options: dict, current: RecordFilters) -> RecordFilters:
    cols = st.columns(5)
    chosen = {}
    for col, (key, label) in zip(
        cols,
        (
            ("platform", "Platform"),
            ("publisher", "Publisher"),
            ("goods_sold", "Goods sold"),
            ("goods_name", "Goods name"),
            ("campaign_name", "Campaign"),
        ),
    ):
        values = ["", *options.get(key, [])]
        default = getattr(current, key)
        chosen[key] = col.selectbox(
            label,
            values,
            index=values.index(default) if default in values else 0,
            format_func=lambda value: value or "All",
        )
    return RecordFilters(**chosen)


def _render_saved_views(state: DashboardState, filters: RecordFilters, start: date, end: date) -> Optional[dict]:
    st.sidebar.subheader("Saved views")
    name = st.sidebar.text_input("View name")
    if st.sidebar.button("Save view"):
        saved = state.save_view(
            name,
            filters=filters.active(),
            date_range={"start": start.isoformat(), "end": end.isoformat()},
        )
        if saved is None:
            st.sidebar.warning("Enter a name to save the view.")
    loaded = None
    for view in state.list_views():
        left, right = st.sidebar.columns([3, 1])
        if left.button(view.name, key=f"load-{view.id}"):
            loaded = {"filters": view.filters, "date_range": view.date_range}
        if right.button("x", key=f"delete-{view.id}"):
            state.delete_view(view.id)
            st.rerun()
    return loaded


_CARD_FORMATTERS = {
    "currency": _format_currency,
    "percent": _format_percent,
    "ratio": lambda value: f"{value:.2f}x",
}


def _render_summary_cards(frame: pd.DataFrame) -> None:
    cards = summary_rows(summarize(frame))
    for col, card in zip(st.columns(len(cards)), cards):
        col.metric(card["title"], _CARD_FORMATTERS[card["format"]](card["value"]))


def render_overview(records: pd.DataFrame, targets: List[TargetReference], state: DashboardState) -> None:
    st.title("Paid Media Analytics")
    today = as_of()
    loaded = st.session_state.pop("loaded_view", None)
    if loaded:
        st.session_state["filters"] = RecordFilters.from_mapping(loaded.get("filters"))
        start_value = loaded.get("date_range", {}).get("start")
        end_value = loaded.get("date_range", {}).get("end")
        if start_value and end_value:
            st.session_state["date_range"] = (date.fromisoformat(start_value), date.fromisoformat(end_value))

    filters = _render_filters(filter_options(records), st.session_state.get("filters", RecordFilters()))
    default_range = st.session_state.get("date_range", (window_start(today, 30).date(), today.date()))
    picked = st.date_input("Date range", value=default_range)
    start, end = picked if isinstance(picked, tuple) and len(picked) == 2 else default_range
    st.session_state["filters"] = filters
    st.session_state["date_range"] = (start, end)

    view = _render_saved_views(state, filters, start, end)
    if view:
        st.session_state["loaded_view"] = view
        st.rerun()

    filtered = apply_filters(records, filters, start, end)
    _render_summary_cards(filtered)

    st.subheader("Rolling CPA by entity")
    controls = st.columns(4)
    group_by = controls[0].radio("Group by", ("goods", "campaign"), horizontal=True)
    snapshots = aggregate(records, targets, group_by, today=today)
    groups = ["", *available_groups(snapshots)]
    group = controls[1].selectbox("Group", groups, format_func=lambda value: value or "All groups")
    hide_zero = controls[2].checkbox("Hide zero-conversion rows", value=True)
    sort_key = controls[3].selectbox("Sort by", ("amount_spent", *CPA_COLUMNS, "budget_pacing", "mtd_conv"))
    direction = st.radio("Direction", ("desc", "asc"), horizontal=True)

    rows = filter_by_group(snapshots, group or None)
    if hide_zero:
        rows = hide_zero_conversions(rows)
    rows = sort_by_metric(rows, sort_key, direction)
    table = snapshots_to_frame(rows)
    if table.empty:
        st.info("No entities match the current selection.")
    else:
        st.dataframe(_style_entities(table), use_container_width=True, hide_index=True)

    with st.expander("Detailed metrics"):
        unit = st.radio("Timeframe", TIMEFRAME_UNITS, horizontal=True)
        st.dataframe(filtered_metrics_table(filtered, unit), use_container_width=True, hide_index=True)

    st.subheader("Spend by publisher")
    breakdown = publisher_breakdown(filtered)
    if breakdown.empty:
        st.info("No spend in the selected range.")
    else:
        st.plotly_chart(px.pie(breakdown, values="spend", names="publisher"), use_container_width=True)


def _render_trend_chart(trend: pd.DataFrame, unit: str) -> None:
    labels = [format_bucket_label(key, unit) for key in trend["date"]]
    fig = make_subplots(specs=[[{"secondary_y": True}]])
    for metric in ("spend", "revenue"):
        fig.add_trace(
            go.Scatter(
                x=labels,
                y=trend[metric],
                name=metric.title(),
                mode="lines",
                line=dict(color=METRIC_COLORS[metric], width=2),
            ),
            secondary_y=False,
        )
    for metric in ("cpa", "roas"):
        fig.add_trace(
            go.Scatter(
                x=labels,
                y=trend[metric],
                name=metric.upper(),
                mode="lines",
                line=dict(color=METRIC_COLORS[metric], width=1.5, dash="dash"),
            ),
            secondary_y=True,
        )
    fig.update_layout(
        hovermode="x unified",
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1.0),
        margin=dict(l=40, r=40, t=10, b=40),
    )
    fig.update_yaxes(title="Spend / Revenue", secondary_y=False)
    fig.update_yaxes(title="CPA / ROAS", secondary_y=True)
    st.plotly_chart(fig, use_container_width=True)


def render_drill_down(records: pd.DataFrame, targets: List[TargetReference], state: DashboardState) -> None:
    st.title("Product drill-down")
    goods = filter_options(records)["goods_name"]
    if not goods:
        st.info("No products in the loaded data.")
        return
    goods_name = st.selectbox("Product", goods)
    timeframe = st.radio(
        "Timeframe (days)",
        ANALYSIS_DAY_OPTIONS,
        index=ANALYSIS_DAY_OPTIONS.index(state.timeframe) if state.timeframe in ANALYSIS_DAY_OPTIONS else 2,
        horizontal=True,
    )
    if timeframe != state.timeframe:
        state.timeframe = timeframe

    today = as_of()
    target = find_target(targets, goods_name)
    tcpa = target.tcpa if target else 0.0
    budget = target.monthly_budget if target else 0.0
    window = analysis_window(records, goods_name, timeframe, today)
    summary = summarize(window, timeframe)
    campaigns = campaign_performance(window, tcpa, budget)
    unit = st.radio("Bucket", TIMEFRAME_UNITS, horizontal=True)
    trend = build_trend(window, unit)
    comparison = compare_periods(trend)
    goods_records = records[records["goods_name"] == goods_name]
    alerts = alerts_for(goods_records, period_spend=summary.total_spent, monthly_budget=budget, today=today)

    tab = st.radio(
        "Section",
        DRILL_DOWN_TABS,
        index=DRILL_DOWN_TABS.index(state.active_tab) if state.active_tab in DRILL_DOWN_TABS else 0,
        horizontal=True,
        format_func=str.title,
    )
    if tab != state.active_tab:
        state.active_tab = tab

    if tab == "overview":
        targets_view = performance_targets(summary, tcpa, budget)
        cols = st.columns(3)
        for col, key in zip(cols, ("cpa", "budget", "roas")):
            item = targets_view[key]
            col.metric(key.upper(), f"{item['current']:,.2f}", f"{item['performance']:.1f}% of target")
        counts = status_counts(campaigns)
        st.caption(
            f"Performing {counts['performing']} · At risk {counts['at-risk']} · "
            f"Underperforming {counts['underperforming']} · Total {counts['total']}"
        )
        rolling = rolling_averages(goods_records, today)
        st.dataframe(
            pd.DataFrame({name: asdict(metrics) for name, metrics in rolling.items()}).T,
            use_container_width=True,
        )
    elif tab == "campaigns":
        st.dataframe(pd.DataFrame([asdict(row) for row in campaigns]), use_container_width=True, hide_index=True)
        comparison_frame = campaign_comparison(window, goods_name)
        if not comparison_frame.empty:
            st.plotly_chart(
                px.bar(comparison_frame, x="campaign_name", y=["spend", "revenue"], barmode="group"),
                use_container_width=True,
            )
    elif tab == "trends":
        trend_frame = trend_to_frame(trend)
        if trend_frame.empty:
            st.info("No dated records in the selected timeframe.")
        else:
            _render_trend_chart(trend_frame, unit)
        if comparison:
            cols = st.columns(5)
            for col, (label, value) in zip(cols, asdict(comparison).items()):
                col.metric(label.upper() if len(label) <= 4 else label.title(), _format_percent(value))
    else:
        if not alerts:
            st.success("No alerts for this product.")
        for alert in alerts:
            notify = st.error if alert.severity == "high" else st.warning
            notify(alert.message)

    if st.button("Record snapshot"):
        state.record_snapshot(
            {
                "spend": summary.total_spent,
                "conversions": summary.total_orders,
                "revenue": summary.total_revenue,
                "cpa": summary.cpa,
                "roas": summary.roas,
            }
        )
    payload = build_export_payload(
        summary=summary,
        timeframe=timeframe,
        campaigns=campaigns,
        daily_trends=trend,
        snapshots=state.snapshots(),
        comparison=comparison,
        alerts=alerts,
        today=today,
    )
    st.download_button(
        "Export metrics",
        data=json.dumps(payload, indent=2, default=str),
        file_name=export_filename(goods_name, today),
        mime="application/json",
    )


def main() -> None:
    data_path = Path(os.environ.get(DATA_ENV, "data/paid_media.csv"))
    targets_path = Path(os.environ.get(TARGETS_ENV, "data/targets.csv"))
    records = _load_records(str(data_path), _mtime(data_path))
    if records.empty:
        st.info(f"Set `{DATA_ENV}` to a paid media CSV export to populate the dashboard.")
        return
    targets = _load_targets(str(targets_path), _mtime(targets_path))
    state = _state()

    st.sidebar.title("Navigation")
    section = st.sidebar.radio("Go to", ("Overview", "Product drill-down"))
    renderer = {
        "Overview": render_overview,
        "Product drill-down": render_drill_down,
    }[section]
    renderer(records, targets, state)


if __name__ == "__main__":  # pragma: no cover
    main()
