"""Static figures for the paid media report."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

import matplotlib.pyplot as plt
import seaborn as sns
import pandas as pd

sns.set_theme(style="whitegrid")

# Spend / revenue / CPA / ROAS series colours used across the dashboard.
METRIC_COLORS = {
    "spend": "#3B82F6",
    "revenue": "#10B981",
    "cpa": "#8B5CF6",
    "roas": "#F59E0B",
    "ctr": "#EC4899",
}


def _save_plot(fig: plt.Figure, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(path, dpi=150)
    plt.close(fig)


def _slug(value: str) -> str:
    return "".join(ch if ch.isalnum() else "_" for ch in value).strip("_").lower() or "all"


def trend_plot(trend: pd.DataFrame, output_dir: Path, *, label: str = "all") -> Path | None:
    """Spend and revenue lines with CPA on a secondary axis."""

    if trend.empty:
        return None
    fig, ax = plt.subplots(figsize=(10, 5))
    sns.lineplot(data=trend, x="date", y="spend", label="Spend", color=METRIC_COLORS["spend"], ax=ax)
    sns.lineplot(data=trend, x="date", y="revenue", label="Revenue", color=METRIC_COLORS["revenue"], ax=ax)
    ax2 = ax.twinx()
    sns.lineplot(data=trend, x="date", y="cpa", label="CPA", color=METRIC_COLORS["cpa"], linestyle="--", ax=ax2)
    ax2.set_ylabel("CPA")
    ax.set_ylabel("Value")
    ax.set_xlabel("")
    ax.set_title(f"Performance over time: {label}")
    ax.tick_params(axis="x", labelrotation=45)
    output_path = output_dir / "figures" / f"trend_{_slug(label)}.png"
    _save_plot(fig, output_path)
    return output_path


def campaign_comparison_plot(comparison: pd.DataFrame, output_dir: Path, *, label: str) -> Path | None:
    if comparison.empty:
        return None
    top = comparison.head(15)
    fig, ax = plt.subplots(figsize=(8, 5))
    sns.barplot(data=top, x="spend", y="campaign_name", color=METRIC_COLORS["spend"], ax=ax)
    ax.set_ylabel("Campaign")
    ax.set_xlabel("Spend")
    ax.set_title(f"Campaign spend: {label}")
    output_path = output_dir / "figures" / f"campaigns_{_slug(label)}.png"
    _save_plot(fig, output_path)
    return output_path


def publisher_pie(breakdown: pd.DataFrame, output_dir: Path) -> Path | None:
    if breakdown.empty or float(breakdown["spend"].sum()) <= 0:
        return None
    fig, ax = plt.subplots(figsize=(6, 6))
    labels = [name or "Unknown" for name in breakdown["publisher"]]
    ax.pie(breakdown["spend"], labels=labels, autopct="%1.0f%%", colors=sns.color_palette("muted"))
    ax.set_title("Spend by publisher")
    output_path = output_dir / "figures" / "publisher_breakdown.png"
    _save_plot(fig, output_path)
    return output_path


def entity_cpa_frame(entities: pd.DataFrame, group_by: str = "goods", *, top_n: int = 15) -> pd.DataFrame:
    """Long-form CPA vs target rows, one label per entity."""

    label_column = "campaign_name" if group_by == "campaign" else "goods_name"
    top = entities.nlargest(top_n, "amount_spent")
    return top.melt(
        id_vars=label_column,
        value_vars=["thirty_day_cpa", "tcpa"],
        var_name="measure",
        value_name="value",
    ).rename(columns={label_column: "label"})


def entity_cpa_plot(
    entities: pd.DataFrame, output_dir: Path, *, group_by: str = "goods", top_n: int = 15
) -> Path | None:
    """30-day CPA per entity against its target CPA."""

    if entities.empty:
        return None
    melted = entity_cpa_frame(entities, group_by, top_n=top_n)
    fig, ax = plt.subplots(figsize=(8, 6))
    sns.barplot(data=melted, x="value", y="label", hue="measure", palette="viridis", ax=ax)
    ax.set_ylabel("")
    ax.set_xlabel("CPA")
    ax.set_title("30-day CPA vs target")
    output_path = output_dir / "figures" / "entity_cpa.png"
    _save_plot(fig, output_path)
    return output_path


def generate_visuals(
    *,
    output_dir: Path,
    entities: pd.DataFrame,
    trend: pd.DataFrame,
    publishers: pd.DataFrame,
    comparisons: Optional[Dict[str, pd.DataFrame]] = None,
    group_by: str = "goods",
) -> Dict[str, str]:
    figures: Dict[str, str] = {}

    path = trend_plot(trend, output_dir)
    if path:
        figures["trend"] = path.name

    cpa_path = entity_cpa_plot(entities, output_dir, group_by=group_by)
    if cpa_path:
        figures["entity_cpa"] = cpa_path.name

    pie_path = publisher_pie(publishers, output_dir)
    if pie_path:
        figures["publisher_breakdown"] = pie_path.name

    for goods_name, comparison in (comparisons or {}).items():
        campaign_path = campaign_comparison_plot(comparison, output_dir, label=goods_name)
        if campaign_path:
            figures[f"campaigns:{goods_name}"] = campaign_path.name

    return figures
