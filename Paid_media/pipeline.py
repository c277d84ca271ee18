"""High-level pipeline orchestration."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from Paid_media.aggregation import (
    aggregate,
    filter_by_group,
    find_target,
    hide_zero_conversions,
    snapshots_to_frame,
)
from Paid_media.anomaly import Alert, alerts_for
from Paid_media.classification import STATUSES, campaign_performance, status_counts
from Paid_media.config import DashboardSettings, settings_from_dict
from Paid_media.data_loader import RecordBundle, TargetReference, load_records, load_targets
from Paid_media.filters import analysis_window, apply_filters
from Paid_media.metrics import campaign_comparison, publisher_breakdown, summarize
from Paid_media.quality import QualityReport, run_quality_checks, write_quality_artifacts
from Paid_media.ranking import sort_by_metric
from Paid_media.reporting import (
    build_export_payload,
    build_markdown_report,
    build_summary_payload,
    dataframe_to_csv,
    export_filename,
    write_json,
)
from Paid_media.state import DashboardState, JsonFileStateStore
from Paid_media.trends import build_trend, compare_periods, trend_to_frame
from Paid_media.visualization import generate_visuals
from Paid_media.windows import as_of, window_start

logger = logging.getLogger(__name__)


class DashboardPipeline:
    """Run the batch rendition of the paid media dashboard."""

    def __init__(self, settings: DashboardSettings) -> None:
        self.settings = settings
        self.settings.validate()
        self.settings.resolve_paths()
        self.settings.ensure_output_tree()

    @classmethod
    def from_config_file(cls, path: Path) -> "DashboardPipeline":
        payload = json.loads(path.read_text(encoding="utf-8"))
        settings = settings_from_dict(payload, base_path=path.parent)
        return cls(settings)

    def _load(self) -> tuple[RecordBundle, List[TargetReference]]:
        bundle = load_records(self.settings.data_path, self.settings.columns)
        targets: List[TargetReference] = []
        if self.settings.targets_path is not None:
            targets = load_targets(self.settings.targets_path, self.settings.target_columns)
        else:
            logger.info("No targets file configured; every entity uses zero TCPA and budget")
        return bundle, targets

    def _entities(self, frame: pd.DataFrame, targets: List[TargetReference], today: pd.Timestamp):
        snapshots = aggregate(frame, targets, self.settings.group_by, today=today)
        total = len(snapshots)
        snapshots = filter_by_group(snapshots, self.settings.group)
        if self.settings.hide_zero_conversions:
            snapshots = hide_zero_conversions(snapshots)
        if self.settings.sort_key:
            snapshots = sort_by_metric(snapshots, self.settings.sort_key, self.settings.sort_direction)
        logger.info("Aggregated %d %s entities (%d shown)", total, self.settings.group_by, len(snapshots))
        return snapshots

    def _drill_down(
        self,
        frame: pd.DataFrame,
        targets: List[TargetReference],
        goods_name: str,
        today: pd.Timestamp,
        state: Optional[DashboardState],
    ) -> Dict[str, object]:
        days = self.settings.analysis_days
        window = analysis_window(frame, goods_name, days, today)
        target = find_target(targets, goods_name)
        tcpa = target.tcpa if target else 0.0
        budget = target.monthly_budget if target else 0.0

        summary = summarize(window, days)
        campaigns = campaign_performance(window, tcpa, budget, self.settings.status_thresholds)
        trend = build_trend(window, self.settings.timeframe)
        comparison = compare_periods(trend)
        alerts = alerts_for(
            frame[frame["goods_name"] == goods_name],
            period_spend=summary.total_spent,
            monthly_budget=budget,
            today=today,
            thresholds=self.settings.alert_thresholds,
        )
        payload = build_export_payload(
            summary=summary,
            timeframe=days,
            campaigns=campaigns,
            daily_trends=trend,
            snapshots=state.snapshots() if state else (),
            comparison=comparison,
            alerts=alerts,
            today=today,
        )
        export_path = write_json(
            payload, self.settings.output_dir / "exports" / export_filename(goods_name, today)
        )
        if not window.empty:
            logger.info("Exported %s drill-down (%d records, %d alerts)", goods_name, len(window), len(alerts))
        else:
            logger.warning("No records for %s in the last %d days", goods_name, days)
        return {
            "campaigns": campaigns,
            "alerts": alerts,
            "trend": trend,
            "comparison": comparison,
            "export_path": export_path,
            "comparison_frame": campaign_comparison(window, goods_name),
        }

    def run(self) -> Dict[str, object]:
        bundle, targets = self._load()
        frame = bundle.frame
        output_dir = self.settings.output_dir
        today = as_of(self.settings.reference_date)

        quality: QualityReport = run_quality_checks(frame, today=today)
        quality_paths = write_quality_artifacts(quality, output_dir / "quality")
        if quality.status != "PASS":
            logger.warning("Data quality status %s (see %s)", quality.status, quality_paths["markdown"])

        snapshots = self._entities(frame, targets, today)
        entities = snapshots_to_frame(snapshots)

        days = self.settings.analysis_days
        window = apply_filters(frame, start=window_start(today, days), end=today)
        summary = summarize(window, days)

        state = DashboardState(JsonFileStateStore(self.settings.state_path)) if self.settings.state_path else None

        drill_downs: Dict[str, Dict[str, object]] = {}
        for goods_name in self.settings.focus_goods:
            drill_downs[goods_name] = self._drill_down(frame, targets, goods_name, today, state)

        counts = status_counts(
            campaign for result in drill_downs.values() for campaign in result["campaigns"]
        )
        alerts: Dict[str, List[Alert]] = {name: result["alerts"] for name, result in drill_downs.items()}
        exports = {name: Path(result["export_path"]).name for name, result in drill_downs.items()}

        figures = (
            generate_visuals(
                output_dir=output_dir,
                entities=entities,
                trend=trend_to_frame(build_trend(window, self.settings.timeframe)),
                publishers=publisher_breakdown(window),
                comparisons={name: result["comparison_frame"] for name, result in drill_downs.items()},
                group_by=self.settings.group_by,
            )
            if self.settings.include_visuals
            else {}
        )

        summary_payload = build_summary_payload(
            settings=self.settings,
            rows_loaded=int(len(frame)),
            quality=quality,
            summary=summary,
            entities=entities,
            status_counts=counts,
            exports=exports,
            figures=figures,
        )
        report_text = build_markdown_report(
            settings=self.settings,
            summary=summary,
            entities=entities,
            quality=quality,
            alerts=alerts,
        )

        entities_path = output_dir / "entity_metrics.csv"
        dataframe_to_csv(entities, entities_path)

        summary_path = write_json(summary_payload, output_dir / "summary.json")

        report_path = output_dir / "dashboard_report.md"
        report_path.write_text(report_text, encoding="utf-8")
        logger.info("Wrote dashboard artifacts to %s", output_dir)

        settings_snapshot = asdict(self.settings)
        for key in ("data_path", "targets_path", "output_dir", "state_path"):
            value = getattr(self.settings, key)
            settings_snapshot[key] = str(value) if value is not None else None

        return {
            "settings": settings_snapshot,
            "quality": quality,
            "entities": entities,
            "snapshots": snapshots,
            "summary": summary,
            "status_counts": {status: counts[status] for status in (*STATUSES, "total")},
            "alerts": alerts,
            "drill_downs": drill_downs,
            "figures": figures,
            "entities_path": entities_path,
            "summary_path": summary_path,
            "report_path": report_path,
            "quality_paths": quality_paths,
        }
