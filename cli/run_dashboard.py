"""Batch runner for the paid media dashboard."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

import pandas as pd

from Paid_media import DashboardPipeline, DashboardSettings
from Paid_media.config import ANALYSIS_DAY_OPTIONS, GROUP_BY_MODES, SORT_DIRECTIONS, TIMEFRAME_UNITS


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compute rolling CPA, pacing and drill-down exports.")
    parser.add_argument("--data", type=Path, help="Paid media CSV export to analyze.")
    parser.add_argument("--targets", type=Path, help="CSV with BrandName, GoodsName, TCPA, MonthlyBudget, Group.")
    parser.add_argument(
        "--config",
        action="append",
        type=Path,
        help="Path to a JSON configuration file (can be provided multiple times).",
    )
    parser.add_argument("--output-dir", type=Path, default=Path("reports"), help="Directory for artifacts.")
    parser.add_argument("--group-by", choices=GROUP_BY_MODES, default="goods")
    parser.add_argument("--group", help="Only show entities whose target row carries this group.")
    parser.add_argument("--show-zero", action="store_true", help="Keep entities without month-to-date conversions.")
    parser.add_argument("--sort-key", help="Snapshot column to sort by, e.g. seven_day_cpa or amount_spent.")
    parser.add_argument("--sort-direction", choices=SORT_DIRECTIONS, default="desc")
    parser.add_argument("--timeframe", choices=TIMEFRAME_UNITS, default="day", help="Trend bucket size.")
    parser.add_argument("--days", type=int, choices=ANALYSIS_DAY_OPTIONS, default=30, help="Analysis window length.")
    parser.add_argument("--as-of", help="Reference date (YYYY-MM-DD); defaults to today.")
    parser.add_argument("--focus", action="append", default=[], help="Product to export a drill-down for.")
    parser.add_argument("--state", type=Path, help="Dashboard state file whose snapshots go into exports.")
    parser.add_argument("--no-visuals", action="store_true", help="Skip static figure generation.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> DashboardSettings:
    return DashboardSettings(
        data_path=args.data,
        targets_path=args.targets,
        output_dir=args.output_dir,
        group_by=args.group_by,
        group=args.group,
        hide_zero_conversions=not args.show_zero,
        sort_key=args.sort_key,
        sort_direction=args.sort_direction,
        timeframe=args.timeframe,
        analysis_days=args.days,
        reference_date=pd.Timestamp(args.as_of).date() if args.as_of else None,
        focus_goods=tuple(args.focus),
        include_visuals=not args.no_visuals,
        state_path=args.state,
    )


def run_pipeline(pipeline: DashboardPipeline) -> None:
    results = pipeline.run()
    settings = pipeline.settings
    print(f"\nRun completed for {settings.data_path} -> {settings.output_dir}")

    summary = results["summary"]
    for label, value in (
        ("Total spent", f"${summary.total_spent:,.2f}"),
        ("Total revenue", f"${summary.total_revenue:,.2f}"),
        ("Fulfillment orders", f"{summary.total_orders:,.0f}"),
        ("ROAS", f"{summary.roas:.2f}x"),
        ("Cost per order", f"${summary.cpa:,.2f}"),
    ):
        print(f"  {label:25s} {value}")
    print(f"  {'Entities shown':25s} {len(results['entities'])}")
    print(f"  {'Data quality':25s} {results['quality'].status}")
    for goods_name, alerts in results["alerts"].items():
        for alert in alerts:
            print(f"  [{alert.severity.upper()}] {goods_name}: {alert.message}")
    print(f"  Summary JSON: {results['summary_path']}")
    print(f"  Entity table: {results['entities_path']}")


def main(argv=None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    executed = False

    if args.config:
        for config_path in args.config:
            run_pipeline(DashboardPipeline.from_config_file(config_path))
            executed = True

    if args.data:
        try:
            settings = build_settings(args)
            settings.validate()
        except ValueError as exc:
            raise SystemExit(f"Invalid arguments: {exc}") from exc
        run_pipeline(DashboardPipeline(settings))
        executed = True

    if not executed:
        raise SystemExit("No work to execute. Provide --data or at least one --config file.")


if __name__ == "__main__":
    main()
