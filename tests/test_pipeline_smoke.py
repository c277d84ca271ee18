import json
from datetime import date

import pandas as pd
import pytest

from Paid_media.config import DashboardSettings
from Paid_media.pipeline import DashboardPipeline
from Paid_media.state import DashboardState, JsonFileStateStore
from cli.run_dashboard import main


def _build_sample_dataset() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "Platform": ["Meta", "Meta", "Google", "Meta", "Google"],
            "Publisher": ["Facebook", "Instagram", "Search", "Facebook", "Search"],
            "GoodsSold": ["Apparel", "Apparel", "Gadgets", "Apparel", "Gadgets"],
            "GoodsName": ["Widget", "Widget", "Gadget", "Widget", "Gadget"],
            "Campaign_ID": ["w-1", "w-2", "g-1", "w-1", "g-1"],
            "CampaignName": ["Widget Prospecting", "Widget Retargeting", "Gadget Search", "Widget Prospecting",
                             "Gadget Search"],
            "CampaignDate": ["2024-06-10", "2024-06-08", "2024-06-09", "2024-05-20", "not recorded"],
            "AmountSpent": ["$300.00", "$120.00", "$80.00", "$100.00", "$10.00"],
            "Impressions": [10000, 4000, 2000, 5000, 100],
            "Clicks": [200, 60, 40, 100, 2],
            "Leads": [10, 2, 4, 5, 0],
            "FulfillmentOrders": [5, 2, 0, 5, 0],
            "FulfillmentRevenue": ["$600.00", "$150.00", "$0.00", "$200.00", "$0.00"],
        }
    )


def _build_targets() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "BrandName": ["Acme", "Gizmo"],
            "GoodsName": ["Widget", "Gadget"],
            "TCPA": ["$40.00", "$50.00"],
            "MonthlyBudget": ["$1,500.00", "$300.00"],
            "Group": ["Team A", "Team B"],
        }
    )


@pytest.fixture()
def inputs(tmp_path):
    data_path = tmp_path / "records.csv"
    targets_path = tmp_path / "targets.csv"
    _build_sample_dataset().to_csv(data_path, index=False)
    _build_targets().to_csv(targets_path, index=False)
    return data_path, targets_path


def test_pipeline_smoke(tmp_path, inputs):
    data_path, targets_path = inputs
    state_path = tmp_path / "state.json"
    DashboardState(JsonFileStateStore(state_path)).record_snapshot({"total_spent": 1.0})

    settings = DashboardSettings(
        data_path=data_path,
        targets_path=targets_path,
        output_dir=tmp_path / "reports",
        hide_zero_conversions=False,
        sort_key="mtd_cpa",
        reference_date=date(2024, 6, 10),
        focus_goods=("Widget",),
        include_visuals=False,
        state_path=state_path,
    )

    result = DashboardPipeline(settings).run()

    output_dir = settings.output_dir
    assert (output_dir / "entity_metrics.csv").exists()
    assert (output_dir / "summary.json").exists()
    assert (output_dir / "dashboard_report.md").exists()
    assert (output_dir / "quality" / "quality_report.json").exists()
    assert result["quality"].status == "WARN"

    entities = result["entities"]
    assert list(entities["goods_name"]) == ["Widget", "Gadget"]
    widget = entities.iloc[0]
    assert widget["mtd_cpa"] == pytest.approx(60.0)
    assert widget["group"] == "Team A"
    assert widget["budget_pacing"] == pytest.approx(84.0)

    summary = result["summary"]
    assert summary.total_spent == pytest.approx(600.0)
    assert summary.total_orders == pytest.approx(12.0)

    export_path = output_dir / "exports" / "metrics-export-Widget-2024-06-10.json"
    payload = json.loads(export_path.read_text(encoding="utf-8"))
    assert payload["overview"]["summary"]["total_spent"] == pytest.approx(520.0)
    assert payload["snapshots"][0]["metrics"] == {"total_spent": 1.0}
    assert [row["name"] for row in payload["campaigns"]] == ["Widget Prospecting", "Widget Retargeting"]

    assert result["status_counts"]["total"] == 2
    summary_payload = json.loads((output_dir / "summary.json").read_text(encoding="utf-8"))
    assert summary_payload["exports"] == {"Widget": export_path.name}
    assert summary_payload["rows_loaded"] == 5


def test_zero_conversion_entities_are_hidden_by_default(tmp_path, inputs):
    data_path, targets_path = inputs
    settings = DashboardSettings(
        data_path=data_path,
        targets_path=targets_path,
        output_dir=tmp_path / "reports",
        reference_date=date(2024, 6, 10),
        include_visuals=False,
    )
    result = DashboardPipeline(settings).run()
    assert list(result["entities"]["goods_name"]) == ["Widget"]
    assert result["drill_downs"] == {}


def test_cli_runs_from_config_file(tmp_path, inputs, capsys):
    data_path, targets_path = inputs
    config_path = tmp_path / "dashboard.json"
    config_path.write_text(
        json.dumps(
            {
                "data_path": data_path.name,
                "targets_path": targets_path.name,
                "output_dir": "out",
                "group_by": "campaign",
                "reference_date": "2024-06-10",
                "include_visuals": False,
            }
        ),
        encoding="utf-8",
    )

    main(["--config", str(config_path)])

    assert (tmp_path / "out" / "summary.json").exists()
    assert "Run completed" in capsys.readouterr().out


def test_cli_without_inputs_exits():
    with pytest.raises(SystemExit):
        main([])
