from __future__ import annotations

from datetime import date

import pytest

from Paid_media.filters import RecordFilters, analysis_window, apply_filters, filter_options


@pytest.fixture()
def records(make_record):
    return [
        make_record(0, platform="Meta", publisher="Facebook", goods_name="Widget"),
        make_record(3, platform="meta", publisher="Instagram", goods_name="Widget", goods_sold="Apparel"),
        make_record(10, platform="Google", publisher="Search", goods_name="Gadget", campaign_name="Gadget Search"),
        make_record(None, platform="Google", publisher="YouTube", goods_name="Widget"),
    ]


def test_no_filters_returns_everything(records):
    assert len(apply_filters(records)) == 4
    assert len(apply_filters(records, RecordFilters())) == 4


def test_platform_match_ignores_case(records):
    matched = apply_filters(records, RecordFilters(platform="META"))
    assert list(matched["publisher"]) == ["Facebook", "Instagram"]


def test_other_fields_match_exactly(records):
    assert list(apply_filters(records, RecordFilters(goods_name="Widget"))["publisher"]) == [
        "Facebook",
        "Instagram",
        "YouTube",
    ]
    assert apply_filters(records, RecordFilters(goods_name="widget")).empty
    matched = apply_filters(records, RecordFilters(platform="google", goods_name="Gadget"))
    assert list(matched["campaign_name"]) == ["Gadget Search"]


def test_date_range_is_inclusive_and_drops_undated(records):
    matched = apply_filters(records, start=date(2024, 6, 7), end=date(2024, 6, 10))
    assert list(matched["publisher"]) == ["Facebook", "Instagram"]

    open_end = apply_filters(records, start="2024-05-31")
    assert list(open_end["publisher"]) == ["Facebook", "Instagram", "Search"]

    open_start = apply_filters(records, end=date(2024, 6, 7))
    assert list(open_start["publisher"]) == ["Instagram", "Search"]


def test_date_range_on_undated_records_only(make_record):
    assert apply_filters([make_record(None)], start=date(2024, 6, 1)).empty


def test_filters_from_mapping():
    filters = RecordFilters.from_mapping({"platform": "Meta", "publisher": None, "unknown": "x"})
    assert filters.active() == {"platform": "Meta"}
    assert RecordFilters.from_mapping(None) == RecordFilters()


def test_filter_options(records):
    options = filter_options(records)
    assert options["platform"] == ["Google", "Meta", "meta"]
    assert options["goods_sold"] == ["Apparel"]
    assert options["goods_name"] == ["Gadget", "Widget"]


def test_analysis_window(records, today):
    window = analysis_window(records, "Widget", 7, today)
    assert list(window["publisher"]) == ["Facebook", "Instagram"]
    assert analysis_window(records, "Gadget", 7, today).empty
    assert len(analysis_window(records, "Gadget", 30, today)) == 1


def test_analysis_window_rejects_non_positive_days(records, today):
    with pytest.raises(ValueError):
        analysis_window(records, "Widget", 0, today)
