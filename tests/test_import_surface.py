from pathlib import Path


def test_package_exports_symbols() -> None:
    import Paid_media

    module_path = Path(Paid_media.__file__).resolve()
    assert module_path.name == "__init__.py"
    assert module_path.parent.name == "Paid_media"

    for name in Paid_media.__all__:
        assert hasattr(Paid_media, name), name

    from Paid_media import DashboardPipeline, aggregate, sort_by_metric

    assert callable(aggregate)
    assert callable(sort_by_metric)
    assert hasattr(DashboardPipeline, "run")
