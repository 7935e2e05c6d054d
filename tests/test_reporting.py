import pytest

from ormbench.reporting import ReportGenerator, library_stats

from conftest import make_metrics, record_run, run


@pytest.fixture
def generator(tmp_path, clock):
    return ReportGenerator(tmp_path / "reports", clock=clock)


@pytest.fixture
def compared(manager, two_library_run):
    metadata = run(manager.require_run(two_library_run))
    comparison = run(manager.comparator.compare_libraries(two_library_run))
    return metadata, comparison


class TestLibraryStats:
    def test_wins_and_averages(self, compared):
        _, comparison = compared
        stats = library_stats(comparison.scenarios)
        assert list(stats) == ["libA-v1.0.0", "libB-v2.0.0"]
        assert stats["libA-v1.0.0"]["wins"] == 2
        assert stats["libB-v2.0.0"]["wins"] == 0
        assert stats["libA-v1.0.0"]["avg_p50"] == pytest.approx(2.0)
        assert stats["libB-v2.0.0"]["avg_rps"] == pytest.approx(850.0)


class TestReportGenerator:
    def test_summary_and_category_pages(self, generator, compared):
        metadata, comparison = compared
        paths = generator.generate(metadata, comparison)

        assert [p.name for p in paths] == ["summary.md", "CRUD.md"]
        assert all(p.parent.name == metadata.run_id for p in paths)

        summary = paths[0].read_text()
        assert "# Benchmark Results Summary" in summary
        assert f"**Run ID:** {metadata.run_id}" in summary
        assert "## Overall Summary" in summary
        assert "| **libA@1.0.0** | **2/2** |" in summary
        assert "**Winner**: **libA@1.0.0** - Wins 2/2 scenarios" in summary
        assert "[CRUD Operations Results](./CRUD.md)" in summary
        assert "### libB@2.0.0" in summary
        assert "**Generated**: 2025-01-15T10:30:00.000+00:00" in summary

        crud = paths[1].read_text()
        assert "# CRUD Operations Benchmark Results" in crud
        assert "### 1. Insert Single" in crud
        assert "**Winner**: libA@1.0.0 - **100.0% faster** than libB@2.0.0" in crud

    def test_without_comparison(self, generator, manager):
        run_id = run(record_run(manager, [("libA-v1.0.0", "s1", "crud", make_metrics(1.0))]))
        metadata = run(manager.require_run(run_id))
        paths = generator.generate(metadata, None)

        assert [p.name for p in paths] == ["summary.md"]
        text = paths[0].read_text()
        assert "Fewer than two libraries" in text
        assert "## Overall Summary" not in text
