from datetime import timedelta

import pytest

from ormbench.projection import format_run_label

from conftest import FIXED_NOW, make_metrics, record_run, run


@pytest.fixture
def built(manager, two_library_run):
    """Aggregates, comparison and timelines for the two-library run, then UI data."""
    run(manager.aggregator.aggregate_run(two_library_run))
    run(manager.comparator.compare_libraries(two_library_run))
    run(manager.tracker.update_timelines(two_library_run, ["libA-v1.0.0", "libB-v2.0.0"]))
    report = run(manager.projection.build_all(two_library_run))
    return two_library_run, report


def read_ui(manager, *parts):
    return run(manager.store.read_json(manager.layout.ui(*parts)))


class TestRunLabel:
    @pytest.mark.parametrize("age,label", [
        (timedelta(minutes=30), "Just now"),
        (timedelta(hours=1), "1 hour ago"),
        (timedelta(hours=3), "3 hours ago"),
        (timedelta(hours=30), "Yesterday"),
        (timedelta(days=3), "3 days ago"),
        (timedelta(days=10), "Jan 5, 2025"),
    ])
    def test_relative_labels(self, age, label):
        assert format_run_label(FIXED_NOW - age, FIXED_NOW) == label


class TestIndex:
    def test_contents(self, manager, built):
        run_id, report = built
        assert report.all_ok
        index = read_ui(manager, "latest", "index.json")

        assert index["latest_run"]["run_id"] == run_id
        assert index["available_runs"][0]["label"] == "Just now"
        assert index["available_runs"][0]["status"] == "completed"
        assert [lib["id"] for lib in index["libraries"]] == ["libA-v1.0.0", "libB-v2.0.0"]
        assert [(c["id"], c["scenario_count"]) for c in index["categories"]] == [("crud", 2), ("relations", 1)]
        assert [s["id"] for s in index["scenarios"]] == ["insert_single", "join_posts", "select_by_id"]

    def test_empty_store(self, manager):
        index = run(manager.projection.build_index())
        assert index["latest_run"] is None
        assert index["available_runs"] == []


class TestDashboard:
    def test_top_performers_and_category_winners(self, manager, built):
        dashboard = read_ui(manager, "latest", "dashboard.json")

        assert dashboard["summary"]["total_runs"] == 1
        assert dashboard["summary"]["total_libraries"] == 2
        assert dashboard["summary"]["total_scenarios"] == 3

        top = dashboard["latest_results"]["top_performers"]
        assert top["latency"]["library_id"] == "libA-v1.0.0"
        assert top["latency"]["value"] == pytest.approx(2.0)
        assert top["throughput"]["library_id"] == "libA-v1.0.0"

        winners = dashboard["latest_results"]["category_winners"]
        assert [(w["category"], w["library_id"]) for w in winners] == [
            ("crud", "libA-v1.0.0"),
            ("relations", "libB-v2.0.0"),
        ]
        assert dashboard["recent_regressions"] == []

    def test_unmeasured_library_is_never_top_performer(self, manager):
        run_id = run(record_run(manager, [
            ("libA-v1.0.0", "s1", "crud", make_metrics(1.0)),
            ("libX-v1.0.0", "s1", "crud", make_metrics(0.0, rps=0.0, errors=1, total_requests=0)),
        ]))
        dashboard = run(manager.projection.build_dashboard(run_id))

        top = dashboard["latest_results"]["top_performers"]
        assert top["latency"]["library_id"] == "libA-v1.0.0"
        assert top["throughput"]["library_id"] == "libA-v1.0.0"
        winners = dashboard["latest_results"]["category_winners"]
        assert [(w["category"], w["library_id"]) for w in winners] == [("crud", "libA-v1.0.0")]

    def test_unknown_run(self, manager):
        assert run(manager.projection.build_dashboard("2020-01-01_00-00-00")) is None

    def test_performance_changes_from_timelines(self, manager, clock):
        for p50 in (10.0, 20.0):
            run_id = run(record_run(manager, [
                ("libA-v1.0.0", "s1", "crud", make_metrics(p50)),
                ("libA-v1.0.0", "s2", "crud", make_metrics(10.0)),
            ]))
            run(manager.tracker.update_timeline(run_id, "libA-v1.0.0"))
            clock.advance(days=1)

        dashboard = run(manager.projection.build_dashboard(run_id))
        [change] = dashboard["trends"]["performance_changes"]
        assert change["scenario_id"] == "s1"
        assert change["trend"] == "degrading"
        assert change["change"] == 100.0


class TestComparisonViews:
    def test_full_and_per_category(self, manager, built):
        run_id, _ = built
        full = read_ui(manager, "comparisons", "latest-all-libraries.json")
        crud = read_ui(manager, "comparisons", "crud-only.json")

        assert full["run_id"] == run_id
        assert crud["category"] == "crud"
        assert [s["scenario_id"] for s in crud["scenarios"]] == ["insert_single", "select_by_id"]
        assert not manager.layout.ui("comparisons", "relations-only.json").exists()

    def test_skipped_without_comparison(self, manager):
        run_id = run(record_run(manager, [("libA-v1.0.0", "s1", "crud", make_metrics(1.0))]))
        report = run(manager.projection.build_all(run_id))
        assert [o.outcome for o in report.for_step("comparison-views")] == ["skipped"]

    def test_single_library_run_clears_earlier_views(self, manager, clock, built):
        clock.advance(days=1)
        run_id = run(record_run(manager, [("libA-v1.0.0", "s1", "crud", make_metrics(1.0))]))
        report = run(manager.projection.build_all(run_id))

        assert [o.outcome for o in report.for_step("comparison-views")] == ["skipped"]
        assert not manager.layout.ui("comparisons", "latest-all-libraries.json").exists()
        assert not manager.layout.ui("comparisons", "crud-only.json").exists()
        assert read_ui(manager, "latest", "dashboard.json")["latest_results"]["run_id"] == run_id


class TestLists:
    def test_lists_written(self, manager, built):
        runs = read_ui(manager, "latest", "runs-list.json")
        libraries = read_ui(manager, "latest", "libraries-list.json")
        scenarios = read_ui(manager, "latest", "scenarios-list.json")
        assert len(runs["runs"]) == 1
        assert [lib["name"] for lib in libraries["libraries"]] == ["libA", "libB"]
        assert len(scenarios["scenarios"]) == 3


def test_rebuild_is_byte_identical(manager, built):
    run_id, _ = built
    names = [
        ("latest", "index.json"),
        ("latest", "dashboard.json"),
        ("comparisons", "latest-all-libraries.json"),
        ("latest", "runs-list.json"),
    ]
    before = [manager.layout.ui(*n).read_bytes() for n in names]
    run(manager.projection.build_all(run_id))
    assert [manager.layout.ui(*n).read_bytes() for n in names] == before
