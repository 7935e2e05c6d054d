import pytest

from conftest import make_metrics, record_run, run


class TestByLibrary:
    def test_summarises_scenarios(self, manager, two_library_run):
        aggregate = run(manager.aggregator.aggregate_by_library("libB-v2.0.0", two_library_run))

        assert aggregate.library_name == "libB"
        assert aggregate.library_version == "2.0.0"
        assert [s.scenario_id for s in aggregate.scenarios] == ["insert_single", "join_posts", "select_by_id"]
        stats = aggregate.overall_stats
        assert stats.total_scenarios == 3
        assert stats.total_runs == 3
        assert stats.average_latency_p50 == pytest.approx((2.0 + 4.0 + 5.0) / 3)
        assert stats.average_throughput == pytest.approx((1000.0 + 700.0 + 300.0) / 3)
        assert aggregate.total_runs == 1
        assert aggregate.history == []

    def test_defaults_to_latest_run(self, manager, two_library_run):
        aggregate = run(manager.aggregator.aggregate_by_library("libA-v1.0.0"))
        assert aggregate.run_id == two_library_run

    def test_missing_library_is_none(self, manager, two_library_run):
        assert run(manager.aggregator.aggregate_by_library("libZ-v9.9.9", two_library_run)) is None
        assert run(manager.aggregator.load_library("libZ-v9.9.9")) is None

    def test_history_grows_across_runs(self, manager, clock):
        first = run(record_run(manager, [("libA-v1.0.0", "s1", "crud", make_metrics(2.0))]))
        run(manager.aggregator.aggregate_by_library("libA-v1.0.0", first))
        clock.advance(days=1)
        second = run(record_run(manager, [("libA-v1.0.0", "s1", "crud", make_metrics(3.0))]))
        aggregate = run(manager.aggregator.aggregate_by_library("libA-v1.0.0", second))

        assert aggregate.run_id == second
        assert [h.run_id for h in aggregate.history] == [first]
        assert aggregate.history[0].overall_stats.average_latency_p50 == 2.0
        assert aggregate.total_runs == 2
        assert aggregate.first_seen == "2025-01-15T10:30:00.000+00:00"
        assert aggregate.last_tested == "2025-01-16T10:30:00.000+00:00"


class TestIdempotence:
    def test_repeated_aggregation_is_byte_identical(self, manager, two_library_run):
        aggregator, layout = manager.aggregator, manager.layout
        paths = [
            layout.by_library("libA-v1.0.0"),
            layout.by_scenario("select_by_id"),
            layout.by_category("crud"),
        ]

        def aggregate_all():
            run(aggregator.aggregate_by_library("libA-v1.0.0", two_library_run))
            run(aggregator.aggregate_by_scenario("select_by_id", two_library_run))
            run(aggregator.aggregate_by_category("crud", two_library_run))
            return [p.read_bytes() for p in paths]

        assert aggregate_all() == aggregate_all()

    def test_only_generated_changes_with_clock(self, manager, clock, two_library_run):
        first = run(manager.aggregator.aggregate_by_library("libA-v1.0.0", two_library_run)).to_dict()
        clock.advance(minutes=5)
        second = run(manager.aggregator.aggregate_by_library("libA-v1.0.0", two_library_run)).to_dict()
        assert first.pop("generated") != second.pop("generated")
        assert first == second


class TestByScenario:
    def test_lists_every_library(self, manager, two_library_run):
        aggregate = run(manager.aggregator.aggregate_by_scenario("select_by_id", two_library_run))
        assert aggregate.category == "crud"
        assert [r.library_id for r in aggregate.library_results] == ["libA-v1.0.0", "libB-v2.0.0"]
        assert aggregate.library_results[0].metrics.latency.p50 == 1.0

    def test_unknown_scenario(self, manager, two_library_run):
        assert run(manager.aggregator.aggregate_by_scenario("nope", two_library_run)) is None


class TestByCategory:
    def test_rollup_counts_match_measurements(self, manager, two_library_run):
        aggregate = run(manager.aggregator.aggregate_by_category("crud", two_library_run))
        measured = [
            r for r in run(manager.measurements.load_all_for_run(two_library_run))
            if r.metadata.category == "crud"
        ]
        assert sum(s.scenario_count for s in aggregate.library_results) == len(measured)
        assert aggregate.scenarios == ["insert_single", "select_by_id"]

        lib_a = aggregate.for_library("libA-v1.0.0")
        assert lib_a.scenario_count == 2
        assert lib_a.average_latency_p50 == pytest.approx(2.0)
        assert lib_a.average_throughput == pytest.approx(1400.0)

    def test_category_with_one_library(self, manager, two_library_run):
        aggregate = run(manager.aggregator.aggregate_by_category("relations", two_library_run))
        assert [s.library_id for s in aggregate.library_results] == ["libB-v2.0.0"]

    def test_unknown_category(self, manager, two_library_run):
        assert run(manager.aggregator.aggregate_by_category("transactions", two_library_run)) is None


class TestAggregateRun:
    def test_sweep_reports_every_key(self, manager, two_library_run):
        report = run(manager.aggregator.aggregate_run(two_library_run))
        assert report.all_ok
        assert [o.key for o in report.for_step("by-library")] == ["libA-v1.0.0", "libB-v2.0.0"]
        assert [o.key for o in report.for_step("by-scenario")] == ["insert_single", "join_posts", "select_by_id"]
        assert [o.key for o in report.for_step("by-category")] == ["crud", "relations"]

    def test_corrupt_measurement_fails_only_its_key(self, manager, two_library_run):
        path = manager.layout.measurement(two_library_run, "libB-v2.0.0", "relations", "join_posts")
        path.write_text("{ not json")

        report = run(manager.aggregator.aggregate_run(two_library_run))
        outcomes = {(o.step, o.key): o.outcome for o in report.outcomes}
        assert outcomes == {
            ("by-library", "libA-v1.0.0"): "ok",
            ("by-library", "libB-v2.0.0"): "failed",
            ("by-scenario", "insert_single"): "ok",
            ("by-scenario", "join_posts"): "failed",
            ("by-scenario", "select_by_id"): "ok",
            ("by-category", "crud"): "ok",
            ("by-category", "relations"): "failed",
        }
        assert run(manager.aggregator.load_library("libA-v1.0.0")).run_id == two_library_run
        crud = run(manager.aggregator.load_category("crud"))
        assert [s.library_id for s in crud.library_results] == ["libA-v1.0.0", "libB-v2.0.0"]

    def test_measurement_keys_come_from_layout(self, manager, two_library_run):
        path = manager.layout.measurement(two_library_run, "libB-v2.0.0", "relations", "join_posts")
        path.write_text("{ not json")
        keys = run(manager.measurements.measurement_keys(two_library_run))
        assert ("libB-v2.0.0", "relations", "join_posts") in keys
        assert len(keys) == 5

    def test_empty_run_has_nothing_to_do(self, manager):
        report = run(manager.aggregator.aggregate_run("2020-01-01_00-00-00"))
        assert report.outcomes == []
