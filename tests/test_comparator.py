import pytest

from ormbench.comparison.comparator import compare_scenario, overall_winner

from conftest import make_metrics, record_run, run


class TestScenarioWinner:
    def test_delta_is_against_runner_up(self, manager):
        run_id = run(record_run(manager, [
            ("libA-v1.0.0", "s1", "crud", make_metrics(5.0)),
            ("libB-v1.0.0", "s1", "crud", make_metrics(3.0)),
            ("libC-v1.0.0", "s1", "crud", make_metrics(10.0)),
        ]))
        comparison = run(manager.comparator.compare_libraries(run_id))
        s1 = comparison.scenario("s1")

        assert s1.winner == "libB-v1.0.0"
        assert s1.runner_up == "libA-v1.0.0"
        assert s1.winner_reason == "latency_p50"
        assert s1.deltas.latency_p50.absolute == pytest.approx(2.0)
        assert s1.deltas.latency_p50.percentage == pytest.approx(66.667, abs=1e-3)
        assert s1.deltas.latency_p50.better == "libB-v1.0.0"

    def test_throughput_delta_favours_higher_rps(self, manager):
        run_id = run(record_run(manager, [
            ("libA-v1.0.0", "s1", "crud", make_metrics(1.0, rps=500.0)),
            ("libB-v1.0.0", "s1", "crud", make_metrics(2.0, rps=1000.0)),
        ]))
        s1 = run(manager.comparator.compare_libraries(run_id)).scenario("s1")
        assert s1.winner == "libA-v1.0.0"
        assert s1.deltas.throughput.better == "libB-v1.0.0"

    def test_single_library_scenarios_are_not_compared(self, manager, two_library_run):
        comparison = run(manager.comparator.compare_libraries(two_library_run))
        assert [s.scenario_id for s in comparison.scenarios] == ["insert_single", "select_by_id"]
        assert comparison.scenario("join_posts") is None
        assert comparison.summary.categories_compared == ["crud"]

    def test_needs_two_libraries(self, manager):
        run_id = run(record_run(manager, [("libA-v1.0.0", "s1", "crud", make_metrics(1.0))]))
        assert run(manager.comparator.compare_libraries(run_id)) is None
        assert run(manager.comparator.compare_libraries("2020-01-01_00-00-00")) is None

    def test_unmeasured_results_are_not_ranked(self, manager):
        failed = make_metrics(0.0, rps=0.0, errors=1, total_requests=0)
        run_id = run(record_run(manager, [
            ("libA-v1.0.0", "s1", "crud", make_metrics(1.0)),
            ("libA-v1.0.0", "s2", "crud", make_metrics(1.0)),
            ("libB-v1.0.0", "s1", "crud", make_metrics(2.0)),
            ("libX-v1.0.0", "s1", "crud", failed),
            ("libX-v1.0.0", "s2", "crud", failed),
        ]))
        comparison = run(manager.comparator.compare_libraries(run_id))

        assert [lib.id for lib in comparison.libraries] == ["libA-v1.0.0", "libB-v1.0.0", "libX-v1.0.0"]
        assert [s.scenario_id for s in comparison.scenarios] == ["s1"]
        s1 = comparison.scenario("s1")
        assert (s1.winner, s1.runner_up) == ("libA-v1.0.0", "libB-v1.0.0")
        assert [r.library_id for r in s1.results] == ["libA-v1.0.0", "libB-v1.0.0"]
        assert comparison.overall_winner.library_id == "libA-v1.0.0"

    def test_one_measured_library_is_not_a_comparison(self, manager):
        run_id = run(record_run(manager, [
            ("libA-v1.0.0", "s1", "crud", make_metrics(1.0)),
            ("libX-v1.0.0", "s1", "crud", make_metrics(0.0, rps=0.0, errors=1, total_requests=0)),
        ]))
        assert run(manager.comparator.compare_libraries(run_id)) is None


class TestOverallWinner:
    def test_most_wins(self, manager, two_library_run):
        comparison = run(manager.comparator.compare_libraries(two_library_run))
        winner = comparison.overall_winner
        assert winner.library_id == "libA-v1.0.0"
        assert (winner.wins, winner.losses, winner.ties) == (2, 0, 0)
        assert [c.category for c in winner.categories] == ["crud"]

    def test_equal_wins_go_to_first_id(self, manager):
        run_id = run(record_run(manager, [
            ("libB-v1.0.0", "s1", "crud", make_metrics(1.0)),
            ("libA-v1.0.0", "s1", "crud", make_metrics(2.0)),
            ("libB-v1.0.0", "s2", "crud", make_metrics(2.0)),
            ("libA-v1.0.0", "s2", "crud", make_metrics(1.0)),
        ]))
        winner = run(manager.comparator.compare_libraries(run_id)).overall_winner
        assert winner.library_id == "libA-v1.0.0"
        assert (winner.wins, winner.losses) == (1, 1)

    def test_shared_best_counts_as_tie(self, manager):
        run_id = run(record_run(manager, [
            ("libA-v1.0.0", "s1", "crud", make_metrics(1.0)),
            ("libB-v1.0.0", "s1", "crud", make_metrics(1.0)),
            ("libA-v1.0.0", "s2", "crud", make_metrics(3.0)),
            ("libB-v1.0.0", "s2", "crud", make_metrics(1.0)),
            ("libA-v1.0.0", "s3", "crud", make_metrics(3.0)),
            ("libB-v1.0.0", "s3", "crud", make_metrics(1.0)),
        ]))
        winner = run(manager.comparator.compare_libraries(run_id)).overall_winner
        # libA takes s1 on the id tie-break; libB wins s2 and s3
        assert winner.library_id == "libB-v1.0.0"
        assert (winner.wins, winner.losses, winner.ties) == (2, 0, 1)

    def test_no_scenarios_no_winner(self):
        assert overall_winner([], ["libA", "libB"]) is None


class TestStoredComparison:
    def test_written_for_run_and_latest(self, manager, two_library_run):
        run(manager.comparator.compare_libraries(two_library_run))
        assert manager.layout.library_comparison(two_library_run).exists()

        latest = run(manager.comparator.load_library_comparison())
        by_run = run(manager.comparator.load_library_comparison(two_library_run))
        assert latest == by_run
        assert latest.comparison_id == f"{two_library_run}-library-comparison"
        assert [lib.id for lib in latest.libraries] == ["libA-v1.0.0", "libB-v2.0.0"]

    def test_summary(self, manager, two_library_run):
        summary = run(manager.comparator.compare_libraries(two_library_run)).summary
        # select_by_id: 1.0 vs 2.0 (100%), insert_single: 3.0 vs 4.0 (33.3%)
        assert summary.total_scenarios == 2
        assert summary.significant_differences == 2
        assert summary.average_performance_diff == pytest.approx((100.0 + 100.0 / 3) / 2)


class TestVersionComparison:
    def test_first_to_last_version(self, manager):
        run(record_run(manager, [
            ("orm-v1.0.0", "s1", "crud", make_metrics(10.0)),
            ("orm-v2.0.0", "s1", "crud", make_metrics(12.0)),
            ("orm-v1.0.0", "s2", "crud", make_metrics(10.0)),
            ("orm-v2.0.0", "s2", "crud", make_metrics(10.5)),
            ("orm-v1.0.0", "s3", "crud", make_metrics(10.0)),
        ]))
        comparison = run(manager.comparator.compare_versions("orm", ["1.0.0", "2.0.0"]))

        assert [s.scenario_id for s in comparison.scenarios] == ["s1", "s2"]
        s1, s2 = comparison.scenarios
        assert s1.trend == "degrading"
        assert s1.change_percentage == pytest.approx(20.0)
        assert s2.trend == "stable"
        assert (comparison.improvement_count, comparison.regression_count, comparison.no_change_count) == (0, 1, 1)
        assert comparison.significant_changes[0].type == "regression"
        assert manager.layout.version_comparison("orm", ["1.0.0", "2.0.0"]).exists()

    def test_needs_two_versions(self, manager):
        with pytest.raises(ValueError):
            run(manager.comparator.compare_versions("orm", ["1.0.0"]))

    def test_unknown_version_has_no_common_scenarios(self, manager):
        run(record_run(manager, [("orm-v1.0.0", "s1", "crud", make_metrics(10.0))]))
        comparison = run(manager.comparator.compare_versions("orm", ["1.0.0", "9.9.9"]))
        assert comparison.scenarios == []


class TestRunComparison:
    def test_changes_between_runs(self, manager, clock):
        before = run(record_run(manager, [
            ("libA-v1.0.0", "s1", "crud", make_metrics(10.0)),
            ("libA-v1.0.0", "s2", "crud", make_metrics(10.0)),
            ("libB-v1.0.0", "s1", "crud", make_metrics(5.0)),
        ]))
        clock.advance(days=1)
        after = run(record_run(manager, [
            ("libA-v1.0.0", "s1", "crud", make_metrics(8.0)),
            ("libA-v1.0.0", "s2", "crud", make_metrics(10.2)),
            ("libA-v1.0.0", "s3", "crud", make_metrics(1.0)),
            ("libC-v1.0.0", "s1", "crud", make_metrics(5.0)),
        ]))
        comparison = run(manager.comparator.compare_runs(before, after))

        assert [lib.library_id for lib in comparison.libraries] == ["libA-v1.0.0"]
        deltas = comparison.libraries[0].scenarios
        assert [d.scenario_id for d in deltas] == ["s1", "s2"]
        assert deltas[0].latency_change_pct == pytest.approx(-20.0)
        assert deltas[0].trend == "improving"
        assert (comparison.improved, comparison.degraded, comparison.stable) == (1, 0, 1)
        assert manager.layout.run_comparison(before, after).exists()

    def test_no_common_library(self, manager, clock):
        before = run(record_run(manager, [("libA-v1.0.0", "s1", "crud", make_metrics(1.0))]))
        clock.advance(days=1)
        after = run(record_run(manager, [("libB-v1.0.0", "s1", "crud", make_metrics(1.0))]))
        assert run(manager.comparator.compare_runs(before, after)) is None


def test_compare_scenario_is_order_independent(manager, two_library_run):
    results = run(manager.measurements.load_all_for_scenario(two_library_run, "select_by_id"))
    assert compare_scenario(results) == compare_scenario(list(reversed(results)))
