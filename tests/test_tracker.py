import pytest

from ormbench.history import Severity
from ormbench.history.tracker import regression_severity

from conftest import make_metrics, record_run, run


def timeline_runs(manager, clock, series, library_id="libA-v1.0.0", rps=None):
    """One run per value of *series* ({scenario: [p50, ...]}); timelines updated after each."""
    steps = len(next(iter(series.values())))
    run_ids = []
    for i in range(steps):
        if i:
            clock.advance(days=1)
        entries = [
            (library_id, scenario_id, "crud", make_metrics(values[i], rps=rps[i] if rps else 1000.0))
            for scenario_id, values in series.items()
        ]
        run_id = run(record_run(manager, entries))
        run(manager.tracker.update_timeline(run_id, library_id))
        run_ids.append(run_id)
    return run_ids


class TestSeverity:
    @pytest.mark.parametrize("change,expected", [
        (10.0, None),
        (10.1, Severity.MINOR),
        (25.0, Severity.MINOR),
        (25.1, Severity.WARNING),
        (50.0, Severity.WARNING),
        (50.1, Severity.CRITICAL),
        (-80.0, None),
    ])
    def test_boundaries(self, change, expected):
        assert regression_severity(change) is expected

    def test_rank_orders_most_severe_first(self):
        assert Severity.CRITICAL.rank < Severity.WARNING.rank < Severity.MINOR.rank


class TestTimeline:
    def test_trend_uses_endpoints_only(self, manager, clock):
        timeline_runs(manager, clock, {"s1": [10.0, 5.0, 20.0]})
        timeline = run(manager.tracker.load_timeline("libA-v1.0.0"))

        trend = timeline.trend_for("s1")
        assert trend.latency_change == 100.0
        assert trend.trend == "degrading"
        assert trend.data_points == 3
        assert trend.avg_latency_p50 == pytest.approx(35.0 / 3)

    def test_single_point_has_no_trend(self, manager, clock):
        timeline_runs(manager, clock, {"s1": [10.0]})
        timeline = run(manager.tracker.load_timeline("libA-v1.0.0"))
        assert len(timeline.data_points) == 1
        assert timeline.trends == []
        assert timeline.regressions == []

    def test_same_run_replaces_its_point(self, manager, clock):
        [run_id] = timeline_runs(manager, clock, {"s1": [10.0]})
        run(manager.tracker.update_timeline(run_id, "libA-v1.0.0"))
        timeline = run(manager.tracker.load_timeline("libA-v1.0.0"))
        assert [dp.run_id for dp in timeline.data_points] == [run_id]

    def test_missing_library(self, manager, two_library_run):
        assert run(manager.tracker.update_timeline(two_library_run, "libZ-v1.0.0")) is None
        assert run(manager.tracker.load_timeline("libZ-v1.0.0")) is None

    def test_update_timelines_sweep(self, manager, two_library_run):
        report = run(manager.tracker.update_timelines(
            two_library_run, ["libA-v1.0.0", "libB-v2.0.0", "libZ-v1.0.0"]
        ))
        assert [o.outcome for o in report.outcomes] == ["ok", "ok", "skipped"]


class TestRegressions:
    def test_alerts_at_each_threshold(self, manager, clock):
        _, latest = timeline_runs(manager, clock, {
            "s_flat": [100.0, 110.0],
            "s_minor": [100.0, 110.1],
            "s_warning": [100.0, 125.1],
            "s_critical": [100.0, 150.1],
            "s_faster": [100.0, 50.0],
        })
        alerts = run(manager.tracker.detect_regressions(latest))

        assert [(a.scenario_id, a.severity) for a in alerts] == [
            ("s_critical", "critical"),
            ("s_warning", "warning"),
            ("s_minor", "minor"),
        ]
        assert all(a.metric == "latency" and a.to_run == latest for a in alerts)

    def test_throughput_drop_is_a_regression(self, manager, clock):
        _, latest = timeline_runs(manager, clock, {"s1": [10.0, 10.0]}, rps=[1000.0, 700.0])
        [alert] = run(manager.tracker.detect_regressions(latest))
        assert alert.metric == "throughput"
        assert alert.severity == "warning"
        assert alert.change_percentage == pytest.approx(30.0)

    def test_only_alerts_raised_by_the_run(self, manager, clock):
        first, _ = timeline_runs(manager, clock, {"s1": [10.0, 20.0]})
        assert run(manager.tracker.detect_regressions(first)) == []

    def test_report_grouped_by_severity(self, manager, clock):
        _, latest = timeline_runs(manager, clock, {"s1": [100.0, 200.0], "s2": [100.0, 115.0]})
        report = run(manager.tracker.write_regression_report(latest))

        assert report["summary"] == {"total": 2, "critical": 1, "warning": 0, "minor": 1}
        assert [g["severity"] for g in report["regressions"]] == ["critical", "warning", "minor"]
        assert manager.layout.ui("historical", "regression-alerts.json").exists()


class TestWeeklySummary:
    def test_counts_runs_of_last_seven_days(self, manager, clock):
        run(record_run(manager, [("libA-v1.0.0", "s1", "crud", make_metrics(1.0))]))
        clock.advance(days=10)
        recent = run(record_run(manager, [
            ("libA-v1.0.0", "s1", "crud", make_metrics(2.0, rps=500.0)),
            ("libA-v1.0.0", "s2", "crud", make_metrics(4.0, rps=300.0)),
        ]))
        summary = run(manager.tracker.weekly_summary())

        assert summary["runs"] == [recent]
        assert summary["libraries"] == [{
            "library_id": "libA-v1.0.0",
            "runs": 1,
            "average_latency_p50": 3.0,
            "average_throughput": 400.0,
        }]
