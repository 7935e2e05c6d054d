import pytest

from ormbench.core.models import RawMeasurement, TestConfiguration

from conftest import library, make_metrics, record_run, run, scenario


@pytest.fixture
def session(manager):
    return run(manager.ledger.start_run(
        library_ids=["libA-v1.0.0"],
        scenario_ids=["select_by_id"],
        categories=["crud"],
        config=TestConfiguration(),
    ))


class TestSave:
    def test_path_follows_key(self, manager, session):
        path = run(manager.measurements.save(
            session, library("libA-v1.0.0"), scenario("select_by_id"), make_metrics(1.0),
            TestConfiguration(),
        ))
        assert path == manager.layout.measurement(session.run_id, "libA-v1.0.0", "crud", "select_by_id")
        assert path.exists()

    def test_same_key_overwrites(self, manager, session):
        lib, scn = library("libA-v1.0.0"), scenario("select_by_id")
        run(manager.measurements.save(session, lib, scn, make_metrics(1.0), TestConfiguration()))
        run(manager.measurements.save(session, lib, scn, make_metrics(7.0), TestConfiguration()))

        stored = run(manager.measurements.load_all_for_run(session.run_id))
        assert len(stored) == 1
        assert stored[0].metrics.latency.p50 == 7.0

    def test_failed_measurement_is_still_saved(self, manager, session):
        metrics = make_metrics(0.0, errors=100, total_requests=0)
        run(manager.measurements.save(
            session, library("libA-v1.0.0"), scenario("select_by_id"), metrics, TestConfiguration(),
        ))
        result = run(manager.measurements.load(session.run_id, "libA-v1.0.0", "crud", "select_by_id"))
        assert result.metrics.errors.count == 100
        assert result.metadata.success is False
        assert result.metadata.error == "Errors occurred during test"

    def test_raw_data_only_on_request(self, manager, session):
        raw = [RawMeasurement(iteration=0, timestamp=1.0, latency_ms=0.5)]
        lib = library("libA-v1.0.0")
        run(manager.measurements.save(
            session, lib, scenario("s1"), make_metrics(1.0), TestConfiguration(), raw_data=raw,
        ))
        run(manager.measurements.save(
            session, lib, scenario("s2"), make_metrics(1.0), TestConfiguration(),
            raw_data=raw, include_raw_data=True,
        ))
        assert run(manager.measurements.load(session.run_id, lib.id, "crud", "s1")).raw_data is None
        assert run(manager.measurements.load(session.run_id, lib.id, "crud", "s2")).raw_data == raw

    def test_save_by_run_id_uses_run_environment(self, manager, session):
        run(manager.measurements.save(
            session.run_id, library("libA-v1.0.0"), scenario("s1"), make_metrics(1.0),
            TestConfiguration(),
        ))
        result = run(manager.measurements.load(session.run_id, "libA-v1.0.0", "crud", "s1"))
        assert result.metadata.environment == session.metadata.environment


class TestQueries:
    def test_lookups(self, manager, two_library_run):
        store = manager.measurements
        assert run(store.library_ids(two_library_run)) == ["libA-v1.0.0", "libB-v2.0.0"]
        assert len(run(store.load_all_for_run(two_library_run))) == 5
        assert len(run(store.load_all_for_library(two_library_run, "libB-v2.0.0"))) == 3

        by_scenario = run(store.load_all_for_scenario(two_library_run, "select_by_id"))
        assert sorted(r.metadata.library_id for r in by_scenario) == ["libA-v1.0.0", "libB-v2.0.0"]
        assert len(run(store.load_all_for_scenario(two_library_run, "join_posts"))) == 1

    def test_absence_is_empty(self, manager):
        store = manager.measurements
        assert run(store.load_all_for_run("2020-01-01_00-00-00")) == []
        assert run(store.load_all_for_library("2020-01-01_00-00-00", "libA")) == []
        assert run(store.load("2020-01-01_00-00-00", "libA", "crud", "s1")) is None
        assert run(store.latest_run_id()) is None

    def test_runs_newest_first(self, manager, clock):
        first = run(record_run(manager, [("libA-v1.0.0", "s1", "crud", make_metrics(1.0))]))
        clock.advance(days=1)
        second = run(record_run(manager, [("libA-v1.0.0", "s1", "crud", make_metrics(1.0))]))
        assert run(manager.measurements.list_runs()) == [second, first]
        assert run(manager.measurements.latest_run_id()) == second

        run(manager.measurements.delete_run(second))
        assert not run(manager.measurements.run_exists(second))
        assert run(manager.measurements.latest_run_id()) == first
