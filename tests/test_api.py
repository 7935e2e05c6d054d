import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_manager
from api.main import app

from conftest import run


@pytest.fixture
def client(manager):
    app.dependency_overrides[get_manager] = lambda: manager
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def aggregated(manager, two_library_run):
    run(manager.generate_all_aggregations(two_library_run))
    return two_library_run


class TestHealth:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "ORM Benchmark Results API"
        assert data["endpoints"]["dashboard"] == "/api/v1/dashboard"

    def test_health_before_any_run(self, client):
        data = client.get("/health").json()
        assert data["status"] == "healthy"
        assert data["results_available"] is False
        assert data["message"]

    def test_health_with_runs(self, client, two_library_run):
        data = client.get("/health").json()
        assert data["results_available"] is True
        assert data["message"] is None


class TestEmptyStore:
    @pytest.mark.parametrize("url", [
        "/api/v1/index",
        "/api/v1/dashboard",
        "/api/v1/runs",
        "/api/v1/runs/2025-01-15_10-30-00",
        "/api/v1/comparisons/latest",
        "/api/v1/libraries/libA-v1.0.0",
        "/api/v1/libraries/libA-v1.0.0/timeline",
        "/api/v1/scenarios/select_by_id",
        "/api/v1/categories/crud",
    ])
    def test_not_found(self, client, url):
        response = client.get(url)
        assert response.status_code == 404
        assert response.json()["detail"].endswith("not found")


class TestDocuments:
    def test_index_and_dashboard(self, client, aggregated):
        index = client.get("/api/v1/index").json()
        assert index["latest_run"]["run_id"] == aggregated
        dashboard = client.get("/api/v1/dashboard").json()
        assert dashboard["latest_results"]["run_id"] == aggregated

    def test_runs(self, client, aggregated):
        runs = client.get("/api/v1/runs").json()
        assert runs["newest_run"] == aggregated
        metadata = client.get(f"/api/v1/runs/{aggregated}").json()
        assert metadata["status"] == "completed"
        assert client.get("/api/v1/runs/2020-01-01_00-00-00").status_code == 404

    def test_comparisons(self, client, aggregated):
        latest = client.get("/api/v1/comparisons/latest").json()
        assert latest["overall_winner"]["library_id"] == "libA-v1.0.0"
        crud = client.get("/api/v1/comparisons/crud").json()
        assert crud["category"] == "crud"
        # libB alone ran relations, so nothing was compared there
        assert client.get("/api/v1/comparisons/relations").status_code == 404

    def test_aggregates(self, client, aggregated):
        library = client.get("/api/v1/libraries/libB-v2.0.0").json()
        assert library["overall_stats"]["total_scenarios"] == 3
        timeline = client.get("/api/v1/libraries/libB-v2.0.0/timeline").json()
        assert [dp["run_id"] for dp in timeline["data_points"]] == [aggregated]
        scenario = client.get("/api/v1/scenarios/select_by_id").json()
        assert len(scenario["library_results"]) == 2
        category = client.get("/api/v1/categories/relations").json()
        assert category["scenarios"] == ["join_posts"]

    @pytest.mark.parametrize("url", [
        "/api/v1/libraries/-libA",
        "/api/v1/scenarios/.hidden",
        "/api/v1/categories/cr%20ud",
    ])
    def test_rejects_malformed_ids(self, client, aggregated, url):
        assert client.get(url).status_code == 422
