import pytest
from fastapi.testclient import TestClient

from conftest import make_project, new_id, transient
from offset_service.main import app, get_backend, get_reconciler, get_store


@pytest.fixture
def client(store, backend, reconciler):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_backend] = lambda: backend
    app.dependency_overrides[get_reconciler] = lambda: reconciler
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_forest_types(client):
    types = client.get("/forest/types").json()["forest_types"]
    assert "Tropical Rainforest" in types


def test_forest_biomass_lookup(client):
    body = client.get("/forest/biomass", params={"forest_type": "Tropical Evergreen"}).json()
    assert body["match"] == "alias"
    assert body["biomass_per_hectare"] == 280
    assert body["entry"]["forest_type"] == "Tropical Rainforest"


def test_calculate(client):
    resp = client.post("/carbon/calculate", json={"area": 100, "forest_type": "Tropical Rainforest"})
    assert resp.status_code == 200
    assert resp.json()["carbon_credits"] == pytest.approx(32842.1)
    assert resp.json()["match"] == "exact"


def test_calculate_requires_area(client):
    assert client.post("/carbon/calculate", json={"forest_type": "Boreal Forest"}).status_code == 422


def test_breakdown(client):
    body = client.post("/carbon/breakdown", json={"area": 10, "forest_type": "Nowhere"}).json()
    assert body["match"] == "default"
    assert body["biomass_per_ha"] == 150


def test_portfolio(client):
    body = client.post("/carbon/portfolio", json={"projects": [
        {"id": "a", "project_area": 100, "forest_type": "Tropical Rainforest"},
        {"id": "b", "project_area": None, "forest_type": None},
    ]}).json()

    assert [row["id"] for row in body["rows"]] == ["a", "b"]
    assert body["rows"][1]["carbon_credits"] == 0.0
    assert body["total_credits"] == pytest.approx(32842.1)


def test_sync_status_invalid_id(client):
    resp = client.get("/sync/status/not-a-uuid")
    assert resp.status_code == 400
    assert "Invalid project ID" in resp.json()["detail"]


def test_sync_project_and_status(client, store):
    project = make_project()
    store.projects[project["id"]] = project

    assert client.get(f"/sync/status/{project['id']}").json()["needs_sync"] is True

    result = client.post(f"/sync/projects/{project['id']}").json()
    assert result["success"] is True

    status = client.get(f"/sync/status/{project['id']}").json()
    assert status["backend_exists"] is True
    assert status["needs_sync"] is False


def test_ensure_sync(client, store):
    project = make_project()
    store.projects[project["id"]] = project
    assert client.post(f"/sync/ensure/{project['id']}").json()["synced"] is True


def test_batch_sync(client, store):
    project = make_project()
    store.projects[project["id"]] = project

    body = client.post("/sync/batch", json={"project_ids": [project["id"], new_id()]}).json()

    assert body["total"] == 2
    assert body["successful"] == 1
    assert [r["project_id"] for r in body["results"]][0] == project["id"]


def test_sync_all_and_consistency(client, store):
    for _ in range(3):
        p = make_project()
        store.projects[p["id"]] = p

    assert client.get("/sync/consistency").json()["consistent"] is False
    assert client.post("/sync/all").json()["successful"] == 3
    assert client.get("/sync/consistency").json()["consistent"] is True


def test_consistency_primary_store_down(client, store):
    store.fail = True
    assert client.get("/sync/consistency").status_code == 502


def test_create_project(client, store, backend):
    resp = client.post("/projects", json={
        "name": "Mau Forest",
        "coordinates": "-0.5,35.7",
        "project_area": 50,
        "forest_type": "Tropical Moist Forest",
    })

    assert resp.status_code == 201
    body = resp.json()
    assert body["sync"]["success"] is True
    assert body["project"]["id"] in backend.projects


def test_create_project_rejects_bad_coordinates(client):
    resp = client.post("/projects", json={"name": "X", "coordinates": "not,valid"})
    assert resp.status_code == 400


def test_delete_project(client, store, backend):
    project = make_project()
    store.projects[project["id"]] = project
    backend.projects[project["id"]] = {"id": project["id"]}

    body = client.delete(f"/projects/{project['id']}").json()
    assert body["deleted"] is True
    assert body["backend_deleted"] is True


def test_delete_missing_project(client):
    assert client.delete(f"/projects/{new_id()}").status_code == 404


def test_analyze_project(client, store):
    project = make_project()
    store.projects[project["id"]] = project

    body = client.post(f"/projects/{project['id']}/analyze").json()
    assert body["project_id"] == project["id"]
    assert body["data_source"] == "project_analysis"


def test_analyze_failure_is_bad_gateway(client, store, backend):
    project = make_project()
    store.projects[project["id"]] = project
    backend.analysis = transient(500)
    backend.location = transient(500)

    assert client.post(f"/projects/{project['id']}/analyze").status_code == 502


def test_analyze_unknown_project(client):
    assert client.post(f"/projects/{new_id()}/analyze").status_code == 404


def test_report_download(client, store):
    project = make_project(name="Amazon Restoration")
    store.projects[project["id"]] = project

    resp = client.get(f"/projects/{project['id']}/report")

    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert "amazon-restoration-report.pdf" in resp.headers["content-disposition"]
    assert resp.content.startswith(b"%PDF")


def test_satellite_test_location(client):
    body = client.get("/satellite/test-location", params={"lat": 1.0, "lon": 2.0}).json()
    assert body["data_source"] == "coordinates"


def test_satellite_test_location_out_of_range(client):
    assert client.get("/satellite/test-location", params={"lat": 95, "lon": 2.0}).status_code == 400
