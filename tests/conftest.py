"""
Shared fixtures: in-memory stand-ins for the two stores and a reconciler
wired to them with sleeps recorded instead of slept.
"""
import uuid
from unittest.mock import MagicMock

import pytest
import requests

from offset_service.errors import PrimaryStoreError, TransientRemoteError
from offset_service.sync import ProjectSyncReconciler


def new_id() -> str:
    return str(uuid.uuid4())


def make_project(project_id: str | None = None, **overrides) -> dict:
    project = {
        "id": project_id or new_id(),
        "name": "Amazon Restoration",
        "coordinates": "-3.4653,-62.2159",
        "carbon_tons": 32842.1,
        "price_per_ton": 25,
        "currency": "USD",
        "project_area": 100,
        "forest_type": "Tropical Rainforest",
        "created_at": "2024-05-01T10:00:00Z",
    }
    project.update(overrides)
    return project


def make_response(status_code: int = 200, json_body=None, content: bytes | None = None) -> MagicMock:
    """A requests.Response look-alike for mocked sessions."""
    resp = MagicMock(spec=requests.Response)
    resp.status_code = status_code
    resp.ok = status_code < 400
    resp.text = "" if json_body is None else str(json_body)
    if content is not None:
        resp.content = content
    else:
        resp.content = b"" if json_body is None else b"{}"
    resp.json.return_value = json_body
    return resp


class FakeStore:
    """In-memory primary store with the SupabaseStore interface."""

    def __init__(self, projects: list[dict] | None = None):
        self.projects = {p["id"]: dict(p) for p in projects or []}
        self.carbon_data: list[dict] = []
        self.fail = False

    def _check(self):
        if self.fail:
            raise PrimaryStoreError("Supabase unavailable")

    def get_project(self, project_id):
        self._check()
        return self.projects.get(project_id)

    def list_projects(self):
        self._check()
        return list(self.projects.values())

    def list_project_ids(self):
        self._check()
        return list(self.projects.keys())

    def insert_project(self, record):
        self._check()
        saved = {**record, "id": new_id(), "created_at": "2024-05-01T10:00:00Z"}
        self.projects[saved["id"]] = saved
        return saved

    def delete_project(self, project_id):
        self._check()
        self.projects.pop(project_id, None)

    def insert_carbon_data(self, record):
        self._check()
        self.carbon_data.append(record)

    def list_carbon_data(self, project_id):
        self._check()
        return [r for r in self.carbon_data if r["project_id"] == project_id]


class FakeBackend:
    """
    In-memory analysis backend. ``create_errors`` is consumed one entry per
    create call before creates start succeeding.
    """

    def __init__(self, projects: list[dict] | None = None):
        self.projects = {p["id"]: dict(p) for p in projects or []}
        self.create_calls: list[dict] = []
        self.create_errors: list[Exception] = []
        self.delete_error: Exception | None = None
        self.get_error: Exception | None = None
        self.analysis: dict | Exception = {"ndvi_summary": {"mean": 0.75}, "carbon_stock": {"total_tons": 500}}
        self.location: dict | Exception = {"ndvi": {"mean_ndvi": 0.5}, "carbon_tons": 120}

    def get_project(self, project_id):
        if self.get_error:
            raise self.get_error
        return self.projects.get(project_id)

    def list_projects(self):
        return list(self.projects.values())

    def create_project(self, payload):
        self.create_calls.append(payload)
        if self.create_errors:
            raise self.create_errors.pop(0)
        self.projects[payload["id"]] = payload
        return {"id": payload["id"]}

    def delete_project(self, project_id):
        if self.delete_error:
            raise self.delete_error
        self.projects.pop(project_id, None)

    def analyze_project(self, project_id, lat, lon):
        if isinstance(self.analysis, Exception):
            raise self.analysis
        return self.analysis

    def test_location(self, lat, lon):
        if isinstance(self.location, Exception):
            raise self.location
        return self.location

    def download_report(self, project_id):
        return b"%PDF-1.4 report"


def transient(status_code: int = 500) -> TransientRemoteError:
    return TransientRemoteError(f"Backend request failed: {status_code}", status_code)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def reconciler(store, backend, sleeps):
    return ProjectSyncReconciler(store, backend, max_retries=3, batch_size=3, batch_delay=1.0, sleep=sleeps.append)
