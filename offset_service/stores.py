"""
Clients for the two stores a project lives in.

``SupabaseStore`` is the primary store of record, reached through Supabase's
PostgREST endpoint. ``AnalysisBackendClient`` is the secondary analysis
backend that keeps a copy of each project for satellite processing.

Both take an optional ``requests.Session`` so tests can hand in a mock.
"""
import logging
import requests

from offset_service.errors import (
    ConflictError,
    PermanentRemoteError,
    PrimaryStoreError,
    RemoteServiceError,
    TransientRemoteError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
JSON_HEADERS = {"Content-Type": "application/json"}


class SupabaseStore:
    """CRUD by id on the ``projects`` and ``carbon_data`` tables."""

    def __init__(self, url: str, api_key: str, session: requests.Session | None = None,
                 timeout: float = DEFAULT_TIMEOUT):
        self.rest_url = f"{url.rstrip('/')}/rest/v1"
        self.session = session or requests.Session()
        self.timeout = timeout
        self.headers = {
            **JSON_HEADERS,
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
        }

    def _request(self, method: str, table: str, params: dict | None = None,
                 json: dict | None = None, headers: dict | None = None):
        url = f"{self.rest_url}/{table}"
        try:
            resp = self.session.request(
                method,
                url,
                params=params,
                json=json,
                headers={**self.headers, **(headers or {})},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise PrimaryStoreError(f"Supabase request failed: {e}") from e

        if not resp.ok:
            raise PrimaryStoreError(f"Supabase {method} {table} failed: {resp.status_code} - {resp.text}")

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise PrimaryStoreError(f"Supabase {method} {table} returned a non-JSON response") from e

    def get_project(self, project_id: str) -> dict | None:
        rows = self._request("GET", "projects", params={"id": f"eq.{project_id}", "select": "*"})
        return rows[0] if rows else None

    def list_projects(self) -> list[dict]:
        return self._request("GET", "projects", params={"select": "*", "order": "created_at.desc"}) or []

    def list_project_ids(self) -> list[str]:
        rows = self._request("GET", "projects", params={"select": "id"}) or []
        return [row["id"] for row in rows]

    def insert_project(self, record: dict) -> dict:
        rows = self._request("POST", "projects", json=record, headers={"Prefer": "return=representation"})
        if not rows:
            raise PrimaryStoreError("Supabase insert returned no project")
        return rows[0]

    def delete_project(self, project_id: str) -> None:
        self._request("DELETE", "projects", params={"id": f"eq.{project_id}"})

    def insert_carbon_data(self, record: dict) -> None:
        self._request("POST", "carbon_data", json=record)

    def list_carbon_data(self, project_id: str) -> list[dict]:
        return self._request(
            "GET",
            "carbon_data",
            params={"project_id": f"eq.{project_id}", "select": "*", "order": "measurement_date.asc"},
        ) or []


def raise_for_backend_status(resp: requests.Response) -> None:
    """
    Map an analysis-backend response onto the error taxonomy:
    409 conflict, 429/5xx transient, any other 4xx permanent.
    """
    if resp.ok:
        return

    message = f"Backend request failed: {resp.status_code} - {resp.text}"
    if resp.status_code == 409:
        raise ConflictError(message, resp.status_code)
    if resp.status_code == 429 or resp.status_code >= 500:
        raise TransientRemoteError(message, resp.status_code)
    if resp.status_code >= 400:
        raise PermanentRemoteError(message, resp.status_code)
    raise RemoteServiceError(message, resp.status_code)


def _json_body(resp: requests.Response, expected: type | tuple | None = None):
    """
    Decode a 2xx backend body. A body that is not JSON (an HTML proxy page,
    say) or not of the ``expected`` type is a permanent backend error.
    """
    try:
        data = resp.json()
    except ValueError as e:
        raise PermanentRemoteError(f"Backend returned a non-JSON response: {e}", resp.status_code) from e
    if expected is not None and not isinstance(data, expected):
        raise PermanentRemoteError(
            f"Backend returned an unexpected {type(data).__name__} response", resp.status_code
        )
    return data


class AnalysisBackendClient:
    """JSON-over-HTTPS client for the analysis backend."""

    def __init__(self, base_url: str, session: requests.Session | None = None,
                 timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        logger.debug(f"{method} {url}")
        try:
            return self.session.request(method, url, headers=JSON_HEADERS, timeout=self.timeout, **kwargs)
        except requests.Timeout as e:
            raise TransientRemoteError("Sync request timed out") from e
        except requests.RequestException as e:
            raise RemoteServiceError(f"Backend request failed: {e}") from e

    def get_project(self, project_id: str) -> dict | None:
        resp = self._request("GET", f"/projects/{project_id}")
        if resp.status_code == 404:
            return None
        raise_for_backend_status(resp)
        return _json_body(resp, dict)

    def list_projects(self) -> list[dict]:
        resp = self._request("GET", "/projects")
        raise_for_backend_status(resp)
        data = _json_body(resp, (list, dict))
        # some deployments wrap the list
        if isinstance(data, dict):
            data = data.get("projects") or []
        if not isinstance(data, list):
            raise PermanentRemoteError("Backend returned an unexpected project list", resp.status_code)
        return [p for p in data if isinstance(p, dict)]

    def create_project(self, payload: dict) -> dict:
        resp = self._request("POST", "/projects", json=payload)
        raise_for_backend_status(resp)
        return _json_body(resp, dict) if resp.content else {}

    def delete_project(self, project_id: str) -> None:
        resp = self._request("DELETE", f"/projects/{project_id}")
        if resp.status_code == 404:
            return
        raise_for_backend_status(resp)

    def analyze_project(self, project_id: str, lat: float, lon: float) -> dict:
        resp = self._request("POST", f"/projects/{project_id}/analyze", json={"lat": lat, "lng": lon})
        raise_for_backend_status(resp)
        return _json_body(resp, dict)

    def download_report(self, project_id: str) -> bytes:
        resp = self._request("GET", f"/projects/{project_id}/report")
        raise_for_backend_status(resp)
        return resp.content

    def get_ndvi(self, project_id: str, start_date: str | None = None, end_date: str | None = None) -> dict:
        params = {k: v for k, v in {"start_date": start_date, "end_date": end_date}.items() if v}
        resp = self._request("GET", f"/projects/{project_id}/ndvi", params=params)
        raise_for_backend_status(resp)
        return _json_body(resp, dict)

    def test_location(self, lat: float, lon: float) -> dict:
        resp = self._request("GET", "/satellite/test-location", params={"lat": lat, "lon": lon})
        raise_for_backend_status(resp)
        return _json_body(resp, dict)

    def get_currencies(self) -> dict:
        resp = self._request("GET", "/currencies")
        raise_for_backend_status(resp)
        return _json_body(resp, dict)
