"""
Keeps the analysis backend eventually consistent with the primary store.

The primary (Supabase) store is the source of truth: a project missing from
the backend is "unsynced", never the reverse. Nothing here is transactional.
Each call recomputes state from both stores and is safe to re-run.

Per-project states, observed rather than stored:

    UNKNOWN -> ABSENT                                  (not in primary, nothing to do)
            -> PRESENT_PRIMARY_ONLY -> SYNCED | SYNC_FAILED

SYNC_FAILED on a transient error (5xx, 429, timeout) is retried with
exponential backoff up to the attempt bound before it is reported.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

from offset_service.errors import (
    ConflictError,
    PrimaryStoreError,
    ProjectValidationError,
    RemoteServiceError,
    TransientRemoteError,
)
from offset_service.retry import exponential_backoff, retry_call
from offset_service.schemas import (
    ConsistencyReport,
    EnsureSyncResult,
    SyncResult,
    SyncStatus,
    SyncSummary,
)
from offset_service.stores import AnalysisBackendClient, SupabaseStore
from utils.functions.validation import parse_coordinates, validate_project_id

logger = logging.getLogger(__name__)

DEFAULT_PRICE_PER_TON = 25
DEFAULT_CURRENCY = "USD"


def to_backend_payload(project: dict) -> dict:
    """
    Translate a primary-store project row into the backend's schema.
    The "lat,lon" string is split into numeric latitude/longitude fields.
    """
    lat, lon = parse_coordinates(project.get("coordinates"))

    return {
        "id": project["id"],
        "name": project.get("name"),
        "coordinates": project.get("coordinates"),
        "carbon_tons": project.get("carbon_tons"),
        "price_per_ton": project.get("price_per_ton") or DEFAULT_PRICE_PER_TON,
        "currency": project.get("currency") or DEFAULT_CURRENCY,
        "latitude": lat,
        "longitude": lon,
        "project_area": project.get("project_area"),
        "forest_type": project.get("forest_type"),
        "created_at": project.get("created_at"),
        "sync_source": "supabase",
    }

def _backend_id(record, project_id: str) -> str:
    # the backend echoes the shared id; anything else falls back to ours
    if isinstance(record, dict) and record.get("id"):
        return str(record["id"])
    return project_id

def summarize(results: list[SyncResult]) -> SyncSummary:
    successful = sum(1 for r in results if r.success)
    return SyncSummary(
        total=len(results),
        successful=successful,
        failed=len(results) - successful,
        results=results,
    )


class ProjectSyncReconciler:

    def __init__(
        self,
        store: SupabaseStore,
        backend: AnalysisBackendClient,
        max_retries: int = 3,
        batch_size: int = 3,
        batch_delay: float = 1.0,
        backoff: Callable[[int], float] = exponential_backoff,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.backend = backend
        self.max_retries = max_retries
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.backoff = backoff
        self.sleep = sleep

    def check_project_sync_status(self, project_id: str) -> SyncStatus:
        """
        Look the project up in both stores. A backend lookup failure counts as
        "not in backend" so the project gets re-synced rather than skipped.
        """
        validate_project_id(project_id)

        try:
            project = self.store.get_project(project_id)
        except PrimaryStoreError as e:
            logger.error(f"Sync status check failed for {project_id}: {e}")
            return SyncStatus(supabase_exists=False, backend_exists=False, needs_sync=True)

        if project is None:
            return SyncStatus(supabase_exists=False, backend_exists=False, needs_sync=False)

        backend_id = None
        try:
            backend_project = self.backend.get_project(project_id)
        except RemoteServiceError as e:
            logger.warning(f"Backend check failed for {project_id}: {e}")
            backend_project = None

        if backend_project is not None:
            backend_id = _backend_id(backend_project, project_id)

        return SyncStatus(
            supabase_exists=True,
            backend_exists=backend_project is not None,
            backend_id=backend_id,
            needs_sync=backend_project is None,
        )

    def sync_project_to_backend(self, project_id: str, retries: int | None = None) -> SyncResult:
        """
        Copy one project from the primary store to the backend.

        ``retries`` is the number of retries after the first POST (default
        ``max_retries``), so at most ``retries + 1`` requests are sent.
        Transient failures are retried with exponential backoff (2s, 4s, 8s); other 4xx fail at once; 409 means the backend already has the
        record and counts as success. Never raises.
        """
        retries = self.max_retries if retries is None else retries
        attempts = max(retries, 0) + 1

        try:
            validate_project_id(project_id)
        except ProjectValidationError as e:
            return SyncResult(success=False, project_id=str(project_id), error=str(e))

        try:
            project = self.store.get_project(project_id)
        except PrimaryStoreError as e:
            return SyncResult(success=False, project_id=project_id, error=f"Project not found in Supabase: {e}")
        if project is None:
            return SyncResult(success=False, project_id=project_id, error="Project not found in Supabase")

        try:
            payload = to_backend_payload(project)
        except ProjectValidationError as e:
            return SyncResult(success=False, project_id=project_id, error=str(e))

        logger.info(f"Syncing project {project_id} to backend ({attempts} attempts max)")
        try:
            created = retry_call(
                lambda: self.backend.create_project(payload),
                max_attempts=attempts,
                backoff=self.backoff,
                is_retryable=lambda exc: isinstance(exc, TransientRemoteError),
                sleep=self.sleep,
            )
        except ConflictError:
            logger.info(f"Project {project_id} already present in backend")
            return SyncResult(success=True, project_id=project_id, backend_id=project_id)
        except RemoteServiceError as e:
            logger.error(f"Project {project_id} sync failed: {e}")
            return SyncResult(success=False, project_id=project_id, error=str(e))

        logger.info(f"Project {project_id} synced")
        return SyncResult(success=True, project_id=project_id, backend_id=_backend_id(created, project_id))

    def ensure_project_sync(self, project_id: str) -> EnsureSyncResult:
        """Sync the project only if the backend does not already have it."""
        try:
            status = self.check_project_sync_status(project_id)
        except ProjectValidationError as e:
            return EnsureSyncResult(synced=False, error=str(e))

        if status.backend_exists:
            return EnsureSyncResult(synced=True, backend_id=status.backend_id)

        if status.needs_sync:
            result = self.sync_project_to_backend(project_id)
            if result.success:
                return EnsureSyncResult(synced=True, backend_id=result.backend_id)
            return EnsureSyncResult(synced=False, error=result.error)

        return EnsureSyncResult(synced=False, error="Project not found in Supabase")

    def _sync_one(self, project_id: str) -> SyncResult:
        try:
            return self.sync_project_to_backend(project_id)
        except Exception as e:
            logger.exception(f"Unexpected error syncing {project_id}")
            return SyncResult(success=False, project_id=project_id, error=str(e) or "Unknown error")

    def batch_sync_projects(self, project_ids: list[str]) -> list[SyncResult]:
        """
        Sync projects ``batch_size`` at a time. Projects within a batch run
        concurrently; batches are spaced by ``batch_delay`` seconds. Results
        come back in input order.
        """
        if not project_ids:
            return []

        results: list[SyncResult] = []
        batches = [project_ids[i:i + self.batch_size] for i in range(0, len(project_ids), self.batch_size)]

        for n, batch in enumerate(batches, start=1):
            logger.info(f"Processing batch {n}/{len(batches)}")
            with ThreadPoolExecutor(max_workers=len(batch)) as executor:
                results.extend(executor.map(self._sync_one, batch))

            if n < len(batches):
                self.sleep(self.batch_delay)

        logger.info(f"Batch sync complete: {sum(r.success for r in results)}/{len(results)} successful")
        return results

    def sync_all_projects(self) -> SyncSummary:
        """Sync every project in the primary store. Raises PrimaryStoreError if it cannot be listed."""
        project_ids = self.store.list_project_ids()
        logger.info(f"Found {len(project_ids)} projects to sync")
        return summarize(self.batch_sync_projects(project_ids))

    def verify_data_consistency(self) -> ConsistencyReport:
        """
        Compare the id sets of both stores. Consistent means nothing is missing
        from the backend and both stores hold the same number of projects.
        Raises if either store cannot be listed.
        """
        supabase_ids = list(dict.fromkeys(self.store.list_project_ids()))
        backend_ids = list(dict.fromkeys(p["id"] for p in self.backend.list_projects() if p.get("id")))

        supabase_set = set(supabase_ids)
        backend_set = set(backend_ids)

        missing = [pid for pid in supabase_ids if pid not in backend_set]
        orphaned = [pid for pid in backend_ids if pid not in supabase_set]

        report = ConsistencyReport(
            supabase_count=len(supabase_set),
            backend_count=len(backend_set),
            consistent=not missing and len(supabase_set) == len(backend_set),
            missing_in_backend=missing,
            orphaned_in_backend=orphaned,
        )
        logger.info(f"Consistency check: {report.model_dump(exclude={'missing_in_backend', 'orphaned_in_backend'})}")
        return report
