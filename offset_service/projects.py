import logging
from enum import Enum

from offset_service.errors import ProjectSyncError, ProjectValidationError, RemoteServiceError
from offset_service.model import calculate_carbon_credits
from offset_service.schemas import CreateProjectRequest, CreateProjectResponse, DeleteProjectResult, Project
from offset_service.sync import ProjectSyncReconciler
from utils.functions.validation import parse_coordinates, validate_project_id

logger = logging.getLogger(__name__)


class SyncFailurePolicy(str, Enum):
    # keep the primary record and leave it to the reconciler
    KEEP = "keep"
    # delete the just-created primary record and fail the create
    ROLLBACK = "rollback"


class ProjectService:
    """
    Create and delete projects across both stores.

    Create writes the primary store first, then tries to mirror the project
    to the analysis backend. What happens when that mirror fails is decided
    by ``policy``. Delete cascades to the backend on a best-effort basis.
    """

    def __init__(self, reconciler: ProjectSyncReconciler, policy: SyncFailurePolicy = SyncFailurePolicy.KEEP):
        self.reconciler = reconciler
        self.store = reconciler.store
        self.backend = reconciler.backend
        self.policy = SyncFailurePolicy(policy)

    def create_project(self, data: CreateProjectRequest) -> CreateProjectResponse:
        if not data.name.strip():
            raise ProjectValidationError("Project name is required")
        parse_coordinates(data.coordinates)

        carbon_tons = data.carbon_tons
        if carbon_tons is None:
            carbon_tons = calculate_carbon_credits(data.project_area or 0, data.forest_type or "")

        record = {
            "name": data.name.strip(),
            "coordinates": data.coordinates,
            "carbon_tons": carbon_tons,
            "price_per_ton": data.price_per_ton,
            "currency": data.currency or "USD",
            "project_area": data.project_area,
            "forest_type": data.forest_type,
            "monitoring_period_start": data.monitoring_period_start,
            "monitoring_period_end": data.monitoring_period_end,
            "satellite_image_url": None,
        }

        saved = self.store.insert_project(record)
        project_id = saved["id"]
        logger.info(f"Project {project_id} saved to Supabase")

        sync = self.reconciler.sync_project_to_backend(project_id)
        if not sync.success:
            if self.policy is SyncFailurePolicy.ROLLBACK:
                logger.warning(f"Rolling back project {project_id}: {sync.error}")
                self.store.delete_project(project_id)
                raise ProjectSyncError("Failed to sync project with analysis backend. Please try again.")
            logger.warning(f"Backend sync failed but project {project_id} was saved to Supabase: {sync.error}")

        return CreateProjectResponse(project=Project(**saved), sync=sync)

    def delete_project(self, project_id: str) -> DeleteProjectResult:
        """
        Delete from the primary store (raises on failure), then from the
        backend. A backend failure leaves an orphan that the consistency
        check reports; it is returned here rather than raised.
        """
        validate_project_id(project_id)

        if self.store.get_project(project_id) is None:
            return DeleteProjectResult(project_id=project_id, deleted=False, backend_deleted=False,
                                       error="Project not found in Supabase")

        self.store.delete_project(project_id)

        try:
            self.backend.delete_project(project_id)
        except RemoteServiceError as e:
            logger.warning(f"Project {project_id} deleted from Supabase but not from backend: {e}")
            return DeleteProjectResult(project_id=project_id, deleted=True, backend_deleted=False, error=str(e))

        return DeleteProjectResult(project_id=project_id, deleted=True, backend_deleted=True)

    def list_projects(self) -> list[Project]:
        return [Project(**row) for row in self.store.list_projects()]
