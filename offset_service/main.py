import pandas as pd
from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, Response

from offset_service.analysis import analyze_coordinates, analyze_project, download_report
from offset_service.biomass import get_forest_types, resolve_forest_type
from offset_service.errors import (
    AnalysisError,
    PrimaryStoreError,
    ProjectSyncError,
    ProjectValidationError,
    RemoteServiceError,
)
from offset_service.model import calculate_carbon_credits, compute_credit_table, get_calculation_breakdown
from offset_service.projects import ProjectService, SyncFailurePolicy
from offset_service.schemas import (
    AnalysisResult,
    BatchSyncRequest,
    BiomassMatch,
    CalculationBreakdown,
    CarbonCreditRequest,
    CarbonCreditResponse,
    ConsistencyReport,
    CreateProjectRequest,
    CreateProjectResponse,
    DeleteProjectResult,
    EnsureSyncResult,
    PortfolioRequest,
    PortfolioResponse,
    SyncResult,
    SyncStatus,
    SyncSummary,
)
from offset_service.stores import AnalysisBackendClient, SupabaseStore
from offset_service.sync import ProjectSyncReconciler, summarize
from utils.config import configure_logging, get_api_base_url, get_supabase_settings, get_sync_settings, normalize_params
from utils.functions.validation import parse_coordinates, report_filename, validate_project_id


app = FastAPI(title="Carbon Offset Service")
configure_logging()

API_BASE_URL = get_api_base_url()

# ---------- Collaborators ----------

def get_store() -> SupabaseStore:
    url, key = get_supabase_settings()
    return SupabaseStore(url, key, timeout=get_sync_settings().request_timeout)

def get_backend() -> AnalysisBackendClient:
    return AnalysisBackendClient(API_BASE_URL, timeout=get_sync_settings().request_timeout)

def get_reconciler(store: SupabaseStore = Depends(get_store),
                   backend: AnalysisBackendClient = Depends(get_backend)) -> ProjectSyncReconciler:
    settings = get_sync_settings()
    return ProjectSyncReconciler(
        store,
        backend,
        max_retries=settings.max_retries,
        batch_size=settings.batch_size,
        batch_delay=settings.batch_delay,
    )

def get_project_service(reconciler: ProjectSyncReconciler = Depends(get_reconciler)) -> ProjectService:
    return ProjectService(reconciler, SyncFailurePolicy(get_sync_settings().failure_policy))

# ---------- Errors ----------

@app.exception_handler(ProjectValidationError)
def validation_error_handler(request: Request, exc: ProjectValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})

@app.exception_handler(PrimaryStoreError)
def primary_store_error_handler(request: Request, exc: PrimaryStoreError):
    return JSONResponse(status_code=502, content={"detail": str(exc)})

@app.exception_handler(RemoteServiceError)
def remote_error_handler(request: Request, exc: RemoteServiceError):
    return JSONResponse(status_code=502, content={"detail": str(exc), "upstream_status": exc.status_code})

@app.exception_handler(AnalysisError)
@app.exception_handler(ProjectSyncError)
def sync_error_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=502, content={"detail": str(exc)})

# ---------- Reference data & calculator ----------

@app.get("/health")
def health():
    return {"status": "ok"}

@app.get("/forest/types")
def forest_types():
    return {"forest_types": get_forest_types()}

@app.get("/forest/biomass", response_model=BiomassMatch)
def forest_biomass(forest_type: str = ""):
    return resolve_forest_type(forest_type)

@app.post("/carbon/calculate", response_model=CarbonCreditResponse)
def carbon_calculate(req: CarbonCreditRequest):
    resolved = resolve_forest_type(req.forest_type)
    return {
        "carbon_credits": calculate_carbon_credits(req.area, req.forest_type, req.forest_coverage, req.buffer_percentage),
        "biomass_per_hectare": resolved.biomass_per_hectare,
        "match": resolved.match,
    }

@app.post("/carbon/breakdown", response_model=CalculationBreakdown)
def carbon_breakdown(req: CarbonCreditRequest):
    return get_calculation_breakdown(req.area, req.forest_type, req.forest_coverage, req.buffer_percentage)

@app.post("/carbon/portfolio", response_model=PortfolioResponse)
def carbon_portfolio(req: PortfolioRequest):
    df = pd.DataFrame(req.projects)
    for col in ("project_area", "forest_type"):
        if col not in df.columns:
            df[col] = None
    df_credits = compute_credit_table(df, req.forest_coverage, req.buffer_percentage)

    return {
        "rows": [normalize_params(row) for row in df_credits.to_dict(orient="records")],
        "total_credits": round(float(df_credits["carbon_credits"].sum()), 2) if not df_credits.empty else 0.0,
    }

# ---------- Sync & reconciliation ----------

@app.get("/sync/status/{project_id}", response_model=SyncStatus)
def sync_status(project_id: str, reconciler: ProjectSyncReconciler = Depends(get_reconciler)):
    return reconciler.check_project_sync_status(project_id)

@app.post("/sync/projects/{project_id}", response_model=SyncResult)
def sync_project(project_id: str, reconciler: ProjectSyncReconciler = Depends(get_reconciler)):
    return reconciler.sync_project_to_backend(project_id)

@app.post("/sync/ensure/{project_id}", response_model=EnsureSyncResult)
def ensure_sync(project_id: str, reconciler: ProjectSyncReconciler = Depends(get_reconciler)):
    return reconciler.ensure_project_sync(project_id)

@app.post("/sync/batch", response_model=SyncSummary)
def sync_batch(req: BatchSyncRequest, reconciler: ProjectSyncReconciler = Depends(get_reconciler)):
    return summarize(reconciler.batch_sync_projects(req.project_ids))

@app.post("/sync/all", response_model=SyncSummary)
def sync_all(reconciler: ProjectSyncReconciler = Depends(get_reconciler)):
    return reconciler.sync_all_projects()

@app.get("/sync/consistency", response_model=ConsistencyReport)
def sync_consistency(reconciler: ProjectSyncReconciler = Depends(get_reconciler)):
    return reconciler.verify_data_consistency()

# ---------- Projects ----------

@app.post("/projects", response_model=CreateProjectResponse, status_code=201)
def create_project(req: CreateProjectRequest, service: ProjectService = Depends(get_project_service)):
    return service.create_project(req)

@app.delete("/projects/{project_id}", response_model=DeleteProjectResult)
def delete_project(project_id: str, service: ProjectService = Depends(get_project_service)):
    result = service.delete_project(project_id)
    if not result.deleted:
        raise HTTPException(status_code=404, detail=result.error)
    return result

def _require_project(store: SupabaseStore, project_id: str) -> dict:
    validate_project_id(project_id)
    project = store.get_project(project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return project

@app.post("/projects/{project_id}/analyze", response_model=AnalysisResult)
def analyze(project_id: str,
            store: SupabaseStore = Depends(get_store),
            backend: AnalysisBackendClient = Depends(get_backend)):
    project = _require_project(store, project_id)
    return analyze_project(store, backend, project_id, project.get("coordinates"))

@app.get("/projects/{project_id}/report")
def report(project_id: str,
           store: SupabaseStore = Depends(get_store),
           backend: AnalysisBackendClient = Depends(get_backend)):
    project = _require_project(store, project_id)
    pdf = download_report(backend, project_id)

    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition":
            f"attachment; filename={report_filename(project.get('name') or project_id)}"
        }
    )

@app.get("/satellite/test-location", response_model=AnalysisResult)
def test_location(lat: float, lon: float, forest_type: str = "tropical",
                  backend: AnalysisBackendClient = Depends(get_backend)):
    parse_coordinates(f"{lat},{lon}")
    return analyze_coordinates(backend, lat, lon, forest_type)
