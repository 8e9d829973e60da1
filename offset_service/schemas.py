from pydantic import BaseModel, ConfigDict, Field
from typing import List, Dict, Any, Literal, Optional

MatchKind = Literal["exact", "alias", "partial", "default"]

class ForestBiomassEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    forest_type: str
    biomass_per_hectare: float  # t/ha, above-ground dry biomass
    source: str
    year: int

class BiomassMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    query: str
    match: MatchKind
    biomass_per_hectare: float
    entry: Optional[ForestBiomassEntry] = None

class CarbonCreditRequest(BaseModel):
    area: float
    forest_type: str = ""
    forest_coverage: float = 85
    buffer_percentage: float = 20

class CarbonCreditResponse(BaseModel):
    carbon_credits: float
    biomass_per_hectare: float
    match: MatchKind

class CalculationBreakdown(BaseModel):
    area: float
    forest_type: str
    biomass_per_ha: float
    forest_coverage: float
    buffer_percentage: float
    carbon_fraction: float
    co2_conversion_factor: float
    carbon_credits: float
    formula: str
    match: MatchKind
    source: str
    year: Optional[int] = None

class PortfolioRequest(BaseModel):
    projects: List[Dict[str, Any]]  # rows with id, name, project_area, forest_type
    forest_coverage: float = 85
    buffer_percentage: float = 20

class PortfolioResponse(BaseModel):
    rows: List[Dict[str, Any]]
    total_credits: float

class Project(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    coordinates: str  # "lat,lon"
    carbon_tons: Optional[float] = None
    price_per_ton: Optional[float] = None
    currency: Optional[str] = None
    project_area: Optional[float] = None  # hectares
    forest_type: Optional[str] = None
    monitoring_period_start: Optional[str] = None
    monitoring_period_end: Optional[str] = None
    satellite_image_url: Optional[str] = None
    created_at: Optional[str] = None

class CreateProjectRequest(BaseModel):
    name: str
    coordinates: str
    carbon_tons: Optional[float] = None
    price_per_ton: float = 25
    currency: str = "USD"
    project_area: Optional[float] = None
    forest_type: Optional[str] = None
    monitoring_period_start: Optional[str] = None
    monitoring_period_end: Optional[str] = None
    developer_name: Optional[str] = None
    developer_contact: Optional[str] = None

class SyncResult(BaseModel):
    success: bool
    project_id: str
    backend_id: Optional[str] = None
    error: Optional[str] = None

class SyncSummary(BaseModel):
    total: int
    successful: int
    failed: int
    results: List[SyncResult]

class SyncStatus(BaseModel):
    supabase_exists: bool
    backend_exists: bool
    backend_id: Optional[str] = None
    needs_sync: bool

class EnsureSyncResult(BaseModel):
    synced: bool
    backend_id: Optional[str] = None
    error: Optional[str] = None

class BatchSyncRequest(BaseModel):
    project_ids: List[str]

class ConsistencyReport(BaseModel):
    supabase_count: int
    backend_count: int
    consistent: bool
    missing_in_backend: List[str]
    orphaned_in_backend: List[str] = Field(default_factory=list)

class CreateProjectResponse(BaseModel):
    project: Project
    sync: SyncResult

class DeleteProjectResult(BaseModel):
    project_id: str
    deleted: bool
    backend_deleted: bool
    error: Optional[str] = None

class NDVISummary(BaseModel):
    model_config = ConfigDict(extra="allow")

    dates: List[str] = Field(default_factory=list)
    ndvi_values: List[float] = Field(default_factory=list)
    mean_ndvi: float = 0.0
    ndvi_trend: float = 0.0
    satellite: str = "Sentinel-2"
    location: Optional[Dict[str, float]] = None

class CarbonStock(BaseModel):
    model_config = ConfigDict(extra="allow")

    total_carbon_tons: float = 0.0
    carbon_per_hectare: float = 0.0
    area_hectares: float = 0.0
    vegetation_density: str = "unknown"
    confidence_level: float = 0.0
    mean_ndvi: float = 0.0
    forest_type: Optional[str] = None
    date: Optional[str] = None

class AnalysisResult(BaseModel):
    status: str = "success"
    project_id: str
    data_source: Literal["project_analysis", "satellite_fallback", "coordinates"] = "project_analysis"
    ndvi_summary: NDVISummary = Field(default_factory=NDVISummary)
    carbon_stock: CarbonStock = Field(default_factory=CarbonStock)
    confidence_score: float = 0.8

class CarbonMeasurement(BaseModel):
    project_id: str
    carbon_tons: float
    confidence_score: float
    measurement_date: str  # YYYY-MM-DD
