import math
import pandas as pd

from offset_service.biomass import resolve_forest_type, DEFAULT_SOURCE
from offset_service.schemas import CalculationBreakdown

CARBON_FRACTION = 0.47          # IPCC carbon fraction of dry biomass
CO2_CONVERSION_FACTOR = 3.67    # CO2 : C molar mass ratio
FORMULA = "Area × Forest% × Biomass/ha × 0.47 × 3.67 × (1 - Buffer%)"

def _round2(value: float) -> float:
    # half-up rounding to 2 decimals
    return math.floor(value * 100 + 0.5) / 100

def calculate_carbon_credits(
    area: float,
    forest_type: str,
    forest_coverage: float = 85,
    buffer_percentage: float = 20,
) -> float:
    """
    Estimated carbon credits (tCO2e) for a forest project.

    area is in hectares, forest_coverage and buffer_percentage in percent
    (0-100). A buffer of 100% or more is not clamped and gives a zero or
    negative result.
    """
    if area <= 0:
        return 0.0

    biomass_per_ha = resolve_forest_type(forest_type).biomass_per_hectare

    carbon_credits = (
        area
        * (forest_coverage / 100)
        * biomass_per_ha
        * CARBON_FRACTION
        * CO2_CONVERSION_FACTOR
        * (1 - buffer_percentage / 100)
    )
    return _round2(carbon_credits)

def get_calculation_breakdown(
    area: float,
    forest_type: str,
    forest_coverage: float = 85,
    buffer_percentage: float = 20,
) -> CalculationBreakdown:
    """
    Every term of the credit calculation plus provenance of the biomass value,
    for display in reports.
    """
    resolved = resolve_forest_type(forest_type)
    entry = resolved.entry

    return CalculationBreakdown(
        area=area,
        forest_type=forest_type,
        biomass_per_ha=resolved.biomass_per_hectare,
        forest_coverage=forest_coverage,
        buffer_percentage=buffer_percentage,
        carbon_fraction=CARBON_FRACTION,
        co2_conversion_factor=CO2_CONVERSION_FACTOR,
        carbon_credits=calculate_carbon_credits(area, forest_type, forest_coverage, buffer_percentage),
        formula=FORMULA,
        match=resolved.match,
        source=entry.source if entry else DEFAULT_SOURCE,
        year=entry.year if entry else None,
    )

def compute_credit_table(
    df_projects: pd.DataFrame,
    forest_coverage: float = 85,
    buffer_percentage: float = 20,
) -> pd.DataFrame:
    """
    df_projects: DataFrame with ['project_area', 'forest_type'] (plus any id/name columns)
    returns: the same rows with ['biomass_per_ha', 'match', 'carbon_credits'] added
    """
    df = df_projects.copy()
    if df.empty:
        return df.assign(biomass_per_ha=pd.Series(dtype=float),
                         match=pd.Series(dtype=str),
                         carbon_credits=pd.Series(dtype=float))

    df["project_area"] = pd.to_numeric(df["project_area"], errors="coerce").fillna(0.0)
    df["forest_type"] = df["forest_type"].fillna("").astype(str)

    resolved = df["forest_type"].map(resolve_forest_type)
    df["biomass_per_ha"] = resolved.map(lambda r: r.biomass_per_hectare)
    df["match"] = resolved.map(lambda r: r.match)
    df["carbon_credits"] = [
        calculate_carbon_credits(area, forest_type, forest_coverage, buffer_percentage)
        for area, forest_type in zip(df["project_area"], df["forest_type"])
    ]
    return df
