import json
from pathlib import Path

from offset_service.schemas import BiomassMatch, ForestBiomassEntry

BASE_PATH = Path(__file__).resolve().parent.parent / "conf" / "base"

# Mixed forest average, used when a forest type cannot be resolved
DEFAULT_BIOMASS_PER_HECTARE = 150.0
DEFAULT_SOURCE = "Default mixed forest average"

def load_json(filename: str):
    with open(BASE_PATH / filename, "r", encoding="utf-8") as f:
        return json.load(f)

def _load_biomass_table() -> tuple[ForestBiomassEntry, ...]:
    return tuple(ForestBiomassEntry(**row) for row in load_json("forest_biomass.json"))

def _load_aliases() -> dict[str, str]:
    # legacy label (lower-cased) -> canonical label
    return {k.strip().lower(): v for k, v in load_json("forest_type_aliases.json").items()}

FOREST_BIOMASS_DATA = _load_biomass_table()
LEGACY_FOREST_TYPES = _load_aliases()


def _exact(label: str) -> ForestBiomassEntry | None:
    for entry in FOREST_BIOMASS_DATA:
        if entry.forest_type.lower() == label:
            return entry
    return None

def _partial(label: str) -> ForestBiomassEntry | None:
    for entry in FOREST_BIOMASS_DATA:
        name = entry.forest_type.lower()
        if label in name or name in label:
            return entry
    return None

def resolve_forest_type(forest_type: str | None) -> BiomassMatch:
    """
    Resolve a free-text forest type against the IPCC reference table.

    Resolution order:
      1. exact (case-insensitive) match on the canonical label
      2. legacy alias -> canonical label, resolved again
      3. substring containment in either direction, first table row wins
      4. the mixed-forest default

    The returned ``match`` tag tells callers how confident the lookup was.
    Never raises.
    """
    query = forest_type or ""
    label = query.strip().lower()
    if not label:
        return BiomassMatch(query=query, match="default", biomass_per_hectare=DEFAULT_BIOMASS_PER_HECTARE)

    entry = _exact(label)
    if entry:
        return BiomassMatch(query=query, match="exact", biomass_per_hectare=entry.biomass_per_hectare, entry=entry)

    seen = {label}
    alias = LEGACY_FOREST_TYPES.get(label)
    while alias is not None:
        target = alias.strip().lower()
        if target in seen:
            break
        seen.add(target)
        entry = _exact(target)
        if entry:
            return BiomassMatch(query=query, match="alias", biomass_per_hectare=entry.biomass_per_hectare, entry=entry)
        alias = LEGACY_FOREST_TYPES.get(target)

    entry = _partial(label)
    if entry:
        return BiomassMatch(query=query, match="partial", biomass_per_hectare=entry.biomass_per_hectare, entry=entry)

    return BiomassMatch(query=query, match="default", biomass_per_hectare=DEFAULT_BIOMASS_PER_HECTARE)

def get_biomass_per_hectare(forest_type: str | None) -> float:
    """Biomass in t/ha for a forest type. Unknown types get the 150 t/ha default."""
    return resolve_forest_type(forest_type).biomass_per_hectare

def get_forest_biomass_data(forest_type: str | None) -> ForestBiomassEntry | None:
    """Same lookup as get_biomass_per_hectare, but None when nothing matched."""
    return resolve_forest_type(forest_type).entry

def get_forest_types() -> list[str]:
    return [entry.forest_type for entry in FOREST_BIOMASS_DATA]
