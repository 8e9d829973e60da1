import streamlit as st

from offset_service.biomass import get_forest_types

UPLOAD_DEFAULTS = {
    "upload_name": "",
    "upload_coordinates": "",
    "upload_project_area": 100.0,
    "upload_forest_coverage": 85.0,
    "upload_buffer_percentage": 20.0,
    "upload_price_per_ton": 25.0,
    "upload_currency": "USD",
}

def _upload_keys() -> list[str]:
    """
    Return list of upload form session state keys.
    """
    return [k for k in list(st.session_state.keys()) if k.startswith("upload_")]

def _init_upload_state():
    """
    Seed upload form defaults ONLY if missing.
    Does not overwrite values the user already entered.
    """
    for k, v in UPLOAD_DEFAULTS.items():
        st.session_state.setdefault(k, v)
    st.session_state.setdefault("upload_forest_type", get_forest_types()[0])

def _reset_upload_state():
    """
    Clear the upload form after a successful create.
    """
    for k in _upload_keys():
        st.session_state.pop(k, None)
    _init_upload_state()

def _set_picked_location(lat: float, lon: float):
    """
    Store a location clicked on the map as the form's "lat,lon" string.
    """
    st.session_state["upload_coordinates"] = f"{lat:.6f},{lon:.6f}"

def _remember_sync_summary(summary: dict, key: str = "_last_sync_summary"):
    """
    Keep the last batch summary so it survives reruns of the sync page.
    """
    st.session_state[key] = summary

def _last_sync_summary(key: str = "_last_sync_summary") -> dict | None:
    return st.session_state.get(key)
