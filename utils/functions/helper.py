import streamlit as st
import json

from offset_service.main import get_backend, get_project_service, get_reconciler, get_store
from utils.config import configure_logging

@st.cache_data
def load_help(path: str = "conf/base/help_text.json"):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)

# access HELP text
HELP = load_help()
def H(key: str) -> str:
    """
    Accessor for help text loaded from conf/base/help_text.json.
    Returns empty string if key is missing to avoid runtime errors.
    """
    entry = HELP.get(key)
    if isinstance(entry, dict) and "help" in entry:
        return entry["help"]
    return ""

@st.cache_resource
def get_services():
    """
    Build the store clients, reconciler and project service once per session
    server. Returns (store, backend, reconciler, project_service).
    """
    configure_logging()
    store = get_store()
    backend = get_backend()
    reconciler = get_reconciler(store, backend)
    return store, backend, reconciler, get_project_service(reconciler)
