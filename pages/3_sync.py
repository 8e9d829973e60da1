import streamlit as st
import pandas as pd

from offset_service.errors import PrimaryStoreError, ProjectValidationError, RemoteServiceError
from offset_service.sync import summarize
from utils.functions.helper import H, get_services
from utils.functions.statefulness import _last_sync_summary, _remember_sync_summary

st.set_page_config(layout="wide", page_title="Sync Dashboard", page_icon="🔄")
st.title("🔄 Sync Dashboard")

store, backend, reconciler, service = get_services()

# -- Consistency check --
st.subheader("Data consistency", help=H("consistency"))
if st.button("🔍 Verify consistency", use_container_width=True):
    try:
        report = reconciler.verify_data_consistency()
    except (PrimaryStoreError, RemoteServiceError) as e:
        st.error(f"Consistency check failed: {e}")
    else:
        c1, c2, c3 = st.columns(3)
        c1.metric("Supabase projects", report.supabase_count)
        c2.metric("Backend projects", report.backend_count)
        c3.metric("Missing in backend", len(report.missing_in_backend))
        if report.consistent:
            st.success("Both stores hold the same projects.")
        else:
            st.warning("The stores are out of sync.")
            st.session_state["_missing_in_backend"] = report.missing_in_backend
        if report.orphaned_in_backend:
            st.caption(f"{len(report.orphaned_in_backend)} backend record(s) have no Supabase project.")

missing = st.session_state.get("_missing_in_backend", [])
if missing and st.button(f"🔄 Sync {len(missing)} missing project(s)", use_container_width=True):
    with st.spinner("Syncing..."):
        summary = summarize(reconciler.batch_sync_projects(missing))
    _remember_sync_summary(summary.model_dump())
    st.session_state.pop("_missing_in_backend", None)

# -- Full sync --
st.subheader("Sync all projects")
if st.button("Sync every Supabase project", use_container_width=True):
    try:
        with st.spinner("Syncing all projects..."):
            summary = reconciler.sync_all_projects()
    except PrimaryStoreError as e:
        st.error(f"Could not list projects: {e}")
    else:
        _remember_sync_summary(summary.model_dump())

last = _last_sync_summary()
if last:
    st.success(f"{last['successful']}/{last['total']} projects synced, {last['failed']} failed")
    st.dataframe(pd.DataFrame(last["results"]), use_container_width=True, hide_index=True)

# -- Single project --
st.subheader("Single project")
project_id = st.text_input("Project ID")
if project_id:
    try:
        status = reconciler.check_project_sync_status(project_id.strip())
    except ProjectValidationError as e:
        st.error(str(e))
    else:
        st.json(status.model_dump())
        if status.needs_sync and st.button("Sync this project"):
            result = reconciler.sync_project_to_backend(project_id.strip())
            if result.success:
                st.toast("Project synced")
            else:
                st.error(f"Sync failed: {result.error}")
