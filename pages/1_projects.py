import streamlit as st
import pandas as pd
import altair as alt

from offset_service.analysis import analyze_project, download_report, ndvi_time_series_frame
from offset_service.errors import AnalysisError, PrimaryStoreError, ProjectValidationError, RemoteServiceError
from offset_service.model import compute_credit_table
from utils.functions.currency import convert, format_price
from utils.functions.helper import get_services
from utils.functions.validation import format_confidence, ndvi_status, report_filename

st.set_page_config(layout="wide", page_title="Projects", page_icon="🗂️")
st.title("🗂️ Projects")

store, backend, reconciler, service = get_services()

@st.cache_data(ttl=3600, show_spinner=False)
def load_rates():
    try:
        return backend.get_currencies()
    except RemoteServiceError:
        return None

# -- Load projects --
try:
    projects = service.list_projects()
except PrimaryStoreError as e:
    st.error(f"Could not load projects: {e}")
    st.stop()

if not projects:
    st.info("No projects yet. Add one from ➕ Upload Project.")
    st.stop()

df_projects = pd.DataFrame([p.model_dump() for p in projects])
df_credits = compute_credit_table(df_projects)

rates = load_rates()
display_currency = st.selectbox("Display currency", options=sorted(((rates or {}).get("rates") or {"USD": 1}).keys()))

df_view = df_credits[["name", "forest_type", "project_area", "match", "carbon_credits", "carbon_tons", "price_per_ton", "currency"]].copy()
df_view["price"] = [
    format_price(convert(p or 0, c or "USD", display_currency, rates), display_currency, rates)
    for p, c in zip(df_view["price_per_ton"], df_view["currency"])
]
st.dataframe(
    df_view.drop(columns=["price_per_ton", "currency"]),
    use_container_width=True,
    hide_index=True,
)

st.download_button(
    label="⬇️ Download project credits (CSV)",
    data=df_credits.to_csv(index=False).encode("utf-8"),
    file_name="project_credits.csv",
    mime="text/csv",
    use_container_width=True
)

# -- Project details --
st.subheader("Project details")
names = {p.id: p.name for p in projects}
project_id = st.selectbox("Project", options=list(names.keys()), format_func=lambda pid: names[pid])
project = next(p for p in projects if p.id == project_id)

col1, col2 = st.columns(2)

with col1:
    if st.button("🛰️ Run analysis", use_container_width=True):
        with st.spinner("Analyzing satellite data..."):
            try:
                result = analyze_project(store, backend, project.id, project.coordinates)
                st.session_state[f"analysis_{project.id}"] = result.model_dump()
                st.toast("Analysis complete!")
            except (AnalysisError, ProjectValidationError) as e:
                st.error(f"Analysis failed: {e}")

with col2:
    if st.button("📄 Prepare report", use_container_width=True):
        try:
            st.session_state[f"report_{project.id}"] = download_report(backend, project.id)
        except (RemoteServiceError, ProjectValidationError) as e:
            st.error(f"Report generation failed: {e}")
    if f"report_{project.id}" in st.session_state:
        st.download_button(
            label="⬇️ Download report (PDF)",
            data=st.session_state[f"report_{project.id}"],
            file_name=report_filename(project.name),
            mime="application/pdf",
            use_container_width=True
        )

analysis = st.session_state.get(f"analysis_{project.id}")
if analysis:
    ndvi = analysis["ndvi_summary"]["mean_ndvi"]
    m1, m2, m3 = st.columns(3)
    m1.metric("Mean NDVI", f"{ndvi:.2f}", help=ndvi_status(ndvi))
    m2.metric("Carbon stock (t)", f"{analysis['carbon_stock']['total_carbon_tons']:,.2f}")
    m3.metric("Confidence", format_confidence(analysis["confidence_score"]))
    if analysis["data_source"] == "satellite_fallback":
        st.caption("Project analysis unavailable; showing a point analysis at the project coordinates.")

# -- NDVI time series --
try:
    df_ndvi = ndvi_time_series_frame(backend.get_ndvi(project.id))
except (RemoteServiceError, ValueError):
    df_ndvi = pd.DataFrame()

if not df_ndvi.empty:
    ndvi_chart = alt.Chart(df_ndvi).mark_line(point=True).encode(
        x=alt.X('date:T', title='Date'),
        y=alt.Y('ndvi:Q', title='NDVI', scale=alt.Scale(domain=[0, 1])),
        tooltip=['date', 'ndvi', 'confidence', 'carbon_estimate']
    ).properties(
        title='NDVI over time',
        width=600,
        height=400
    ).configure_axis(
        grid=True,
        gridOpacity=0.3
    )
    st.altair_chart(ndvi_chart, use_container_width=True)
else:
    st.caption("No NDVI time series available for this project yet.")

# -- Delete --
with st.popover("🗑️ Delete project"):
    st.warning("This removes the project from Supabase and the analysis backend.")
    if st.button("Confirm delete", type="primary"):
        try:
            result = service.delete_project(project.id)
        except (PrimaryStoreError, ProjectValidationError) as e:
            st.error(f"Delete failed: {e}")
        else:
            if result.deleted and not result.backend_deleted:
                st.warning(f"Deleted from Supabase, but the analysis backend still holds a copy: {result.error}")
            st.toast("Project deleted")
            st.rerun()
