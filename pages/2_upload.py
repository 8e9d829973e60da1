import streamlit as st
import folium
from streamlit_folium import st_folium

from offset_service.biomass import get_forest_types
from offset_service.errors import PrimaryStoreError, ProjectSyncError, ProjectValidationError
from offset_service.model import get_calculation_breakdown
from offset_service.schemas import CreateProjectRequest
from utils.functions.helper import H, get_services
from utils.functions.statefulness import _init_upload_state, _reset_upload_state, _set_picked_location
from utils.functions.geolocation import extract_gps_coordinates
from utils.functions.validation import parse_coordinates

st.set_page_config(layout="wide", page_title="Upload Project", page_icon="➕")
st.title("➕ Upload Project")

store, backend, reconciler, service = get_services()

# widgets cannot be reset once rendered, so a successful save resets on the next run
if st.session_state.pop("_upload_saved", False):
    _reset_upload_state()
_init_upload_state()

notice = st.session_state.pop("_upload_notice", None)
if notice:
    st.toast(notice)

# -------------------------------------------------
# Location picker
# -------------------------------------------------
def build_map(center=(0.0, 0.0), zoom=2, marker=None) -> folium.Map:
    m = folium.Map(location=center, zoom_start=zoom, tiles="CartoDB positron")
    if marker:
        folium.Marker(marker, tooltip="Project location").add_to(m)
    return m

marker = None
try:
    marker = parse_coordinates(st.session_state["upload_coordinates"])
except ProjectValidationError:
    pass

st.markdown("### Where is your project?\nClick the map to set the project coordinates.")
map_state = st_folium(
    build_map(center=marker or (0.0, 0.0), zoom=8 if marker else 2, marker=marker),
    height=400,
    use_container_width=True,
    returned_objects=["last_clicked"],
)
clicked = (map_state or {}).get("last_clicked")
# st_folium reports the same click on every rerun; only apply new ones
if clicked and clicked != st.session_state.get("_last_map_click"):
    st.session_state["_last_map_click"] = clicked
    _set_picked_location(clicked["lat"], clicked["lng"])
    st.rerun()

# -- Or take the location from a geotagged photo --
photo = st.file_uploader("...or upload a site photo with GPS data", type=["jpg", "jpeg", "png", "tif", "tiff"])
if photo is not None and (photo.name, photo.size) != st.session_state.get("_last_photo"):
    st.session_state["_last_photo"] = (photo.name, photo.size)
    try:
        coords = extract_gps_coordinates(photo.getvalue())
    except ValueError as e:
        st.error(str(e))
    else:
        if coords is None:
            st.warning("This image does not contain GPS location data in its EXIF metadata.")
        else:
            _set_picked_location(*coords)
            st.session_state["_upload_notice"] = f"GPS coordinates extracted: {coords[0]:.6f}, {coords[1]:.6f}"
            st.rerun()

# -------------------------------------------------
# Project form
# -------------------------------------------------
forest_types = get_forest_types()

left, right = st.columns(2)
with left:
    st.text_input("Project name", key="upload_name")
    st.text_input("Coordinates (lat,lon)", key="upload_coordinates", help=H("coordinates"))
    st.number_input("Project area (ha)", min_value=0.0, step=10.0, key="upload_project_area", help=H("project_area"))
    st.selectbox("Forest type", options=forest_types, key="upload_forest_type", help=H("forest_type"))
with right:
    st.slider("Forest coverage (%)", 0.0, 100.0, key="upload_forest_coverage", help=H("forest_coverage"))
    st.slider("Uncertainty buffer (%)", 0.0, 100.0, key="upload_buffer_percentage", help=H("buffer_percentage"))
    st.number_input("Price per tonne", min_value=0.0, step=1.0, key="upload_price_per_ton", help=H("price_per_ton"))
    st.selectbox("Currency", options=["USD", "EUR", "GBP", "INR", "BRL"], key="upload_currency")

# -- Live credit estimate --
breakdown = get_calculation_breakdown(
    st.session_state["upload_project_area"],
    st.session_state["upload_forest_type"],
    st.session_state["upload_forest_coverage"],
    st.session_state["upload_buffer_percentage"],
)
st.success(f"Estimated credits: {breakdown.carbon_credits:,.2f} tCO₂e")
with st.expander("Calculation breakdown"):
    st.code(breakdown.formula)
    st.json(breakdown.model_dump())

# -------------------------------------------------
# Save
# -------------------------------------------------
if st.button("💾 Save project", type="primary", use_container_width=True):
    request = CreateProjectRequest(
        name=st.session_state["upload_name"],
        coordinates=st.session_state["upload_coordinates"],
        carbon_tons=breakdown.carbon_credits,
        price_per_ton=st.session_state["upload_price_per_ton"],
        currency=st.session_state["upload_currency"],
        project_area=st.session_state["upload_project_area"],
        forest_type=st.session_state["upload_forest_type"],
    )
    try:
        with st.spinner("Saving project..."):
            created = service.create_project(request)
    except ProjectValidationError as e:
        st.error(str(e))
    except (PrimaryStoreError, ProjectSyncError) as e:
        st.error(f"Failed to create project: {e}")
    else:
        if created.sync.success:
            st.session_state["_upload_notice"] = "Project created and synced with the analysis backend!"
        else:
            st.session_state["_upload_notice"] = f"Project saved, but not yet synced with the analysis backend: {created.sync.error}"
        st.session_state["_upload_saved"] = True
        st.rerun()
