import streamlit as st

st.set_page_config(layout="wide", page_title="Home", page_icon="🌳")

st.title("Welcome to the Carbon Offset Monitor")
st.markdown("""
Use the sidebar to move between pages.

- **🗂️ Projects**: Browse registered carbon-offset projects, their estimated credits and satellite vegetation (NDVI) metrics. Run an analysis or download a project report.
- **➕ Upload Project**: Register a new project. Pick its location on the map and preview the IPCC-based credit estimate before saving.
- **🔄 Sync Dashboard**: Check that every project saved in Supabase is also known to the analysis backend, and sync the ones that are missing.

\\*Credit estimates use IPCC 2006 / 2019 default above-ground biomass values per forest type.
""")

st.subheader("Warning: Credit estimates are indicative only and are not a substitute for a verified carbon inventory.")
