import streamlit as st

home = st.Page("pages/0_home.py", title="🌳 Home")
projects = st.Page("pages/1_projects.py", title="🗂️ Projects")
upload = st.Page("pages/2_upload.py", title="➕ Upload Project")
sync = st.Page("pages/3_sync.py", title="🔄 Sync Dashboard")
faq = st.Page("pages/5_faq.py", title="❓ Frequently Asked Questions")
pg = st.navigation([
    home,
    projects,
    upload,
    sync,
    faq,
])
st.set_page_config(page_title="Carbon Offset Monitor", page_icon="🌳")
pg.run()
