import streamlit as st

st.set_page_config(layout="wide", page_title="FAQ", page_icon="🌳")

st.title("❓Frequently Asked Questions")

# Define the FAQs as a list of dictionaries
faqs = [
    {
        "q": "Where do the biomass values come from?",
        "a": """
Above-ground biomass per hectare is taken from the **IPCC 2006 Guidelines** (and the **2019 Refinement** for secondary tropical moist forest).
Older forest labels such as *Tropical Evergreen* or *Mangrove* are mapped to their current IPCC category. A forest type that cannot be matched uses a **150 t/ha** mixed-forest average.
        """
    },
    {
        "q": "What does the match label next to a forest type mean?",
        "a": """
- **exact**: the label is an IPCC category.
- **alias**: a legacy label mapped to an IPCC category.
- **partial**: the closest category containing (or contained in) the label.
- **default**: nothing matched, the mixed-forest average is used.
        """
    },
    {
        "q": "Why is part of the estimate withheld as a buffer?",
        "a": """
The **uncertainty buffer** (20% by default) is a conservative discount for measurement and permanence risk. Buffers of 100% or more are not clamped and yield zero or negative credits.
        """
    },
    {
        "q": 'What does "needs sync" mean?',
        "a": """
Supabase is the source of truth for projects. The analysis backend keeps its own copy for satellite processing.
A project saved in Supabase but unknown to the backend **needs sync**. Syncing retries temporary failures (server errors, rate limits, timeouts) up to three times with increasing waits.
        """
    },
]

# Render expanders (first one expanded)
for i, item in enumerate(faqs):
    with st.expander(item["q"], expanded=(i == 0)):
        st.markdown(item["a"])

# Special case: LaTeX formula in its own expander
with st.expander("How are carbon credits calculated?"):
    st.markdown("""
The following formula is used to estimate credits (tonnes CO₂e), based on the area, forest type, coverage and buffer entered for the project:
""")
    st.latex(r"""
\textit{Credits} =
\textit{Area} \times \textit{Forest\%} \times \textit{Biomass/ha} \times 0.47 \times 3.67 \times (1 - \textit{Buffer\%})
""")
    st.markdown("0.47 is the IPCC carbon fraction of dry biomass; 3.67 converts carbon to CO₂. Results are rounded to two decimals.")
