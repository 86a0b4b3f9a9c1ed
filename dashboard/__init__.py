"""CrowdSense people counter dashboard.

The Streamlit page lives in `app.py`. Run it with
`streamlit run dashboard/app.py` after `pip install -e .`.
"""
