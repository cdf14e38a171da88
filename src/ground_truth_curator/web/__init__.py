"""Web UI for the curator.

The Web UI is built with Streamlit and runs as a separate application.

To start the Streamlit UI:
    streamlit run src/ground_truth_curator/web/streamlit_app.py

Or from the project root:
    python -m streamlit run src/ground_truth_curator/web/streamlit_app.py
"""

__all__ = ["streamlit_app"]
