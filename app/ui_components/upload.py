"""Dataset upload step."""
import streamlit as st

from hypertune.errors import IngestError
from hypertune.ingest import read_preview
from hypertune.workflow import WorkflowController

NONCE_KEY = "upload_nonce"


def render_upload(controller: WorkflowController):
    st.header("Upload Dataset")
    st.markdown("Upload your CSV file to begin analysis (Max 50GB)")

    # A fresh uploader per visit, so returning to this step never re-ingests the last file.
    nonce = st.session_state.setdefault(NONCE_KEY, 0)
    uploaded = st.file_uploader("Drag & drop your dataset here", key=f"uploader_{nonce}")

    with st.expander("Privacy Note"):
        st.markdown(
            "Only the header row and a few sample rows are read from your file. "
            "The schema and up to three sample rows are sent to the tuning engine."
        )

    if uploaded is None:
        return

    try:
        preview = read_preview(uploaded, uploaded.name, uploaded.size)
    except IngestError as e:
        st.error(str(e))
        return

    st.session_state[NONCE_KEY] = nonce + 1
    controller.ingest_complete(preview)
    st.rerun()
