"""Recovery boundary around the tuning step."""
import streamlit as st

from hypertune.workflow import WorkflowController


def render_recovery(controller: WorkflowController, exc: Exception):
    """
    Shown instead of the tuning view when it raised.

    Retry mounts a fresh pipeline for the same config; go back returns to CONFIG.
    """
    st.error("**Unexpected Error**\n\nAn unexpected error occurred during the process.")
    with st.expander("Technical details"):
        st.code(f"{type(exc).__name__}: {exc}", language="text")

    retry, back = st.columns(2)
    with retry:
        if st.button("Retry Operation", key="recovery_retry", use_container_width=True):
            controller.retry_tuning()
            st.rerun()
    with back:
        if st.button("Return to Configuration", key="recovery_back", type="primary", use_container_width=True):
            controller.back_to_config()
            st.rerun()
