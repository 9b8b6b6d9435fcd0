"""App header, step indicator and sidebar."""
import streamlit as st

from hypertune.models import WorkflowStep
from hypertune.workflow import WorkflowController

from style_utils import COLORS, format_duration

STEP_LABELS = {
    WorkflowStep.UPLOAD: "Upload",
    WorkflowStep.CONFIG: "Configure",
    WorkflowStep.TUNING: "Tune",
    WorkflowStep.RESULTS: "Results",
}


def render_header(controller: WorkflowController):
    """
    Render the title and the Upload -> Configure -> Tune -> Results indicator.

    The indicator is hidden while the access gate is shown.
    """
    st.title("⚡ HyperTune AI")
    st.caption("Hyperparameter tuning scripts generated from your dataset schema")

    if controller.step == WorkflowStep.ACCESS_GATE:
        st.markdown("---")
        return

    parts = []
    for step, label in STEP_LABELS.items():
        if step < controller.step:
            color, weight = COLORS["success"], 400
        elif step == controller.step:
            color, weight = COLORS["primary"], 700
        else:
            color, weight = COLORS["secondary"], 400
        parts.append(f'<span style="color: {color}; font-weight: {weight};">{step.value}. {label}</span>')
    st.markdown(" &nbsp;→&nbsp; ".join(parts), unsafe_allow_html=True)
    st.markdown("---")


def render_sidebar(controller: WorkflowController, llm_ready: bool):
    limit = controller.settings.free_trial_limit
    usage = controller.usage_count

    st.sidebar.header("Session")
    if controller.session is not None:
        remaining = controller.session_remaining_ms() or 0
        who = "Admin" if controller.session.is_admin else "Access code"
        st.sidebar.markdown(f"**{who}:** `{controller.session.access_code}`")
        if remaining > 0:
            st.sidebar.caption(f"Session expires in {format_duration(remaining)}")
        else:
            st.sidebar.caption("Session expired")
    else:
        st.sidebar.markdown(f"**Free trials used:** {min(usage, limit)}/{limit}")
        st.sidebar.progress(min(usage / limit, 1.0) if limit else 1.0)

    if not llm_ready:
        st.sidebar.warning("OPENAI_API_KEY is not configured; tuning runs will fail with an access error.")

    st.sidebar.markdown("---")
    st.sidebar.subheader("How It Works")
    st.sidebar.markdown(
        "- **Secure Upload:** only the header and a few sample rows are read.\n"
        "- **Smart Configuration:** pick a model, a search space and a strategy.\n"
        "- **Instant Code:** download a tuning script tailored to your dataset."
    )
