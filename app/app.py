"""HyperTune AI - Streamlit front-end"""
import logging
import sys
from pathlib import Path

APP_DIR = Path(__file__).parent
SRC_DIR = APP_DIR.parent / "src"
for p in (APP_DIR, SRC_DIR):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))

import streamlit as st

from hypertune.log import configure_logging
from hypertune.models import WorkflowStep
from hypertune.workflow import WorkflowController

from llm_utils import get_store, llm_configured, load_settings
from ui_components import (
    render_access_gate,
    render_header,
    render_model_config,
    render_recovery,
    render_results,
    render_sidebar,
    render_tuning_dashboard,
    render_upload,
)
from ui_components.model_config import CONFIGURATOR_KEY, SUGGESTION_KEY
from ui_components.results import SHAP_KEY
from ui_components.tuning_dashboard import RUN_KEY

st.set_page_config(
    page_title="HyperTune AI",
    page_icon="⚡",
    layout="wide"
)

logger = logging.getLogger(__name__)

CONTROLLER_KEY = "workflow"
# (attempt, exception) of a tuning view that raised
FAILURE_KEY = "tuning_failure"
PER_RUN_KEYS = (CONFIGURATOR_KEY, SUGGESTION_KEY, SHAP_KEY, RUN_KEY, FAILURE_KEY)


def get_controller() -> WorkflowController:
    """One controller per browser session, over the store shared by the server."""
    if CONTROLLER_KEY not in st.session_state:
        settings = load_settings()
        store = get_store(str(settings.state_path))
        st.session_state[CONTROLLER_KEY] = WorkflowController(store, settings)
    return st.session_state[CONTROLLER_KEY]


def reset_experiment(controller: WorkflowController):
    for key in PER_RUN_KEYS:
        st.session_state.pop(key, None)
    controller.reset()
    st.rerun()


def render_tuning_step(controller: WorkflowController):
    failure = st.session_state.get(FAILURE_KEY)
    if failure and failure[0] == controller.tuning_attempt:
        render_recovery(controller, failure[1])
        return
    try:
        render_tuning_dashboard(controller)
    except Exception as e:
        logger.exception("Tuning view failed on attempt %d", controller.tuning_attempt)
        st.session_state[FAILURE_KEY] = (controller.tuning_attempt, e)
        render_recovery(controller, e)


def main():
    configure_logging()
    controller = get_controller()
    controller.refresh()

    render_header(controller)
    render_sidebar(controller, llm_configured(controller.settings))

    step = controller.step
    if step == WorkflowStep.ACCESS_GATE:
        render_access_gate(controller)
    elif step == WorkflowStep.UPLOAD:
        render_upload(controller)
    elif step == WorkflowStep.CONFIG:
        render_model_config(controller)
    elif step == WorkflowStep.TUNING:
        render_tuning_step(controller)
    elif step == WorkflowStep.RESULTS:
        render_results(controller, on_reset=lambda: reset_experiment(controller))


if __name__ == "__main__":
    main()
