"""Results step: best configuration, generated script, SHAP script, downloads."""
import streamlit as st

from hypertune.artifacts import PARAMS_FILENAME, SCRIPT_FILENAME, SHAP_FILENAME, params_json
from hypertune.workflow import WorkflowController

from llm_utils import make_collaborator, run_async
from style_utils import render_log, section_header, styled_metric

SHAP_KEY = "shap_script"


def _format_score(score: float) -> str:
    if abs(score) <= 1:
        return f"{score:.4f}"
    return f"{score:,.3f}"


def render_results(controller: WorkflowController, on_reset):
    result = controller.state.result
    config = controller.state.config
    dataset = controller.state.dataset

    st.header("Optimization Complete")
    st.markdown("Your model has been tuned and is ready for deployment.")

    col1, col2 = st.columns([1, 2])
    with col1:
        styled_metric("Best Validation Score", _format_score(result.best_score), result.metric)
        st.subheader("Best Configuration")
        st.json(result.best_params)
        st.download_button(
            label="Export JSON",
            data=params_json(result),
            file_name=PARAMS_FILENAME,
            mime="application/json",
        )

    with col2:
        st.subheader("Generated Python Script")
        st.code(result.python_script, language="python")
        st.download_button(
            label="Download",
            data=result.python_script,
            file_name=SCRIPT_FILENAME,
            mime="text/x-python",
        )

    with st.expander("Execution Logs"):
        render_log(result.execution_log, height=260)

    st.subheader("Deployment Guide")
    st.markdown(
        "1. **Generate Model Artifact**: running the script saves a `model.pkl` file locally.\n"
        "2. **Load for Inference**:"
    )
    st.code("import joblib\nmodel = joblib.load('model.pkl')\npredictions = model.predict(new_data)", language="python")

    st.markdown("---")
    section_header("Model Explainability (SHAP)", "Generate visualization code to understand your model's decisions.")

    shap_script = st.session_state.get(SHAP_KEY)
    if shap_script is None:
        if st.button("Generate SHAP Code"):
            with st.spinner("Writing Explainability Script..."):
                shap_script = run_async(make_collaborator(controller.settings).generate_shap_script(dataset, config))
            st.session_state[SHAP_KEY] = shap_script
            st.rerun()
    else:
        st.markdown("**SHAP Visualization Script**")
        st.code(shap_script, language="python")
        st.caption("Requires 'pip install shap matplotlib'. Assumes 'model.pkl' and 'dataset.csv' are in the same directory.")
        st.download_button(
            label="Download",
            data=shap_script,
            file_name=SHAP_FILENAME,
            mime="text/x-python",
            key="download_shap",
        )

    st.markdown("---")
    if st.button("Start New Experiment", type="primary"):
        on_reset()
