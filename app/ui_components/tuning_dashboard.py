"""
Tuning step: runs the generation pipeline and streams its progress/log.

Each entry into TUNING (and each Retry) has its own attempt number. The
pipeline runs at most once per attempt; its terminal state is kept in
session_state so later reruns redraw it instead of calling the service again.
A rerun that interrupts a live run tears the pipeline down and the next
render mounts a new one.
"""
import logging

import streamlit as st

from hypertune.models import TuningResult
from hypertune.pipeline import GenerationPipeline, PipelineOutcome, PipelineSnapshot
from hypertune.presets import model_label
from hypertune.workflow import WorkflowController

from llm_utils import make_collaborator, run_async
from style_utils import render_log

logger = logging.getLogger(__name__)

RUN_KEY = "tuning_run"


def render_tuning_dashboard(controller: WorkflowController):
    config = controller.state.config
    dataset = controller.state.dataset
    attempt = controller.tuning_attempt

    st.header("Optimization in Progress...")
    st.caption(f"Tuning Model: **{model_label(config.model_type)}** · {config.tuning_method.value} · target `{config.target_column}`")

    finished = st.session_state.get(RUN_KEY)
    if finished and finished["attempt"] == attempt:
        _render_terminal(controller, finished)
        return

    status = st.empty()
    bar = st.progress(0)
    log_box = st.empty()

    def on_update(snap: PipelineSnapshot):
        bar.progress(int(snap.progress))
        status.markdown(f"**Generating Script** · {int(snap.progress)}%")
        with log_box.container():
            render_log(snap.logs)

    results: list[TuningResult] = []
    pipeline = GenerationPipeline.from_settings(
        make_collaborator(controller.settings), controller.settings, on_update=on_update
    )
    try:
        outcome = run_async(pipeline.run(dataset, config, results.append))
    finally:
        pipeline.cancel()

    if outcome == PipelineOutcome.COMPLETED and results:
        controller.complete_tuning(results[0])
        st.rerun()

    st.session_state[RUN_KEY] = {
        "attempt": attempt,
        "outcome": outcome,
        "logs": pipeline.logs,
        "progress": pipeline.progress,
    }
    logger.info("Tuning attempt %d ended without a result: %s", attempt, outcome.value)
    st.rerun()


def _render_terminal(controller: WorkflowController, finished: dict):
    st.progress(int(finished["progress"]))
    render_log(finished["logs"])

    if finished["outcome"] == PipelineOutcome.ERROR_STOP:
        st.error("The optimization engine rejected this configuration. Review the log above.")
    else:
        st.error("An unexpected error occurred during the process.")

    retry, back = st.columns(2)
    with retry:
        if st.button("Retry Operation", use_container_width=True):
            controller.retry_tuning()
            st.rerun()
    with back:
        if st.button("Return to Configuration", type="primary", use_container_width=True):
            controller.back_to_config()
            st.rerun()
