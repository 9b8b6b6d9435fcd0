"""Experiment configuration step."""
import streamlit as st

from hypertune.config import Settings
from hypertune.configurator import ExperimentConfigurator
from hypertune.errors import ValidationError
from hypertune.models import DatasetPreview, ModelType, TuningMethod
from hypertune.presets import AVAILABLE_MODELS, CUSTOM_PRESET, TUNING_METHODS, model_label
from hypertune.workflow import WorkflowController

from llm_utils import make_collaborator, run_async
from style_utils import method_badge

CONFIGURATOR_KEY = "configurator"
SUGGESTION_KEY = "dataset_suggestion"

_MODEL_DESCRIPTIONS = {m.value: m.description for m in AVAILABLE_MODELS}
_METHODS = {m.value: m for m in TUNING_METHODS}


def _sync_widgets(cfg: ExperimentConfigurator):
    st.session_state.cfg_target = cfg.target_column
    st.session_state.cfg_model = cfg.model_type
    st.session_state.cfg_preset = cfg.selected_preset or CUSTOM_PRESET
    st.session_state.cfg_hp = cfg.hyperparams
    st.session_state.cfg_method = cfg.tuning_method
    st.session_state.cfg_trials = cfg.n_trials
    st.session_state.cfg_folds = cfg.cv_folds


def get_configurator(dataset: DatasetPreview) -> ExperimentConfigurator:
    """One configurator per dataset; kept while moving between CONFIG and TUNING."""
    cfg = st.session_state.get(CONFIGURATOR_KEY)
    if cfg is None or cfg.dataset is not dataset:
        cfg = ExperimentConfigurator(dataset)
        st.session_state[CONFIGURATOR_KEY] = cfg
        _sync_widgets(cfg)
    elif "cfg_model" not in st.session_state:
        # Streamlit drops widget state for widgets that were not rendered last run.
        _sync_widgets(cfg)
    return cfg


def _on_model_change():
    cfg = st.session_state[CONFIGURATOR_KEY]
    cfg.select_model(st.session_state.cfg_model)
    st.session_state.cfg_preset = cfg.selected_preset or CUSTOM_PRESET
    st.session_state.cfg_hp = cfg.hyperparams


def _on_preset_change():
    cfg = st.session_state[CONFIGURATOR_KEY]
    cfg.select_preset(st.session_state.cfg_preset)
    st.session_state.cfg_hp = cfg.hyperparams


def _on_hyperparams_edit():
    cfg = st.session_state[CONFIGURATOR_KEY]
    cfg.edit_hyperparams(st.session_state.cfg_hp)
    st.session_state.cfg_preset = CUSTOM_PRESET


def _suggestion(dataset: DatasetPreview, settings: Settings) -> str:
    cached = st.session_state.get(SUGGESTION_KEY)
    if cached and cached[0] is dataset:
        return cached[1]
    with st.spinner("AI is analyzing schema..."):
        text = run_async(make_collaborator(settings).suggest_model(dataset))
    st.session_state[SUGGESTION_KEY] = (dataset, text)
    return text


def render_model_config(controller: WorkflowController):
    dataset = controller.state.dataset
    cfg = get_configurator(dataset)

    st.header("Configure Experiment")
    rows = f"{dataset.row_count:,} rows" if dataset.row_count_exact else "large file, row count unknown"
    st.caption(f"`{dataset.filename}` · {len(dataset.columns)} columns · {rows}")

    left, right = st.columns([3, 2])

    with left:
        st.selectbox("Target Variable", dataset.columns, key="cfg_target")
        st.info(_suggestion(dataset, controller.settings))

        st.selectbox(
            f"Select Model Architecture ({len(AVAILABLE_MODELS)} options)",
            [m.value for m in AVAILABLE_MODELS],
            format_func=model_label,
            key="cfg_model",
            on_change=_on_model_change,
        )
        st.caption(_MODEL_DESCRIPTIONS.get(ModelType(st.session_state.cfg_model), ""))

        st.selectbox(
            "Preset:",
            cfg.preset_names + [CUSTOM_PRESET],
            key="cfg_preset",
            on_change=_on_preset_change,
        )
        st.text_area(
            "Hyperparameter Search Space",
            key="cfg_hp",
            height=180,
            on_change=_on_hyperparams_edit,
        )

        st.radio(
            "Tuning Strategy",
            [m.value for m in TUNING_METHODS],
            format_func=lambda v: _METHODS[TuningMethod(v)].label,
            key="cfg_method",
        )
        chosen = _METHODS[TuningMethod(st.session_state.cfg_method)]
        badge = method_badge(chosen.badge) + " " if chosen.badge else ""
        st.markdown(f"{badge}{chosen.description}", unsafe_allow_html=True)

        with st.expander("Advanced Configuration"):
            st.number_input(
                "Number of Trials", step=1, key="cfg_trials",
                help="Total iterations, typically 10 to 1000. Higher values search more space but take longer.",
            )
            st.number_input(
                "Cross-Validation Folds", step=1, key="cfg_folds",
                help="Splits data for validation, typically 2 to 20. Higher values reduce overfitting risk.",
            )

    with right:
        st.subheader("Data Preview")
        st.dataframe(dataset.to_frame(), use_container_width=True, hide_index=True)
        st.subheader("Tuning Tips")
        st.markdown(
            "- Bayesian Optimization is generally 3-5x more efficient than Random Search for complex models like XGBoost.\n"
            "- Use 5+ CV Folds for datasets smaller than 1,000 rows to ensure the score is reliable.\n"
            "- The 'High Accuracy' preset explores a wider hyperparameter space but requires more trials."
        )

    st.markdown("---")
    back, launch = st.columns([1, 3])
    with back:
        if st.button("Select Different Dataset"):
            controller.back_to_upload()
            st.rerun()
    with launch:
        if st.button("Launch Optimization Engine", type="primary", use_container_width=True):
            cfg.select_target(st.session_state.cfg_target)
            cfg.select_method(st.session_state.cfg_method)
            cfg.set_n_trials(st.session_state.cfg_trials)
            cfg.set_cv_folds(st.session_state.cfg_folds)
            try:
                config = cfg.build()
            except ValidationError as e:
                st.error(str(e))
                return
            controller.submit_config(config)
            st.rerun()
