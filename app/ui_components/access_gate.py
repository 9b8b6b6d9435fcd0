"""Access gate: code entry and the admin console."""
import streamlit as st

from hypertune.access import AccessGate, CodeRegistry, GateState
from hypertune.errors import ValidationError
from hypertune.workflow import WorkflowController

GATE_KEY = "access_gate"


def _gate(controller: WorkflowController) -> AccessGate:
    if GATE_KEY not in st.session_state:
        registry = CodeRegistry(controller.store, builtins=controller.settings.builtin_codes)
        st.session_state[GATE_KEY] = AccessGate(registry, controller.settings)
    return st.session_state[GATE_KEY]


def _enter(controller: WorkflowController, gate: AccessGate):
    controller.grant_access(gate.session)
    del st.session_state[GATE_KEY]
    st.rerun()


def render_access_gate(controller: WorkflowController):
    gate = _gate(controller)

    _, center, _ = st.columns([1, 2, 1])
    with center:
        if gate.state == GateState.ADMIN_UNLOCKED:
            _render_admin_console(controller, gate)
            return

        st.header("Limit Reached")
        st.markdown("You have used your free trials. Enter access code to continue.")

        with st.form("access_code_form"):
            code = st.text_input("Access Code", autocomplete="off")
            submitted = st.form_submit_button("Unlock Platform", type="primary", use_container_width=True)

        if submitted:
            with st.spinner("Verifying..."):
                state = gate.submit(code)
            if state == GateState.SUCCESS:
                _enter(controller, gate)
            st.rerun()

        if gate.state == GateState.FAILURE and gate.error:
            st.error(gate.error)

        hours = controller.settings.session_duration_ms // 3_600_000
        st.caption(f"Valid session: {hours}h")


def _render_admin_console(controller: WorkflowController, gate: AccessGate):
    st.header("Admin Console")
    st.success("Welcome back, Admin.")
    st.markdown("Generate access codes for new users.")

    with st.form("mint_code_form", clear_on_submit=True):
        name = st.text_input("User Name / ID")
        days = st.number_input("Validity Duration (Days)", min_value=1, max_value=365, value=1, step=1)
        minted = st.form_submit_button("Generate User Code", use_container_width=True)

    if minted:
        try:
            gate.mint_code(name, days)
        except ValidationError as e:
            st.error(str(e))

    if gate.generated_code:
        st.markdown("**New Access Code:**")
        st.code(gate.generated_code, language=None)
    else:
        st.caption("No code generated yet")

    st.markdown("---")
    if st.button("Enter Platform", use_container_width=True):
        gate.enter_as_admin()
        _enter(controller, gate)
