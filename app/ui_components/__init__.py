"""UI components for HyperTune."""
from .header import render_header, render_sidebar
from .access_gate import render_access_gate
from .upload import render_upload
from .model_config import render_model_config
from .tuning_dashboard import render_tuning_dashboard
from .recovery import render_recovery
from .results import render_results

__all__ = [
    "render_header",
    "render_sidebar",
    "render_access_gate",
    "render_upload",
    "render_model_config",
    "render_tuning_dashboard",
    "render_recovery",
    "render_results",
]
