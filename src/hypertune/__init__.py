"""HyperTune core: access gating, dataset preview, tuning configuration,
and the generation pipeline behind the Streamlit UI."""

__version__ = "0.1.0"
