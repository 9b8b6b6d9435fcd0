"""LLM and runtime wiring for the HyperTune UI.

API Key Priority:
1. User-provided OPENAI_API_KEY from st.secrets or os.environ (gives you control over costs)
2. Replit's AI_INTEGRATIONS_OPENAI_API_KEY (fallback)
"""
import asyncio
import logging
import os
from typing import Optional

import streamlit as st

from hypertune.config import Settings
from hypertune.errors import ConfigError
from hypertune.generation import GenerationCollaborator, OpenAICollaborator
from hypertune.store import JsonFileSessionStore

logger = logging.getLogger(__name__)


def _secret(name: str) -> Optional[str]:
    try:
        if name in st.secrets:
            return st.secrets[name]
    except FileNotFoundError:
        # No secrets.toml for this deployment.
        logger.debug("No Streamlit secrets file; %s read from environment", name)
    return None


def get_openai_api_key() -> Optional[str]:
    """
    Get OpenAI API key with user-provided key taking priority.

    Priority order:
    1. st.secrets["OPENAI_API_KEY"] - user-configured secret
    2. os.environ["OPENAI_API_KEY"] - environment variable
    3. os.environ["AI_INTEGRATIONS_OPENAI_API_KEY"] - Replit integration (fallback)
    """
    return (
        _secret("OPENAI_API_KEY")
        or os.environ.get("OPENAI_API_KEY")
        or os.environ.get("AI_INTEGRATIONS_OPENAI_API_KEY")
    )


def get_openai_base_url() -> Optional[str]:
    """Get OpenAI base URL if configured."""
    return (
        _secret("OPENAI_BASE_URL")
        or os.environ.get("OPENAI_BASE_URL")
        or os.environ.get("AI_INTEGRATIONS_OPENAI_BASE_URL")
    )


def load_settings() -> Settings:
    try:
        return Settings.from_env(openai_api_key=get_openai_api_key(), openai_base_url=get_openai_base_url())
    except ConfigError as e:
        logger.error("%s", e)
        st.error(f"**Configuration error**\n\n{e}")
        st.stop()


@st.cache_resource
def get_store(path: str) -> JsonFileSessionStore:
    """One store per state file, shared by every browser session of this server."""
    return JsonFileSessionStore(path)


def make_collaborator(settings: Settings) -> GenerationCollaborator:
    """
    A fresh collaborator per call: the async OpenAI client is tied to the
    event loop it was first used on, and each UI action runs its own loop.
    """
    return OpenAICollaborator.from_settings(settings)


def run_async(coro):
    """Run a coroutine to completion from Streamlit's script thread."""
    return asyncio.run(coro)


def llm_configured(settings: Settings) -> bool:
    return bool(settings.openai_api_key)
