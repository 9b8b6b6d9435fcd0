from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from hypertune import cli
from hypertune.config import ADMIN_CODE, SESSION_DURATION_MS, Settings
from hypertune.errors import ConfigError

ENV_VARS = (
    "HYPERTUNE_FREE_TRIAL_LIMIT",
    "HYPERTUNE_SESSION_HOURS",
    "HYPERTUNE_VERIFY_DELAY",
    "HYPERTUNE_STARTUP_INTERVAL",
    "HYPERTUNE_ADMIN_CODE",
    "HYPERTUNE_STATE_DIR",
    "HYPERTUNE_STATE_FILE",
    "HYPERTUNE_LLM_MODEL",
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
)


@pytest.fixture(autouse=True)
def clean_env(tmp_path: Path, monkeypatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's .env out of the picture.
    monkeypatch.chdir(tmp_path)


def test_defaults(tmp_path: Path) -> None:
    settings = Settings.from_env()
    assert settings.free_trial_limit == 2
    assert settings.session_duration_ms == SESSION_DURATION_MS
    assert settings.builtin_codes == ("DEMO-123", "HYPER-2025", ADMIN_CODE)
    assert settings.state_path.resolve() == (tmp_path / ".hypertune" / "state.json").resolve()
    assert settings.openai_api_key is None


def test_environment_overrides(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("HYPERTUNE_FREE_TRIAL_LIMIT", "5")
    monkeypatch.setenv("HYPERTUNE_SESSION_HOURS", "1.5")
    monkeypatch.setenv("HYPERTUNE_VERIFY_DELAY", "0")
    monkeypatch.setenv("HYPERTUNE_STARTUP_INTERVAL", "0.01")
    monkeypatch.setenv("HYPERTUNE_ADMIN_CODE", "open-sesame")
    monkeypatch.setenv("HYPERTUNE_LLM_MODEL", "gpt-4o")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")

    settings = Settings.from_env()

    assert settings.free_trial_limit == 5
    assert settings.session_duration_ms == 90 * 60 * 1000
    assert settings.verify_delay_s == 0
    assert settings.startup_interval_s == 0.01
    assert settings.builtin_codes == ("DEMO-123", "HYPER-2025", "open-sesame")
    assert ADMIN_CODE not in settings.builtin_codes
    assert settings.llm_model == "gpt-4o"
    assert settings.openai_api_key == "sk-env"


def test_state_file_wins_over_state_dir(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("HYPERTUNE_STATE_DIR", str(tmp_path / "dir"))
    assert Settings.from_env().state_path == tmp_path / "dir" / "state.json"

    monkeypatch.setenv("HYPERTUNE_STATE_FILE", str(tmp_path / "usage.json"))
    assert Settings.from_env().state_path == tmp_path / "usage.json"


def test_explicit_values_beat_environment(monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    monkeypatch.setenv("HYPERTUNE_VERIFY_DELAY", "2")

    settings = Settings.from_env(openai_api_key="sk-secret", openai_base_url=None, verify_delay_s=0)

    assert settings.openai_api_key == "sk-secret"
    assert settings.openai_base_url is None
    assert settings.verify_delay_s == 0


@pytest.mark.parametrize(
    "name,value",
    [
        ("HYPERTUNE_FREE_TRIAL_LIMIT", "two"),
        ("HYPERTUNE_FREE_TRIAL_LIMIT", "-1"),
        ("HYPERTUNE_SESSION_HOURS", "0"),
        ("HYPERTUNE_STARTUP_INTERVAL", "fast"),
    ],
)
def test_invalid_environment_value_is_config_error(monkeypatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigError):
        Settings.from_env()


def test_cli_reports_invalid_settings(monkeypatch) -> None:
    monkeypatch.setenv("HYPERTUNE_FREE_TRIAL_LIMIT", "two")
    res = CliRunner().invoke(cli.app, ["usage"])
    assert res.exit_code == 2
    assert "ERROR: Invalid settings" in res.output
    assert "free_trial_limit" in res.output
