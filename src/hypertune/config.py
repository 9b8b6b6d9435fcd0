"""Runtime settings.

Every value has a default matching the reference deployment and can be
overridden through a HYPERTUNE_* environment variable (or a `.env` file), e.g.

    HYPERTUNE_FREE_TRIAL_LIMIT=5 hypertune serve

OpenAI credentials are read from the unprefixed OPENAI_API_KEY and
OPENAI_BASE_URL variables.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError

ADMIN_CODE = "kopihitamenak"
DEMO_ACCESS_CODES = ("DEMO-123", "HYPER-2025")
BUILTIN_ACCESS_CODES = DEMO_ACCESS_CODES + (ADMIN_CODE,)
SESSION_HOURS = 24.0
SESSION_DURATION_MS = int(SESSION_HOURS * 60 * 60 * 1000)
FREE_TRIAL_LIMIT = 2

DEFAULT_N_TRIALS = 30
DEFAULT_CV_FOLDS = 5
TEST_SIZE = 0.2

STATE_FILENAME = "state.json"


def _env(field: str, name: str) -> AliasChoices:
    # The field name stays first so keyword arguments win over the environment.
    return AliasChoices(field, name)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="HYPERTUNE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    free_trial_limit: int = Field(FREE_TRIAL_LIMIT, ge=0)
    session_hours: float = Field(SESSION_HOURS, gt=0)
    admin_code: str = Field(ADMIN_CODE, min_length=1)
    # Login pacing only; zero disables it.
    verify_delay_s: float = Field(0.8, ge=0, validation_alias=_env("verify_delay_s", "HYPERTUNE_VERIFY_DELAY"))
    startup_interval_s: float = Field(
        0.08, ge=0, validation_alias=_env("startup_interval_s", "HYPERTUNE_STARTUP_INTERVAL")
    )
    playback_interval_s: float = Field(
        0.005, ge=0, validation_alias=_env("playback_interval_s", "HYPERTUNE_PLAYBACK_INTERVAL")
    )
    completion_delay_s: float = Field(
        0.3, ge=0, validation_alias=_env("completion_delay_s", "HYPERTUNE_COMPLETION_DELAY")
    )
    state_dir: Path = Field(default_factory=lambda: Path.cwd() / ".hypertune")
    # Overrides state_dir when set.
    state_file: Optional[Path] = None
    llm_model: str = "gpt-4o-mini"
    openai_api_key: Optional[str] = Field(None, validation_alias=_env("openai_api_key", "OPENAI_API_KEY"))
    openai_base_url: Optional[str] = Field(None, validation_alias=_env("openai_base_url", "OPENAI_BASE_URL"))

    @property
    def session_duration_ms(self) -> int:
        return int(self.session_hours * 60 * 60 * 1000)

    @property
    def builtin_codes(self) -> tuple[str, ...]:
        return DEMO_ACCESS_CODES + (self.admin_code,)

    @property
    def state_path(self) -> Path:
        return self.state_file or self.state_dir / STATE_FILENAME

    @classmethod
    def from_env(cls, **overrides) -> "Settings":
        """
        Build settings from the environment. Overrides whose value is None are ignored.

        Raises ConfigError naming every invalid variable.
        """
        try:
            return cls(**{k: v for k, v in overrides.items() if v is not None})
        except PydanticValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ConfigError(f"Invalid settings: {problems}") from e
