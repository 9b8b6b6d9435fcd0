from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from hypertune.config import Settings
from hypertune.models import DatasetPreview, GenerationResult, ModelType, TuningConfig, TuningMethod
from hypertune.store import MemorySessionStore


class StubCollaborator:
    """Test double for the generation service. Records every call."""

    def __init__(
        self,
        result: Optional[GenerationResult] = None,
        *,
        delay: float = 0.0,
        error: Optional[BaseException] = None,
        shap: str = "import shap",
        suggestion: str = "Random Forest for Classification.",
    ):
        self.result = result or GenerationResult(
            script="import optuna\nprint('tuning')",
            logs=["Preprocessing: 2 numeric columns", "Trial 1: score=0.81", "Best score: 0.87"],
            best_params={"n_estimators": 200, "max_depth": 10},
            best_score=0.87,
            metric="Accuracy",
        )
        self.delay = delay
        self.error = error
        self.shap = shap
        self.suggestion = suggestion
        self.calls: list[tuple[DatasetPreview, TuningConfig]] = []

    async def generate(self, dataset: DatasetPreview, config: TuningConfig) -> GenerationResult:
        self.calls.append((dataset, config))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result

    async def generate_shap_script(self, dataset: DatasetPreview, config: TuningConfig) -> str:
        return self.shap

    async def suggest_model(self, dataset: DatasetPreview) -> str:
        return self.suggestion


@pytest.fixture
def dataset() -> DatasetPreview:
    rows = [{"a": "1", "b": "2", "c": "3"}, {"a": "4", "b": "5", "c": "6"}]
    return DatasetPreview(filename="data.csv", columns=["a", "b", "c"], row_count=2, sample_data=rows)


@pytest.fixture
def config() -> TuningConfig:
    return TuningConfig(
        target_column="c",
        model_type=ModelType.RANDOM_FOREST,
        tuning_method=TuningMethod.BAYESIAN_OPTUNA,
        n_trials=30,
        cv_folds=5,
        hyperparams="n_estimators: [100]",
    )


@pytest.fixture
def store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        verify_delay_s=0,
        startup_interval_s=0.001,
        playback_interval_s=0,
        completion_delay_s=0,
        state_file=tmp_path / "state.json",
    )
