from __future__ import annotations

from enum import Enum, IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ModelType(str, Enum):
    """Estimator families the generation service knows how to tune."""
    RANDOM_FOREST = "RandomForest"
    XGBOOST = "XGBoost"
    SVM = "SVM"
    LOGISTIC_REGRESSION = "LogisticRegression"
    KNN = "KNearestNeighbors"
    GRADIENT_BOOSTING = "GradientBoosting"
    DECISION_TREE = "DecisionTree"
    LINEAR_REGRESSION = "LinearRegression"
    ADABOOST = "AdaBoost"
    EXTRA_TREES = "ExtraTrees"
    LIGHTGBM = "LightGBM"
    CATBOOST = "CatBoost"


class TuningMethod(str, Enum):
    RANDOM_SEARCH = "Random Search"
    GRID_SEARCH = "Grid Search"
    BAYESIAN_OPTUNA = "Bayesian Optimization (Optuna)"
    HYPERBAND = "Hyperband (Optuna)"


class WorkflowStep(IntEnum):
    """
    The linear user journey. Ordering matches the on-screen progression.
    """
    ACCESS_GATE = 0
    UPLOAD = 1
    CONFIG = 2
    TUNING = 3
    RESULTS = 4


class Session(BaseModel):
    """
    A time-bounded grant derived from a validated access code.

    access_code: the code the user signed in with
    expiry: absolute epoch milliseconds; the session is valid iff now < expiry
    is_admin: True when signed in with the admin code
    """
    model_config = ConfigDict(frozen=True)

    access_code: str
    expiry: int
    is_admin: bool = False

    def is_valid(self, now_ms: int) -> bool:
        return now_ms < self.expiry


class DatasetPreview(BaseModel):
    """
    Lightweight view of an uploaded CSV, built from a bounded prefix of the file.

    row_count is exact only when the whole file fit in the prefix; otherwise it
    is ROW_COUNT_SENTINEL and `row_count_exact` is False.
    """
    model_config = ConfigDict(frozen=True)

    filename: str
    columns: list[str]
    row_count: int
    sample_data: list[dict[str, str]]
    row_count_exact: bool = True

    def to_frame(self):
        import pandas as pd

        return pd.DataFrame(self.sample_data, columns=self.columns)


class TuningConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    target_column: str
    model_type: ModelType
    tuning_method: TuningMethod
    test_size: float = 0.2
    n_trials: int
    cv_folds: int
    hyperparams: str = ""


class GenerationResult(BaseModel):
    """
    Reply shape of the generation collaborator.

    An error reply has `script` starting with ERROR_MARKER and the reason in `logs`.
    """
    model_config = ConfigDict(frozen=True)

    script: str
    logs: list[str] = Field(default_factory=list)
    best_params: dict[str, Any] = Field(default_factory=dict)
    best_score: float = 0.0
    metric: str = "Score"


class TuningResult(BaseModel):
    """Terminal artifact of one workflow run."""
    model_config = ConfigDict(frozen=True)

    best_params: dict[str, Any] = Field(default_factory=dict)
    best_score: float
    metric: str
    python_script: str
    execution_log: list[str] = Field(default_factory=list)
