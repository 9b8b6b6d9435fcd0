from __future__ import annotations

import logging
from typing import Any, Optional

from .config import DEFAULT_CV_FOLDS, DEFAULT_N_TRIALS, TEST_SIZE
from .errors import ValidationError
from .models import DatasetPreview, ModelType, TuningConfig, TuningMethod
from .presets import CUSTOM_PRESET, default_preset, presets_for
from .utils import parse_int_or

logger = logging.getLogger(__name__)

N_TRIALS_FALLBACK = 10
CV_FOLDS_FALLBACK = 3


class ExperimentConfigurator:
    """
    Form state for the CONFIG step.

    Holds the user's current choices and turns them into a TuningConfig on
    submit. The hyperparameter text is passed through verbatim; its syntax
    is checked by the generation service, not here.
    """

    def __init__(
        self,
        dataset: DatasetPreview,
        *,
        model_type: ModelType = ModelType.RANDOM_FOREST,
        tuning_method: TuningMethod = TuningMethod.BAYESIAN_OPTUNA,
    ):
        self.dataset = dataset
        self.target_column: Optional[str] = dataset.columns[-1] if dataset.columns else None
        self.tuning_method = TuningMethod(tuning_method)
        self.n_trials = DEFAULT_N_TRIALS
        self.cv_folds = DEFAULT_CV_FOLDS
        self.model_type = ModelType(model_type)
        self.selected_preset: Optional[str] = None
        self.hyperparams = ""
        self.select_model(self.model_type)

    @property
    def preset_names(self) -> list[str]:
        return list(presets_for(self.model_type))

    def select_model(self, model_type: ModelType) -> None:
        """Switch model and load its default preset, discarding manual edits."""
        self.model_type = ModelType(model_type)
        preset = default_preset(self.model_type)
        self.selected_preset = preset
        self.hyperparams = presets_for(self.model_type).get(preset, "") if preset else ""

    def select_preset(self, name: str) -> None:
        if name == CUSTOM_PRESET:
            self.selected_preset = CUSTOM_PRESET
            return
        presets = presets_for(self.model_type)
        if name not in presets:
            raise ValidationError(f"Unknown preset '{name}' for {self.model_type.value}.")
        self.selected_preset = name
        self.hyperparams = presets[name]

    def edit_hyperparams(self, text: str) -> None:
        self.hyperparams = text
        self.selected_preset = CUSTOM_PRESET

    def select_target(self, column: str) -> None:
        self.target_column = column

    def select_method(self, method: TuningMethod) -> None:
        self.tuning_method = TuningMethod(method)

    def set_n_trials(self, raw: Any) -> int:
        self.n_trials = parse_int_or(raw, N_TRIALS_FALLBACK)
        return self.n_trials

    def set_cv_folds(self, raw: Any) -> int:
        self.cv_folds = parse_int_or(raw, CV_FOLDS_FALLBACK)
        return self.cv_folds

    def build(self) -> TuningConfig:
        if not self.target_column:
            raise ValidationError("Select a target column.")
        if self.target_column not in self.dataset.columns:
            raise ValidationError(f'Target column "{self.target_column}" not found in dataset.')
        config = TuningConfig(
            target_column=self.target_column,
            model_type=self.model_type,
            tuning_method=self.tuning_method,
            test_size=TEST_SIZE,
            n_trials=self.n_trials,
            cv_folds=self.cv_folds,
            hyperparams=self.hyperparams,
        )
        logger.info(
            "Tuning request: model=%s method=%s target=%s trials=%d folds=%d preset=%s",
            config.model_type.value,
            config.tuning_method.value,
            config.target_column,
            config.n_trials,
            config.cv_folds,
            self.selected_preset,
        )
        return config
