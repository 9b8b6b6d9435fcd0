from __future__ import annotations

import pytest

from hypertune import presets
from hypertune.configurator import CV_FOLDS_FALLBACK, N_TRIALS_FALLBACK, ExperimentConfigurator
from hypertune.errors import ValidationError
from hypertune.models import DatasetPreview, ModelType, TuningMethod
from hypertune.presets import AVAILABLE_MODELS, CUSTOM_PRESET, MODEL_PRESETS, TUNING_METHODS, default_preset


def test_catalogue_covers_every_model_with_presets() -> None:
    assert {m.value for m in AVAILABLE_MODELS} == set(ModelType)
    assert {m.value for m in TUNING_METHODS} == set(TuningMethod)
    for model in ModelType:
        assert MODEL_PRESETS[model], model


def test_defaults(dataset: DatasetPreview) -> None:
    cfg = ExperimentConfigurator(dataset)
    assert cfg.target_column == "c"
    assert cfg.model_type == ModelType.RANDOM_FOREST
    assert cfg.tuning_method == TuningMethod.BAYESIAN_OPTUNA
    assert cfg.selected_preset == "Balanced"
    assert cfg.hyperparams == MODEL_PRESETS[ModelType.RANDOM_FOREST]["Balanced"]
    assert (cfg.n_trials, cfg.cv_folds) == (30, 5)


def test_switching_model_resets_preset_and_discards_edits(dataset: DatasetPreview) -> None:
    cfg = ExperimentConfigurator(dataset)
    cfg.edit_hyperparams("max_depth: [3]")
    cfg.select_model(ModelType.SVM)
    assert cfg.selected_preset == "Balanced"
    assert cfg.hyperparams == MODEL_PRESETS[ModelType.SVM]["Balanced"]


def test_default_preset_falls_back_to_first(monkeypatch) -> None:
    monkeypatch.setitem(presets.MODEL_PRESETS, ModelType.SVM, {"Quick": "C: [1]", "Wide": "C: [1, 10]"})
    assert default_preset(ModelType.SVM) == "Quick"


def test_manual_edit_switches_to_custom_and_is_kept(dataset: DatasetPreview) -> None:
    cfg = ExperimentConfigurator(dataset)
    cfg.edit_hyperparams("n_estimators: [7]")
    assert cfg.selected_preset == CUSTOM_PRESET

    cfg.select_preset(CUSTOM_PRESET)
    assert cfg.hyperparams == "n_estimators: [7]"

    cfg.select_preset("Fast")
    assert cfg.hyperparams == MODEL_PRESETS[ModelType.RANDOM_FOREST]["Fast"]


def test_unknown_preset_rejected(dataset: DatasetPreview) -> None:
    with pytest.raises(ValidationError):
        ExperimentConfigurator(dataset).select_preset("Turbo")


@pytest.mark.parametrize(
    "raw,expected",
    [("abc", N_TRIALS_FALLBACK), ("", N_TRIALS_FALLBACK), ("0", N_TRIALS_FALLBACK), ("45", 45), ("12.9", 12), (5000, 5000)],
)
def test_trial_count_parsing(dataset: DatasetPreview, raw, expected) -> None:
    assert ExperimentConfigurator(dataset).set_n_trials(raw) == expected


def test_fold_count_parsing(dataset: DatasetPreview) -> None:
    cfg = ExperimentConfigurator(dataset)
    assert cfg.set_cv_folds("x") == CV_FOLDS_FALLBACK
    assert cfg.set_cv_folds("1") == 1


def test_build_packages_choices_verbatim(dataset: DatasetPreview) -> None:
    cfg = ExperimentConfigurator(dataset)
    cfg.select_target("a")
    cfg.select_method(TuningMethod.GRID_SEARCH)
    cfg.edit_hyperparams("not: [valid yaml")
    cfg.set_n_trials("12")
    cfg.set_cv_folds("4")

    config = cfg.build()

    assert config.target_column == "a"
    assert config.tuning_method == TuningMethod.GRID_SEARCH
    assert config.hyperparams == "not: [valid yaml"
    assert config.test_size == 0.2
    assert (config.n_trials, config.cv_folds) == (12, 4)


def test_build_requires_known_target(dataset: DatasetPreview) -> None:
    cfg = ExperimentConfigurator(dataset)
    cfg.select_target("missing")
    with pytest.raises(ValidationError):
        cfg.build()

    empty = DatasetPreview(filename="e.csv", columns=[], row_count=0, sample_data=[])
    with pytest.raises(ValidationError):
        ExperimentConfigurator(empty).build()
