from __future__ import annotations

import json

from ..models import DatasetPreview, TuningConfig

SYSTEM_PROMPT = (
    "You are a senior ML engineer. You write production-ready Python and "
    "report simulated execution logs. Return ONLY valid JSON when asked for JSON."
)

_MODEL_LIBRARIES = """\
  * RandomForest: sklearn.ensemble.RandomForestClassifier/Regressor
  * ExtraTrees: sklearn.ensemble.ExtraTreesClassifier/Regressor
  * GradientBoosting: sklearn.ensemble.GradientBoostingClassifier/Regressor
  * AdaBoost: sklearn.ensemble.AdaBoostClassifier/Regressor
  * DecisionTree: sklearn.tree.DecisionTreeClassifier/Regressor. Prioritize 'max_depth', 'min_samples_split', 'min_samples_leaf', 'criterion', 'ccp_alpha'.
  * LinearRegression: sklearn.linear_model.LinearRegression. Prioritize 'fit_intercept', 'positive'.
  * LogisticRegression: sklearn.linear_model.LogisticRegression
  * SVM: sklearn.svm.SVC/SVR
  * KNearestNeighbors: sklearn.neighbors.KNeighborsClassifier/Regressor
  * XGBoost: xgboost.XGBClassifier/Regressor
  * LightGBM: lightgbm.LGBMClassifier/Regressor
  * CatBoost: catboost.CatBoostClassifier/Regressor"""

_TUNING_ENGINES = """\
  * 'Grid Search': sklearn.model_selection.GridSearchCV.
  * 'Random Search': sklearn.model_selection.RandomizedSearchCV or optuna.samplers.RandomSampler.
  * 'Bayesian Optimization (Optuna)': optuna with TPESampler.
  * 'Hyperband (Optuna)': optuna with HyperbandPruner."""

TREE_MODELS = {
    "RandomForest", "XGBoost", "LightGBM", "CatBoost", "DecisionTree",
    "GradientBoosting", "ExtraTrees", "AdaBoost",
}


def dataset_summary(dataset: DatasetPreview, sample_rows: int = 3) -> dict:
    """The only dataset facts sent to the remote service."""
    return {
        "filename": dataset.filename,
        "columns": list(dataset.columns),
        "row_count": dataset.row_count if dataset.row_count_exact else "unknown (large file)",
        "sample": dataset.sample_data[:sample_rows],
    }


def build_training_prompt(dataset: DatasetPreview, config: TuningConfig) -> str:
    summary = dataset_summary(dataset)
    return f"""Act as a ML Engineer.

TASK:
1. Write a production-ready Python script for hyperparameter tuning.
2. SIMULATE its execution and produce brief logs.

CONTEXT:
- Model: {config.model_type.value}
- Target: "{config.target_column}"
- Columns: [{", ".join(summary["columns"])}]
- Sample: {json.dumps(summary["sample"])}
- Method: {config.tuning_method.value}
- Hyperparams:
{config.hyperparams}
- Test size: {config.test_size}
- CV Folds: {config.cv_folds}
- Trials: {config.n_trials}

REQUIREMENTS:
- Load 'dataset.csv' via pandas.
- Preprocessing: impute missing values (SimpleImputer) and encode categoricals. Drop high-cardinality IDs.
- Model libraries (strict):
{_MODEL_LIBRARIES}
- Tuning engine:
{_TUNING_ENGINES}
- Hyperparameter validation: you are the validation engine.
  * If the Hyperparams text is malformed or invalid for {config.model_type.value}:
    script must start EXACTLY with "# Error: Invalid Hyperparameter Configuration" followed by
    comments explaining the problem; logs must be ["Error: Hyperparameter validation failed.", "<reason>"].
  * If valid, use the search space as given. Use sensible defaults ONLY if it is empty.
- Use {config.cv_folds}-fold CV, run {config.n_trials} trials, retrain on full data, save 'model.pkl' via joblib.

OUTPUT FORMAT (JSON ONLY):
{{
  "script": "raw python code",
  "logs": ["3-5 concise lines: preprocessing, one trial example, result"],
  "best_params": {{"param_name": "value"}},
  "best_score": 0.0,
  "metric": "e.g. Accuracy, RMSE"
}}
"""


def build_shap_prompt(dataset: DatasetPreview, config: TuningConfig) -> str:
    explainer = "shap.TreeExplainer" if config.model_type.value in TREE_MODELS else (
        "shap.LinearExplainer" if config.model_type.value in {"LinearRegression", "LogisticRegression"}
        else "shap.KernelExplainer with a 50-row background sample"
    )
    return f"""Act as a ML Engineer.
Write a Python script that explains a trained model with SHAP.

CONTEXT:
- Dataset columns: [{", ".join(dataset.columns)}]
- Target: "{config.target_column}"
- Model type: {config.model_type.value}
- Files present: 'model.pkl' (trained model), 'dataset.csv' (data)

REQUIREMENTS:
1. First line: "# Requires: pip install shap matplotlib"
2. Import pandas, shap, joblib, matplotlib.pyplot.
3. Load 'model.pkl' and 'dataset.csv'; preprocess exactly like the training pipeline (drop target, encode categoricals).
4. Use {explainer}.
5. Compute SHAP values for the first 100 rows (or all rows if fewer).
6. Produce shap.summary_plot and a shap.dependence_plot for the most important feature; print "Plot generated".
7. Output ONLY raw Python code, no markdown fences.
"""


def build_suggestion_prompt(dataset: DatasetPreview) -> str:
    return (
        "Analyze this dataset schema briefly:\n"
        f"Columns: {', '.join(dataset.columns)}\n"
        f"Sample Data: {json.dumps(dataset.sample_data[:2])}\n\n"
        'Suggest 1 recommended model type (e.g., "Random Forest for Classification" or '
        '"XGBoost for Regression") and explain why in 1 short sentence.'
    )
