"""Model catalogue, tuning methods and per-model search-space presets.

Preset texts are handed to the generation service verbatim; they are
YAML-like `param: [values]` blocks and are not parsed locally.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .models import ModelType, TuningMethod

CUSTOM_PRESET = "Custom"
PREFERRED_PRESET = "Balanced"


@dataclass(frozen=True)
class ModelDef:
    label: str
    value: ModelType
    description: str


@dataclass(frozen=True)
class TuningDef:
    label: str
    value: TuningMethod
    description: str
    badge: Optional[str] = None


AVAILABLE_MODELS: list[ModelDef] = [
    ModelDef("Random Forest", ModelType.RANDOM_FOREST,
             "Versatile ensemble of trees. Excellent general-purpose model that resists overfitting."),
    ModelDef("Extra Trees", ModelType.EXTRA_TREES,
             "Extremely Randomized Trees. Often faster and lower variance than Random Forest."),
    ModelDef("XGBoost", ModelType.XGBOOST,
             "Extreme Gradient Boosting. The industry standard for high-performance tabular data competitions."),
    ModelDef("LightGBM", ModelType.LIGHTGBM,
             "Gradient boosting framework that uses tree-based learning. Faster and lower memory usage than XGBoost."),
    ModelDef("CatBoost", ModelType.CATBOOST,
             "High-performance library for gradient boosting on decision trees. Handles categorical data automatically."),
    ModelDef("Gradient Boosting", ModelType.GRADIENT_BOOSTING,
             "Builds models sequentially to correct previous errors. Powerful but slower to train."),
    ModelDef("AdaBoost", ModelType.ADABOOST,
             "Adaptive Boosting. Meta-estimator that focuses on hard-to-classify instances."),
    ModelDef("Support Vector Machine", ModelType.SVM,
             "Effective in high-dimensional spaces. Finds the optimal hyperplane to separate classes."),
    ModelDef("Logistic Regression", ModelType.LOGISTIC_REGRESSION,
             "The go-to baseline for classification. Simple, interpretable, and fast to train."),
    ModelDef("Decision Tree", ModelType.DECISION_TREE,
             "Highly interpretable flow-chart structure. Good for capturing non-linear patterns."),
    ModelDef("K-Nearest Neighbors", ModelType.KNN,
             "Instance-based learning. Classifies data based on proximity to similar examples."),
    ModelDef("Linear Regression", ModelType.LINEAR_REGRESSION,
             "Fundamental baseline for regression tasks. Models linear relationships between variables."),
]

TUNING_METHODS: list[TuningDef] = [
    TuningDef("Random Search", TuningMethod.RANDOM_SEARCH,
              "Randomly samples hyperparameter combinations. Fast, simple, and effective for baselines.", "Fast"),
    TuningDef("Grid Search", TuningMethod.GRID_SEARCH,
              "Exhaustive search over specified parameter values. Guarantees finding the best combination "
              "but is computationally expensive.", "Exhaustive"),
    TuningDef("Bayesian Optimization (Optuna)", TuningMethod.BAYESIAN_OPTUNA,
              "Uses probabilistic models to suggest the next best parameters. Converges faster to optimal "
              "solutions.", "Recommended"),
    TuningDef("Hyperband (Optuna)", TuningMethod.HYPERBAND,
              "Variation of random search that uses early stopping to allocate resources dynamically. "
              "Extremely efficient for deep learning or slow models.", "Efficient"),
]

MODEL_PRESETS: dict[ModelType, dict[str, str]] = {
    ModelType.RANDOM_FOREST: {
        "Fast": """n_estimators: [50]
max_depth: [10]
max_features: ['sqrt']
n_jobs: [-1]""",
        "Standard": """n_estimators: [100]
max_depth: [None, 10, 20]
min_samples_split: [2, 5]
max_features: ['sqrt']""",
        "Balanced": """n_estimators: [100, 200]
max_depth: [None, 15, 30]
min_samples_split: [2, 5, 10]
min_samples_leaf: [1, 2, 4]
bootstrap: [True, False]""",
        "Prevent Overfitting": """n_estimators: [100, 200]
max_depth: [5, 10]
min_samples_leaf: [5, 10, 20]
max_features: ['sqrt']""",
        "High Accuracy": """n_estimators: [200, 500, 800]
max_depth: [None, 20, 40, 60]
min_samples_split: [2, 5, 10]
min_samples_leaf: [1, 2, 4]
max_features: ['sqrt', 'log2', None]
bootstrap: [True, False]
criterion: ['gini', 'entropy']""",
    },
    ModelType.EXTRA_TREES: {
        "Fast": """n_estimators: [50]
max_depth: [10]
n_jobs: [-1]""",
        "Standard": """n_estimators: [100]
max_depth: [None, 10, 20]
min_samples_split: [2, 5]""",
        "Balanced": """n_estimators: [100, 200]
max_depth: [None, 15, 30]
min_samples_split: [2, 5, 10]
min_samples_leaf: [1, 2, 4]
bootstrap: [True, False]""",
        "Prevent Overfitting": """n_estimators: [100, 200]
max_depth: [5, 10]
min_samples_leaf: [5, 10, 20]""",
        "High Accuracy": """n_estimators: [200, 500, 800]
max_depth: [None, 20, 40, 60]
min_samples_split: [2, 5, 10]
min_samples_leaf: [1, 2, 4]
max_features: ['sqrt', 'log2', None]
bootstrap: [True, False]
criterion: ['gini', 'entropy']""",
    },
    ModelType.XGBOOST: {
        "Fast": """n_estimators: [50]
max_depth: [3]
learning_rate: [0.1]
n_jobs: [-1]""",
        "Standard": """n_estimators: [100]
max_depth: [3, 6]
learning_rate: [0.05, 0.1]
subsample: [0.8, 1.0]""",
        "Balanced": """n_estimators: [100, 300]
max_depth: [3, 6, 9]
learning_rate: [0.05, 0.1, 0.2]
min_child_weight: [1, 3]
subsample: [0.8, 1.0]
colsample_bytree: [0.8, 1.0]""",
        "Prevent Overfitting": """n_estimators: [100, 200]
max_depth: [3, 4, 5]
learning_rate: [0.01, 0.05]
gamma: [1, 5]
min_child_weight: [5, 10]
subsample: [0.6, 0.8]""",
        "High Accuracy": """n_estimators: [500, 1000]
max_depth: [3, 5, 7, 10]
learning_rate: [0.005, 0.01, 0.05]
subsample: [0.6, 0.8, 1.0]
colsample_bytree: [0.6, 0.8, 1.0]
min_child_weight: [1, 3, 5]
gamma: [0, 0.1, 0.5]
reg_alpha: [0, 0.1, 1, 10]
reg_lambda: [0, 1, 10]""",
    },
    ModelType.LIGHTGBM: {
        "Fast": """n_estimators: [50]
learning_rate: [0.1]
num_leaves: [31]
n_jobs: [-1]""",
        "Standard": """n_estimators: [100]
learning_rate: [0.05, 0.1]
num_leaves: [31, 63]""",
        "Balanced": """n_estimators: [100, 300]
learning_rate: [0.01, 0.05, 0.1]
num_leaves: [31, 63, 127]
max_depth: [-1, 10, 20]
subsample: [0.8, 1.0]""",
        "Prevent Overfitting": """n_estimators: [100, 200]
num_leaves: [15, 31]
min_child_samples: [50, 100]
max_depth: [3, 5]
reg_lambda: [5, 10]""",
        "High Accuracy": """n_estimators: [500, 1000]
learning_rate: [0.005, 0.01, 0.05]
num_leaves: [31, 63, 127, 255]
max_depth: [-1, 15, 30]
min_child_samples: [20, 50]
reg_alpha: [0, 0.1, 1]
reg_lambda: [0, 0.1, 1]
colsample_bytree: [0.6, 0.8, 1.0]""",
    },
    ModelType.CATBOOST: {
        "Fast": """iterations: [50]
learning_rate: [0.1]
depth: [6]
thread_count: [-1]""",
        "Standard": """iterations: [100]
learning_rate: [0.05, 0.1]
depth: [6, 8]""",
        "Balanced": """iterations: [100, 300]
learning_rate: [0.03, 0.05, 0.1]
depth: [4, 6, 8, 10]
l2_leaf_reg: [1, 3, 5]""",
        "Robust": """iterations: [200, 500]
depth: [4, 6]
l2_leaf_reg: [5, 10]
learning_rate: [0.01, 0.05]""",
        "High Accuracy": """iterations: [500, 1000]
learning_rate: [0.01, 0.03]
depth: [4, 6, 8, 10]
l2_leaf_reg: [1, 3, 5, 7, 9]
bagging_temperature: [0, 1]
border_count: [32, 64, 128]""",
    },
    ModelType.GRADIENT_BOOSTING: {
        "Default": """n_estimators: [100]
learning_rate: [0.1]
max_depth: [3]""",
        "Fast": """n_estimators: [50]
learning_rate: [0.1]
max_depth: [3]""",
        "Standard": """n_estimators: [100]
learning_rate: [0.05, 0.1]
max_depth: [3, 5]""",
        "Balanced": """n_estimators: [100, 200]
learning_rate: [0.05, 0.1]
max_depth: [3, 5, 8]
subsample: [0.8, 1.0]
max_features: ['sqrt', None]""",
        "Prevent Overfitting": """n_estimators: [100]
learning_rate: [0.05]
max_depth: [3]
min_samples_leaf: [5, 10]
subsample: [0.7, 0.8]""",
        "Conservative": """n_estimators: [100, 200]
learning_rate: [0.01, 0.05]
max_depth: [2, 3]
min_samples_leaf: [5, 10]
subsample: [0.8]""",
        "Aggressive": """n_estimators: [200, 500]
learning_rate: [0.1, 0.2]
max_depth: [5, 8, 10]
min_samples_split: [2]
subsample: [0.7, 0.9]""",
        "High Accuracy": """n_estimators: [200, 500]
learning_rate: [0.01, 0.05, 0.1]
max_depth: [3, 5, 8, 10]
min_samples_split: [2, 5]
min_samples_leaf: [1, 2]
subsample: [0.6, 0.8, 1.0]
max_features: ['sqrt', 'log2', None]""",
    },
    ModelType.SVM: {
        "Fast": """C: [1.0]
kernel: ['rbf']""",
        "Standard": """C: [0.1, 1, 10]
kernel: ['rbf', 'linear']
gamma: ['scale']""",
        "Linear Only": """C: [0.01, 0.1, 1, 10, 100]
kernel: ['linear']""",
        "Balanced": """C: [0.1, 1, 10, 100]
kernel: ['linear', 'rbf', 'poly']
gamma: ['scale', 'auto']
degree: [3]""",
        "High Accuracy": """C: [0.1, 1, 10, 100, 1000]
kernel: ['linear', 'rbf', 'poly', 'sigmoid']
gamma: ['scale', 'auto', 0.01, 0.1, 1]
degree: [2, 3, 4]
coef0: [0.0, 0.1, 0.5]""",
    },
    ModelType.LOGISTIC_REGRESSION: {
        "Fast": """C: [1.0]
solver: ['lbfgs']""",
        "Standard": """C: [0.1, 1, 10]
solver: ['lbfgs']
max_iter: [1000]""",
        "L1 Regularization": """C: [0.1, 1, 10, 100]
penalty: ['l1']
solver: ['liblinear', 'saga']""",
        "ElasticNet": """C: [0.1, 1, 10]
penalty: ['elasticnet']
solver: ['saga']
l1_ratio: [0.1, 0.5, 0.9]
max_iter: [2000]""",
        "High Accuracy": """C: [0.001, 0.01, 0.1, 1, 10, 100]
solver: ['newton-cg', 'lbfgs', 'liblinear', 'sag', 'saga']
penalty: ['l2', 'l1', 'elasticnet', None]
max_iter: [5000]""",
    },
    ModelType.KNN: {
        "Fast": """n_neighbors: [5]
algorithm: ['auto']""",
        "Standard": """n_neighbors: [3, 5, 7]
weights: ['uniform']""",
        "Balanced": """n_neighbors: [3, 5, 7, 9, 11]
weights: ['uniform', 'distance']
p: [1, 2]""",
        "Large K": """n_neighbors: [20, 30, 50]
weights: ['distance']""",
        "High Accuracy": """n_neighbors: [3, 5, 7, 9, 11, 15]
weights: ['uniform', 'distance']
algorithm: ['auto', 'ball_tree', 'kd_tree']
leaf_size: [10, 30]
p: [1, 2]
metric: ['euclidean', 'manhattan', 'minkowski']""",
    },
    ModelType.ADABOOST: {
        "Fast": """n_estimators: [30]
learning_rate: [1.0]""",
        "Standard": """n_estimators: [50]
learning_rate: [0.1, 1.0]""",
        "Balanced": """n_estimators: [50, 100, 200]
learning_rate: [0.1, 0.5, 1.0]
algorithm: ['SAMME.R', 'SAMME']""",
        "Robust": """n_estimators: [100, 200]
learning_rate: [0.01, 0.05, 0.1]""",
        "High Accuracy": """n_estimators: [50, 100, 200, 500]
learning_rate: [0.01, 0.1, 0.5, 1.0]
algorithm: ['SAMME.R', 'SAMME']""",
    },
    ModelType.DECISION_TREE: {
        "Default": """max_depth: [None]
min_samples_split: [2]
criterion: ['gini']""",
        "Fast": """max_depth: [5]
min_samples_split: [2]""",
        "Standard": """max_depth: [None, 10]
min_samples_split: [2, 5]
criterion: ['gini']""",
        "Prevent Overfitting": """max_depth: [3, 5, 8]
min_samples_leaf: [10, 20, 50]""",
        "Balanced": """max_depth: [None, 10, 20]
min_samples_split: [2, 5, 10]
min_samples_leaf: [1, 2, 4]""",
        "Conservative": """max_depth: [3, 4, 5]
min_samples_leaf: [10, 20]
min_samples_split: [10, 20]""",
        "Aggressive": """max_depth: [20, 50, None]
min_samples_split: [2]
min_samples_leaf: [1]
criterion: ['gini', 'entropy']""",
        "High Accuracy": """max_depth: [None, 10, 20, 30, 50]
min_samples_split: [2, 5, 10]
min_samples_leaf: [1, 2, 4]
criterion: ['gini', 'entropy', 'log_loss']
max_features: ['sqrt', 'log2', None]
ccp_alpha: [0.0, 0.005, 0.01]""",
    },
    ModelType.LINEAR_REGRESSION: {
        "Default": """fit_intercept: [True]""",
        "Fast": """fit_intercept: [True]""",
        "Standard": """fit_intercept: [True, False]""",
        "Balanced": """fit_intercept: [True, False]
positive: [False]""",
        "Conservative": """fit_intercept: [True]
positive: [False]""",
        "Aggressive": """fit_intercept: [True, False]
positive: [True, False]
copy_X: [True, False]""",
        "Non-Negative": """fit_intercept: [True]
positive: [True]""",
        "High Accuracy": """fit_intercept: [True, False]
positive: [False, True]""",
    },
}


def presets_for(model_type: ModelType) -> dict[str, str]:
    return MODEL_PRESETS.get(ModelType(model_type), {})


def default_preset(model_type: ModelType) -> Optional[str]:
    """'Balanced' when the model defines it, else the first preset in order."""
    presets = presets_for(model_type)
    if PREFERRED_PRESET in presets:
        return PREFERRED_PRESET
    return next(iter(presets), None)


def model_label(model_type: ModelType) -> str:
    for m in AVAILABLE_MODELS:
        if m.value == model_type:
            return m.label
    return str(model_type.value)
