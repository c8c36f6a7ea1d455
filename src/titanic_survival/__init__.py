"""
Titanic Survival — Modular Machine Learning Pipeline

This package loads the Titanic passenger data, builds a fixed-shape numeric
feature matrix, trains and compares several scikit-learn classifiers with
stratified cross-validation, and writes survival predictions for the test set.

Modules:
    config              — Load YAML configuration safely.
    data_loader         — Read CSV data and normalize column names.
    feature_transformer — Fit-once / replay-anywhere feature transform.
    models              — Model families and their search grids.
    model_trainer       — Split, grid search, refit and held-out evaluation.
    hyper_tuner         — Optional Optuna search over a model's grid.
    evaluator           — Held-out metrics and confusion matrix.
    model_comparator    — Train every family and tabulate metrics.
    predictor           — Transform test data and write the submission.
    diagnostics         — Summary tables and plots for humans.
    pipeline            — Orchestrates all components.
    errors              — Fatal pipeline errors.
    utils.logger        — Unified timestamped console logger.
"""

from .config import Config
from .data_loader import DataLoader
from .errors import (
    DataFormatError,
    InsufficientDataError,
    PipelineError,
    TransformStateMismatchError,
    UnknownCategoryError,
)
from .feature_transformer import FeatureTransformer, TransformState, apply_transform
from .models import MODEL_REGISTRY, ModelSpec, get_model_spec
from .model_trainer import MetricsRecord, ModelTrainer, TrainedModel
from .hyper_tuner import HyperTuner
from .evaluator import Evaluator
from .model_comparator import ModelComparator
from .predictor import Predictor
from .diagnostics import Diagnostics
from .pipeline import PipelineRunner

__all__ = [
    "Config",
    "DataLoader",
    "PipelineError",
    "DataFormatError",
    "TransformStateMismatchError",
    "InsufficientDataError",
    "UnknownCategoryError",
    "FeatureTransformer",
    "TransformState",
    "apply_transform",
    "MODEL_REGISTRY",
    "ModelSpec",
    "get_model_spec",
    "MetricsRecord",
    "ModelTrainer",
    "TrainedModel",
    "HyperTuner",
    "Evaluator",
    "ModelComparator",
    "Predictor",
    "Diagnostics",
    "PipelineRunner",
]
