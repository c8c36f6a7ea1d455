from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Optional

import joblib
import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from sklearn.metrics import accuracy_score, mean_squared_error
from sklearn.model_selection import KFold, ParameterGrid, StratifiedKFold, train_test_split

from .errors import DataFormatError, InsufficientDataError
from .evaluator import Evaluator
from .feature_transformer import TransformState
from .hyper_tuner import HyperTuner
from .models import ModelSpec
from .utils.logger import get_logger

TASK_METRICS = {"classification": "accuracy", "regression": "rmse"}


@dataclass(frozen=True)
class MetricsRecord:
    model: str
    metric: str
    value: float


@dataclass
class TrainedModel:
    """Fitted estimator plus everything needed to reproduce and report it."""

    model_name: str
    estimator: Any
    best_params: dict[str, Any]
    metric_name: str
    cv_score: float
    holdout_score: float
    cv_results: pd.DataFrame
    metrics: list[MetricsRecord]
    feature_names: list[str]
    target_col: str
    train_index: list = field(default_factory=list)
    holdout_index: list = field(default_factory=list)
    transform_state: Optional[TransformState] = None

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        return self.estimator.predict(X[self.feature_names])

    def save(self, path: str) -> None:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        joblib.dump(self, path)

    @staticmethod
    def load(path: str) -> "TrainedModel":
        return joblib.load(path)


def score_predictions(y_true, y_pred, task_mode: str) -> float:
    if task_mode == "regression":
        return float(np.sqrt(mean_squared_error(y_true, y_pred)))
    return float(accuracy_score(y_true, y_pred))


def _fit_and_score(estimator, X_train, y_train, X_val, y_val, task_mode: str) -> float:
    estimator.fit(X_train, y_train)
    return score_predictions(y_val, estimator.predict(X_val), task_mode)


class ModelTrainer:
    """
    Generic fit-tune-evaluate helper.

    1. stratified train / held-out split
    2. k stratified folds on the training partition only
    3. every grid configuration is scored on every fold
    4. best mean score wins; ties go to the first configuration in grid order
    5. refit the winner on the whole training partition
    6. score it once on the held-out partition
    """

    def __init__(
        self,
        task_mode: str = "classification",
        n_splits: int = 10,
        holdout_size: float = 0.2,
        random_state: int = 42,
        n_jobs: int = 1,
        search: str = "grid",
        n_trials: int = 20,
        evaluator: Optional[Evaluator] = None,
    ):
        if task_mode not in TASK_METRICS:
            raise ValueError(f"Unknown task mode: {task_mode}")
        if search not in ("grid", "optuna"):
            raise ValueError(f"Unknown search strategy: {search}")
        if n_splits < 2:
            raise ValueError(f"n_splits must be at least 2, got {n_splits}")
        if not 0.0 < holdout_size < 1.0:
            raise ValueError(f"holdout_size must be in (0, 1), got {holdout_size}")

        self.task_mode = task_mode
        self.n_splits = n_splits
        self.holdout_size = holdout_size
        self.random_state = random_state
        self.n_jobs = n_jobs
        self.search = search
        self.n_trials = n_trials
        self.metric_name = TASK_METRICS[task_mode]
        self.evaluator = evaluator or Evaluator(task_mode=task_mode, verbose=False)
        self.logger = get_logger(self.__class__.__name__)

    @property
    def higher_is_better(self) -> bool:
        return self.task_mode == "classification"

    def _split(self, X: pd.DataFrame, y: pd.Series):
        stratify = None
        if self.task_mode == "classification":
            counts = y.value_counts()
            if (counts < 2).any():
                raise InsufficientDataError(
                    f"Every class needs at least 2 rows for a stratified split: {counts.to_dict()}"
                )
            stratify = y
        try:
            return train_test_split(
                X,
                y,
                test_size=self.holdout_size,
                stratify=stratify,
                random_state=self.random_state,
            )
        except ValueError as exc:
            raise InsufficientDataError(f"Cannot split data into train/held-out: {exc}") from exc

    def make_folds(self, X: pd.DataFrame, y: pd.Series) -> list[tuple[np.ndarray, np.ndarray]]:
        """Fold indices (positional) over the given partition."""
        if self.task_mode == "classification":
            smallest = int(y.value_counts().min())
            if self.n_splits > smallest:
                raise InsufficientDataError(
                    f"{self.n_splits} folds requested but the smallest class "
                    f"has only {smallest} training rows"
                )
            splitter = StratifiedKFold(
                n_splits=self.n_splits, shuffle=True, random_state=self.random_state
            )
        else:
            if self.n_splits > len(y):
                raise InsufficientDataError(
                    f"{self.n_splits} folds requested but only {len(y)} training rows"
                )
            splitter = KFold(n_splits=self.n_splits, shuffle=True, random_state=self.random_state)
        return list(splitter.split(X, y))

    def cross_validate(
        self,
        spec: ModelSpec,
        configs: list[dict[str, Any]],
        X: pd.DataFrame,
        y: pd.Series,
        folds: list[tuple[np.ndarray, np.ndarray]],
    ) -> np.ndarray:
        """Score matrix of shape (len(configs), len(folds))."""
        y_arr = np.asarray(y)
        jobs = (
            delayed(_fit_and_score)(
                spec.build(random_state=self.random_state, **params),
                X.iloc[train_idx],
                y_arr[train_idx],
                X.iloc[val_idx],
                y_arr[val_idx],
                self.task_mode,
            )
            for params in configs
            for train_idx, val_idx in folds
        )
        scores = Parallel(n_jobs=self.n_jobs)(jobs)
        return np.asarray(scores, dtype=float).reshape(len(configs), len(folds))

    def _grid_search(self, spec: ModelSpec, X, y, folds) -> pd.DataFrame:
        configs = list(ParameterGrid(spec.param_grid))
        scores = self.cross_validate(spec, configs, X, y, folds)
        return pd.DataFrame(
            {
                "params": configs,
                "mean_score": scores.mean(axis=1),
                "std_score": scores.std(axis=1),
            }
        )

    def _optuna_search(self, spec: ModelSpec, X, y, folds) -> pd.DataFrame:
        tuner = HyperTuner(
            n_trials=self.n_trials,
            random_state=self.random_state,
            direction="maximize" if self.higher_is_better else "minimize",
        )

        def objective(params: dict[str, Any]) -> float:
            return float(self.cross_validate(spec, [params], X, y, folds).mean())

        tuner.tune(objective, spec.param_grid)
        return tuner.trials_

    def select_best(self, cv_results: pd.DataFrame) -> int:
        """Row position of the winning configuration; first one wins ties."""
        scores = cv_results["mean_score"].to_numpy()
        return int(np.argmax(scores) if self.higher_is_better else np.argmin(scores))

    def train(self, data: pd.DataFrame, target_col: str, spec: ModelSpec) -> TrainedModel:
        if target_col not in data.columns:
            raise DataFormatError(f"Target column '{target_col}' not found")
        if data[target_col].isna().any():
            raise DataFormatError(f"Target column '{target_col}' has missing values")

        X = data.drop(columns=[target_col])
        y = data[target_col]

        X_train, X_hold, y_train, y_hold = self._split(X, y)
        folds = self.make_folds(X_train, y_train)

        if spec.param_grid and self.search == "optuna":
            cv_results = self._optuna_search(spec, X_train, y_train, folds)
        else:
            cv_results = self._grid_search(spec, X_train, y_train, folds)

        best = self.select_best(cv_results)
        best_params = dict(cv_results.loc[best, "params"])
        cv_score = float(cv_results.loc[best, "mean_score"])
        self.logger.info(
            f"{spec.name}: {len(cv_results)} config(s) x {self.n_splits} folds, "
            f"best CV {self.metric_name}={cv_score:.4f} with {best_params}"
        )

        estimator = spec.build(random_state=self.random_state, **best_params)
        estimator.fit(X_train, y_train)

        y_pred = estimator.predict(X_hold)
        y_proba = None
        if self.task_mode == "classification" and hasattr(estimator, "predict_proba"):
            if y.nunique() == 2:
                y_proba = estimator.predict_proba(X_hold)[:, 1]
        holdout = self.evaluator.evaluate(y_hold, y_pred, y_proba, tag=spec.name)
        holdout_score = score_predictions(y_hold, y_pred, self.task_mode)
        self.logger.info(f"{spec.name}: held-out {self.metric_name}={holdout_score:.4f}")

        metrics = [
            MetricsRecord(spec.name, f"cv_{self.metric_name}", cv_score),
            MetricsRecord(spec.name, f"holdout_{self.metric_name}", holdout_score),
        ]
        metrics.extend(
            MetricsRecord(spec.name, f"holdout_{name}", value)
            for name, value in holdout.items()
            if name != self.metric_name
        )

        return TrainedModel(
            model_name=spec.name,
            estimator=estimator,
            best_params=best_params,
            metric_name=self.metric_name,
            cv_score=cv_score,
            holdout_score=holdout_score,
            cv_results=cv_results,
            metrics=metrics,
            feature_names=X.columns.tolist(),
            target_col=target_col,
            train_index=X_train.index.tolist(),
            holdout_index=X_hold.index.tolist(),
        )
