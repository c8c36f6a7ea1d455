import logging
from typing import Any, Callable, Optional

import optuna
import pandas as pd

from .utils.logger import get_logger


class HyperTuner:
    """Optuna search over a discrete hyperparameter grid, seeded for reproducibility."""

    def __init__(
        self,
        n_trials: int = 20,
        random_state: int = 42,
        direction: str = "maximize",
    ):
        self.n_trials = n_trials
        self.random_state = random_state
        self.direction = direction
        self.logger = get_logger(self.__class__.__name__)
        self.best_params_: Optional[dict[str, Any]] = None
        self.best_value_: Optional[float] = None
        self.trials_: Optional[pd.DataFrame] = None

    @staticmethod
    def _suggest_params(trial: optuna.Trial, param_grid: dict[str, list]) -> dict[str, Any]:
        """Every grid axis becomes a categorical choice."""
        return {
            name: trial.suggest_categorical(name, list(values))
            for name, values in sorted(param_grid.items())
        }

    def tune(
        self,
        objective: Callable[[dict[str, Any]], float],
        param_grid: dict[str, list],
    ) -> dict[str, Any]:
        """
        Run the study and return the best parameters.
        `objective` receives a parameter dict and returns the mean CV score.
        """
        self.logger.info(f"Starting Optuna tuning ({self.n_trials} trials, {self.direction})")
        optuna.logging.set_verbosity(logging.WARNING)

        sampler = optuna.samplers.TPESampler(seed=self.random_state)
        study = optuna.create_study(direction=self.direction, sampler=sampler)
        study.optimize(
            lambda trial: objective(self._suggest_params(trial, param_grid)),
            n_trials=self.n_trials,
        )

        self.best_params_ = dict(study.best_params)
        self.best_value_ = float(study.best_value)
        self.trials_ = pd.DataFrame(
            {
                "params": [dict(t.params) for t in study.trials],
                "mean_score": [float(t.value) for t in study.trials],
            }
        )

        self.logger.info(f"Best CV score: {self.best_value_:.4f}")
        self.logger.info(f"Best parameters: {self.best_params_}")
        return dict(self.best_params_)
