from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, Optional

from lightgbm import LGBMClassifier
from sklearn.base import BaseEstimator
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.neighbors import KNeighborsClassifier
from sklearn.tree import DecisionTreeClassifier


@dataclass(frozen=True)
class ModelSpec:
    """
    An untrained model family: how to build an estimator and which grid to search.

    Any estimator exposing fit(X, y) / predict(X) works; the trainer never
    depends on the concrete class.
    """

    name: str
    estimator_cls: type
    default_params: dict[str, Any] = field(default_factory=dict)
    param_grid: dict[str, list] = field(default_factory=dict)

    def build(self, random_state: Optional[int] = None, **params: Any) -> BaseEstimator:
        merged = dict(self.default_params)
        merged.update(params)
        accepted = inspect.signature(self.estimator_cls).parameters
        if random_state is not None and "random_state" in accepted:
            merged.setdefault("random_state", random_state)
        return self.estimator_cls(**merged)

    def with_grid(self, param_grid: Optional[dict[str, list]]) -> "ModelSpec":
        if param_grid is None:
            return self
        return ModelSpec(self.name, self.estimator_cls, dict(self.default_params), dict(param_grid))


MODEL_REGISTRY: dict[str, ModelSpec] = {
    "random_forest": ModelSpec(
        name="random_forest",
        estimator_cls=RandomForestClassifier,
        default_params={"n_estimators": 300},
        param_grid={"max_features": ["sqrt", 0.5, None]},
    ),
    # plain logistic regression has nothing to tune
    "logistic_regression": ModelSpec(
        name="logistic_regression",
        estimator_cls=LogisticRegression,
        default_params={"max_iter": 1000},
        param_grid={},
    ),
    "knn": ModelSpec(
        name="knn",
        estimator_cls=KNeighborsClassifier,
        param_grid={"n_neighbors": [5, 7, 9]},
    ),
    "decision_tree": ModelSpec(
        name="decision_tree",
        estimator_cls=DecisionTreeClassifier,
        param_grid={"ccp_alpha": [0.0, 0.005, 0.01]},
    ),
    "lightgbm": ModelSpec(
        name="lightgbm",
        estimator_cls=LGBMClassifier,
        default_params={"n_estimators": 200, "verbosity": -1},
        param_grid={"num_leaves": [8, 16, 31], "learning_rate": [0.05, 0.1]},
    ),
}


def get_model_spec(name: str, param_grid: Optional[dict[str, list]] = None) -> ModelSpec:
    """Look up a model family, optionally overriding its search grid."""
    if name not in MODEL_REGISTRY:
        raise ValueError(
            f"Unknown model family: {name} (available: {sorted(MODEL_REGISTRY)})"
        )
    return MODEL_REGISTRY[name].with_grid(param_grid)
