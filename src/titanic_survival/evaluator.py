import json
import os
import time
from typing import Dict, Optional

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns
from sklearn.metrics import (
    accuracy_score,
    balanced_accuracy_score,
    confusion_matrix,
    f1_score,
    mean_absolute_error,
    mean_squared_error,
    precision_score,
    recall_score,
    roc_auc_score,
)

from .utils.logger import get_logger


class Evaluator:
    """Evaluate held-out predictions; optionally save metrics JSON and a confusion matrix."""

    def __init__(
        self,
        metrics_path: Optional[str] = None,
        figures_dir: Optional[str] = None,
        task_mode: str = "classification",
        verbose: bool = True,
    ):
        self.metrics_path = metrics_path
        self.figures_dir = figures_dir
        self.task_mode = task_mode
        self.verbose = verbose
        self.logger = get_logger(self.__class__.__name__)

    def plot_confusion_matrix(
        self, y_true: np.ndarray, y_pred: np.ndarray, normalize: bool = True, tag: str = ""
    ) -> str:
        """Plot confusion matrix and save to figures_dir. Returns saved path."""
        labels = np.unique(np.concatenate([y_true, y_pred]))
        cm = confusion_matrix(y_true, y_pred, labels=labels)

        if normalize:
            cm = cm.astype(float)
            row_sums = cm.sum(axis=1, keepdims=True)
            row_sums[row_sums == 0] = 1.0  # avoid division by zero
            cm = cm / row_sums

        plt.figure(figsize=(6, 5))
        sns.heatmap(
            cm,
            annot=True,
            fmt=".2f" if normalize else "d",
            cmap="Blues",
            xticklabels=labels,
            yticklabels=labels,
        )
        plt.xlabel("Predicted")
        plt.ylabel("Actual")
        plt.title("Confusion Matrix" + (" (Normalized)" if normalize else ""))

        os.makedirs(self.figures_dir, exist_ok=True)
        timestamp = time.strftime("%Y%m%d_%H%M%S")
        prefix = f"{tag}_" if tag else ""
        path = os.path.join(self.figures_dir, f"{prefix}confusion_matrix_{timestamp}.png")

        plt.tight_layout()
        plt.savefig(path, dpi=200)
        plt.close()

        if self.verbose:
            self.logger.info(f"Saved confusion matrix: {path}")

        return path

    def _classification_metrics(
        self, y_true: np.ndarray, y_pred: np.ndarray, y_proba: Optional[np.ndarray]
    ) -> Dict[str, float]:
        labels = np.unique(y_true)
        if len(labels) == 2:
            averaging = {"average": "binary", "pos_label": labels[-1]}
        else:
            averaging = {"average": "macro"}

        metrics: Dict[str, float] = {
            "accuracy": float(accuracy_score(y_true, y_pred)),
            "balanced_accuracy": float(balanced_accuracy_score(y_true, y_pred)),
            "precision": float(precision_score(y_true, y_pred, zero_division=0, **averaging)),
            "recall": float(recall_score(y_true, y_pred, zero_division=0, **averaging)),
            "f1": float(f1_score(y_true, y_pred, zero_division=0, **averaging)),
        }
        if y_proba is not None and len(labels) == 2:
            metrics["roc_auc"] = float(roc_auc_score(y_true == labels[-1], y_proba))
        return metrics

    def evaluate(
        self,
        y_true: np.ndarray,
        y_pred: np.ndarray,
        y_proba: Optional[np.ndarray] = None,
        tag: str = "",
    ) -> Dict[str, float]:
        """Compute held-out metrics; save JSON and confusion matrix when paths are set."""
        y_true = np.asarray(y_true)
        y_pred = np.asarray(y_pred)

        if self.task_mode == "regression":
            metrics = {
                "rmse": float(np.sqrt(mean_squared_error(y_true, y_pred))),
                "mae": float(mean_absolute_error(y_true, y_pred)),
            }
        else:
            metrics = self._classification_metrics(y_true, y_pred, y_proba)

        if self.metrics_path:
            os.makedirs(os.path.dirname(self.metrics_path) or ".", exist_ok=True)
            with open(self.metrics_path, "w") as f:
                json.dump(metrics, f, indent=4)
            if self.verbose:
                self.logger.info(f"Saved metrics: {self.metrics_path}")

        if self.figures_dir and self.task_mode != "regression":
            self.plot_confusion_matrix(y_true, y_pred, normalize=True, tag=tag)

        return metrics
