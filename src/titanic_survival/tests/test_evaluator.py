import json

import numpy as np
import pytest

from titanic_survival.evaluator import Evaluator


def test_classification_metrics():
    y_true = np.array([0, 0, 1, 1, 1])
    y_pred = np.array([0, 1, 1, 1, 0])
    y_proba = np.array([0.1, 0.6, 0.9, 0.8, 0.4])

    metrics = Evaluator(verbose=False).evaluate(y_true, y_pred, y_proba)

    assert metrics["accuracy"] == pytest.approx(0.6)
    assert metrics["precision"] == pytest.approx(2 / 3)
    assert metrics["recall"] == pytest.approx(2 / 3)
    assert "roc_auc" in metrics


def test_regression_metrics():
    metrics = Evaluator(task_mode="regression", verbose=False).evaluate(
        np.array([1.0, 2.0, 3.0]), np.array([1.0, 2.0, 5.0])
    )
    assert metrics["mae"] == pytest.approx(2 / 3)
    assert metrics["rmse"] == pytest.approx(np.sqrt(4 / 3))


def test_saves_json_and_confusion_matrix(tmp_path):
    metrics_path = tmp_path / "metrics" / "holdout.json"
    evaluator = Evaluator(str(metrics_path), figures_dir=str(tmp_path / "figs"), verbose=False)
    evaluator.evaluate(np.array([0, 1, 1, 0]), np.array([0, 1, 0, 0]), tag="knn")

    assert json.loads(metrics_path.read_text())["accuracy"] == pytest.approx(0.75)
    assert len(list((tmp_path / "figs").glob("knn_confusion_matrix_*.png"))) == 1
