from typing import Dict, Iterable, Optional

import pandas as pd

from .model_trainer import MetricsRecord, ModelTrainer, TrainedModel
from .models import get_model_spec
from .utils.logger import get_logger

DEFAULT_FAMILIES = ("random_forest", "logistic_regression", "knn", "decision_tree")


class ModelComparator:
    """Trains several model families on the same data and tabulates their metrics."""

    def __init__(
        self,
        trainer: ModelTrainer,
        model_names: Iterable[str] = DEFAULT_FAMILIES,
        param_grids: Optional[Dict[str, dict]] = None,
    ):
        self.trainer = trainer
        self.model_names = list(model_names)
        self.param_grids = param_grids or {}
        self.logger = get_logger(self.__class__.__name__)
        self.results_: Dict[str, TrainedModel] = {}

    def compare(self, data: pd.DataFrame, target_col: str) -> pd.DataFrame:
        """One row per model family, indexed by model name."""
        self.results_ = {}
        for name in self.model_names:
            spec = get_model_spec(name, self.param_grids.get(name))
            # each family gets its own copy of the feature matrix
            self.results_[name] = self.trainer.train(data.copy(), target_col, spec)

        table = self.table()
        self.logger.info(f"Model comparison:\n{table.to_string(float_format='{:.4f}'.format)}")
        return table

    def metrics_records(self) -> list[MetricsRecord]:
        return [record for result in self.results_.values() for record in result.metrics]

    def table(self) -> pd.DataFrame:
        records = pd.DataFrame(self.metrics_records())
        table = records.pivot(index="model", columns="metric", values="value")
        metric = self.trainer.metric_name
        leading = [f"cv_{metric}", f"holdout_{metric}"]
        ordered = leading + sorted(c for c in table.columns if c not in leading)
        table = table.reindex(index=list(self.results_), columns=ordered)
        table.columns.name = None
        return table
