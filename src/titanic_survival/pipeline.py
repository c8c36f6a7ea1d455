import json
import os
import warnings
from dataclasses import asdict

import joblib
import pandas as pd

from .config import Config
from .data_loader import DataLoader
from .diagnostics import Diagnostics
from .errors import PipelineError
from .evaluator import Evaluator
from .feature_transformer import FeatureTransformer
from .model_comparator import DEFAULT_FAMILIES, ModelComparator
from .model_trainer import ModelTrainer
from .predictor import Predictor
from .utils.logger import get_logger


class PipelineRunner:
    """End-to-end Titanic survival pipeline.

    Steps:
      1. Load training and test data, normalize column names
      2. Optionally log/plot diagnostics
      3. Fit the feature transform on training data, apply it to both sets
      4. Train and compare each configured model family (stratified split,
         k-fold grid search, held-out evaluation)
      5. Save the comparison table
      6. Predict the test set with the configured model and save the submission"""

    def __init__(self, config_path: str):
        self.config = Config.from_yaml(config_path)
        self.logger = get_logger(self.__class__.__name__)
        warnings.filterwarnings(
            "ignore",
            message="X does not have valid feature names",
            category=UserWarning,
            module="sklearn",
        )

    def run(self) -> pd.DataFrame:
        try:
            return self._run()
        except PipelineError as exc:
            self.logger.error(f"Pipeline aborted: {exc.__class__.__name__}: {exc}")
            raise

    def _run(self) -> pd.DataFrame:
        cfg = self.config
        self.logger.info("Starting Titanic survival pipeline")

        target_col = cfg.data["target_col"]
        id_col = cfg.data["id_col"]
        random_state = cfg.validation.get("random_state", 42)

        train_loader = DataLoader(
            cfg.data["path_train"],
            sample_size=cfg.data.get("sample_size"),
            random_state=random_state,
            required_cols=[id_col, target_col],
        )
        train_df = train_loader.load()
        test_loader = DataLoader(cfg.data["path_test"], required_cols=[id_col])
        test_df = test_loader.load()

        figures_dir = cfg.output.get("figures_dir", "artifacts")
        if cfg.diagnostics.get("enabled", False):
            Diagnostics(figures_dir).report(
                train_df,
                target_col,
                by=tuple(cfg.diagnostics.get("by", ())),
                plots=cfg.diagnostics.get("plots", False),
            )

        prep = cfg.preprocessing
        transformer = FeatureTransformer(
            drop_cols=prep.get("drop_cols", [id_col, "name", "ticket"]),
            categorical_cols=prep.get("categorical_cols", ["pclass"]),
            cabin_col=prep.get("cabin_col", "cabin"),
            unknown_category=prep.get("unknown_category", "ignore"),
            nzv_freq_cut=prep.get("nzv_freq_cut", 95 / 5),
            nzv_unique_cut=prep.get("nzv_unique_cut", 10.0),
            corr_threshold=prep.get("corr_threshold", 0.9),
            box_cox=prep.get("box_cox", True),
            standardize=prep.get("standardize", True),
            verbose=prep.get("verbose", False),
        )
        features = transformer.fit_transform(train_df.drop(columns=[target_col]))
        state = transformer.state_
        data = features.assign(**{target_col: train_df[target_col].to_numpy()})

        transformer_path = cfg.output.get("transformer_path")
        if transformer_path:
            os.makedirs(os.path.dirname(transformer_path) or ".", exist_ok=True)
            joblib.dump(state, transformer_path)
            self.logger.info(f"Saved transform state: {transformer_path}")

        task_mode = cfg.model.get("task_mode", "classification")
        evaluator = Evaluator(
            figures_dir=figures_dir if cfg.output.get("save_figures", False) else None,
            task_mode=task_mode,
            verbose=False,
        )
        trainer = ModelTrainer(
            task_mode=task_mode,
            n_splits=cfg.validation.get("n_splits", 10),
            holdout_size=cfg.validation.get("holdout_size", 0.2),
            random_state=random_state,
            n_jobs=cfg.validation.get("n_jobs", 1),
            search=cfg.model.get("search", "grid"),
            n_trials=cfg.model.get("n_trials", 20),
            evaluator=evaluator,
        )
        comparator = ModelComparator(
            trainer,
            model_names=cfg.model.get("families", DEFAULT_FAMILIES),
            param_grids=cfg.model.get("param_grids"),
        )
        table = comparator.compare(data, target_col)

        comparison_path = cfg.output.get("comparison_path")
        if comparison_path:
            os.makedirs(os.path.dirname(comparison_path) or ".", exist_ok=True)
            table.to_csv(comparison_path, index_label="model")
            self.logger.info(f"Saved model comparison: {comparison_path}")

        metrics_path = cfg.output.get("metrics_path")
        if metrics_path:
            os.makedirs(os.path.dirname(metrics_path) or ".", exist_ok=True)
            with open(metrics_path, "w") as f:
                json.dump([asdict(r) for r in comparator.metrics_records()], f, indent=4)
            self.logger.info(f"Saved metrics records: {metrics_path}")

        # choosing the model is a manual decision recorded in the config
        chosen = cfg.model.get("predict_with", comparator.model_names[0])
        if chosen not in comparator.results_:
            raise ValueError(f"predict_with={chosen!r} is not one of the trained families")
        trained = comparator.results_[chosen]
        trained.transform_state = state

        model_path = cfg.output.get("model_path")
        if model_path:
            trained.save(model_path)
            self.logger.info(f"Saved model: {model_path}")

        predictor = Predictor(trained, state)
        predictions = predictor.predict(test_df, id_col=id_col)
        predictor.write_submission(
            predictions,
            cfg.output.get("submission_path", "artifacts/submission.csv"),
            column_names=[
                test_loader.column_map_.get(id_col, id_col),
                train_loader.column_map_.get(target_col, target_col),
            ],
        )

        self.logger.info("Pipeline finished")
        return table
