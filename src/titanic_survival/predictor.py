import os
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from .errors import DataFormatError, TransformStateMismatchError
from .feature_transformer import TransformState, apply_transform
from .model_trainer import TrainedModel
from .utils.logger import get_logger


class Predictor:
    """Applies a fitted transform (never refit) and a trained model to raw test records."""

    def __init__(
        self,
        trained_model: TrainedModel,
        transform_state: Optional[TransformState] = None,
        label_col: Optional[str] = None,
    ):
        state = transform_state or trained_model.transform_state
        if state is None:
            raise TransformStateMismatchError("No transform state supplied for prediction")
        missing = [c for c in trained_model.feature_names if c not in state.feature_names]
        if missing:
            raise TransformStateMismatchError(
                f"Model expects features the transform does not produce: {missing}"
            )
        self.trained_model = trained_model
        self.transform_state = state
        self.label_col = label_col or trained_model.target_col
        self.logger = get_logger(self.__class__.__name__)

    def predict(self, raw_test_df: pd.DataFrame, id_col: str) -> pd.DataFrame:
        """Two columns (id, label), row i matching input row i."""
        if id_col not in raw_test_df.columns:
            raise DataFormatError(f"Identifier column '{id_col}' not found in test data")

        features = apply_transform(self.transform_state, raw_test_df)
        if len(features) == 0:
            classes = getattr(self.trained_model.estimator, "classes_", np.empty(0))
            labels = np.empty(0, dtype=np.asarray(classes).dtype)
        else:
            labels = self.trained_model.predict(features)

        predictions = pd.DataFrame(
            {
                id_col: raw_test_df[id_col].to_numpy(),
                self.label_col: labels,
            }
        )
        self.logger.info(
            f"Predicted {len(predictions):,} rows with {self.trained_model.model_name}; "
            f"label counts: {predictions[self.label_col].value_counts().to_dict()}"
        )
        return predictions

    def write_submission(
        self,
        predictions: pd.DataFrame,
        path: str,
        column_names: Optional[Sequence[str]] = None,
    ) -> str:
        """Write exactly two columns, optionally renamed back to the source headers."""
        out = predictions.copy()
        if column_names is not None:
            out.columns = list(column_names)
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        out.to_csv(path, index=False)
        self.logger.info(f"Submission saved: {path} ({len(out):,} rows)")
        return path
