from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.preprocessing import OneHotEncoder, PowerTransformer, StandardScaler

from .errors import DataFormatError, TransformStateMismatchError, UnknownCategoryError
from .utils.logger import get_logger

MISSING_LEVEL = "missing"
INDICATOR_SUFFIX = "_na"
_ENCODER_NA = "__na__"

logger = get_logger("FeatureTransformer")


@dataclass
class TransformState:
    """Everything learned from the training data. Replayed verbatim on other data."""

    input_cols: list[str]
    dropped_cols: list[str]
    cabin_col: Optional[str]
    categorical_cols: list[str]
    indicator_cols: list[str]
    encoder: Optional[OneHotEncoder]
    unknown_category: str
    medians: dict[str, float]
    nzv_dropped: list[str] = field(default_factory=list)
    corr_dropped: list[str] = field(default_factory=list)
    box_cox_cols: list[str] = field(default_factory=list)
    box_cox_min: dict[str, float] = field(default_factory=dict)
    power: Optional[PowerTransformer] = None
    scaler: Optional[StandardScaler] = None
    feature_names: list[str] = field(default_factory=list)

    @property
    def box_cox_lambdas(self) -> dict[str, float]:
        if self.power is None:
            return {}
        return dict(zip(self.box_cox_cols, map(float, self.power.lambdas_)))


def _as_level(value: Any) -> Any:
    if pd.isna(value):
        return np.nan
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def _levels(X: pd.DataFrame, cols: Sequence[str]) -> pd.DataFrame:
    return X[cols].apply(lambda s: s.astype(object).map(_as_level))


def _select_inputs(df: pd.DataFrame, state: TransformState) -> pd.DataFrame:
    missing = [c for c in state.input_cols if c not in df.columns]
    if missing:
        raise TransformStateMismatchError(
            f"Data lacks columns seen when fitting the transform: {missing}"
        )
    return df[state.input_cols].copy()


def _derive_cabin(X: pd.DataFrame, cabin_col: Optional[str]) -> pd.DataFrame:
    if cabin_col is None:
        return X
    deck = X[cabin_col].fillna("").astype(str).str.strip().str[:1]
    X[cabin_col] = deck.replace("", MISSING_LEVEL)
    return X


def _add_indicators(X: pd.DataFrame, cols: Sequence[str]) -> pd.DataFrame:
    for col in cols:
        X[f"{col}{INDICATOR_SUFFIX}"] = X[col].isna().astype(int)
    return X


def _to_numeric(X: pd.DataFrame, cols: Sequence[str], error_cls: type) -> pd.DataFrame:
    for col in cols:
        try:
            X[col] = pd.to_numeric(X[col]).astype(float)
        except (TypeError, ValueError) as exc:
            raise error_cls(f"Column '{col}' is expected to be numeric") from exc
    return X


def _encode(X: pd.DataFrame, state: TransformState) -> pd.DataFrame:
    cat_cols = state.categorical_cols
    numeric_cols = [c for c in X.columns if c not in cat_cols]
    X = _to_numeric(X, numeric_cols, TransformStateMismatchError)
    if not cat_cols:
        return X[numeric_cols]

    levels = _levels(X, cat_cols)
    for col, known in zip(cat_cols, state.encoder.categories_):
        unseen = sorted(set(levels[col].dropna()) - set(known))
        if not unseen:
            continue
        if state.unknown_category == "error":
            raise UnknownCategoryError(f"Column '{col}' has unseen levels {unseen}")
        logger.warning(f"Column '{col}': unseen levels {unseen} encoded as all-zero dummies")

    # missing and unseen levels both fall through to an all-zero dummy row
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", message="Found unknown categories")
        dummies = state.encoder.transform(levels.fillna(_ENCODER_NA))
    dummies = pd.DataFrame(
        dummies,
        columns=state.encoder.get_feature_names_out(cat_cols),
        index=X.index,
    )
    return pd.concat([X[numeric_cols], dummies], axis=1)


def _impute(X: pd.DataFrame, medians: dict[str, float]) -> pd.DataFrame:
    return X.fillna(value=medians)


def _box_cox(X: pd.DataFrame, state: TransformState) -> pd.DataFrame:
    if state.power is None:
        return X
    cols = state.box_cox_cols
    lower = pd.Series(state.box_cox_min)[cols]
    X[cols] = state.power.transform(X[cols].clip(lower=lower, axis=1))
    return X


def near_zero_variance(X: pd.DataFrame, freq_cut: float = 95 / 5, unique_cut: float = 10.0) -> list[str]:
    """Columns that are constant, or dominated by one value and have few distinct values."""
    flagged = []
    n_rows = len(X)
    for col in X.columns:
        counts = X[col].value_counts(dropna=False)
        if len(counts) <= 1:
            flagged.append(col)
            continue
        freq_ratio = counts.iloc[0] / counts.iloc[1]
        pct_unique = 100.0 * len(counts) / n_rows
        if freq_ratio > freq_cut and pct_unique <= unique_cut:
            flagged.append(col)
    return flagged


def correlated_columns(X: pd.DataFrame, threshold: float = 0.9) -> list[str]:
    """Walk columns in order and flag any column too correlated with an earlier kept one."""
    corr = X.corr().abs()
    kept: list[str] = []
    flagged: list[str] = []
    for col in X.columns:
        if any(corr.loc[k, col] > threshold for k in kept):
            flagged.append(col)
        else:
            kept.append(col)
    return flagged


def apply_transform(state: TransformState, df: pd.DataFrame) -> pd.DataFrame:
    """Apply a fitted transform to raw passenger records. Never refits anything."""
    X = _select_inputs(df, state)
    if len(X) == 0:
        return pd.DataFrame(columns=state.feature_names, index=X.index, dtype=float)
    X = _derive_cabin(X, state.cabin_col)
    X = _add_indicators(X, state.indicator_cols)
    X = _encode(X, state)
    X = _impute(X, state.medians)
    X = X.drop(columns=state.nzv_dropped + state.corr_dropped)
    X = _box_cox(X, state)
    X = X[state.feature_names]
    if state.scaler is not None:
        X = pd.DataFrame(state.scaler.transform(X), columns=state.feature_names, index=X.index)
    return X


class FeatureTransformer:
    """
    Turns raw passenger records into a fixed-shape numeric feature matrix.

    Steps (fit on training data only, replayed unchanged afterwards):
      1. drop identifier and free-text columns
      2. reduce the cabin code to its deck letter, missing -> "missing"
      3. add a <col>_na indicator per predictor
      4. one-hot encode categoricals, one dummy per training level (no level dropped)
      5. impute numeric columns with training medians
      6. drop near-zero-variance columns
      7. drop correlated columns (the later column of a pair goes)
      8. Box-Cox strictly positive, non-binary columns
      9. standardize
    """

    def __init__(
        self,
        drop_cols: Sequence[str] = ("passenger_id", "name", "ticket"),
        categorical_cols: Sequence[str] = ("pclass",),
        cabin_col: Optional[str] = "cabin",
        unknown_category: str = "ignore",
        nzv_freq_cut: float = 95 / 5,
        nzv_unique_cut: float = 10.0,
        corr_threshold: float = 0.9,
        box_cox: bool = True,
        standardize: bool = True,
        verbose: bool = False,
    ):
        if unknown_category not in ("ignore", "error"):
            raise ValueError(f"Unknown unseen-category policy: {unknown_category}")
        self.drop_cols = list(drop_cols)
        self.categorical_cols = list(categorical_cols)
        self.cabin_col = cabin_col
        self.unknown_category = unknown_category
        self.nzv_freq_cut = nzv_freq_cut
        self.nzv_unique_cut = nzv_unique_cut
        self.corr_threshold = corr_threshold
        self.box_cox = box_cox
        self.standardize = standardize
        self.verbose = verbose
        self.logger = get_logger(self.__class__.__name__)
        self.state_: Optional[TransformState] = None

    def fit(self, df: pd.DataFrame) -> "FeatureTransformer":
        dropped = [c for c in self.drop_cols if c in df.columns]
        input_cols = [c for c in df.columns if c not in dropped]
        if not input_cols:
            raise DataFormatError("No predictor columns left after dropping identifiers")
        cabin_col = self.cabin_col if self.cabin_col in input_cols else None

        X = df[input_cols].copy()
        X = _derive_cabin(X, cabin_col)
        indicator_cols = list(input_cols)
        clashing = [
            f"{c}{INDICATOR_SUFFIX}" for c in input_cols if f"{c}{INDICATOR_SUFFIX}" in input_cols
        ]
        if clashing:
            raise DataFormatError(f"Input columns clash with missingness indicators: {clashing}")
        X = _add_indicators(X, indicator_cols)

        detected = X.select_dtypes(include=["object", "category", "string"]).columns
        categorical_cols = [
            c for c in X.columns if c in detected or c in self.categorical_cols
        ]
        encoder = None
        if categorical_cols:
            levels = _levels(X, categorical_cols)
            categories = [sorted(levels[c].dropna().unique()) for c in categorical_cols]
            encoder = OneHotEncoder(
                categories=categories, handle_unknown="ignore", sparse_output=False
            )
            encoder.fit(levels.fillna(_ENCODER_NA))

        state = TransformState(
            input_cols=input_cols,
            dropped_cols=dropped,
            cabin_col=cabin_col,
            categorical_cols=categorical_cols,
            indicator_cols=indicator_cols,
            encoder=encoder,
            unknown_category=self.unknown_category,
            medians={},
        )

        numeric_cols = [c for c in X.columns if c not in categorical_cols]
        X = _to_numeric(X, numeric_cols, DataFormatError)
        X = _encode(X, state)
        duplicated = sorted(set(X.columns[X.columns.duplicated()]))
        if duplicated:
            raise DataFormatError(f"Encoded feature names are not unique: {duplicated}")

        medians = X.median()
        empty = medians[medians.isna()].index.tolist()
        if empty:
            raise DataFormatError(f"Columns have no observed values to impute from: {empty}")
        state.medians = {c: float(v) for c, v in medians.items()}
        X = _impute(X, state.medians)

        state.nzv_dropped = near_zero_variance(X, self.nzv_freq_cut, self.nzv_unique_cut)
        X = X.drop(columns=state.nzv_dropped)
        state.corr_dropped = correlated_columns(X, self.corr_threshold)
        X = X.drop(columns=state.corr_dropped)
        if X.shape[1] == 0:
            raise DataFormatError("Every feature was removed by the variance/correlation filters")

        if self.box_cox:
            state.box_cox_cols = [
                c for c in X.columns if X[c].nunique() > 2 and (X[c] > 0).all()
            ]
        if state.box_cox_cols:
            state.box_cox_min = {c: float(X[c].min()) for c in state.box_cox_cols}
            state.power = PowerTransformer(method="box-cox", standardize=False)
            state.power.fit(X[state.box_cox_cols])
            X = _box_cox(X, state)

        state.feature_names = X.columns.tolist()
        if self.standardize:
            state.scaler = StandardScaler().fit(X)

        self.state_ = state
        self.logger.info(
            f"Fitted transform: {len(state.feature_names)} features "
            f"(dropped nzv={len(state.nzv_dropped)}, corr={len(state.corr_dropped)}, "
            f"box-cox={len(state.box_cox_cols)})"
        )
        if self.verbose:
            self.logger.info(f"Near-zero variance: {state.nzv_dropped}")
            self.logger.info(f"Correlated: {state.corr_dropped}")
            self.logger.info(f"Box-Cox lambdas: {state.box_cox_lambdas}")
        return self

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        if self.state_ is None:
            raise TransformStateMismatchError("Call fit() before transform().")
        return apply_transform(self.state_, df)

    def fit_transform(self, df: pd.DataFrame) -> pd.DataFrame:
        return self.fit(df).transform(df)
