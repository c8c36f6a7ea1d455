import os
from typing import Optional

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from .utils.logger import get_logger


class Diagnostics:
    """Summary tables and plots for a human reader. Nothing downstream consumes them."""

    def __init__(self, figures_dir: str = "artifacts", verbose: bool = True):
        self.figures_dir = figures_dir
        self.verbose = verbose
        self.logger = get_logger(self.__class__.__name__)

    @staticmethod
    def summary(df: pd.DataFrame) -> pd.DataFrame:
        """Per-column dtype, missingness, cardinality and describe() statistics."""
        base = pd.DataFrame(
            {
                "dtype": df.dtypes.astype(str),
                "n_missing": df.isna().sum(),
                "pct_missing": 100.0 * df.isna().mean(),
                "n_unique": df.nunique(),
            }
        )
        stats = df.describe().T
        return base.join(stats, how="left")

    @staticmethod
    def survival_rates(df: pd.DataFrame, target_col: str, by: str) -> pd.DataFrame:
        """Mean label and row count per level of `by` (missing kept as its own level)."""
        grouped = df.groupby(df[by].fillna("missing"))[target_col]
        return pd.DataFrame({"rate": grouped.mean(), "count": grouped.size()})

    @staticmethod
    def correlation_matrix(df: pd.DataFrame) -> pd.DataFrame:
        return df.select_dtypes(include="number").corr()

    def plot_correlation(self, df: pd.DataFrame, filename: str = "correlation.png") -> str:
        corr = self.correlation_matrix(df)

        plt.figure(figsize=(max(6, len(corr) * 0.6), max(5, len(corr) * 0.5)))
        sns.heatmap(corr, annot=len(corr) <= 15, fmt=".2f", cmap="coolwarm", vmin=-1, vmax=1)
        plt.title("Feature Correlation")

        os.makedirs(self.figures_dir, exist_ok=True)
        path = os.path.join(self.figures_dir, filename)
        plt.tight_layout()
        plt.savefig(path, dpi=200)
        plt.close()

        if self.verbose:
            self.logger.info(f"Saved correlation plot: {path}")
        return path

    def plot_survival_rates(
        self, df: pd.DataFrame, target_col: str, by: str, filename: Optional[str] = None
    ) -> str:
        rates = self.survival_rates(df, target_col, by)

        plt.figure(figsize=(6, 4))
        sns.barplot(x=rates.index.astype(str), y=rates["rate"].to_numpy(), color="steelblue")
        plt.xlabel(by)
        plt.ylabel(f"Mean {target_col}")
        plt.title(f"{target_col} by {by}")

        os.makedirs(self.figures_dir, exist_ok=True)
        path = os.path.join(self.figures_dir, filename or f"{target_col}_by_{by}.png")
        plt.tight_layout()
        plt.savefig(path, dpi=200)
        plt.close()

        if self.verbose:
            self.logger.info(f"Saved {target_col} rates plot: {path}")
        return path

    def report(self, df: pd.DataFrame, target_col: str, by: tuple = (), plots: bool = False) -> None:
        """Log the summary table and per-category rates; optionally save plots."""
        self.logger.info(f"Data summary:\n{self.summary(df).to_string()}")
        for col in by:
            if col not in df.columns:
                self.logger.warning(f"Diagnostics: column '{col}' not found, skipped")
                continue
            self.logger.info(
                f"{target_col} by {col}:\n{self.survival_rates(df, target_col, col).to_string()}"
            )
            if plots:
                self.plot_survival_rates(df, target_col, col)
        if plots:
            self.plot_correlation(df)
