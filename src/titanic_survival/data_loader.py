import re
from typing import Dict, Iterable, Optional

import pandas as pd

from .errors import DataFormatError
from .utils.logger import get_logger


def normalize_column_name(name: str) -> str:
    """PassengerId -> passenger_id, SibSp -> sib_sp, 'Ticket No' -> ticket_no."""
    name = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", str(name).strip())
    name = re.sub(r"[^0-9a-zA-Z]+", "_", name)
    return name.strip("_").lower()


class DataLoader:
    """Loads a CSV dataset, normalizes column names and optionally samples rows."""

    def __init__(
        self,
        path: str,
        sample_size: Optional[int] = None,
        random_state: int = 42,
        required_cols: Optional[Iterable[str]] = None,
    ):
        self.path = path
        self.sample_size = sample_size
        self.random_state = random_state
        self.required_cols = list(required_cols or [])
        self.column_map_: Dict[str, str] = {}
        self.logger = get_logger(self.__class__.__name__)

    def load(self) -> pd.DataFrame:
        try:
            df = pd.read_csv(self.path)
        except pd.errors.EmptyDataError as exc:
            raise DataFormatError(f"{self.path} is empty") from exc

        normalized = [normalize_column_name(c) for c in df.columns]
        duplicates = sorted({c for c in normalized if normalized.count(c) > 1})
        if duplicates:
            raise DataFormatError(
                f"{self.path}: columns collide after normalization: {duplicates}"
            )
        self.column_map_ = dict(zip(normalized, df.columns))
        df.columns = normalized

        missing = [c for c in self.required_cols if c not in df.columns]
        if missing:
            raise DataFormatError(f"{self.path}: missing expected columns {missing}")

        if self.sample_size:
            df = df.sample(self.sample_size, random_state=self.random_state)

        self.logger.info(f"Loaded {self.path}: {df.shape[0]:,} rows x {df.shape[1]} cols")
        return df
