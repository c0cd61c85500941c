# outlier_filter.py
# Tukey-style IQR outlier removal on a single numeric column

import logging
from dataclasses import dataclass
from typing import Tuple

import pandas as pd

from .audio_feature_config import OUTLIER_COLUMN, OUTLIER_MULTIPLIER
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutlierFilterResult:
    table: pd.DataFrame
    column: str
    multiplier: float
    lower: float
    upper: float
    removed_count: int

    @property
    def retained_count(self) -> int:
        return len(self.table)


def iqr_bounds(values: pd.Series, k: float = OUTLIER_MULTIPLIER) -> Tuple[float, float]:
    """Return the fences [Q1 - k*IQR, Q3 + k*IQR] of a numeric series."""
    if k < 0:
        raise ConfigurationError(f"Outlier multiplier must be non-negative, got {k}", stage='outlier_filter')
    q1 = values.quantile(0.25)
    q3 = values.quantile(0.75)
    iqr = q3 - q1
    return float(q1 - k * iqr), float(q3 + k * iqr)


def outlier_mask(values: pd.Series, k: float = OUTLIER_MULTIPLIER) -> pd.Series:
    """Flag values outside the IQR fences. Nothing is flagged when IQR is zero."""
    lower, upper = iqr_bounds(values, k)
    # the fences coincide only when IQR is zero
    if lower == upper:
        return pd.Series(False, index=values.index)
    return (values < lower) | (values > upper)


def filter_outliers(df: pd.DataFrame, column: str = OUTLIER_COLUMN,
                    k: float = OUTLIER_MULTIPLIER) -> OutlierFilterResult:
    """Drop rows whose `column` value lies outside the IQR fences."""
    if column not in df.columns:
        raise ConfigurationError(f"Outlier column '{column}' not in table", stage='outlier_filter', shape=df.shape)
    if not pd.api.types.is_numeric_dtype(df[column]):
        raise ConfigurationError(f"Outlier column '{column}' is not numeric", stage='outlier_filter', shape=df.shape)

    lower, upper = iqr_bounds(df[column], k)
    flagged = outlier_mask(df[column], k)
    removed = int(flagged.sum())

    table = df.loc[~flagged].reset_index(drop=True)
    logger.info(f"{column}: removed {removed} outliers outside [{lower:.2f}, {upper:.2f}] (k={k}), "
                f"{len(table):,} rows retained")
    return OutlierFilterResult(table=table, column=column, multiplier=k,
                               lower=lower, upper=upper, removed_count=removed)
