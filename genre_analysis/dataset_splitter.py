# dataset_splitter.py
# Reproducible train/test partition of a FeatureTable

import logging
import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np
import pandas as pd

from .audio_feature_config import RANDOM_SEED, TRAIN_FRACTION
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Split:
    """Disjoint train/test views of one table. Indices are row positions."""
    train_indices: np.ndarray
    test_indices: np.ndarray
    train: pd.DataFrame
    test: pd.DataFrame
    train_fraction: float
    seed: int


def split_indices(n_rows: int, train_fraction: float = TRAIN_FRACTION,
                  seed: int = RANDOM_SEED) -> Tuple[np.ndarray, np.ndarray]:
    """Pick floor(n_rows * train_fraction) train positions without replacement.

    The same (n_rows, train_fraction, seed) always yields the same indices.
    """
    if not 0 < train_fraction < 1:
        raise ConfigurationError(f"Train fraction must lie in (0, 1), got {train_fraction}",
                                 stage='split', shape=(n_rows,))
    if n_rows < 2:
        raise ConfigurationError(f"Need at least 2 rows to split, got {n_rows}",
                                 stage='split', shape=(n_rows,))

    n_train = math.floor(n_rows * train_fraction)
    if n_train == 0 or n_train == n_rows:
        raise ConfigurationError(f"Train fraction {train_fraction} leaves an empty train or test set "
                                 f"for {n_rows} rows", stage='split', shape=(n_rows,))

    rng = np.random.default_rng(seed)
    train_idx = np.sort(rng.choice(n_rows, size=n_train, replace=False))
    test_mask = np.ones(n_rows, dtype=bool)
    test_mask[train_idx] = False
    test_idx = np.flatnonzero(test_mask)
    return train_idx, test_idx


def split_dataset(df: pd.DataFrame, train_fraction: float = TRAIN_FRACTION,
                  seed: int = RANDOM_SEED) -> Split:
    train_idx, test_idx = split_indices(len(df), train_fraction, seed)
    train = df.iloc[train_idx].reset_index(drop=True)
    test = df.iloc[test_idx].reset_index(drop=True)

    logger.info(f"Split {len(df):,} rows into {len(train):,} train / {len(test):,} test "
                f"(fraction={train_fraction}, seed={seed})")
    return Split(train_indices=train_idx, test_indices=test_idx, train=train, test=test,
                 train_fraction=train_fraction, seed=seed)
