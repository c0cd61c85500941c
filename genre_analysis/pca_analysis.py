# pca_analysis.py
# Variance explained by the principal components of the standardized features.
# Eigendecomposition is numpy's; only the bookkeeping around it lives here.

import logging
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.preprocessing import StandardScaler

from .audio_feature_config import PCA_VARIANCE_THRESHOLD
from .exceptions import ConfigurationError, DataQualityError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PCAResult:
    eigenvalues: np.ndarray
    loadings: pd.DataFrame          # feature x component
    variance: pd.DataFrame          # per component: eigenvalue, ratio, cumulative
    components_needed: int
    threshold: float


def standardize(df: pd.DataFrame, features: Sequence[str]) -> pd.DataFrame:
    """Zero-mean, unit-variance copy of the feature columns."""
    scaler = StandardScaler()
    scaled = scaler.fit_transform(df[list(features)].to_numpy(dtype=np.float64))
    return pd.DataFrame(scaled, columns=list(features), index=df.index)


def covariance(table: pd.DataFrame) -> pd.DataFrame:
    if len(table) < 2:
        raise DataQualityError("Covariance needs at least 2 rows", stage='pca', shape=table.shape)
    return table.cov()


def eigendecompose(matrix: pd.DataFrame) -> Tuple[np.ndarray, np.ndarray]:
    """Eigenvalues (descending) and matching column eigenvectors of a symmetric matrix."""
    values = np.asarray(matrix, dtype=np.float64)
    if values.ndim != 2 or values.shape[0] != values.shape[1]:
        raise ConfigurationError(f"Expected a square matrix, got shape {values.shape}", stage='pca')
    eigenvalues, eigenvectors = np.linalg.eigh(values)
    order = np.argsort(eigenvalues)[::-1]
    eigenvalues = np.clip(eigenvalues[order], 0.0, None)
    return eigenvalues, eigenvectors[:, order]


def variance_explained(eigenvalues: Sequence[float]) -> pd.DataFrame:
    eigenvalues = np.asarray(eigenvalues, dtype=np.float64)
    total = eigenvalues.sum()
    ratio = eigenvalues / total if total > 0 else np.zeros_like(eigenvalues)
    return pd.DataFrame({
        'component': [f'PC{i + 1}' for i in range(len(eigenvalues))],
        'eigenvalue': eigenvalues,
        'variance_ratio': ratio,
        'cumulative_ratio': np.cumsum(ratio)
    })


def components_for_variance(eigenvalues: Sequence[float], threshold: float = PCA_VARIANCE_THRESHOLD) -> int:
    """Smallest number of leading components whose cumulative ratio reaches threshold."""
    if not 0 < threshold <= 1:
        raise ConfigurationError(f"Variance threshold must lie in (0, 1], got {threshold}", stage='pca')
    cumulative = variance_explained(eigenvalues)['cumulative_ratio'].to_numpy()
    reached = np.flatnonzero(cumulative >= threshold - 1e-12)
    return int(reached[0] + 1) if len(reached) else len(cumulative)


def run_pca(df: pd.DataFrame, features: Sequence[str],
            threshold: float = PCA_VARIANCE_THRESHOLD) -> PCAResult:
    features = list(features)
    scaled = standardize(df, features)
    eigenvalues, eigenvectors = eigendecompose(covariance(scaled))

    variance = variance_explained(eigenvalues)
    loadings = pd.DataFrame(eigenvectors, index=features, columns=variance['component'].tolist())
    needed = components_for_variance(eigenvalues, threshold)

    logger.info(f"PCA: {needed} of {len(features)} components explain {threshold:.0%} of variance")
    return PCAResult(eigenvalues=eigenvalues, loadings=loadings, variance=variance,
                     components_needed=needed, threshold=threshold)
