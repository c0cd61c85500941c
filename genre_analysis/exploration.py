# exploration.py
# Numeric summaries behind the exploratory analysis: class balance,
# feature distributions, and pairwise correlations used to choose which
# redundant features to exclude.

import logging
from itertools import combinations
from typing import Dict, Optional, Sequence

import pandas as pd

from .audio_feature_config import CORRELATION_THRESHOLD, GENRE_COLUMN, OUTLIER_MULTIPLIER
from .data_loader import feature_columns as numeric_feature_columns
from .exceptions import ConfigurationError
from .outlier_filter import iqr_bounds, outlier_mask

logger = logging.getLogger(__name__)


def _features(df: pd.DataFrame, features: Optional[Sequence[str]], genre_column: str):
    features = list(features) if features is not None else numeric_feature_columns(df, genre_column)
    missing = [f for f in features if f not in df.columns]
    if missing:
        raise ConfigurationError(f"Features not in table: {missing}", stage='exploration', shape=df.shape)
    return features


def genre_counts(df: pd.DataFrame, genre_column: str = GENRE_COLUMN) -> pd.DataFrame:
    counts = df[genre_column].value_counts()
    return pd.DataFrame({
        'genre': counts.index.astype(str),
        'count': counts.to_numpy(),
        'share': (counts / counts.sum()).round(4).to_numpy()
    })


def feature_summary(df: pd.DataFrame, features: Optional[Sequence[str]] = None,
                    genre_column: str = GENRE_COLUMN) -> pd.DataFrame:
    """count / mean / std / min / quartiles / max per feature."""
    features = _features(df, features, genre_column)
    summary = df[features].describe().T
    summary.index.name = 'feature'
    return summary


def feature_means_by_genre(df: pd.DataFrame, features: Optional[Sequence[str]] = None,
                           genre_column: str = GENRE_COLUMN) -> pd.DataFrame:
    features = _features(df, features, genre_column)
    return df.groupby(genre_column)[features].mean()


def outlier_report(df: pd.DataFrame, features: Optional[Sequence[str]] = None,
                   k: float = OUTLIER_MULTIPLIER, genre_column: str = GENRE_COLUMN) -> pd.DataFrame:
    """Per-feature count of values outside the IQR fences, without dropping anything."""
    features = _features(df, features, genre_column)
    rows = []
    for feature in features:
        values = df[feature].dropna()
        lower, upper = iqr_bounds(values, k)
        count = int(outlier_mask(values, k).sum())
        rows.append({
            'feature': feature,
            'lower': lower,
            'upper': upper,
            'outlier_count': count,
            'outlier_percentage': round(count / len(values) * 100, 2) if len(values) else 0.0
        })
    return pd.DataFrame(rows)


def correlation_matrix(df: pd.DataFrame, features: Optional[Sequence[str]] = None,
                       method: str = 'pearson', genre_column: str = GENRE_COLUMN) -> pd.DataFrame:
    features = _features(df, features, genre_column)
    return df[features].corr(method=method)


def highly_correlated_pairs(df: pd.DataFrame, features: Optional[Sequence[str]] = None,
                            threshold: float = CORRELATION_THRESHOLD, method: str = 'pearson',
                            genre_column: str = GENRE_COLUMN) -> pd.DataFrame:
    """Feature pairs with |correlation| >= threshold, strongest first."""
    corr = correlation_matrix(df, features, method=method, genre_column=genre_column)
    rows = [
        {'feature_a': a, 'feature_b': b, 'correlation': float(corr.loc[a, b])}
        for a, b in combinations(corr.columns, 2)
        if pd.notna(corr.loc[a, b]) and abs(corr.loc[a, b]) >= threshold
    ]
    pairs = pd.DataFrame(rows, columns=['feature_a', 'feature_b', 'correlation'])
    order = pairs['correlation'].abs().sort_values(ascending=False, kind='stable').index
    return pairs.loc[order].reset_index(drop=True)


def exploration_report(df: pd.DataFrame, features: Optional[Sequence[str]] = None,
                       threshold: float = CORRELATION_THRESHOLD,
                       genre_column: str = GENRE_COLUMN) -> Dict[str, pd.DataFrame]:
    features = _features(df, features, genre_column)
    report = {
        'genre_counts': genre_counts(df, genre_column),
        'feature_summary': feature_summary(df, features, genre_column),
        'outliers': outlier_report(df, features, genre_column=genre_column),
        'correlated_pairs': highly_correlated_pairs(df, features, threshold, genre_column=genre_column)
    }
    for row in report['correlated_pairs'].itertuples(index=False):
        logger.info(f"{row.feature_a} ~ {row.feature_b}: r={row.correlation:.3f}")
    return report
