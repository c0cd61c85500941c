# importance.py
# Normalizes each model's feature importances before they are compared.
# Raw scores from different algorithms are in different units and are never
# compared directly; only the within-model z-scores are.

import logging
from typing import Dict, Iterable, Mapping, Optional, Sequence

import numpy as np
import pandas as pd
from scipy import stats

from .classifiers import RawImportance
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

IMPORTANCE_COLUMNS = ['model', 'algorithm', 'feature', 'raw_score', 'importance_score']


def normalize_scores(scores: Mapping[str, float], features: Sequence[str]) -> pd.Series:
    """Z-score one model's importances across `features`.

    Features missing from `scores` count as 0. A constant vector maps to zeros.
    """
    raw = pd.Series({f: float(scores.get(f, 0.0)) for f in features}, dtype='float64')
    if len(raw) < 2 or np.isclose(raw.std(ddof=0), 0.0):
        return pd.Series(0.0, index=raw.index)
    return pd.Series(stats.zscore(raw.to_numpy(), ddof=0), index=raw.index)


def importance_records(raw_by_model: Mapping[str, RawImportance],
                       features: Optional[Iterable[str]] = None) -> pd.DataFrame:
    """ImportanceRecords for every (model, feature) pair.

    `features` defaults to the union of features reported by any model, so a
    feature one model never used still gets a row for it (scored 0).
    """
    if not raw_by_model:
        raise ConfigurationError("No importance scores to aggregate", stage='importance')

    for model_name, raw in raw_by_model.items():
        if not isinstance(raw, RawImportance):
            raise ConfigurationError(f"Importance for '{model_name}' is not tagged with its algorithm",
                                     stage='importance')

    if features is None:
        features = []
        for raw in raw_by_model.values():
            features.extend(raw.scores)
    features = list(dict.fromkeys(features))

    frames = []
    for model_name, raw in raw_by_model.items():
        unused = [f for f in features if f not in raw.scores]
        if unused:
            logger.info(f"{model_name}: no importance reported for {unused}, scoring as 0")
        normalized = normalize_scores(raw.scores, features)
        frames.append(pd.DataFrame({
            'model': model_name,
            'algorithm': raw.algorithm,
            'feature': features,
            'raw_score': [float(raw.scores.get(f, 0.0)) for f in features],
            'importance_score': normalized.to_numpy()
        }, columns=IMPORTANCE_COLUMNS))

    return pd.concat(frames, ignore_index=True)


def importance_table(records: pd.DataFrame, value: str = 'importance_score') -> pd.DataFrame:
    """Feature x model matrix of one importance column."""
    if value not in ('importance_score', 'raw_score'):
        raise ConfigurationError(f"Unknown importance column '{value}'", stage='importance')
    table = records.pivot(index='feature', columns='model', values=value)
    return table.reindex(index=list(dict.fromkeys(records['feature'])),
                         columns=list(dict.fromkeys(records['model'])))


def rank_features(records: pd.DataFrame) -> pd.DataFrame:
    """Features ordered by mean normalized importance across models."""
    ranking = (records.groupby('feature')['importance_score']
               .agg(mean_importance='mean', min_importance='min', max_importance='max')
               .sort_values('mean_importance', ascending=False)
               .reset_index())
    ranking['rank'] = np.arange(1, len(ranking) + 1)
    return ranking


def collect_importance(adapters_and_models: Iterable) -> Dict[str, RawImportance]:
    """Tagged raw importances from (adapter, fitted model) pairs, keyed by model name."""
    return {adapter.name: adapter.raw_importance(model) for adapter, model in adapters_and_models}
