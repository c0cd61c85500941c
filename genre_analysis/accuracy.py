# accuracy.py
# Overall and per-class accuracy, and confusion breakdowns, across models

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np
import pandas as pd

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

RECORD_COLUMNS = ['model', 'true_label', 'predicted_label']


@dataclass(frozen=True)
class AccuracyComparison:
    overall: pd.DataFrame     # one row per model
    per_class: pd.DataFrame   # one row per (model, class)

    def per_class_table(self) -> pd.DataFrame:
        """Class x model matrix of per-class accuracy."""
        return self.per_class.pivot(index='genre', columns='model', values='accuracy')


def prediction_records(model_name: str, y_true: Sequence, y_pred: Sequence) -> pd.DataFrame:
    """Build PredictionRecords for one model."""
    if len(y_true) != len(y_pred):
        raise ConfigurationError(f"{model_name}: {len(y_true)} true labels but {len(y_pred)} predictions",
                                 stage='accuracy')
    return pd.DataFrame({
        'model': model_name,
        'true_label': [str(label) for label in y_true],
        'predicted_label': [str(label) for label in y_pred]
    }, columns=RECORD_COLUMNS)


def _check_records(records: pd.DataFrame):
    missing = [col for col in RECORD_COLUMNS if col not in records.columns]
    if missing:
        raise ConfigurationError(f"Prediction records missing columns: {missing}", stage='accuracy')
    if records.empty:
        raise ConfigurationError("No prediction records to aggregate", stage='accuracy')


def _with_matches(records: pd.DataFrame) -> pd.DataFrame:
    records = records.copy()
    records['correct'] = (records['true_label'] == records['predicted_label']).astype(int)
    return records


def overall_accuracy(records: pd.DataFrame) -> pd.DataFrame:
    """Matches / total for every model in the records."""
    _check_records(records)
    scored = _with_matches(records)
    overall = (scored.groupby('model', sort=False)['correct']
               .agg(correct='sum', total='size')
               .reset_index())
    overall['accuracy'] = overall['correct'] / overall['total']
    return overall


def per_class_accuracy(records: pd.DataFrame) -> pd.DataFrame:
    """Accuracy within each observed true class, keyed by (model, genre).

    Every class seen in `true_label` gets a row for every model, at 0.0 when
    none of its rows were predicted correctly.
    """
    _check_records(records)
    scored = _with_matches(records)
    per_class = (scored.groupby(['model', 'true_label'], sort=False)['correct']
                 .agg(correct='sum', total='size')
                 .reset_index()
                 .rename(columns={'true_label': 'genre'}))
    per_class['accuracy'] = per_class['correct'] / per_class['total']
    return per_class.sort_values(['model', 'genre'], kind='stable').reset_index(drop=True)


def confusion_breakdown(records: pd.DataFrame, model_name: str) -> pd.DataFrame:
    """Counts of true (rows) against predicted (columns) genre for one model."""
    _check_records(records)
    subset = records[records['model'] == model_name]
    if subset.empty:
        raise ConfigurationError(f"No prediction records for model '{model_name}'", stage='accuracy')

    labels = sorted(set(subset['true_label']) | set(subset['predicted_label']))
    matrix = pd.crosstab(subset['true_label'], subset['predicted_label'])
    matrix = matrix.reindex(index=labels, columns=labels, fill_value=0)
    matrix.index.name = 'true_label'
    matrix.columns.name = 'predicted_label'
    return matrix.astype(np.int64)


def compare_models(records: pd.DataFrame) -> AccuracyComparison:
    overall = overall_accuracy(records)
    per_class = per_class_accuracy(records)
    for row in overall.itertuples(index=False):
        logger.info(f"{row.model}: accuracy {row.accuracy:.3f} ({row.correct}/{row.total})")
    return AccuracyComparison(overall=overall, per_class=per_class)
