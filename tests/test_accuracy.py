import numpy as np
import pandas as pd
import pytest

from genre_analysis.accuracy import (compare_models, confusion_breakdown, overall_accuracy, per_class_accuracy,
                                     prediction_records)
from genre_analysis.exceptions import ConfigurationError


@pytest.fixture
def majority_records():
    y_true = ['pop'] * 50 + ['rock'] * 30 + ['jazz'] * 20
    return prediction_records('majority', y_true, ['pop'] * 100)


def test_majority_class_predictor(majority_records):
    overall = overall_accuracy(majority_records)
    per_class = per_class_accuracy(majority_records).set_index('genre')['accuracy']

    assert overall.loc[0, 'accuracy'] == pytest.approx(0.5)
    assert per_class['pop'] == pytest.approx(1.0)
    assert per_class['rock'] == 0.0
    assert per_class['jazz'] == 0.0


def test_overall_is_mean_of_matches_and_weighted_class_mean():
    rng = np.random.default_rng(5)
    labels = np.array(['a', 'b', 'c', 'd'])
    y_true = rng.choice(labels, 400)
    y_pred = np.where(rng.random(400) < 0.6, y_true, rng.choice(labels, 400))
    records = prediction_records('noisy', y_true, y_pred)

    overall = overall_accuracy(records).loc[0, 'accuracy']
    per_class = per_class_accuracy(records)
    weighted = (per_class['accuracy'] * per_class['total']).sum() / per_class['total'].sum()

    assert overall == pytest.approx(np.mean(y_true == y_pred))
    assert weighted == pytest.approx(overall)


def test_class_never_predicted_is_reported_as_zero():
    records = prediction_records('m', ['a', 'a', 'b'], ['a', 'a', 'a'])

    per_class = per_class_accuracy(records)

    assert per_class['genre'].tolist() == ['a', 'b']
    assert per_class['accuracy'].tolist() == [1.0, 0.0]


def test_compare_models_keys_by_model_and_class(majority_records):
    y_true = majority_records['true_label'].tolist()
    records = pd.concat([majority_records, prediction_records('oracle', y_true, y_true)], ignore_index=True)

    comparison = compare_models(records)
    table = comparison.per_class_table()

    assert comparison.overall.set_index('model')['accuracy'].to_dict() == {'majority': 0.5, 'oracle': 1.0}
    assert set(zip(comparison.per_class['model'], comparison.per_class['genre'])) == {
        (m, g) for m in ('majority', 'oracle') for g in ('pop', 'rock', 'jazz')
    }
    assert table.loc['rock', 'oracle'] == 1.0
    assert table.loc['rock', 'majority'] == 0.0


def test_confusion_breakdown_counts(majority_records):
    matrix = confusion_breakdown(majority_records, 'majority')

    assert list(matrix.index) == ['jazz', 'pop', 'rock']
    assert matrix.loc['rock', 'pop'] == 30
    assert matrix.loc['jazz', 'jazz'] == 0
    assert matrix.to_numpy().sum() == 100


def test_empty_records_are_rejected():
    with pytest.raises(ConfigurationError):
        overall_accuracy(prediction_records('m', [], []))


def test_length_mismatch_is_rejected():
    with pytest.raises(ConfigurationError):
        prediction_records('m', ['a', 'b'], ['a'])
