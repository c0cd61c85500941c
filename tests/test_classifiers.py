import pandas as pd
import pytest

from genre_analysis.classifiers import (DecisionTreeAdapter, GradientBoostingAdapter, RandomForestAdapter,
                                        RawImportance, default_adapters, get_adapter)
from genre_analysis.dataset_splitter import split_dataset
from genre_analysis.exceptions import ConfigurationError, InferenceError, TrainingError
from genre_analysis.feature_reducer import reduce_features

FAST_PARAMS = {
    'decision_tree': {},
    'random_forest': {'n_estimators': 25, 'n_jobs': 1},
    'gradient_boosting': {'n_estimators': 20}
}


@pytest.fixture
def features(tracks):
    return reduce_features([c for c in tracks.columns if c != 'genre'])


@pytest.fixture
def split(tracks):
    return split_dataset(tracks, 0.8, seed=42)


@pytest.mark.parametrize('adapter', default_adapters(), ids=lambda a: a.name)
def test_predict_matches_test_length_and_order(adapter, split, features):
    model = adapter.fit(split.train[features], split.train['genre'], FAST_PARAMS[adapter.name])

    predicted = adapter.predict(model, split.test[features])
    reversed_predicted = adapter.predict(model, split.test[features].iloc[::-1])

    assert len(predicted) == len(split.test)
    assert reversed_predicted == predicted[::-1]
    assert set(predicted) <= set(split.train['genre'])


@pytest.mark.parametrize('adapter', default_adapters(), ids=lambda a: a.name)
def test_training_row_predictions_are_repeatable(adapter, split, features):
    row = split.train[features].iloc[[3]]

    first = adapter.predict(adapter.fit(split.train[features], split.train['genre'], FAST_PARAMS[adapter.name]), row)
    second = adapter.predict(adapter.fit(split.train[features], split.train['genre'], FAST_PARAMS[adapter.name]), row)

    assert first == second


@pytest.mark.parametrize('adapter', default_adapters(), ids=lambda a: a.name)
def test_feature_importance_covers_every_fitted_feature(adapter, split, features):
    model = adapter.fit(split.train[features], split.train['genre'], FAST_PARAMS[adapter.name])

    importance = adapter.feature_importance(model)

    assert list(importance) == features
    assert all(score >= 0 for score in importance.values())


def test_raw_importance_is_tagged_with_algorithm(split, features):
    adapter = RandomForestAdapter()
    model = adapter.fit(split.train[features], split.train['genre'], FAST_PARAMS['random_forest'])

    raw = adapter.raw_importance(model)

    assert isinstance(raw, RawImportance)
    assert raw.algorithm == RandomForestAdapter.algorithm
    assert raw.algorithm != GradientBoostingAdapter.algorithm


@pytest.mark.parametrize('adapter', default_adapters(), ids=lambda a: a.name)
def test_raw_importance_is_the_estimator_output(adapter, split, features):
    model = adapter.fit(split.train[features], split.train['genre'], FAST_PARAMS[adapter.name])

    raw = adapter.raw_importance(model)

    assert list(raw.scores.values()) == [float(s) for s in model.estimator.feature_importances_]


def test_tree_beats_chance_on_genre_signal(split, features):
    adapter = DecisionTreeAdapter()
    model = adapter.fit(split.train[features], split.train['genre'])

    predicted = adapter.predict(model, split.test[features])
    accuracy = (pd.Series(predicted) == split.test['genre'].reset_index(drop=True)).mean()

    assert accuracy > 1 / 6


def test_fit_does_not_mutate_inputs(split, features):
    train_features = split.train[features].copy()
    labels = split.train['genre'].copy()

    DecisionTreeAdapter().fit(train_features, labels)

    pd.testing.assert_frame_equal(train_features, split.train[features])
    pd.testing.assert_series_equal(labels, split.train['genre'])


def test_single_class_is_training_error(split, features):
    with pytest.raises(TrainingError, match='2 distinct classes'):
        DecisionTreeAdapter().fit(split.train[features], ['rock'] * len(split.train))


def test_zero_columns_is_training_error(split):
    with pytest.raises(TrainingError, match='zero columns'):
        DecisionTreeAdapter().fit(split.train[[]], split.train['genre'])


def test_label_length_mismatch_is_training_error(split, features):
    with pytest.raises(TrainingError):
        DecisionTreeAdapter().fit(split.train[features], split.train['genre'].iloc[:-1])


def test_schema_mismatch_is_inference_error(split, features):
    adapter = DecisionTreeAdapter()
    model = adapter.fit(split.train[features], split.train['genre'])

    with pytest.raises(InferenceError, match='tempo'):
        adapter.predict(model, split.test[features].drop(columns='tempo'))
    with pytest.raises(InferenceError, match='loudness'):
        adapter.predict(model, split.test[features + ['loudness']])


def test_reordered_columns_are_accepted(split, features):
    adapter = DecisionTreeAdapter()
    model = adapter.fit(split.train[features], split.train['genre'])

    assert adapter.predict(model, split.test[features[::-1]]) == adapter.predict(model, split.test[features])


def test_model_from_another_adapter_is_rejected(split, features):
    model = DecisionTreeAdapter().fit(split.train[features], split.train['genre'])

    with pytest.raises(InferenceError, match='decision_tree'):
        GradientBoostingAdapter().predict(model, split.test[features])


def test_unknown_hyperparameter_is_configuration_error(split, features):
    with pytest.raises(ConfigurationError, match='n_trees'):
        RandomForestAdapter().fit(split.train[features], split.train['genre'], {'n_trees': 10})


def test_hyperparameters_override_defaults(split, features):
    model = DecisionTreeAdapter().fit(split.train[features], split.train['genre'], {'max_depth': 2})

    assert model.hyperparameters['max_depth'] == 2
    assert model.hyperparameters['random_state'] == DecisionTreeAdapter.default_hyperparameters['random_state']
    assert model.estimator.get_depth() <= 2


def test_saved_model_round_trips(tmp_path, split, features):
    adapter = DecisionTreeAdapter()
    model = adapter.fit(split.train[features], split.train['genre'])
    path = tmp_path / 'models' / 'tree.pkl'

    adapter.save_model(model, str(path))
    loaded = adapter.load_model(str(path))

    assert loaded.feature_names == model.feature_names
    assert adapter.predict(loaded, split.test[features]) == adapter.predict(model, split.test[features])
    with pytest.raises(InferenceError):
        RandomForestAdapter().load_model(str(path))


def test_get_adapter_by_name():
    assert isinstance(get_adapter('gradient_boosting'), GradientBoostingAdapter)
    with pytest.raises(ConfigurationError):
        get_adapter('svm')
