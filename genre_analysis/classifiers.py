# classifiers.py
# Uniform fit / predict / importance wrappers over scikit-learn tree models.
# The fitted estimator is held inside a FittedModel that only its own adapter reads.

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import joblib
import numpy as np
import pandas as pd
from sklearn.ensemble import GradientBoostingClassifier, RandomForestClassifier
from sklearn.tree import DecisionTreeClassifier

from .audio_feature_config import RANDOM_SEED
from .exceptions import ConfigurationError, InferenceError, TrainingError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FittedModel:
    adapter: str
    estimator: Any = field(repr=False)
    feature_names: Tuple[str, ...]
    classes: Tuple[str, ...]
    hyperparameters: Dict[str, Any]


@dataclass(frozen=True)
class RawImportance:
    """Importance scores tagged with the algorithm that produced them."""
    algorithm: str
    scores: Dict[str, float]


class ClassifierAdapter:
    name = None
    algorithm = None
    estimator_class = None
    default_hyperparameters: Dict[str, Any] = {}

    def build_estimator(self, hyperparameters: Optional[Mapping[str, Any]] = None):
        params = dict(self.default_hyperparameters)
        params.update(hyperparameters or {})

        valid = set(self.estimator_class().get_params())
        unknown = sorted(set(params) - valid)
        if unknown:
            raise ConfigurationError(f"Unknown hyperparameters for {self.name}: {unknown}", stage='fit')
        return self.estimator_class(**params), params

    def fit(self, train_features: pd.DataFrame, train_labels: Sequence,
            hyperparameters: Optional[Mapping[str, Any]] = None) -> FittedModel:
        """Fit a fresh estimator. The inputs are copied, never modified."""
        shape = train_features.shape
        if shape[1] == 0:
            raise TrainingError("Feature matrix has zero columns", stage=f'fit:{self.name}', shape=shape)
        if shape[0] == 0:
            raise TrainingError("Training table has no rows", stage=f'fit:{self.name}', shape=shape)

        labels = np.asarray(train_labels).astype(str)
        if len(labels) != shape[0]:
            raise TrainingError(f"Got {len(labels)} labels for {shape[0]} rows",
                                stage=f'fit:{self.name}', shape=shape)
        classes = np.unique(labels)
        if len(classes) < 2:
            raise TrainingError(f"Need at least 2 distinct classes, got {len(classes)}",
                                stage=f'fit:{self.name}', shape=shape)

        estimator, params = self.build_estimator(hyperparameters)
        feature_names = tuple(str(col) for col in train_features.columns)
        X = train_features.to_numpy(dtype=np.float64, copy=True)

        logger.info(f"Training {self.name} on {shape[0]:,} rows x {shape[1]} features, {len(classes)} classes")
        estimator.fit(X, labels)

        return FittedModel(adapter=self.name, estimator=estimator, feature_names=feature_names,
                           classes=tuple(str(c) for c in estimator.classes_), hyperparameters=params)

    def _check_owner(self, model: FittedModel):
        if model.adapter != self.name:
            raise InferenceError(f"Model was fitted by {model.adapter}, not {self.name}",
                                 stage=f'predict:{self.name}')

    def predict(self, model: FittedModel, test_features: pd.DataFrame) -> List[str]:
        """Predicted labels in the row order of `test_features`."""
        self._check_owner(model)
        columns = [str(col) for col in test_features.columns]
        if set(columns) != set(model.feature_names) or len(columns) != len(model.feature_names):
            missing = sorted(set(model.feature_names) - set(columns))
            extra = sorted(set(columns) - set(model.feature_names))
            raise InferenceError(f"Feature schema differs from training: missing={missing}, extra={extra}",
                                 stage=f'predict:{self.name}', shape=test_features.shape)
        if test_features.empty:
            return []

        X = test_features[list(model.feature_names)].to_numpy(dtype=np.float64)
        return [str(label) for label in model.estimator.predict(X)]

    def raw_importance(self, model: FittedModel) -> RawImportance:
        self._check_owner(model)
        importances = model.estimator.feature_importances_
        scores = {name: float(score) for name, score in zip(model.feature_names, importances)}
        return RawImportance(algorithm=self.algorithm, scores=scores)

    def feature_importance(self, model: FittedModel) -> Dict[str, float]:
        """Non-negative score per fitted feature, on this adapter's own scale."""
        return dict(self.raw_importance(model).scores)

    def save_model(self, model: FittedModel, filepath):
        self._check_owner(model)
        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)
        joblib.dump(model, filepath)
        logger.info(f"Saved {self.name} model to {filepath}")

    def load_model(self, filepath) -> FittedModel:
        model = joblib.load(filepath)
        if not isinstance(model, FittedModel):
            raise InferenceError(f"{filepath} does not hold a fitted model", stage=f'load:{self.name}')
        self._check_owner(model)
        return model

    def __repr__(self):
        return f"{type(self).__name__}()"


class DecisionTreeAdapter(ClassifierAdapter):
    name = 'decision_tree'
    algorithm = 'gini_impurity_decrease'
    estimator_class = DecisionTreeClassifier
    default_hyperparameters = {
        'max_depth': 10,
        'min_samples_leaf': 5,
        'random_state': RANDOM_SEED
    }


class RandomForestAdapter(ClassifierAdapter):
    name = 'random_forest'
    algorithm = 'mean_impurity_decrease'
    estimator_class = RandomForestClassifier
    default_hyperparameters = {
        'n_estimators': 200,
        'max_depth': 15,
        'min_samples_split': 10,
        'random_state': RANDOM_SEED,
        'n_jobs': -1
    }


class GradientBoostingAdapter(ClassifierAdapter):
    name = 'gradient_boosting'
    algorithm = 'boosted_impurity_decrease'
    estimator_class = GradientBoostingClassifier
    default_hyperparameters = {
        'n_estimators': 100,
        'learning_rate': 0.1,
        'max_depth': 3,
        'subsample': 1.0,
        'random_state': RANDOM_SEED
    }


ADAPTERS = {
    adapter.name: adapter
    for adapter in (DecisionTreeAdapter, RandomForestAdapter, GradientBoostingAdapter)
}


def get_adapter(name: str) -> ClassifierAdapter:
    if name not in ADAPTERS:
        raise ConfigurationError(f"Unknown model '{name}'. Choose from {sorted(ADAPTERS)}")
    return ADAPTERS[name]()


def default_adapters() -> List[ClassifierAdapter]:
    return [adapter() for adapter in ADAPTERS.values()]
