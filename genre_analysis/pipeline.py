# pipeline.py
# load -> outlier filter -> feature reduction -> split -> fit/predict x N -> compare

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from joblib import Parallel, delayed

from . import audio_feature_config as defaults
from .accuracy import AccuracyComparison, compare_models, confusion_breakdown, prediction_records
from .classifiers import ClassifierAdapter, FittedModel, RawImportance, get_adapter
from .data_loader import prepare_tracks, read_track_file
from .dataset_splitter import Split, split_dataset
from .exceptions import ConfigurationError, GenreAnalysisError
from .feature_reducer import reduce_features
from .importance import importance_records, importance_table, rank_features
from .outlier_filter import filter_outliers
from .pca_analysis import PCAResult, run_pca

logger = logging.getLogger(__name__)


@dataclass
class GenreComparisonConfig:
    """Settings for one comparison run."""
    input_path: Optional[str] = None
    genre_column: str = defaults.GENRE_COLUMN
    feature_columns: List[str] = field(default_factory=lambda: list(defaults.AUDIO_FEATURES))
    excluded_features: List[str] = field(default_factory=lambda: list(defaults.DEFAULT_EXCLUDED_FEATURES))
    outlier_column: str = defaults.OUTLIER_COLUMN
    outlier_multiplier: float = defaults.OUTLIER_MULTIPLIER
    train_fraction: float = defaults.TRAIN_FRACTION
    seed: int = defaults.RANDOM_SEED
    models: List[str] = field(default_factory=lambda: ['decision_tree', 'random_forest', 'gradient_boosting'])
    hyperparameters: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    n_jobs: int = 1
    separator: str = ','
    output_dir: Optional[str] = None
    run_pca: bool = True
    pca_variance_threshold: float = defaults.PCA_VARIANCE_THRESHOLD

    def __post_init__(self):
        if not 0 < self.train_fraction < 1:
            raise ConfigurationError(f"train_fraction must lie in (0, 1), got {self.train_fraction}")
        if self.outlier_multiplier < 0:
            raise ConfigurationError(f"outlier_multiplier must be non-negative, got {self.outlier_multiplier}")
        if self.outlier_column not in self.feature_columns:
            raise ConfigurationError(f"outlier_column '{self.outlier_column}' is not one of the feature columns")
        if not self.models:
            raise ConfigurationError("At least one model is required")
        if len(set(self.models)) != len(self.models):
            raise ConfigurationError(f"Duplicate models: {self.models}")
        for name in self.models:
            get_adapter(name)
        unknown = sorted(set(self.hyperparameters) - set(self.models))
        if unknown:
            raise ConfigurationError(f"Hyperparameters given for models not being run: {unknown}")

    @classmethod
    def from_json(cls, path, **overrides) -> 'GenreComparisonConfig':
        try:
            with open(path) as f:
                values = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Could not read config from {path}: {e}") from e
        unknown = sorted(set(values) - set(cls.__dataclass_fields__))
        if unknown:
            raise ConfigurationError(f"Unknown config keys in {path}: {unknown}")
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ComparisonResult:
    config: GenreComparisonConfig
    table: pd.DataFrame
    features: List[str]
    split: Split
    stats: Dict[str, Any]
    models: Dict[str, FittedModel]
    predictions: pd.DataFrame
    accuracy: AccuracyComparison
    confusion: Dict[str, pd.DataFrame]
    importance: pd.DataFrame
    pca: Optional[PCAResult] = None

    def importance_table(self, value: str = 'importance_score') -> pd.DataFrame:
        return importance_table(self.importance, value)

    def summary(self) -> dict:
        ranking = rank_features(self.importance)
        best = self.accuracy.overall.sort_values('accuracy', ascending=False, kind='stable').iloc[0]
        return {
            'config': self.config.to_dict(),
            'stats': self.stats,
            'features': self.features,
            'accuracy': {
                row.model: round(float(row.accuracy), 4)
                for row in self.accuracy.overall.itertuples(index=False)
            },
            'best_model': best['model'],
            'top_features': ranking['feature'].head(5).tolist(),
            'pca_components_needed': self.pca.components_needed if self.pca else None
        }


def fit_and_predict(adapter: ClassifierAdapter, split: Split, features: List[str], genre_column: str,
                    hyperparameters: Optional[Dict[str, Any]] = None
                    ) -> Tuple[FittedModel, List[str], RawImportance]:
    """One adapter's full pass over the shared, read-only split."""
    model = adapter.fit(split.train[features], split.train[genre_column], hyperparameters)
    predicted = adapter.predict(model, split.test[features])
    return model, predicted, adapter.raw_importance(model)


class GenreComparisonPipeline:
    """Runs every stage as an explicit function of the previous stage's output."""

    def __init__(self, config: GenreComparisonConfig):
        self.config = config
        self.adapters = [get_adapter(name) for name in config.models]

    def _stage(self, name: str, shape, func, *args, **kwargs):
        logger.info(f"[{name}] input shape {tuple(shape)}")
        try:
            return func(*args, **kwargs)
        except GenreAnalysisError as e:
            e.stage = e.stage or name
            e.shape = e.shape if e.shape is not None else tuple(shape)
            logger.error(f"Stage '{name}' failed on input shape {tuple(shape)}: {e.message}")
            raise

    def load(self) -> pd.DataFrame:
        if not self.config.input_path:
            raise ConfigurationError("No input_path configured and no table given", stage='load')
        return read_track_file(self.config.input_path, sep=self.config.separator)

    def run(self, df: Optional[pd.DataFrame] = None) -> ComparisonResult:
        cfg = self.config
        stats: Dict[str, Any] = {}

        raw = df if df is not None else self._stage('read', (0, 0), self.load)
        stats['rows_loaded'] = len(raw)

        table, dropped = self._stage('load', raw.shape, prepare_tracks, raw,
                                     genre_column=cfg.genre_column, feature_columns=cfg.feature_columns)
        stats['rows_missing_dropped'] = dropped

        filtered = self._stage('outlier_filter', table.shape, filter_outliers, table,
                               column=cfg.outlier_column, k=cfg.outlier_multiplier)
        table = filtered.table
        stats['outliers_removed'] = filtered.removed_count
        stats['outlier_bounds'] = [filtered.lower, filtered.upper]

        features = self._stage('feature_reduction', (len(cfg.feature_columns),), reduce_features,
                               cfg.feature_columns, cfg.excluded_features)

        split = self._stage('split', table.shape, split_dataset, table,
                            train_fraction=cfg.train_fraction, seed=cfg.seed)
        stats['train_rows'] = len(split.train)
        stats['test_rows'] = len(split.test)

        jobs = (
            delayed(self._stage)(f'fit:{adapter.name}', split.train[features].shape, fit_and_predict,
                                 adapter, split, features, cfg.genre_column,
                                 cfg.hyperparameters.get(adapter.name))
            for adapter in self.adapters
        )
        outcomes = Parallel(n_jobs=cfg.n_jobs, prefer='threads')(jobs)

        models = {}
        raw_importance = {}
        record_frames = []
        for adapter, (model, predicted, importance) in zip(self.adapters, outcomes):
            models[adapter.name] = model
            raw_importance[adapter.name] = importance
            record_frames.append(prediction_records(adapter.name, split.test[cfg.genre_column], predicted))
        predictions = pd.concat(record_frames, ignore_index=True)

        accuracy = self._stage('accuracy', predictions.shape, compare_models, predictions)
        confusion = {name: confusion_breakdown(predictions, name) for name in models}
        importance = self._stage('importance', (len(features), len(models)),
                                 importance_records, raw_importance, features)

        pca = None
        if cfg.run_pca:
            pca = self._stage('pca', split.train[features].shape, run_pca, split.train, features,
                              threshold=cfg.pca_variance_threshold)

        result = ComparisonResult(config=cfg, table=table, features=features, split=split, stats=stats,
                                  models=models, predictions=predictions, accuracy=accuracy,
                                  confusion=confusion, importance=importance, pca=pca)
        if cfg.output_dir:
            save_results(result, cfg.output_dir)
        return result


def save_results(result: ComparisonResult, output_dir) -> Path:
    """Write the comparison tables and a JSON summary to output_dir."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    result.accuracy.overall.to_csv(output_dir / 'accuracy_overall.csv', index=False)
    result.accuracy.per_class.to_csv(output_dir / 'accuracy_per_class.csv', index=False)
    result.predictions.to_csv(output_dir / 'predictions.csv', index=False)
    result.importance.to_csv(output_dir / 'importance.csv', index=False)
    result.importance_table().to_csv(output_dir / 'importance_table.csv')
    for name, matrix in result.confusion.items():
        matrix.to_csv(output_dir / f'confusion_{name}.csv')
    if result.pca is not None:
        result.pca.variance.to_csv(output_dir / 'pca_variance.csv', index=False)

    summary_path = output_dir / 'summary.json'
    with open(summary_path, 'w') as f:
        json.dump(result.summary(), f, indent=2, default=str)
    logger.info(f"Comparison results saved to {output_dir}")
    return output_dir
