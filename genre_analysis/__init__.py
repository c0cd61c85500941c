"""Genre classification comparison on precomputed song audio features."""

from .accuracy import compare_models, confusion_breakdown, overall_accuracy, per_class_accuracy, prediction_records
from .classifiers import (ClassifierAdapter, DecisionTreeAdapter, FittedModel, GradientBoostingAdapter,
                          RandomForestAdapter, RawImportance, default_adapters, get_adapter)
from .data_loader import feature_columns, load_tracks, prepare_tracks
from .dataset_splitter import Split, split_dataset, split_indices
from .exceptions import ConfigurationError, DataQualityError, GenreAnalysisError, InferenceError, TrainingError
from .feature_reducer import reduce_features
from .importance import importance_records, importance_table, normalize_scores
from .outlier_filter import filter_outliers, iqr_bounds, outlier_mask
from .pipeline import GenreComparisonConfig, GenreComparisonPipeline, save_results

__version__ = '0.1.0'
