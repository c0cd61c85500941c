# cli.py
'''
Compare the three genre classifiers:  python -m genre_analysis compare --input tracks.csv
Summarize the raw table:              python -m genre_analysis explore --input tracks.csv
Variance explained by the features:   python -m genre_analysis pca --input tracks.csv
'''

import argparse
import json
import logging
import sys

import pandas as pd

from . import audio_feature_config as defaults
from .classifiers import ADAPTERS
from .data_loader import load_tracks
from .exceptions import ConfigurationError, GenreAnalysisError
from .exploration import exploration_report
from .feature_reducer import reduce_features
from .pca_analysis import run_pca
from .pipeline import GenreComparisonConfig, GenreComparisonPipeline

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Genre classifier comparison on song audio features')
    parser.add_argument('--log-level', default='INFO', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging verbosity')
    subparsers = parser.add_subparsers(dest='command', required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--input', help='Delimited track feature file')
    common.add_argument('--genre-column', default=None, help='Name of the genre label column')
    common.add_argument('--sep', default=None, help='Field separator (default ",")')

    compare = subparsers.add_parser('compare', parents=[common], help='Train and compare classifiers')
    compare.add_argument('--config', help='JSON file with GenreComparisonConfig fields')
    compare.add_argument('--exclude', nargs='*', default=None, help='Features to drop before training')
    compare.add_argument('--outlier-column', default=None, help='Column checked for IQR outliers')
    compare.add_argument('--outlier-k', type=float, default=None, help='IQR multiplier for the outlier fences')
    compare.add_argument('--train-fraction', type=float, default=None, help='Share of rows used for training')
    compare.add_argument('--seed', type=int, default=None, help='Split seed')
    compare.add_argument('--models', nargs='+', choices=sorted(ADAPTERS), default=None,
                         help='Classifiers to compare')
    compare.add_argument('--hyperparameters', help='JSON file mapping model name to hyperparameters')
    compare.add_argument('--n-jobs', type=int, default=None, help='Parallel fits (1 = sequential)')
    compare.add_argument('--output-dir', default=None, help='Directory for result tables')
    compare.add_argument('--no-pca', action='store_true', help='Skip the variance-explained analysis')

    explore = subparsers.add_parser('explore', parents=[common], help='Summaries and correlations')
    explore.add_argument('--threshold', type=float, default=defaults.CORRELATION_THRESHOLD,
                         help='Minimum |r| reported as a highly correlated pair')

    pca = subparsers.add_parser('pca', parents=[common], help='Variance explained by principal components')
    pca.add_argument('--exclude', nargs='*', default=None, help='Features to drop first')
    pca.add_argument('--variance', type=float, default=defaults.PCA_VARIANCE_THRESHOLD,
                     help='Cumulative variance the reported components must reach')
    return parser


def config_from_args(args) -> GenreComparisonConfig:
    hyperparameters = None
    if args.hyperparameters:
        try:
            with open(args.hyperparameters) as f:
                hyperparameters = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Could not read hyperparameters from {args.hyperparameters}: {e}") from e

    overrides = {
        'input_path': args.input,
        'genre_column': args.genre_column,
        'separator': args.sep,
        'excluded_features': args.exclude,
        'outlier_column': args.outlier_column,
        'outlier_multiplier': args.outlier_k,
        'train_fraction': args.train_fraction,
        'seed': args.seed,
        'models': args.models,
        'hyperparameters': hyperparameters,
        'n_jobs': args.n_jobs,
        'output_dir': args.output_dir,
        'run_pca': False if args.no_pca else None
    }
    if args.config:
        return GenreComparisonConfig.from_json(args.config, **overrides)
    return GenreComparisonConfig(**{k: v for k, v in overrides.items() if v is not None})


def _load(args) -> pd.DataFrame:
    if not args.input:
        raise ConfigurationError("--input is required", stage='load')
    return load_tracks(args.input, genre_column=args.genre_column or defaults.GENRE_COLUMN,
                       sep=args.sep or ',')


def run_compare(args) -> int:
    config = config_from_args(args)
    result = GenreComparisonPipeline(config).run()
    summary = result.summary()

    print("GENRE CLASSIFIER COMPARISON")
    print(f"Tracks after cleaning: {len(result.table):,} "
          f"({summary['stats']['rows_missing_dropped']} incomplete, "
          f"{summary['stats']['outliers_removed']} outliers removed)")
    print(f"Features: {', '.join(result.features)}")
    print(f"Train/test: {summary['stats']['train_rows']:,} / {summary['stats']['test_rows']:,}")
    print("\nAccuracy:")
    for model, accuracy in summary['accuracy'].items():
        print(f"  {model:20s} {accuracy:.1%}")
    print("\nPer-class accuracy:")
    print(result.accuracy.per_class_table().round(3).to_string())
    print("\nNormalized importance:")
    print(result.importance_table().round(2).to_string())
    if result.pca is not None:
        print(f"\n{result.pca.components_needed} components explain "
              f"{result.pca.threshold:.0%} of feature variance")
    if config.output_dir:
        print(f"\nResults saved to {config.output_dir}")
    return 0


def run_explore(args) -> int:
    df = _load(args)
    report = exploration_report(df, threshold=args.threshold,
                                genre_column=args.genre_column or defaults.GENRE_COLUMN)

    print("Genre counts:")
    print(report['genre_counts'].to_string(index=False))
    print("\nFeature summary:")
    print(report['feature_summary'].round(3).to_string())
    print("\nOutliers (IQR fences):")
    print(report['outliers'].to_string(index=False))
    print(f"\nPairs with |r| >= {args.threshold}:")
    if report['correlated_pairs'].empty:
        print("  none")
    else:
        print(report['correlated_pairs'].round(3).to_string(index=False))
    return 0


def run_pca_command(args) -> int:
    df = _load(args)
    excluded = args.exclude if args.exclude is not None else defaults.DEFAULT_EXCLUDED_FEATURES
    features = reduce_features(defaults.AUDIO_FEATURES, excluded)
    result = run_pca(df, features, threshold=args.variance)

    print(result.variance.round(4).to_string(index=False))
    print(f"\n{result.components_needed} components explain {args.variance:.0%} of variance")
    return 0


COMMANDS = {
    'compare': run_compare,
    'explore': run_explore,
    'pca': run_pca_command
}


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        return COMMANDS[args.command](args)
    except GenreAnalysisError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
