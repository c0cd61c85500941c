# data_loader.py
# Reads the track feature table and turns it into a clean FeatureTable:
# standard column names, numeric features, and no rows with missing fields.

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import chardet
import pandas as pd

from .audio_feature_config import AUDIO_FEATURES, CATEGORICAL_ENCODINGS, GENRE_COLUMN, RENAME_MAP
from .exceptions import ConfigurationError, DataQualityError

logger = logging.getLogger(__name__)

FALLBACK_ENCODINGS = ['utf-8', 'utf-8-sig', 'latin-1', 'cp1252']


def detect_encoding(file_path) -> Optional[str]:
    """Detect the encoding of a file from its first 10KB."""
    try:
        with open(file_path, 'rb') as file:
            raw_data = file.read(10000)
    except OSError as e:
        logger.warning(f"Encoding detection failed: {e}. Trying common encodings...")
        return None

    result = chardet.detect(raw_data)
    encoding = result['encoding']
    if encoding:
        logger.info(f"Detected encoding: {encoding} (confidence: {result['confidence']:.2f})")
    return encoding


def read_track_file(path, sep: str = ',') -> pd.DataFrame:
    """Load a delimited track file, trying the detected encoding first."""
    if not Path(path).exists():
        raise ConfigurationError(f"Input file not found: {path}", stage='load')

    encodings_to_try = []
    detected_encoding = detect_encoding(path)
    if detected_encoding:
        encodings_to_try.append(detected_encoding)
    encodings_to_try.extend(FALLBACK_ENCODINGS)
    encodings_to_try = list(dict.fromkeys(encodings_to_try))

    for encoding in encodings_to_try:
        try:
            df = pd.read_csv(path, sep=sep, encoding=encoding)
        except UnicodeDecodeError:
            logger.warning(f"Failed to decode with {encoding}")
            continue
        except pd.errors.EmptyDataError as e:
            raise ConfigurationError(f"Input file is empty: {path}", stage='load') from e
        except pd.errors.ParserError as e:
            raise ConfigurationError(f"Malformed rows in {path}: {e}", stage='load') from e

        logger.info(f"Loaded {len(df):,} tracks from {path} using {encoding} encoding")
        return df

    raise ConfigurationError(f"Could not read {path} with any supported encoding", stage='load')


def standardize_columns(df: pd.DataFrame, keep: Sequence[str] = ()) -> pd.DataFrame:
    """Rename headers to their canonical names.

    Headers listed in `keep` are only stripped, so caller-chosen column names
    survive as given. When two headers map to the same name the first wins.
    """
    keep = set(keep)

    def standard_name(col):
        name = str(col).strip()
        if name in keep:
            return name
        return RENAME_MAP.get(name, name.lower())

    df = df.rename(columns=standard_name)
    if 'unnamed: 0' in df.columns:
        df = df.drop(columns='unnamed: 0')
        logger.info("Removed unnamed index column")

    duplicated = df.columns.duplicated()
    if duplicated.any():
        logger.warning(f"Duplicate columns after renaming, keeping the first of each: "
                       f"{sorted(set(df.columns[duplicated]))}")
        df = df.loc[:, ~duplicated]
    return df


def validate_columns(df: pd.DataFrame, genre_column: str, feature_columns: Sequence[str]):
    missing = [col for col in [genre_column, *feature_columns] if col not in df.columns]
    if missing:
        raise ConfigurationError(f"Missing required columns: {missing}", stage='load', shape=df.shape)
    if df.empty:
        raise ConfigurationError("Track table has no rows", stage='load', shape=df.shape)


def encode_categorical_features(df: pd.DataFrame, feature_columns: Sequence[str]) -> pd.DataFrame:
    """Map spelled-out key names and modes onto their numeric codes."""
    def encode(value, mapping):
        if isinstance(value, str):
            return mapping.get(value.strip(), value)
        return value

    df = df.copy()
    for col, mapping in CATEGORICAL_ENCODINGS.items():
        if col not in feature_columns or pd.api.types.is_numeric_dtype(df[col]):
            continue
        encoded = df[col].map(lambda value: encode(value, mapping))
        if not encoded.equals(df[col]):
            df[col] = encoded
            logger.info(f"Encoded '{col}' names as numeric codes")
    return df


def coerce_numeric_features(df: pd.DataFrame, feature_columns: Sequence[str]) -> pd.DataFrame:
    """Convert feature columns to numbers. Unparseable cells become missing."""
    df = df.copy()
    for col in feature_columns:
        if df[col].isna().all():
            raise DataQualityError(f"Feature column '{col}' is entirely empty",
                                   stage='load', shape=df.shape)
        if pd.api.types.is_numeric_dtype(df[col]):
            continue

        converted = pd.to_numeric(df[col], errors='coerce')
        if converted.notna().sum() == 0:
            raise DataQualityError(f"Feature column '{col}' has no numeric values",
                                   stage='load', shape=df.shape)
        invalid = int((converted.isna() & df[col].notna()).sum())
        if invalid:
            logger.warning(f"{col}: {invalid} non-numeric values treated as missing")
        df[col] = converted
    return df


def drop_incomplete_rows(df: pd.DataFrame, columns: Sequence[str]) -> Tuple[pd.DataFrame, int]:
    before = len(df)
    df = df.dropna(subset=list(columns)).reset_index(drop=True)
    dropped = before - len(df)
    if dropped:
        logger.warning(f"Dropped {dropped} rows with missing values")
    return df, dropped


def prepare_tracks(df: pd.DataFrame, genre_column: str = GENRE_COLUMN,
                   feature_columns: Optional[Sequence[str]] = None) -> Tuple[pd.DataFrame, int]:
    """Turn a raw track table into a FeatureTable.

    Returns the cleaned table, holding only the genre and feature columns, and
    the number of rows excluded for missing or unparseable fields.
    """
    feature_columns = list(feature_columns or AUDIO_FEATURES)
    df = standardize_columns(df, keep=[genre_column, *feature_columns])
    validate_columns(df, genre_column, feature_columns)

    df = df[[genre_column, *feature_columns]].copy()
    df[genre_column] = df[genre_column].astype('string').str.strip().replace('', pd.NA)

    df = encode_categorical_features(df, feature_columns)
    df = coerce_numeric_features(df, feature_columns)
    df, dropped = drop_incomplete_rows(df, [genre_column, *feature_columns])

    if df.empty:
        raise DataQualityError("No complete rows left after dropping missing values",
                               stage='load', shape=(0, len(feature_columns) + 1))
    df[genre_column] = df[genre_column].astype(str)
    df[feature_columns] = df[feature_columns].astype('float64')

    logger.info(f"Prepared {len(df):,} tracks with {len(feature_columns)} features")
    return df, dropped


def load_tracks(path, genre_column: str = GENRE_COLUMN,
                feature_columns: Optional[Sequence[str]] = None, sep: str = ',') -> pd.DataFrame:
    df = read_track_file(path, sep=sep)
    df, _ = prepare_tracks(df, genre_column=genre_column, feature_columns=feature_columns)
    return df


def feature_columns(df: pd.DataFrame, genre_column: str = GENRE_COLUMN) -> List[str]:
    """Names of the numeric feature columns of a loaded table, in table order."""
    return [col for col in df.columns
            if col != genre_column and pd.api.types.is_numeric_dtype(df[col])]
