# conftest.py
import numpy as np
import pandas as pd
import pytest

from genre_analysis.audio_feature_config import AUDIO_FEATURES

GENRES = ['blues', 'classical', 'country', 'hip-hop', 'jazz', 'rock']


def make_tracks(n_rows=1000, seed=0, signal_features=('danceability', 'energy')):
    """Synthetic track table: balanced genres, genre signal in two features, noise elsewhere."""
    rng = np.random.default_rng(seed)
    genres = np.array([GENRES[i % len(GENRES)] for i in range(n_rows)])
    rng.shuffle(genres)
    genre_codes = np.array([GENRES.index(g) for g in genres])

    data = {'genre': genres}
    for feature in AUDIO_FEATURES:
        data[feature] = rng.normal(0.5, 0.15, n_rows)
    for offset, feature in enumerate(signal_features):
        data[feature] = genre_codes * (1.0 + offset) + rng.normal(0, 0.3, n_rows)

    data['duration'] = rng.normal(210000, 30000, n_rows)
    data['key'] = rng.integers(0, 12, n_rows).astype(float)
    data['mode'] = rng.integers(0, 2, n_rows).astype(float)
    return pd.DataFrame(data, columns=['genre', *AUDIO_FEATURES])


@pytest.fixture
def tracks():
    return make_tracks()


@pytest.fixture
def small_tracks():
    return make_tracks(n_rows=120, seed=3)


@pytest.fixture
def tracks_csv(tmp_path, tracks):
    path = tmp_path / 'tracks.csv'
    tracks.to_csv(path, index=False)
    return path


@pytest.fixture
def track_factory():
    return make_tracks
