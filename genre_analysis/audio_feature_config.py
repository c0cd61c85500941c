# audio_feature_config.py
# Feature schema, standard column names and analysis defaults

GENRE_COLUMN = 'genre'

AUDIO_FEATURES = [
    'acousticness',
    'danceability',
    'duration',
    'energy',
    'instrumentalness',
    'key',
    'liveness',
    'loudness',
    'mode',
    'speechiness',
    'tempo',
    'valence'
]

RENAME_MAP = {
    'Acousticness': 'acousticness',
    'Danceability': 'danceability',
    'Duration': 'duration',
    'Duration_ms': 'duration',
    'duration_ms': 'duration',
    'Energy': 'energy',
    'Instrumentalness': 'instrumentalness',
    'Key': 'key',
    'Liveness': 'liveness',
    'Loudness': 'loudness',
    'Mode': 'mode',
    'Speechiness': 'speechiness',
    'Tempo': 'tempo',
    'Valence': 'valence',
    'Genre': 'genre',
    'track_genre': 'genre',
    'Track Genre': 'genre'
}

# loudness tracks energy closely in the reference correlation analysis
DEFAULT_EXCLUDED_FEATURES = ('loudness',)

OUTLIER_COLUMN = 'duration'
OUTLIER_MULTIPLIER = 4.0

TRAIN_FRACTION = 0.8
RANDOM_SEED = 42

CORRELATION_THRESHOLD = 0.7
PCA_VARIANCE_THRESHOLD = 0.9

# Categorical encodings for exports that spell out key and mode
KEY_MAP = {
    'C': 0, 'C#': 1, 'Db': 1, 'D': 2, 'D#': 3, 'Eb': 3,
    'E': 4, 'F': 5, 'F#': 6, 'Gb': 6, 'G': 7, 'G#': 8,
    'Ab': 8, 'A': 9, 'A#': 10, 'Bb': 10, 'B': 11
}

MODE_MAP = {'Major': 1, 'Minor': 0}

CATEGORICAL_ENCODINGS = {
    'key': KEY_MAP,
    'mode': MODE_MAP
}
