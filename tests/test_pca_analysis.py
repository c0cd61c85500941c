import numpy as np
import pandas as pd
import pytest

from genre_analysis.exceptions import ConfigurationError, DataQualityError
from genre_analysis.pca_analysis import (components_for_variance, covariance, eigendecompose, run_pca,
                                         variance_explained)


def test_eigenvalues_are_sorted_descending():
    matrix = pd.DataFrame([[1.0, 0.0, 0.0], [0.0, 3.0, 0.0], [0.0, 0.0, 2.0]])

    values, vectors = eigendecompose(matrix)

    np.testing.assert_allclose(values, [3.0, 2.0, 1.0])
    np.testing.assert_allclose(np.abs(vectors[:, 0]), [0.0, 1.0, 0.0])


def test_variance_explained_ratios():
    variance = variance_explained([6.0, 3.0, 1.0])

    np.testing.assert_allclose(variance['variance_ratio'], [0.6, 0.3, 0.1])
    np.testing.assert_allclose(variance['cumulative_ratio'], [0.6, 0.9, 1.0])
    assert components_for_variance([6.0, 3.0, 1.0], 0.9) == 2
    assert components_for_variance([6.0, 3.0, 1.0], 0.5) == 1


def test_correlated_features_collapse_onto_one_component():
    rng = np.random.default_rng(0)
    base = rng.normal(size=500)
    df = pd.DataFrame({
        'energy': base + rng.normal(0, 0.05, 500),
        'loudness': base + rng.normal(0, 0.05, 500),
        'tempo': rng.normal(size=500)
    })

    result = run_pca(df, ['energy', 'loudness', 'tempo'], threshold=0.6)

    assert result.variance['variance_ratio'].iloc[0] > 0.6
    assert result.components_needed == 1
    assert list(result.loadings.index) == ['energy', 'loudness', 'tempo']
    assert result.eigenvalues.sum() == pytest.approx(3.0, rel=1e-2)


def test_covariance_needs_two_rows():
    with pytest.raises(DataQualityError):
        covariance(pd.DataFrame({'a': [1.0]}))


def test_non_square_matrix_is_rejected():
    with pytest.raises(ConfigurationError):
        eigendecompose(np.ones((2, 3)))


def test_threshold_must_be_a_fraction():
    with pytest.raises(ConfigurationError):
        components_for_variance([1.0, 1.0], 1.5)
