"""
Test configuration and fixtures for Bayesian OMP tests.

Provides common test fixtures, synthetic problems, and assertion helpers.
"""

import numpy as np
import pytest
from scipy import linalg
from bayesian_omp import PursuitConfig


@pytest.fixture
def random_seed():
    """Fixed random seed for reproducible tests."""
    return 42


@pytest.fixture
def tolerance():
    """Standard numerical tolerance."""
    return 1e-10


@pytest.fixture
def default_config():
    """Hyperparameters giving a threshold T = 0.525 (|score| > ~0.72)."""
    return PursuitConfig(noise_std=0.05, activation_std=1.0, bernoulli_weight=-5.0, n_iter=8)


@pytest.fixture
def synthetic_data(random_seed):
    """Overcomplete unit-norm dictionary with noisy 4-sparse signals."""
    rng = np.random.default_rng(random_seed)
    n_features, n_atoms, n_signals, k = 32, 64, 20, 4

    D = rng.standard_normal((n_features, n_atoms))
    D /= np.linalg.norm(D, axis=0, keepdims=True)

    true_codes = np.zeros((n_atoms, n_signals))
    for n in range(n_signals):
        idx = rng.choice(n_atoms, size=k, replace=False)
        true_codes[idx, n] = rng.choice([-1.0, 1.0], size=k) * rng.uniform(1.0, 3.0, size=k)

    signals = D @ true_codes + 0.01 * rng.standard_normal((n_features, n_signals))

    return {
        'dictionary': D,
        'signals': signals,
        'true_codes': true_codes,
        'n_features': n_features,
        'n_atoms': n_atoms,
        'n_signals': n_signals,
    }


@pytest.fixture
def orthonormal_problem(random_seed):
    """Square orthonormal dictionary and a noise-free 3-sparse signal."""
    D = create_test_dictionary(12, 12, seed=random_seed)
    true_support = np.array([2, 7, 9])
    x = np.zeros(12)
    x[true_support] = [2.0, -1.5, 3.0]
    return {
        'dictionary': D,
        'signals': (D @ x)[:, np.newaxis],
        'true_codes': x,
        'true_support': true_support,
    }


def create_test_dictionary(n_features, n_atoms, seed=42):
    """Unit-norm dictionary; orthonormal columns when n_atoms <= n_features."""
    rng = np.random.default_rng(seed)
    D = rng.standard_normal((n_features, n_atoms))
    if n_atoms <= n_features:
        Q, _ = linalg.qr(D, mode='economic')
        D = Q
    return D / np.linalg.norm(D, axis=0, keepdims=True)


def assert_support_consistent(coefficients, support):
    """Assert the nonzero pattern of dense coefficients equals the support mask."""
    coefficients = np.asarray(coefficients)
    np.testing.assert_array_equal(coefficients != 0, support,
                                  err_msg="Coefficient pattern must equal the support indicator")


def assert_sparse_pattern_matches(codes, support):
    """Assert the stored entries of a CSC code matrix are exactly the support."""
    codes = codes.tocsc()
    for n in range(support.shape[1]):
        stored = np.sort(codes.indices[codes.indptr[n]:codes.indptr[n + 1]])
        np.testing.assert_array_equal(stored, np.flatnonzero(support[:, n]))
