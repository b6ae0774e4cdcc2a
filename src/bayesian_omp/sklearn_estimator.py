import numpy as np
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.utils.validation import check_is_fitted

from .config import PursuitConfig
from .exceptions import DimensionMismatchError
from .pursuit import BayesianOMP


class BayesianOMPEstimator(BaseEstimator, TransformerMixin):
    """scikit-learn transformer over a fixed dictionary.

    Uses scikit-learn's layout: ``X`` is (n_samples, n_features), the
    dictionary is given as atoms in rows (n_atoms, n_features) like
    ``sklearn.decomposition.SparseCoder``, and ``transform`` returns dense
    codes of shape (n_samples, n_atoms).
    """

    def __init__(self, dictionary, noise_std=0.1, activation_std=1.0, bernoulli_weight=-1.0,
                 n_iter=10, min_support=0, n_jobs=None):
        self.dictionary = dictionary
        self.noise_std = noise_std
        self.activation_std = activation_std
        self.bernoulli_weight = bernoulli_weight
        self.n_iter = n_iter
        self.min_support = min_support
        self.n_jobs = n_jobs

    def fit(self, X, y=None):
        self.config_ = PursuitConfig.from_params(noise_std=self.noise_std,
                                                 activation_std=self.activation_std,
                                                 bernoulli_weight=self.bernoulli_weight,
                                                 n_iter=self.n_iter,
                                                 min_support=self.min_support,
                                                 n_jobs=self.n_jobs)
        self.components_ = np.asarray(self.dictionary, dtype=float)
        self.n_features_in_ = self.components_.shape[1]
        return self

    def transform(self, X):
        check_is_fitted(self, "config_")
        X = np.asarray(X, dtype=float)
        if X.ndim != 2 or X.shape[1] != self.n_features_in_:
            n_found = X.shape[-1] if X.ndim else 0
            raise DimensionMismatchError(
                f"X has {n_found} features, but {type(self).__name__} "
                f"is expecting {self.n_features_in_} features as input."
            )
        Xc = X.T
        codes = BayesianOMP(self.config_).solve(self.components_.T, Xc)
        return codes.toarray().T

    def inverse_transform(self, A):
        return np.asarray(A, dtype=float) @ self.components_
