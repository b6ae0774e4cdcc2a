"""
Bayesian Orthogonal Matching Pursuit (BOMP) solver.

Implements Drémeau, A., Herzet, C., & Daudet, L. (2012). Boltzmann machine and
mean-field approximation for structured sparse decompositions. IEEE
Transactions on Signal Processing, 60(7), 3425-3438, restricted to a plain
Bernoulli prior over the support (no Boltzmann interactions).

Generative model per signal:
    y = D x + ε,   ε ~ N(0, σ²I)
    x_m = s_m · z_m,   s_m ~ Bernoulli,   z_m ~ N(0, σₓ²)

Each iteration toggles exactly one atom per signal, the one whose change most
reduces the Bayesian cost, then re-solves the ridge problem on the new support.
The iteration count is fixed by the caller; there is no convergence test, so
based on σ, σₓ and b the algorithm may decline to use additional atoms, and
the number of active atoms never exceeds the iteration count.

Important: dictionary columns are assumed to have unit l2 norm. Other norms
silently change every threshold and cost.
"""

from __future__ import annotations
import logging
import warnings
import numpy as np
import scipy.sparse
from dataclasses import dataclass, field
from numpy.typing import ArrayLike
from typing import Callable, List, Optional, Tuple

from .config import PursuitConfig
from .exceptions import DimensionMismatchError, InvalidHyperparameterError
from . import stages

logger = logging.getLogger(__name__)


@dataclass
class PursuitState:
    """Mutable state carried across iterations, owned by the iteration loop."""
    residual: np.ndarray        # (n_features, n_signals)
    support: np.ndarray         # (n_atoms, n_signals), bool
    coefficients: np.ndarray    # (n_atoms, n_signals), dense

    @classmethod
    def initial(cls, Y: np.ndarray, n_atoms: int) -> "PursuitState":
        n_signals = Y.shape[1]
        return cls(residual=Y.copy(),
                   support=np.zeros((n_atoms, n_signals), dtype=bool),
                   coefficients=np.zeros((n_atoms, n_signals)))


@dataclass
class IterationRecord:
    iteration: int
    support_sizes: np.ndarray
    residual_norms: np.ndarray


@dataclass
class PursuitResult:
    coefficients: scipy.sparse.csc_matrix
    support: np.ndarray
    residual: np.ndarray
    n_iter: int
    history: List[IterationRecord] = field(default_factory=list)


IterationCallback = Callable[[int, PursuitState], None]


def _validate_input(A: ArrayLike, name: str) -> np.ndarray:
    """Convert to a finite, non-empty 2D float array."""
    try:
        A = np.asarray(A, dtype=float)
    except (ValueError, TypeError) as e:
        raise DimensionMismatchError(f"Cannot convert {name} to array: {e}")
    if A.ndim != 2:
        raise DimensionMismatchError(f"{name} must be a 2D array, got {A.ndim}D with shape {A.shape}")
    if A.size == 0:
        raise DimensionMismatchError(f"{name} cannot be empty, got shape {A.shape}")
    if not np.all(np.isfinite(A)):
        raise DimensionMismatchError(f"{name} contains non-finite values (inf/nan)")
    return A


def validate_problem(D: ArrayLike, Y: ArrayLike, cfg: PursuitConfig) -> Tuple[np.ndarray, np.ndarray]:
    """Check shapes and range constraints that depend on the data. Runs before any iteration."""
    D = _validate_input(D, "dictionary")
    Y = _validate_input(Y, "observations")
    if D.shape[0] != Y.shape[0]:
        raise DimensionMismatchError(
            f"Dictionary has {D.shape[0]} rows but observations have {Y.shape[0]}; "
            f"shapes {D.shape} and {Y.shape} are incompatible"
        )
    if cfg.min_support > D.shape[1]:
        raise InvalidHyperparameterError(
            f"min_support={cfg.min_support} exceeds the number of atoms ({D.shape[1]})"
        )
    norms = np.linalg.norm(D, axis=0)
    if not np.allclose(norms, 1.0, atol=1e-6):
        warnings.warn(
            f"Dictionary atoms are not unit-norm (norms in [{norms.min():.4g}, {norms.max():.4g}]); "
            "thresholds and costs assume unit-norm columns",
            stacklevel=3,
        )
    return D, Y


def support_to_sparse(S: np.ndarray, X: np.ndarray) -> scipy.sparse.csc_matrix:
    """Pack dense coefficients into CSC storing exactly the entries of the support.

    Solved coefficients that happen to be 0.0 stay as explicit stored entries.
    """
    n_atoms, n_signals = S.shape
    cols, rows = np.nonzero(S.T)
    indptr = np.concatenate([[0], np.cumsum(S.sum(axis=0))])
    return scipy.sparse.csc_matrix((X[rows, cols], rows, indptr), shape=(n_atoms, n_signals))


class BayesianOMP:
    """Bayesian Orthogonal Matching Pursuit with Bernoulli-Gaussian priors.

    Example:
        >>> cfg = PursuitConfig(noise_std=0.01, activation_std=1.0,
        ...                     bernoulli_weight=-5.0, n_iter=10)
        >>> result = BayesianOMP(cfg).run(D, Y)
        >>> result.coefficients.shape
        (n_atoms, n_signals)
    """

    def __init__(self, config: PursuitConfig, callback: Optional[IterationCallback] = None):
        self.config = config
        self.callback = callback

    def step(self, D: np.ndarray, Y: np.ndarray, state: PursuitState) -> PursuitState:
        """One iteration: score, guard, select, commit, re-estimate, update residual."""
        cfg = self.config
        candidates, scores, correlations = stages.candidate_support(
            D, state.residual, state.coefficients, cfg)
        candidates = stages.enforce_min_support(candidates, state.support, cfg.min_support)

        cost = stages.selection_cost(D, state.residual, state.coefficients, state.support,
                                     candidates, scores, correlations, cfg)
        selected = stages.select_atoms(cost)

        support = stages.update_support(state.support, candidates, selected)
        coefficients = stages.reestimate_coefficients(D, Y, support, cfg.variance_ratio,
                                                      n_jobs=cfg.n_jobs)
        residual = stages.update_residual(D, Y, coefficients)
        return PursuitState(residual=residual, support=support, coefficients=coefficients)

    def run(self, D: ArrayLike, Y: ArrayLike) -> PursuitResult:
        D, Y = validate_problem(D, Y, self.config)
        state = PursuitState.initial(Y, D.shape[1])
        history = []

        logger.debug("BOMP start: dictionary %s, %d signals, %d iterations, T=%.6g",
                     D.shape, Y.shape[1], self.config.n_iter, self.config.threshold)

        for it in range(1, self.config.n_iter + 1):
            state = self.step(D, Y, state)
            record = IterationRecord(iteration=it,
                                     support_sizes=state.support.sum(axis=0),
                                     residual_norms=np.linalg.norm(state.residual, axis=0))
            history.append(record)
            logger.debug("iteration %d: mean support %.2f, mean residual %.6g",
                         it, record.support_sizes.mean(), record.residual_norms.mean())
            if self.callback is not None:
                self.callback(it, state)

        return PursuitResult(coefficients=support_to_sparse(state.support, state.coefficients),
                             support=state.support,
                             residual=state.residual,
                             n_iter=self.config.n_iter,
                             history=history)

    def solve(self, D: ArrayLike, Y: ArrayLike) -> scipy.sparse.csc_matrix:
        """Sparse codes (n_atoms, n_signals) for the observation batch."""
        return self.run(D, Y).coefficients

    @property
    def name(self) -> str:
        return "bomp"


def bayesian_omp(dictionary: ArrayLike,
                 observations: ArrayLike,
                 noise_std: float,
                 activation_std: float,
                 bernoulli_weight: float,
                 n_iter: int,
                 min_support: int = 0,
                 *,
                 n_jobs: Optional[int] = None) -> scipy.sparse.csc_matrix:
    """
    Recover sparse codes for a batch of signals with Bayesian OMP.

    Args:
        dictionary: Sensing matrix (n_features, n_atoms) with unit-norm columns
        observations: Signals as columns (n_features, n_signals)
        noise_std: Standard deviation of the observation noise (> 0)
        activation_std: Standard deviation of an active coefficient (> 0)
        bernoulli_weight: Parameter of the Bernoulli support prior
        n_iter: Number of iterations; the support size cannot exceed it
        min_support: Support floor grown to before atoms may be dropped
        n_jobs: joblib workers for the per-signal solves (None: sequential)

    Returns:
        Sparse coefficient matrix (n_atoms, n_signals), CSC format

    Raises:
        DimensionMismatchError: Malformed or incompatible input arrays
        InvalidHyperparameterError: Hyperparameter outside its range
    """
    cfg = PursuitConfig.from_params(noise_std=noise_std,
                                    activation_std=activation_std,
                                    bernoulli_weight=bernoulli_weight,
                                    n_iter=n_iter,
                                    min_support=min_support,
                                    n_jobs=n_jobs)
    return BayesianOMP(cfg).solve(dictionary, observations)
