"""
The six stages of one Bayesian OMP iteration.

Implements the plain Bernoulli-prior case of Drémeau, Herzet & Daudet (2012).
Bayesian orthogonal matching pursuit / Structured Bayesian orthogonal matching
pursuit. IEEE Transactions on Signal Processing.

Every stage is a function of explicit arrays plus the run's ``PursuitConfig``.
Shapes are assumed validated by the caller:

    D  dictionary            (n_features, n_atoms)
    Y  observations          (n_features, n_signals)
    R  residual              (n_features, n_signals)
    S  support indicator     (n_atoms, n_signals), bool
    X  coefficient estimate  (n_atoms, n_signals), dense

Stages 1-3 and 6 are vectorised over the whole batch. Stage 5 is a loop of
independent per-signal solves that may be spread over a joblib thread pool.
"""

from __future__ import annotations
import numpy as np
from scipy import linalg
from joblib import Parallel, delayed
from typing import Optional, Tuple

from .config import PursuitConfig
from .exceptions import BayesianOMPError


def candidate_support(D: np.ndarray, R: np.ndarray, X: np.ndarray,
                      cfg: PursuitConfig) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Stage 1: posterior-odds test for every (atom, signal) pair.

    Returns:
        (candidates, scores, correlations) where correlations = Dᵀ R and
        scores = Dᵀ R + X. An atom is a candidate iff score² > T.
    """
    correlations = D.T @ R
    scores = correlations + X
    candidates = scores ** 2 > cfg.threshold
    return candidates, scores, correlations


def enforce_min_support(candidates: np.ndarray, S: np.ndarray, min_support: int) -> np.ndarray:
    """Stage 2: mark every atom a candidate for signals below the support floor.

    Forces the selector to grow those supports before the scoring rule is
    allowed to shrink them.
    """
    too_small = S.sum(axis=0) < min_support
    guarded = candidates.copy()
    guarded[:, too_small] = True
    return guarded


def selection_cost(D: np.ndarray, R: np.ndarray, X: np.ndarray, S: np.ndarray,
                   candidates: np.ndarray, scores: np.ndarray, correlations: np.ndarray,
                   cfg: PursuitConfig) -> np.ndarray:
    """Stage 3a: Bayesian cost of toggling each atom, +inf where the toggle is a no-op.

    cost = ‖r + dₘ(x - x̄)‖  -  ρ x̄²  +  σ (s - c) b c

    The residual norm after moving coefficient m to its target amplitude x̄ is
    expanded in closed form, so no explicit re-projection is needed.
    """
    rho = cfg.variance_ratio
    c = candidates.astype(float)
    x_bar = c * scores / (rho + 1.0)
    delta = X - x_bar

    residual_sq = np.sum(R ** 2, axis=0)[np.newaxis, :]
    atom_sq = np.sum(D ** 2, axis=0)[:, np.newaxis]
    projected_sq = residual_sq + 2.0 * correlations * delta + delta ** 2 * atom_sq
    # round-off can push an exact zero slightly negative
    projected = np.sqrt(np.maximum(projected_sq, 0.0))

    prior = cfg.noise_std * (S.astype(float) - c) * cfg.bernoulli_weight * c
    cost = projected - rho * x_bar ** 2 + prior
    cost[candidates == S] = np.inf
    return cost


def select_atoms(cost: np.ndarray) -> np.ndarray:
    """Stage 3b: per-signal argmin of the cost, lowest atom index on ties.

    A column that is +inf everywhere selects atom 0.
    """
    return np.argmin(cost, axis=0)


def update_support(S: np.ndarray, candidates: np.ndarray, selected: np.ndarray) -> np.ndarray:
    """Stage 4: copy the candidate flag at the selected atom of each signal into S."""
    cols = np.arange(S.shape[1])
    S_new = S.copy()
    S_new[selected, cols] = candidates[selected, cols]
    return S_new


def solve_restricted(active: np.ndarray, D: np.ndarray, y: np.ndarray, ridge: float) -> np.ndarray:
    """Ridge least squares restricted to the active atoms of one signal.

    Solves (D_Aᵀ D_A + ρI) x_A = D_Aᵀ y. Pure: no shared state, safe to call
    concurrently for different signals.

    Args:
        active: Indices of active atoms (sorted)
        D: Dictionary (n_features, n_atoms)
        y: Observation column (n_features,)
        ridge: ρ = σ/σₓ, must be positive

    Returns:
        Coefficients of the active atoms, in the order of ``active``
    """
    if active.size == 0:
        return np.zeros(0)
    D_A = D[:, active]
    G = D_A.T @ D_A
    G[np.diag_indices_from(G)] += ridge
    return linalg.solve(G, D_A.T @ y, assume_a='pos')


def _solve_column(n: int, D: np.ndarray, Y: np.ndarray, S: np.ndarray, ridge: float):
    active = np.flatnonzero(S[:, n])
    try:
        return active, solve_restricted(active, D, Y[:, n], ridge)
    except linalg.LinAlgError as exc:
        raise BayesianOMPError(f"Restricted solve failed for signal {n}: {exc}") from exc


def reestimate_coefficients(D: np.ndarray, Y: np.ndarray, S: np.ndarray, ridge: float,
                            n_jobs: Optional[int] = None) -> np.ndarray:
    """Stage 5: recompute every coefficient column from scratch on its support."""
    n_atoms, n_signals = S.shape
    X = np.zeros((n_atoms, n_signals))

    if n_jobs is not None and n_jobs != 1 and n_signals > 1:
        # threads: the solves release the GIL inside LAPACK
        solutions = Parallel(n_jobs=n_jobs, backend='threading')(
            delayed(_solve_column)(n, D, Y, S, ridge) for n in range(n_signals)
        )
    else:
        solutions = [_solve_column(n, D, Y, S, ridge) for n in range(n_signals)]

    for n, (active, coeffs) in enumerate(solutions):
        X[active, n] = coeffs
    return X


def update_residual(D: np.ndarray, Y: np.ndarray, X: np.ndarray) -> np.ndarray:
    """Stage 6: R = Y - D X."""
    return Y - D @ X
