from .__about__ import __version__

from .config import PursuitConfig, make_metadata, SCHEMA_VERSION
from .exceptions import BayesianOMPError, DimensionMismatchError, InvalidHyperparameterError
from .pursuit import (
    BayesianOMP, PursuitState, PursuitResult, IterationRecord,
    bayesian_omp, support_to_sparse, validate_problem,
)
from .stages import (
    candidate_support, enforce_min_support, selection_cost, select_atoms,
    update_support, solve_restricted, reestimate_coefficients, update_residual,
)
from .sklearn_estimator import BayesianOMPEstimator
from .streaming import stream_columns, encode_stream

__all__ = [
    "__version__",

    # Entry points
    "bayesian_omp", "BayesianOMP", "BayesianOMPEstimator",

    # State and results
    "PursuitState", "PursuitResult", "IterationRecord", "support_to_sparse",

    # Configuration
    "PursuitConfig", "make_metadata", "SCHEMA_VERSION",

    # Errors
    "BayesianOMPError", "DimensionMismatchError", "InvalidHyperparameterError",

    # Iteration stages
    "candidate_support", "enforce_min_support", "selection_cost", "select_atoms",
    "update_support", "solve_restricted", "reestimate_coefficients", "update_residual",
    "validate_problem",

    # Large inputs
    "stream_columns", "encode_stream",
]
