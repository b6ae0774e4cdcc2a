"""
Error taxonomy for Bayesian OMP.

The routine is a closed numerical computation, so failures fall into three
groups: malformed inputs, invalid hyperparameters, and numerical breakdown
of a restricted solve. All of them are ``ValueError`` subclasses so callers
that already guard sparse coding calls with ``except ValueError`` keep working.
"""


class BayesianOMPError(ValueError):
    """Base exception for Bayesian OMP specific errors."""
    pass


class DimensionMismatchError(BayesianOMPError):
    """Dictionary and observations have incompatible or malformed shapes."""
    pass


class InvalidHyperparameterError(BayesianOMPError):
    """A hyperparameter is outside its admissible range."""
    pass
