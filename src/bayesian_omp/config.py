"""
Run configuration for Bayesian Orthogonal Matching Pursuit.

All hyperparameters of the Bernoulli-Gaussian model are constant for a run and
supplied by the caller. They travel through every stage as one immutable
``PursuitConfig`` value instead of module-level state.

Model parameters:
    noise_std         σ   standard deviation of the observation noise
    activation_std    σₓ  standard deviation of an active coefficient
    bernoulli_weight  b   parameterisation of the Bernoulli support prior

Derived quantities:
    variance_ratio  ρ = σ/σₓ          ridge term of the restricted solve
    threshold       T = -2σ(ρ + 1)b   posterior-odds test on squared scores
"""

from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from typing import Optional

from .exceptions import InvalidHyperparameterError


class PursuitConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    noise_std: float = Field(..., gt=0.0, allow_inf_nan=False)
    activation_std: float = Field(..., gt=0.0, allow_inf_nan=False)
    bernoulli_weight: float = Field(..., allow_inf_nan=False)
    n_iter: int = Field(..., ge=0)
    min_support: int = Field(0, ge=0)
    n_jobs: Optional[int] = None   # joblib workers for the per-signal solves

    @field_validator("n_jobs")
    @classmethod
    def _nonzero_jobs(cls, v):
        # negative values follow joblib (-1: all CPUs)
        if v == 0:
            raise ValueError("n_jobs must be None or a nonzero integer")
        return v

    @property
    def variance_ratio(self) -> float:
        return self.noise_std / self.activation_std

    @property
    def threshold(self) -> float:
        return -2.0 * self.noise_std * (self.variance_ratio + 1.0) * self.bernoulli_weight

    @classmethod
    def from_params(cls, **params) -> "PursuitConfig":
        """Build a config, reporting constraint violations as InvalidHyperparameterError."""
        try:
            return cls(**params)
        except ValidationError as exc:
            raise InvalidHyperparameterError(str(exc)) from exc


SCHEMA_VERSION = 1

def make_metadata(cfg: PursuitConfig, D_shape, X_shape, extra=None):
    meta = {
        "schema_version": SCHEMA_VERSION,
        "noise_std": cfg.noise_std,
        "activation_std": cfg.activation_std,
        "bernoulli_weight": cfg.bernoulli_weight,
        "n_iter": cfg.n_iter,
        "min_support": cfg.min_support,
        "threshold": cfg.threshold,
        "shapes": {"D": list(D_shape), "X": list(X_shape)},
    }
    if extra: meta.update(extra)
    return meta
