"""
Streaming Bayesian OMP for observation files larger than memory.

Signals are decoded independently, so a batch of columns can be processed in
isolation and the per-batch codes stacked afterwards. The observation matrix
is memory-mapped and read in column blocks; only the sparse codes are kept.
"""

from __future__ import annotations
import logging
import numpy as np
import scipy.sparse
from pathlib import Path
from typing import Iterator, Optional, Union

from .config import PursuitConfig
from .exceptions import DimensionMismatchError
from .pursuit import BayesianOMP

logger = logging.getLogger(__name__)


def stream_columns(
    Y_path: Union[str, Path],
    batch_size: int = 10000,
    start_col: int = 0,
    end_col: Optional[int] = None
) -> Iterator[np.ndarray]:
    """
    Stream column batches from a memory-mapped ``.npy`` file.

    Args:
        Y_path: Path to .npy file containing data matrix (n_features, n_signals)
        batch_size: Number of columns per batch
        start_col: Starting column index
        end_col: Ending column index (default: file size)

    Yields:
        In-memory (n_features, <=batch_size) arrays
    """
    Y_path = Path(Y_path)

    if not Y_path.exists():
        raise FileNotFoundError(f"Data file not found: {Y_path}")
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    Y = np.load(Y_path, mmap_mode='r')

    if Y.ndim != 2:
        raise DimensionMismatchError(f"Expected 2D array, got shape {Y.shape}")

    total = Y.shape[1]
    end_col = total if end_col is None else min(end_col, total)

    for i in range(start_col, end_col, batch_size):
        end_idx = min(i + batch_size, end_col)
        yield np.asarray(Y[:, i:end_idx])


def encode_stream(
    D: np.ndarray,
    Y_path: Union[str, Path],
    config: PursuitConfig,
    batch_size: int = 10000,
    out_path: Optional[Union[str, Path]] = None,
) -> str:
    """
    Encode a large observation file batch by batch.

    Args:
        D: Dictionary matrix (n_features, n_atoms)
        Y_path: Path to observations (.npy, shape n_features x n_signals)
        config: Pursuit hyperparameters
        batch_size: Signals per batch
        out_path: Output path (default: Y_path with suffix ``.codes.npz``)

    Returns:
        Path of the saved CSC code matrix (``scipy.sparse.load_npz`` reads it)
    """
    Y_path = Path(Y_path)
    if not Y_path.exists():
        raise FileNotFoundError(f"Input file not found: {Y_path}")

    header = np.load(Y_path, mmap_mode='r')
    if header.ndim != 2:
        raise DimensionMismatchError(f"Expected 2D input array, got shape {header.shape}")
    if D.shape[0] != header.shape[0]:
        raise DimensionMismatchError(f"Dictionary shape {D.shape} incompatible with data shape {header.shape}")
    if header.shape[1] == 0:
        raise DimensionMismatchError(f"Observations file holds no signals, got shape {header.shape}")

    out_path = Y_path.with_suffix('.codes.npz') if out_path is None else Path(out_path)
    if out_path.suffix != '.npz':
        # save_npz appends the extension itself
        out_path = out_path.with_name(out_path.name + '.npz')

    solver = BayesianOMP(config)
    blocks = []
    n_done = 0
    for batch_idx, Y_batch in enumerate(stream_columns(Y_path, batch_size)):
        blocks.append(solver.solve(D, Y_batch))
        n_done += Y_batch.shape[1]
        logger.info("encoded batch %d (%d/%d signals)", batch_idx, n_done, header.shape[1])

    codes = scipy.sparse.hstack(blocks, format='csc')
    scipy.sparse.save_npz(out_path, codes)
    return str(out_path)
