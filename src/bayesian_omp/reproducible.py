"""
Deterministic execution for reproducible pursuit runs.

Bayesian OMP draws no random numbers, but multithreaded BLAS may reorder
floating point reductions between runs. Limiting every loaded BLAS/OpenMP
pool to one thread makes repeated runs bit-identical across machines with
the same libraries. Environment variables such as OPENBLAS_NUM_THREADS are
read only when numpy loads its BLAS, so the pools are limited at runtime
through threadpoolctl instead.
"""

from threadpoolctl import threadpool_info, threadpool_limits


def set_deterministic():
    """
    Limit all native thread pools (OpenBLAS, MKL, OpenMP) to one thread.

    Returns:
        The ``threadpool_limits`` handle; call ``.restore_original_limits()``
        on it to undo the change
    """
    return threadpool_limits(limits=1)


def is_deterministic() -> bool:
    """True if every loaded native thread pool runs single-threaded."""
    return all(pool["num_threads"] == 1 for pool in threadpool_info())
