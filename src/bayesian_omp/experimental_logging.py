"""
Structured JSON logging for Bayesian OMP runs.

Each record is one JSON line with a timestamp, an event name and arbitrary
fields:
    {"ts": 1640995200.0, "event": "encode_done", "n_signals": 500, "nnz": 4100}
"""

import json, sys, time

def log(event: str, stream=None, **fields):
    """
    Write a structured JSON event record.

    Args:
        event: Event name (e.g., "encode_start", "encode_done")
        stream: Text stream to write to (default: sys.stdout at call time)
        **fields: Additional key-value pairs to include in the record

    Returns:
        The record that was written
    """
    rec = {"ts": time.time(), "event": event, **fields}
    out = sys.stdout if stream is None else stream
    out.write(json.dumps(rec) + "\n")
    out.flush()
    return rec
