"""
Test suite for the Bayesian OMP implementation.

Validates the iteration stages, the invariants of the pursuit state, and the
recovery behaviour described in Drémeau, Herzet & Daudet (2012).
"""
