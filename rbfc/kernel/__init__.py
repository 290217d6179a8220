"""
Radial basis functions used by the interpolation solver and by the
surface correction of the coarsening controller.

Every function exposes ``evaluate(r)`` on a (scalar or array) distance.
"""
from .functions import (RBFFunction, CompactFunction, WendlandC0, WendlandC2, WendlandC4, WendlandC6,
                        ThinPlateSpline, Polyharmonic, FUNCTIONS, get_function)

__all__ = [
    "RBFFunction",
    "CompactFunction",
    "WendlandC0",
    "WendlandC2",
    "WendlandC4",
    "WendlandC6",
    "ThinPlateSpline",
    "Polyharmonic",
    "FUNCTIONS",
    "get_function",
]
