"""
Adaptive control point coarsening for radial basis function interpolation.

- **config**: :class:`CoarseningSettings`, :class:`CoarseningError` and the selection/growth modes.
- **selection**: the greedy point selection.
- **coarsening**: :class:`RBFCoarsening`, the controller deciding between reselection and reuse.
- **correction**: :class:`SurfaceCorrection`, the boundary correction of the coarsening error.
"""
from .config import (CoarseningSettings, CoarseningError, SelectionMode, GrowthMode,
                     SMALL)
from .selection import SelectionResult, greedy_selection, relative_errors, seed_points
from .correction import SurfaceCorrection
from .coarsening import RBFCoarsening

__all__ = [
    "CoarseningSettings",
    "CoarseningError",
    "SelectionMode",
    "GrowthMode",
    "SMALL",
    "SelectionResult",
    "greedy_selection",
    "relative_errors",
    "seed_points",
    "SurfaceCorrection",
    "RBFCoarsening",
]
