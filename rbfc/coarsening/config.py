"""Settings for the adaptive control point coarsening.

The controller is configured once, at construction, with an immutable
:class:`CoarseningSettings` value. Settings can be built directly, from a
mapping read from a solver dictionary (both ``snake_case`` and the
``camelCase`` keys used by mesh motion dictionaries are accepted), or by
keyword overrides of an existing value:

>>> from rbfc.coarsening.config import CoarseningSettings
>>> settings = CoarseningSettings.from_dict({'enabled': True, 'tol': 1e-3,
...                                          'minPoints': 10, 'maxPoints': 500})
>>> settings.mode
<SelectionMode.STATIC: 'static'>
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Mapping, Optional

SMALL = 1.0e-15


class CoarseningError(ValueError):
    """Raised when the coarsening is configured or called with invalid input."""


def env_flag(name: str, default: bool = False) -> bool:
    val = os.environ.get(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


class SelectionMode(Enum):
    DISABLED = "disabled"
    STATIC = "static"
    LIVE = "live"


class GrowthMode(Enum):
    SINGLE = "single"
    PAIRED = "paired"


_CAMEL_CASE_KEYS: Mapping[str, str] = {
    'livePointSelection': 'live_point_selection',
    'livePointSelectionSumValues': 'live_point_selection_sum_values',
    'tolLivePointSelection': 'tol_live_point_selection',
    'minPoints': 'min_points',
    'maxPoints': 'max_points',
    'twoPointSelection': 'two_point_selection',
    'surfaceCorrection': 'surface_correction',
    'ratioRadiusError': 'ratio_radius_error',
    'exportTxt': 'export_txt',
    'exportDirectory': 'export_directory',
}


@dataclass(frozen=True)
class CoarseningSettings:
    """
    Immutable parameters of one coarsening controller.

    Parameters
    ----------
    enabled : bool
        Use a coarse subset of the control points. When False the full
        interpolation problem is solved once.
    live_point_selection : bool
        Reselect the subset from the actual displacement field whenever
        the current subset no longer reproduces it within
        ``tol_live_point_selection``. When False the subset is selected
        once from a unit displacement of the moving points.
    live_point_selection_sum_values : bool
        Values passed to ``interpolate`` are increments; the controller
        keeps their running sum as the total field used for selection.
    tol : float
        Convergence tolerance of the greedy selection, in (0, 1).
    tol_live_point_selection : float
        Reselection tolerance, in (0, 1).
    min_points, max_points : int
        Bounds on the number of selected points.
    two_point_selection : bool
        Add a second point per iteration with an opposed error direction.
    surface_correction : bool
        Correct the coarsening error near the boundary (live selection only).
    ratio_radius_error : float
        Support radius of the correction as a multiple of the largest
        coarse residual.
    export_txt : bool
        Write the selected indices and coordinates after every selection.
    export_directory : str
        Output directory of ``export_txt``.
    verbose : bool
        Print selection statistics and show progress bars. Defaults to the
        ``RBFC_VERBOSE`` environment flag.
    """

    enabled: bool = False
    live_point_selection: bool = False
    live_point_selection_sum_values: bool = False
    tol: float = 1.0e-3
    tol_live_point_selection: float = 1.0e-2
    min_points: int = 1
    max_points: int = 1000
    two_point_selection: bool = False
    surface_correction: bool = False
    ratio_radius_error: float = 10.0
    export_txt: bool = False
    export_directory: str = "."
    verbose: bool = field(default_factory=lambda: env_flag("RBFC_VERBOSE", False))

    def __post_init__(self) -> None:
        if self.min_points <= 0:
            raise CoarseningError(f"min_points must be positive, got {self.min_points}.")
        if self.max_points < 2:
            raise CoarseningError(f"max_points must be at least 2, got {self.max_points}.")
        if self.min_points > self.max_points:
            raise CoarseningError(
                f"min_points ({self.min_points}) cannot exceed max_points ({self.max_points})."
            )
        if not 0.0 < self.tol < 1.0:
            raise CoarseningError(f"tol must lie in (0, 1), got {self.tol}.")
        if not 0.0 < self.tol_live_point_selection < 1.0:
            raise CoarseningError(
                f"tol_live_point_selection must lie in (0, 1), got {self.tol_live_point_selection}."
            )
        if not self.ratio_radius_error > 0.0:
            raise CoarseningError(f"ratio_radius_error must be positive, got {self.ratio_radius_error}.")

    @property
    def mode(self) -> SelectionMode:
        if not self.enabled:
            return SelectionMode.DISABLED
        if self.live_point_selection:
            return SelectionMode.LIVE
        return SelectionMode.STATIC

    @property
    def growth(self) -> GrowthMode:
        if self.two_point_selection:
            return GrowthMode.PAIRED
        return GrowthMode.SINGLE

    @property
    def corrects_surface(self) -> bool:
        return self.mode is SelectionMode.LIVE and self.surface_correction

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'CoarseningSettings':
        """Build settings from a mapping with snake_case or camelCase keys."""

        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            name = _CAMEL_CASE_KEYS.get(key, key)
            if name not in known:
                raise CoarseningError(f"Unknown coarsening setting '{key}'.")
            kwargs[name] = value
        return cls(**kwargs)

    def updated(self, **overrides: Any) -> 'CoarseningSettings':
        """Return a copy with the given fields replaced (validated again)."""

        if not overrides:
            return self
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise CoarseningError(f"Unknown coarsening setting(s): {sorted(unknown)}.")
        return replace(self, **overrides)


def resolve_settings(settings: Optional[CoarseningSettings] = None, **overrides: Any) -> CoarseningSettings:
    if settings is None:
        settings = CoarseningSettings()
    return settings.updated(**overrides)
