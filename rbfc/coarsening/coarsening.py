import os
import warnings
import numpy as np
from ..core.interpolation import RBFInterpolation
from ..kernel.functions import CompactFunction, WendlandC2
from .config import CoarseningError, GrowthMode, SelectionMode, resolve_settings
from .correction import SurfaceCorrection
from .selection import greedy_selection, relative_errors


class RBFCoarsening(object):
    def __init__(self, rbf=None, settings=None, coarse_factory=None, **overrides):
        """
        Radial basis function interpolation on an adaptively coarsened set
        of control points.

        The controller selects a subset of the control points with a greedy
        algorithm (see :func:`~rbfc.coarsening.selection.greedy_selection`)
        and solves the interpolation problem on that subset only. Depending on
        the settings the subset is

        - not used at all (``enabled=False``): the full problem is solved once,
        - selected once from a unit displacement of the moving points
          (``live_point_selection=False``),
        - reselected from the actual displacement whenever the current subset
          no longer reproduces it within ``tol_live_point_selection``.

        Parameters
        ----------
        rbf : RBFInterpolation, optional
            Interpolation solver shared with the caller. It is fitted on the
            selected control points and evaluated at the interpolation points.
        settings : CoarseningSettings, optional
            Coarsening settings. Defaults to a disabled coarsening.
        coarse_factory : callable, optional
            Builds fresh solvers for the greedy selection and the reselection
            test. Defaults to ``rbf.factory()``.
        overrides : dict
            Settings fields replacing those of ``settings``.
        """
        if rbf is None:
            rbf = RBFInterpolation()
        self.rbf = rbf
        self.settings = resolve_settings(settings, **overrides)
        self.mode = self.settings.mode
        self.growth = self.settings.growth
        if coarse_factory is None:
            coarse_factory = rbf.factory()
        self.coarse_factory = coarse_factory
        self.rbf_coarse = None
        self.positions = None
        self.positions_interpolation = None
        self.values = None
        self.selected_positions = []
        self.error_interpolation_coarse = None
        self.correction = None
        self.nb_moving_face_centers = 0
        self.nb_static_face_centers = None
        self.nb_static_face_centers_remove = 0
        self.reselection_count = 0
        self.file_export_index = 0
        self.last_error = None
        self.last_error_max = None
        self._order = None
        self._stale = True
        self._prepare = {
            SelectionMode.DISABLED: self._prepare_disabled,
            SelectionMode.STATIC: self._prepare_static,
            SelectionMode.LIVE: self._prepare_live,
        }[self.mode]
        if self.mode is SelectionMode.STATIC and getattr(rbf, 'polynomial_term', False):
            warnings.warn("Unit displacement is combined with polynomial addition into RBF interpolation. "
                          "Could cause 'strange' results.")

    @property
    def enabled(self):
        return self.mode is not SelectionMode.DISABLED

    @property
    def nb_selected(self):
        return len(self.selected_positions)

    @property
    def total_values(self):
        return self.values

    def compute(self, positions, positions_interpolation):
        """
        Set the control points and the interpolation points.

        All selections and caches of a previous call are discarded.

        Parameters
        ----------
        positions : ndarray of shape (N, D)
        positions_interpolation : ndarray of shape (M, D)
        """
        positions = np.atleast_2d(np.asarray(positions, dtype=float))
        positions_interpolation = np.atleast_2d(np.asarray(positions_interpolation, dtype=float))
        if positions.shape[0] == 0 or positions_interpolation.shape[0] == 0:
            raise CoarseningError("Control points and interpolation points cannot be empty.")
        if positions.shape[1] != positions_interpolation.shape[1]:
            raise CoarseningError("Control points and interpolation points must have the same dimension.")
        self.positions = positions
        self.positions_interpolation = positions_interpolation
        self.values = None
        self.selected_positions = []
        self.rbf_coarse = None
        self.error_interpolation_coarse = None
        self.last_error = None
        self.last_error_max = None
        self._order = None
        self._stale = True
        if not self.settings.corrects_surface:
            self.correction = None
        elif self.correction is not None:
            self.correction.reset(positions, positions_interpolation)
        else:
            self.correction = SurfaceCorrection(positions, positions_interpolation,
                                                self.settings.ratio_radius_error,
                                                self._correction_function_type())
        self._count_static_selected()
        return None

    def interpolate(self, values):
        """
        Interpolate values known at the control points onto the
        interpolation points.

        Parameters
        ----------
        values : ndarray of shape (N, C)
            Values at all control points. With
            ``live_point_selection_sum_values`` these are increments.

        Returns
        -------
        values_interpolation : ndarray of shape (M, C)
        """
        if self.positions is None:
            raise CoarseningError("compute() must be called before interpolate().")
        values = np.asarray(values, dtype=float)
        if values.ndim == 1:
            values = values.reshape(-1, 1)
        if values.shape[0] != self.positions.shape[0]:
            raise CoarseningError("Expected values at {} control points, got {}.".format(
                self.positions.shape[0], values.shape[0]))

        self._prepare(values)
        if self._stale:
            self._fit()

        used_values = values[self._order, :]
        used_values = used_values[:used_values.shape[0] - self.nb_static_face_centers_remove, :]
        values_interpolation = self.rbf.interpolate(used_values)

        if self.correction is not None:
            self.correction.correct(values_interpolation, self.error_interpolation_coarse)
        return values_interpolation

    def greedy_selection(self, values):
        """
        Select the control points reproducing ``values`` and prepare the
        interpolation on them.
        """
        result = greedy_selection(self.positions, values, self.coarse_factory,
                                  tol=self.settings.tol,
                                  min_points=self.settings.min_points,
                                  max_points=self.settings.max_points,
                                  live=self.mode is SelectionMode.LIVE,
                                  two_point=self.growth is GrowthMode.PAIRED,
                                  verbose=self.settings.verbose)
        self.selected_positions = list(result.indices)
        self.last_error = result.error
        self.last_error_max = result.error_max
        self.reselection_count += 1
        if self.mode is SelectionMode.LIVE:
            self.error_interpolation_coarse = result.residual
            self.rbf_coarse = result.solver
        self._count_static_selected()
        self._stale = True
        if self.settings.export_txt:
            self.export_selection()
        return result

    def set_nb_moving_and_static_face_centers(self, nb_moving_face_centers, nb_static_face_centers):
        """
        Set the partition of the control points into moving points (the
        first ``nb_moving_face_centers`` rows) and static points.

        Selected static points have zero displacement and are removed from
        the interpolation operator.
        """
        if nb_moving_face_centers < 0 or nb_static_face_centers < 0:
            raise CoarseningError("Number of moving and static face centers cannot be negative.")
        self.nb_moving_face_centers = nb_moving_face_centers
        self.nb_static_face_centers = nb_static_face_centers
        previous = (self.nb_static_face_centers_remove, self._order)
        self._count_static_selected()
        if self._order is not None and \
                (previous[0] != self.nb_static_face_centers_remove or
                 not np.array_equal(self._ordered_selection(), previous[1])):
            self._stale = True
        return None

    def export_selection(self):
        """
        Write the selected indices and their coordinates to text files in
        ``settings.export_directory``.
        """
        directory = self.settings.export_directory
        os.makedirs(directory, exist_ok=True)
        indices = np.asarray(self.selected_positions, dtype=int)
        np.savetxt(os.path.join(directory, "selected_positions_{}.txt".format(self.file_export_index)),
                   indices, fmt="%d")
        np.savetxt(os.path.join(directory, "selected_coordinates_{}.txt".format(self.file_export_index)),
                   self.positions[indices, :])
        self.file_export_index += 1
        return None

    def _prepare_disabled(self, values):
        return None

    def _prepare_static(self, values):
        if self.selected_positions:
            return None
        self.greedy_selection(self.unit_displacement(values.shape[1]))
        return None

    def _prepare_live(self, values):
        # The interpolation acts on the total displacement whereas the
        # incremental displacement may be given as input.
        if self.settings.live_point_selection_sum_values and self.values is not None \
                and self.values.shape[1] == values.shape[1]:
            self.values = self.values + values
        else:
            self.values = values.copy()

        if self.reselection_required():
            self.greedy_selection(self.values)
        return None

    def reselection_required(self):
        """
        Check whether the current selection still reproduces the total
        displacement within ``tol_live_point_selection``.
        """
        if self.rbf_coarse is None or not self.selected_positions:
            return True
        values_coarse = self.rbf_coarse.interpolate(self.values[self.selected_positions, :])
        error, error_max = relative_errors(values_coarse - self.values, self.values)
        tol = self.settings.tol_live_point_selection
        reselection = not (error < tol and error_max < tol)
        self.last_error = error
        self.last_error_max = error_max
        if self.settings.verbose:
            print("RBF interpolation coarsening: 2-norm(error) = {:.6g}, max(error) = {:.6g}, tol = {:g}, "
                  "reselection = {}".format(error, error_max, tol, str(reselection).lower()))
        return reselection

    def unit_displacement(self, columns=None):
        """
        Unit displacement of the moving control points used to select the
        points for a static selection. All points move when the number of
        moving points is not set.
        """
        if columns is None:
            columns = self.positions.shape[1]
        n = self.positions.shape[0]
        if self.nb_moving_face_centers > n:
            raise CoarseningError("More moving face centers ({}) than control points ({}).".format(
                self.nb_moving_face_centers, n))
        unit = np.zeros((n, columns))
        if self.nb_moving_face_centers == 0:
            unit[:, :] = 1.0
        else:
            unit[:self.nb_moving_face_centers, :] = 1.0
        return unit

    def _ordered_selection(self):
        if not self.enabled:
            return np.arange(self.positions.shape[0])
        selected = np.asarray(self.selected_positions, dtype=int)
        if self.nb_static_face_centers is None:
            return selected
        moving = selected[selected < self.nb_moving_face_centers]
        static = selected[selected >= self.nb_moving_face_centers]
        return np.concatenate([moving, static])

    def _count_static_selected(self):
        if self.nb_static_face_centers is None:
            self.nb_static_face_centers_remove = 0
        elif not self.enabled:
            self.nb_static_face_centers_remove = self.nb_static_face_centers
        else:
            selected = np.asarray(self.selected_positions, dtype=int)
            self.nb_static_face_centers_remove = int(np.count_nonzero(selected >= self.nb_moving_face_centers))
        return None

    def _correction_function_type(self):
        # same compact family as the interpolation kernel, Wendland C2 otherwise
        function = getattr(self.rbf, "function", None)
        if isinstance(function, CompactFunction):
            return type(function)
        return WendlandC2

    def _fit(self):
        # Selected static points are ordered last so that trimming the
        # operator removes exactly their columns.
        self._order = self._ordered_selection()
        self.rbf.compute(self.positions[self._order, :], self.positions_interpolation)
        self.rbf.trim_columns(self.nb_static_face_centers_remove)
        self._stale = False
        return None
