import numpy as np
from ..coarsening.config import SMALL, CoarseningError, env_flag
from ..core.interpolation import RBFInterpolation
from ..kernel.functions import ThinPlateSpline
from .rows import DistributedRows, default_comm, fetch_rows
from .selection import distributed_greedy_selection


def _check_bounds(tol, min_points, max_points):
    if not 0 < tol < 1:
        raise CoarseningError("Tolerance must lie in (0, 1), got {}.".format(tol))
    if min_points <= 0 or max_points < 2 or min_points > max_points:
        raise CoarseningError("Invalid point bounds: min_points={}, max_points={}.".format(
            min_points, max_points))


def _as_rows(data, comm):
    if isinstance(data, DistributedRows):
        return data
    return DistributedRows.from_global(data, comm=comm)


class _DistributedCoarsener(object):
    def __init__(self, tol, min_points, max_points, function=None, comm=None,
                 polynomial_term=False, two_point=False, verbose=None):
        _check_bounds(tol, min_points, max_points)
        if function is None:
            function = ThinPlateSpline()
        if comm is None:
            comm = default_comm()
        if verbose is None:
            verbose = env_flag("RBFC_VERBOSE")
        self.tol = tol
        self.min_points = min_points
        self.max_points = max_points
        self.function = function
        self.comm = comm
        self.polynomial_term = polynomial_term
        self.two_point = two_point
        self.verbose = verbose
        self.positions = None
        self.positions_interpolation = None
        self.selected_positions = []
        self.rbf = None
        self.rbf_coarse = None
        self.last_error = None
        self.last_error_max = None

    def solver_factory(self):
        return RBFInterpolation(self.function, self.polynomial_term)

    def compute(self, positions, positions_interpolation):
        """
        Set the row-partitioned control points and interpolation points.

        Plain arrays known on every process are distributed over the
        communicator.
        """
        positions = _as_rows(positions, self.comm)
        positions_interpolation = _as_rows(positions_interpolation, self.comm)
        if positions.height == 0 or positions_interpolation.height == 0:
            raise CoarseningError("Control points and interpolation points cannot be empty.")
        if positions.width != positions_interpolation.width:
            raise CoarseningError("Control points and interpolation points must have the same dimension.")
        self.positions = positions
        self.positions_interpolation = positions_interpolation
        self.selected_positions = []
        self.rbf = None
        self.rbf_coarse = None
        return None

    def initialized(self):
        return self.rbf is not None

    def _select(self, values, live, initial=None):
        result = distributed_greedy_selection(self.positions, values, self.solver_factory,
                                              tol=self.tol,
                                              min_points=self.min_points,
                                              max_points=self.max_points,
                                              live=live,
                                              two_point=self.two_point,
                                              verbose=self.verbose,
                                              initial=initial)
        self.selected_positions = list(result.indices)
        self.last_error = result.error
        self.last_error_max = result.error_max
        self.rbf_coarse = result.solver
        # Every process evaluates the coarse interpolant at its own rows of
        # the interpolation points.
        self.rbf = self.solver_factory()
        self.rbf.compute(fetch_rows(self.positions, self.selected_positions),
                         self.positions_interpolation.local)
        return result

    def _interpolate_selected(self, values):
        values_coarse = fetch_rows(values, self.selected_positions)
        local = self.rbf.interpolate(values_coarse)
        return self.positions_interpolation.like(local=local, columns=values.width)

    def _check_values(self, values):
        if self.positions is None:
            raise CoarseningError("compute() must be called before interpolate().")
        values = _as_rows(values, self.comm)
        if values.height != self.positions.height:
            raise CoarseningError("Expected values at {} control points, got {}.".format(
                self.positions.height, values.height))
        return values


class UnitCoarsening(_DistributedCoarsener):
    """
    Distributed coarsening with a single selection.

    The points are selected once in :meth:`compute` from a unit field, then
    reused for every call to :meth:`interpolate`.

    Parameters
    ----------
    tol : float
        Selection tolerance in (0, 1).
    min_points, max_points : int
        Bounds on the number of selected points.
    function : RBFFunction, optional
        Radial basis function. Default is the thin plate spline.
    comm : mpi4py.MPI.Comm, optional
        Default is ``MPI.COMM_WORLD``.
    """

    def __init__(self, tol, min_points, max_points, function=None, comm=None, **kwargs):
        super().__init__(tol, min_points, max_points, function=function, comm=comm, **kwargs)

    def compute(self, positions, positions_interpolation):
        super().compute(positions, positions_interpolation)
        unit = self.positions.like(local=np.ones_like(self.positions.local))
        self._select(unit, live=False)
        return None

    def interpolate(self, values):
        """
        Interpolate row-partitioned values onto the interpolation points.

        Returns
        -------
        values_interpolation : DistributedRows
            Partitioned like the interpolation points.
        """
        values = self._check_values(values)
        if not self.initialized():
            raise CoarseningError("compute() must be called before interpolate().")
        return self._interpolate_selected(values)


class AdaptiveCoarsening(_DistributedCoarsener):
    """
    Distributed coarsening driven by the interpolated field.

    The selection is made from the first field passed to
    :meth:`interpolate`. Later fields are first evaluated with the coarse
    interpolant; when the error reaches ``reselection_tol`` the selection
    keeps growing from the current points until ``tol`` is met again.

    Parameters
    ----------
    tol : float
        Selection tolerance in (0, 1).
    reselection_tol : float
        Error above which points are added, at least ``tol``.
    min_points, max_points : int
        Bounds on the number of selected points.
    function : RBFFunction, optional
    comm : mpi4py.MPI.Comm, optional
    """

    def __init__(self, tol, reselection_tol, min_points, max_points, function=None, comm=None, **kwargs):
        super().__init__(tol, min_points, max_points, function=function, comm=comm, **kwargs)
        if not 0 < reselection_tol < 1 or reselection_tol < tol:
            raise CoarseningError("Reselection tolerance must lie in [tol, 1), got {}.".format(reselection_tol))
        self.reselection_tol = reselection_tol
        self.reselection_count = 0

    def greedy_selection(self, values, clear=True):
        """
        Select points reproducing ``values``.

        With ``clear=False`` the current selection is extended instead of
        starting again from the seed points.
        """
        values = self._check_values(values)
        initial = None if clear or not self.selected_positions else self.selected_positions
        result = self._select(values, live=True, initial=initial)
        self.reselection_count += 1
        return result

    def compute_error(self, values):
        """
        Error of the coarse interpolant at the control points.

        Returns
        -------
        row : int
            Control point with the largest residual.
        error : float
            Larger of the relative 2-norm and relative max-norm errors.
        """
        values = self._check_values(values)
        if self.rbf_coarse is None:
            raise CoarseningError("No points selected yet.")
        values_coarse = fetch_rows(values, self.selected_positions)
        residual = self.rbf_coarse.interpolate(values_coarse) - values.local
        errors = np.linalg.norm(residual, axis=1)
        epsilon = np.sqrt(SMALL)
        error = np.sqrt(self.comm.allreduce(float(np.sum(residual ** 2)))) / (values.norm() + epsilon)
        row, max_error = values.max_loc(errors)
        _, values_max = values.max_loc(values.row_two_norms())
        error_max = max_error / (values_max + epsilon)
        self.last_error = float(error)
        self.last_error_max = float(error_max)
        return row, float(max(error, error_max))

    def interpolate(self, values):
        """
        Interpolate row-partitioned values onto the interpolation points,
        extending the selection first when it no longer reproduces them.

        Returns
        -------
        values_interpolation : DistributedRows
        """
        values = self._check_values(values)
        if not self.initialized():
            self.greedy_selection(values, clear=True)
        else:
            row, error = self.compute_error(values)
            reselection = error >= self.reselection_tol
            if self.verbose and self.comm.Get_rank() == 0:
                print("RBF interpolation coarsening: error = {:.6g}, row = {}, tol = {:g}, "
                      "reselection = {}".format(error, row, self.reselection_tol, str(reselection).lower()))
            if reselection:
                self.greedy_selection(values, clear=False)
        return self._interpolate_selected(values)
