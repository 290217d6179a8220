import numpy as np
from ..coarsening.config import SMALL, CoarseningError
from ..coarsening.selection import SelectionResult
from .rows import DistributedRows, fetch_rows


def distributed_seed_points(positions, values, live=False):
    """
    Seed points of the greedy selection for row-partitioned data.

    Same rules as :func:`rbfc.coarsening.selection.seed_points`, with the
    maxima found by collective reductions.
    """
    value_norms = values.row_two_norms()
    if live:
        first, _ = values.max_loc(value_norms)
    else:
        radius = positions.row_two_norms()
        moving = value_norms > SMALL
        if positions.any(moving):
            first, _ = positions.max_loc(np.where(moving, radius, -1.0))
        else:
            first, _ = positions.max_loc(radius)
    if positions.height == 1:
        return [first]
    first_position = fetch_rows(positions, [first])[0, :]
    distance = np.linalg.norm(positions.local - first_position, axis=1)
    valid = (distance < 1.0 - SMALL) | (distance > 1.0 + SMALL)
    valid &= positions.global_rows() != first
    second, largest = positions.max_loc(np.where(valid, distance, -1.0))
    if largest < 0:
        second = 0 if first != 0 else 1
    return [first, second]


def distributed_greedy_selection(positions, values, solver_factory, tol, min_points, max_points,
                                 live=False, two_point=False, verbose=False, initial=None):
    """
    Greedy selection of control points over row-partitioned data.

    Every process holds a block of rows of ``positions`` and ``values``.
    The coarse problem is small: the selected rows are gathered on every
    process, which fits the coarse interpolation and evaluates it at its own
    rows. All reductions are collective, so every process takes the same
    decisions and performs the same number of iterations.

    Parameters
    ----------
    positions : DistributedRows
        Control point coordinates.
    values : DistributedRows
        Field to reproduce, partitioned like ``positions``.
    solver_factory : callable
        Returns a fresh interpolation solver.
    tol, min_points, max_points, live, two_point, verbose
        See :func:`rbfc.coarsening.selection.greedy_selection`.
    initial : list of int, optional
        Continue growing from this selection instead of seeding a new one.

    Returns
    -------
    result : SelectionResult
        ``residual`` holds the local rows of the residual only.
    """
    if positions.height == 0:
        raise CoarseningError("No control points provided.")
    if positions.height != values.height:
        raise CoarseningError("Number of positions ({}) and values ({}) do not match.".format(
            positions.height, values.height))
    if min_points <= 0 or max_points < 2 or min_points > max_points:
        raise CoarseningError("Invalid point bounds: min_points={}, max_points={}.".format(
            min_points, max_points))

    n = positions.height
    max_nb_points = min(max_points, n)
    min_nb_points = min(min_points, n)
    epsilon = np.sqrt(SMALL)

    if initial:
        selected = list(initial)
    else:
        selected = distributed_seed_points(positions, values, live=live)
    is_selected = np.isin(positions.global_rows(), selected)

    values_norm = values.norm()
    _, values_max = values.max_loc(values.row_two_norms())

    history = []
    iterations = 0
    while True:
        positions_coarse = fetch_rows(positions, selected)
        values_coarse = fetch_rows(values, selected)
        solver = solver_factory()
        residual = solver.interpolate_once(positions_coarse, positions.local, values_coarse) - values.local
        errors = np.linalg.norm(residual, axis=1)
        iterations += 1

        index, largest_error = values.max_loc(np.where(is_selected, -1.0, errors))
        if largest_error < 0:
            index = -1

        index2 = -1
        if two_point and index >= 0:
            residuals = DistributedRows(n, residual.shape[1], comm=values.comm, local=residual)
            largest_error_vector = fetch_rows(residuals, [index])[0, :]
            opposed = (residual @ largest_error_vector < -SMALL) & ~is_selected
            index2, largest_error2 = values.max_loc(np.where(opposed, errors, -1.0))
            if largest_error2 < 0:
                index2 = -1

        error = np.sqrt(values.comm.allreduce(float(np.sum(residual ** 2)))) / (values_norm + epsilon)
        _, max_error = values.max_loc(errors)
        error_max = max_error / (values_max + epsilon)
        history.append((len(selected), float(error), float(error_max)))

        convergence = (error < tol and error_max < tol and len(selected) >= min_nb_points) or \
            len(selected) >= max_nb_points
        if convergence or index < 0:
            break

        selected.append(index)
        is_selected |= positions.global_rows() == index
        if index2 >= 0 and index2 != index and len(selected) < max_nb_points:
            selected.append(index2)
            is_selected |= positions.global_rows() == index2

    if verbose and values.rank == 0:
        print("RBF interpolation coarsening: selected {}/{} points, 2-norm(error) = {:.6g}, "
              "max(error) = {:.6g}, tol = {:g}".format(len(selected), n, error, error_max, tol))
    return SelectionResult(indices=selected, error=float(error), error_max=float(error_max),
                           residual=residual, iterations=iterations, history=history, solver=solver)
