import numpy as np
from dataclasses import dataclass, field
from typing import Any, List, Tuple
from tqdm import tqdm
from .config import SMALL, CoarseningError


@dataclass
class SelectionResult:
    """
    Outcome of a greedy selection.

    Attributes
    ----------
    indices : list of int
        Selected control point indices in the order they were added.
    error : float
        Relative 2-norm of the residual at the accepted subset.
    error_max : float
        Largest residual row norm relative to the largest value row norm.
    residual : ndarray of shape (N, C)
        Residual of the coarse interpolation at every control point,
        ``coarse - values``.
    iterations : int
        Number of coarse interpolations performed.
    history : list of tuple
        ``(selected count, error, error_max)`` for every iteration.
    solver : object
        Interpolation solver fitted on the accepted subset and evaluated
        at all control points.
    """

    indices: List[int]
    error: float
    error_max: float
    residual: np.ndarray
    iterations: int = 0
    history: List[Tuple[int, float, float]] = field(default_factory=list)
    solver: Any = None


def row_norms(data):
    return np.linalg.norm(data, axis=1)


def relative_errors(residual, values):
    """
    Relative 2-norm and relative max-norm of a residual field.

    Both denominators are padded with ``sqrt(SMALL)`` so that a zero
    field yields a finite error.

    Returns
    -------
    error : float
        ``||residual||_F / (||values||_F + eps)``
    error_max : float
        ``max_i |residual_i| / (max_i |values_i| + eps)``
    """
    epsilon = np.sqrt(SMALL)
    error = np.linalg.norm(residual) / (np.linalg.norm(values) + epsilon)
    error_max = row_norms(residual).max() / (row_norms(values).max() + epsilon)
    return float(error), float(error_max)


def seed_points(positions, values, live=False):
    """
    Select the two points that start the greedy algorithm.

    The first point is the point with the largest displacement (live
    selection) or the point furthest from the origin among the points that
    move (static selection). The second point is the point furthest from
    the first one. Points at unit distance from the first point are skipped.

    Parameters
    ----------
    positions : ndarray of shape (N, D)
    values : ndarray of shape (N, C)
    live : bool, optional

    Returns
    -------
    seeds : list of int
        One index when ``N == 1``, two otherwise.
    """
    n = positions.shape[0]
    value_norms = row_norms(values)
    if live:
        first = int(np.argmax(value_norms))
    else:
        radius = row_norms(positions)
        moving = value_norms > SMALL
        if moving.any():
            first = int(np.argmax(np.where(moving, radius, -1.0)))
        else:
            first = int(np.argmax(radius))
    if n == 1:
        return [first]
    distance = row_norms(positions - positions[first, :])
    valid = (distance < 1.0 - SMALL) | (distance > 1.0 + SMALL)
    valid[first] = False
    if valid.any():
        second = int(np.argmax(np.where(valid, distance, -1.0)))
    else:
        second = 0 if first != 0 else 1
    return [first, second]


def greedy_selection(positions, values, solver_factory, tol, min_points, max_points,
                     live=False, two_point=False, verbose=False):
    """
    Select a subset of control points with a greedy algorithm.

    Starting from two seed points, the point with the largest interpolation
    error is added until the coarse interpolation reproduces ``values`` at
    all control points within ``tol`` (both in the relative 2-norm and in
    the relative max-norm) and at least ``min_points`` points are selected,
    or until ``max_points`` points are selected.

    Parameters
    ----------
    positions : ndarray of shape (N, D)
        Control point coordinates.
    values : ndarray of shape (N, C)
        Field that the coarse interpolation has to reproduce.
    solver_factory : callable
        Returns a fresh interpolation solver providing
        ``interpolate_once(positions, positions_interpolation, values)``.
    tol : float
        Convergence tolerance.
    min_points, max_points : int
        Bounds on the number of selected points, both capped by ``N``.
        ``max_points`` is at least 2 so that both seed points are kept.
    live : bool, optional
        Seed from the largest displacement instead of the largest radius.
    two_point : bool, optional
        Also add the point with the largest error among the points whose
        error direction is opposed (more than 90 degrees) to the error of
        the first candidate.
    verbose : bool, optional
        Show a progress bar and print the selection statistics.

    Returns
    -------
    result : SelectionResult
    """
    positions = np.atleast_2d(np.asarray(positions, dtype=float))
    values = np.asarray(values, dtype=float)
    if values.ndim == 1:
        values = values.reshape(-1, 1)
    if positions.shape[0] == 0:
        raise CoarseningError("No control points provided.")
    if positions.shape[0] != values.shape[0]:
        raise CoarseningError("Number of positions ({}) and values ({}) do not match.".format(
            positions.shape[0], values.shape[0]))
    if min_points <= 0 or max_points < 2 or min_points > max_points:
        raise CoarseningError("Invalid point bounds: min_points={}, max_points={}.".format(
            min_points, max_points))

    n = positions.shape[0]
    max_nb_points = min(max_points, n)
    min_nb_points = min(min_points, n)

    selected = seed_points(positions, values, live=live)
    is_selected = np.zeros(n, dtype=bool)
    is_selected[selected] = True

    history = []
    iterations = 0
    pbar = tqdm(total=max_nb_points, initial=len(selected), desc='Selecting points ', unit='point',
                leave=False, disable=not verbose)
    while True:
        solver = solver_factory()
        values_coarse = solver.interpolate_once(positions[selected, :], positions, values[selected, :])
        residual = values_coarse - values
        errors = row_norms(residual)
        iterations += 1

        index = -1
        if not is_selected.all():
            index = int(np.argmax(np.where(is_selected, -1.0, errors)))

        index2 = -1
        if two_point and index >= 0:
            opposed = (residual @ residual[index, :] < -SMALL) & ~is_selected
            if opposed.any():
                index2 = int(np.argmax(np.where(opposed, errors, -1.0)))

        error, error_max = relative_errors(residual, values)
        history.append((len(selected), error, error_max))

        convergence = (error < tol and error_max < tol and len(selected) >= min_nb_points) or \
            len(selected) >= max_nb_points
        if convergence or index < 0:
            break

        selected.append(index)
        is_selected[index] = True
        pbar.update(1)
        if index2 >= 0 and index2 != index and len(selected) < max_nb_points:
            selected.append(index2)
            is_selected[index2] = True
            pbar.update(1)
    pbar.close()

    if verbose:
        print("RBF interpolation coarsening: selected {}/{} points, 2-norm(error) = {:.6g}, "
              "max(error) = {:.6g}, tol = {:g}".format(len(selected), n, error, error_max, tol))
    return SelectionResult(indices=selected, error=error, error_max=error_max, residual=residual,
                           iterations=iterations, history=history, solver=solver)
