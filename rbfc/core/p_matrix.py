import numpy as np


def p_matrix(points):
    r"""
    Construct the linear polynomial block used to augment an RBF system.

    Parameters
    ----------
    points : ndarray of shape (N, D)

    Returns
    -------
    p_ : ndarray of shape (N, D + 1)
        Rows :math:`[1, x_i^{(0)}, \dots, x_i^{(D-1)}]`.
    """
    points = np.atleast_2d(points)
    p_ = np.ones((points.shape[0], points.shape[1] + 1))
    p_[:, 1:] = points
    return p_


def unisolvent(points):
    """
    Check whether a point set determines a unique linear polynomial.

    The linear polynomial term can only be added to the interpolation
    system when at least ``D + 1`` points span the space; otherwise the
    augmented system is singular.
    """
    points = np.atleast_2d(points)
    n, d = points.shape
    if n < d + 1:
        return False
    return np.linalg.matrix_rank(p_matrix(points)) == d + 1
