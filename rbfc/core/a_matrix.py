import numpy as np
from .phi_matrix import phi_matrix
from .p_matrix import p_matrix


def a_matrix(points, function, polynomial_term=True):
    r"""
    Construct the RBF interpolation matrix for a set of control points.

    Parameters
    ----------
    points : ndarray of shape (N, D)
        Control point coordinates.

    function : RBFFunction
        Radial basis function.

    polynomial_term : bool, optional
        Augment the system with a linear polynomial. Default is True.

    Returns
    -------
    A : ndarray of shape (N, N) or (N + D + 1, N + D + 1)
        Without the polynomial term this is :math:`\Phi`, otherwise

        .. math::

            A = \begin{bmatrix}
                    \Phi & P \\
                    P^T & 0
                \end{bmatrix}

        where :math:`P` is built by :func:`p_matrix`.

    See Also
    --------
    phi_matrix : Kernel evaluation between two point sets.
    p_matrix : Linear polynomial block.

    """
    phi_ = phi_matrix(points, points, function)
    if not polynomial_term:
        return phi_
    n = phi_.shape[0]
    p_ = p_matrix(points)
    m = p_.shape[1]
    a_ = np.zeros((n + m, n + m))
    a_[:n, :n] = phi_
    a_[:n, n:] = p_
    a_[n:, :n] = p_.T
    return a_
