import numpy as np
from scipy.spatial.distance import cdist


def phi_matrix(points, centers, function):
    r"""
    Evaluate a radial basis function between two point sets.

    Parameters
    ----------
    points : ndarray of shape (M, D)
        Evaluation points (rows of the result).

    centers : ndarray of shape (N, D)
        Control points (columns of the result).

    function : RBFFunction
        Radial basis function providing ``evaluate(r)``.

    Returns
    -------
    phi_ : ndarray of shape (M, N)
        The matrix :math:`\Phi_{ij} = \phi(\| \mathbf{x}_i - \mathbf{c}_j \|)`.

    Examples
    --------
    .. code-block:: python

        import numpy as np
        from rbfc.kernel import ThinPlateSpline
        from rbfc.core.phi_matrix import phi_matrix

        points = np.array([[0.0, 0.0], [2.0, 0.0]])
        phi_matrix(points, points, ThinPlateSpline())

    """
    points = np.atleast_2d(points)
    centers = np.atleast_2d(centers)
    return np.asarray(function.evaluate(cdist(points, centers)), dtype=float)
