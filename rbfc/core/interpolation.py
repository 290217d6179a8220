import numpy as np
from scipy import linalg
from ..kernel.functions import ThinPlateSpline
from .a_matrix import a_matrix
from .phi_matrix import phi_matrix
from .p_matrix import p_matrix, unisolvent


class RBFInterpolation:
    r"""
    Dense radial basis function interpolation between two point sets.

    The interpolation operator :math:`\hat{H}` maps values known at the
    control points onto the interpolation points,

    .. math::

        \mathbf{v}_{interp} = \hat{H} \mathbf{v}, \qquad
        \hat{H} = \left[ \Phi_{interp} \; P_{interp} \right] A^{-1} \Big|_{:, :N}

    where :math:`A` is assembled by :func:`~rbfc.core.a_matrix.a_matrix`.
    The operator is computed once by :meth:`compute` and applied to any
    number of value fields by :meth:`interpolate`.

    Parameters
    ----------
    function : RBFFunction, optional
        Radial basis function. Default is the thin plate spline.

    polynomial_term : bool, optional
        Augment the system with a linear polynomial. The term is skipped
        automatically for control point sets that do not span the space
        (for instance the two seed points of a greedy selection). Default
        is True.

    Attributes
    ----------
    hhat : ndarray of shape (M, N) or None
        The interpolation operator.

    computed : bool
        True once :meth:`compute` has run.

    Examples
    --------
    .. code-block:: python

        import numpy as np
        from rbfc.core import RBFInterpolation
        from rbfc.kernel import WendlandC2

        positions = np.random.rand(20, 2)
        targets = np.random.rand(100, 2)
        rbf = RBFInterpolation(WendlandC2(2.0))
        rbf.compute(positions, targets)
        result = rbf.interpolate(np.sin(positions))

    """

    def __init__(self, function=None, polynomial_term=True):
        if function is None:
            function = ThinPlateSpline()
        self.function = function
        self.polynomial_term = polynomial_term
        self.hhat = None
        self.computed = False
        self.n = 0
        self.d = 0

    def factory(self):
        """
        Return a callable building fresh, uncomputed solvers with the same
        radial basis function and polynomial setting as this one.
        """
        function = self.function
        polynomial_term = self.polynomial_term
        return lambda: RBFInterpolation(function, polynomial_term)

    def compute(self, positions, positions_interpolation):
        """
        Assemble and factorize the interpolation operator.

        Parameters
        ----------
        positions : ndarray of shape (N, D)
            Control point coordinates.

        positions_interpolation : ndarray of shape (M, D)
            Coordinates at which the interpolant is evaluated.
        """
        positions = np.atleast_2d(np.asarray(positions, dtype=float))
        positions_interpolation = np.atleast_2d(np.asarray(positions_interpolation, dtype=float))
        if positions.shape[0] == 0:
            raise ValueError("No control points provided.")
        if positions.shape[1] != positions_interpolation.shape[1]:
            raise ValueError("Control points and interpolation points must have the same dimension: "
                             "{} != {}.".format(positions.shape[1], positions_interpolation.shape[1]))
        n = positions.shape[0]
        polynomial = self.polynomial_term and unisolvent(positions)
        a_ = a_matrix(positions, self.function, polynomial)
        b_ = phi_matrix(positions_interpolation, positions, self.function)
        if polynomial:
            b_ = np.hstack([b_, p_matrix(positions_interpolation)])
        if b_.shape[0] == 0:
            self.hhat = np.zeros((0, n))
        else:
            # A is symmetric, so (B A^-1)^T = A^-1 B^T
            self.hhat = linalg.solve(a_, b_.T, assume_a='sym').T[:, :n]
        self.n = n
        self.d = positions.shape[1]
        self.computed = True
        return None

    def interpolate(self, values):
        """
        Apply the interpolation operator to a value field.

        Parameters
        ----------
        values : ndarray of shape (N, C)

        Returns
        -------
        values_interpolation : ndarray of shape (M, C)
        """
        if not self.computed:
            raise RuntimeError("RBF interpolation is not computed. Call compute() first.")
        values = np.asarray(values, dtype=float)
        squeeze = values.ndim == 1
        values = values.reshape(values.shape[0], -1)
        if values.shape[0] != self.hhat.shape[1]:
            raise ValueError("Expected {} rows of values, got {}.".format(self.hhat.shape[1], values.shape[0]))
        result = self.hhat @ values
        if squeeze:
            return result.ravel()
        return result

    def interpolate_once(self, positions, positions_interpolation, values):
        """Compute the operator and apply it to ``values`` in one call."""
        self.compute(positions, positions_interpolation)
        return self.interpolate(values)

    def trim_columns(self, n):
        """
        Drop the last ``n`` columns of the interpolation operator.

        Control points ordered last (static points) whose values are known
        to be zero do not contribute to the interpolated field and can be
        removed from the operator.
        """
        if not self.computed:
            raise RuntimeError("RBF interpolation is not computed. Call compute() first.")
        if n < 0 or n > self.hhat.shape[1]:
            raise ValueError("Cannot remove {} columns from an operator with {} columns.".format(
                n, self.hhat.shape[1]))
        if n > 0:
            self.hhat = self.hhat[:, :self.hhat.shape[1] - n]
        return None
