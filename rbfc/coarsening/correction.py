import numpy as np
from scipy.spatial import cKDTree
from ..kernel.functions import WendlandC2


class SurfaceCorrection:
    r"""
    Correction of the coarsening error near the boundary.

    A coarse interpolation does not reproduce the displacement at the
    control points that were not selected. The residual
    :math:`\mathbf{e}_j` of the coarse interpolation at control point
    :math:`j` is removed from the interpolated field by a compactly
    supported correction around that point,

    .. math::

        \mathbf{f}_i = -\phi_R(\| \mathbf{x}_i - \mathbf{x}_{j(i)} \|)\, \mathbf{e}_{j(i)}

    where :math:`j(i)` is the control point closest to interpolation point
    :math:`i` and :math:`R` is ``ratio_radius_error`` times the largest
    residual. Since the interpolated values are increments, only the
    change of the correction with respect to the previous call is added.

    Parameters
    ----------
    positions : ndarray of shape (N, D)
        Control point coordinates.
    positions_interpolation : ndarray of shape (M, D)
        Interpolation point coordinates.
    ratio_radius_error : float, optional
        Support radius of the correction relative to the largest residual.
        Default is 10.
    function_type : type, optional
        Compactly supported radial basis function class taking the support
        radius as its only argument. Default is :class:`WendlandC2`.
    """

    def __init__(self, positions, positions_interpolation, ratio_radius_error=10.0, function_type=WendlandC2):
        self.positions = positions
        self.positions_interpolation = positions_interpolation
        self.ratio_radius_error = ratio_radius_error
        self.function_type = function_type
        self.closest_boundary_index = None
        self.closest_boundary_radius = None
        self.values_correction = None

    def reset(self, positions=None, positions_interpolation=None):
        """
        Discard the nearest-boundary cache and the applied correction,
        optionally replacing the point sets.
        """
        if positions is not None:
            self.positions = positions
        if positions_interpolation is not None:
            self.positions_interpolation = positions_interpolation
        self.closest_boundary_index = None
        self.closest_boundary_radius = None
        self.values_correction = None

    def nearest_boundary(self):
        """
        Index of, and distance to, the closest control point of every
        interpolation point. Computed on first use.
        """
        if self.closest_boundary_index is None:
            tree = cKDTree(self.positions)
            radius, index = tree.query(self.positions_interpolation, k=1)
            self.closest_boundary_radius = np.asarray(radius, dtype=float)
            self.closest_boundary_index = np.asarray(index, dtype=int)
        return self.closest_boundary_index, self.closest_boundary_radius

    def support_radius(self, error_interpolation_coarse):
        return self.ratio_radius_error * np.linalg.norm(error_interpolation_coarse, axis=1).max()

    def correct(self, values_interpolation, error_interpolation_coarse):
        """
        Apply the correction to ``values_interpolation`` in place.

        Parameters
        ----------
        values_interpolation : ndarray of shape (M, C)
            Interpolated values, modified in place.
        error_interpolation_coarse : ndarray of shape (N, C)
            Residual of the coarse interpolation at the control points.

        Returns
        -------
        values_interpolation : ndarray of shape (M, C)
        """
        if self.values_correction is None or self.values_correction.shape != values_interpolation.shape:
            self.values_correction = np.zeros_like(values_interpolation)
        index, radius = self.nearest_boundary()
        support = self.support_radius(error_interpolation_coarse)
        if support > 0:
            function = self.function_type(support)
            # scaled to one at the control point
            phi = function.evaluate(radius) / function.evaluate(0.0)
            correction = -phi.reshape(-1, 1) * error_interpolation_coarse[index, :]
        else:
            # exact coarse interpolation
            correction = np.zeros_like(values_interpolation)
        values_interpolation += correction - self.values_correction
        self.values_correction = correction
        return values_interpolation
