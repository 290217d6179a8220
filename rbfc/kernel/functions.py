import numpy as np


class RBFFunction:
    """
    Base class for radial basis functions.

    Subclasses implement :meth:`evaluate` on an array of non-negative
    distances. Scalars are accepted and a scalar is returned.
    """

    name = None

    def __call__(self, r):
        return self.evaluate(r)

    def evaluate(self, r):
        raise NotImplementedError("Radial basis function is not implemented.")

    def __repr__(self):
        return "{}()".format(self.__class__.__name__)


class CompactFunction(RBFFunction):
    """Shared support handling for the Wendland family."""

    def __init__(self, radius):
        if not radius > 0:
            raise ValueError("Support radius must be positive, got {}.".format(radius))
        self.radius = float(radius)

    def evaluate(self, r):
        r = np.asarray(r, dtype=float) / self.radius
        out = np.where(r < 1.0, self._psi(np.minimum(r, 1.0)), 0.0)
        if out.ndim == 0:
            return float(out)
        return out

    def _psi(self, r):
        raise NotImplementedError

    def __repr__(self):
        return "{}(radius={})".format(self.__class__.__name__, self.radius)


class WendlandC0(CompactFunction):
    name = "wendland_c0"

    def _psi(self, r):
        return (1 - r) ** 2


class WendlandC2(CompactFunction):
    r"""
    Wendland C\ :sup:`2` compactly supported function.

    .. math::

        \phi(r) = (1 - r/R)^4 (4 r/R + 1), \quad r < R

    and zero outside the support radius :math:`R`.

    Parameters
    ----------
    radius : float
        Support radius :math:`R`.

    Examples
    --------
    .. code-block:: python

        from rbfc.kernel import WendlandC2

        phi = WendlandC2(2.0)
        phi.evaluate([0.0, 1.0, 3.0])
        # array([1.    , 0.1875, 0.    ])

    """

    name = "wendland_c2"

    def _psi(self, r):
        return (1 - r) ** 4 * (4 * r + 1)


class WendlandC4(CompactFunction):
    name = "wendland_c4"

    def _psi(self, r):
        return (1 - r) ** 6 * (35 * r ** 2 + 18 * r + 3)


class WendlandC6(CompactFunction):
    name = "wendland_c6"

    def _psi(self, r):
        return (1 - r) ** 8 * (32 * r ** 3 + 25 * r ** 2 + 8 * r + 1)


class ThinPlateSpline(RBFFunction):
    r"""
    Thin plate spline :math:`\phi(r) = r^2 \log r`, continuously extended
    with :math:`\phi(0) = 0`.
    """

    name = "thin_plate_spline"

    def evaluate(self, r):
        r = np.asarray(r, dtype=float)
        safe = np.where(r > 0, r, 1.0)
        out = np.where(r > 0, safe ** 2 * np.log(safe), 0.0)
        if out.ndim == 0:
            return float(out)
        return out


class Polyharmonic(RBFFunction):
    r"""
    Polyharmonic (Duchon) spline :math:`\phi(r) = r^{p}`.

    The default degree ``p = 3`` is the tri-harmonic kernel.
    """

    name = "polyharmonic"

    def __init__(self, degree=3):
        self.degree = degree

    def evaluate(self, r):
        out = np.asarray(r, dtype=float) ** self.degree
        if out.ndim == 0:
            return float(out)
        return out

    def __repr__(self):
        return "Polyharmonic(degree={})".format(self.degree)


FUNCTIONS = {
    WendlandC0.name: WendlandC0,
    WendlandC2.name: WendlandC2,
    WendlandC4.name: WendlandC4,
    WendlandC6.name: WendlandC6,
    ThinPlateSpline.name: ThinPlateSpline,
    Polyharmonic.name: Polyharmonic,
}

_ALIASES = {
    'c0': WendlandC0.name,
    'c2': WendlandC2.name,
    'c4': WendlandC4.name,
    'c6': WendlandC6.name,
    'tps': ThinPlateSpline.name,
}


def get_function(name, radius=None, **kwargs):
    """
    Build a radial basis function from its name.

    Parameters
    ----------
    name : str
        One of the keys of ``FUNCTIONS`` or a short alias
        (``'c0'``, ``'c2'``, ``'c4'``, ``'c6'``, ``'tps'``).
    radius : float, optional
        Support radius; required for the Wendland functions.

    Returns
    -------
    function : RBFFunction
    """
    key = _ALIASES.get(name.lower(), name.lower())
    if key not in FUNCTIONS:
        raise ValueError("Unknown radial basis function '{}'. Available: {}".format(
            name, sorted(FUNCTIONS)))
    cls = FUNCTIONS[key]
    if issubclass(cls, CompactFunction):
        if radius is None:
            raise ValueError("Radial basis function '{}' requires a support radius.".format(name))
        return cls(radius)
    return cls(**kwargs)
