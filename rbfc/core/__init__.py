"""
The `core` module provides the dense radial basis function interpolation
solver used by the coarsening controller.

- **phi_matrix**: Evaluates the kernel between an evaluation set and a control set.
- **p_matrix**: Builds the linear polynomial block :math:`P = [1, x]`.
- **a_matrix**: Assembles the (optionally polynomial-augmented) interpolation matrix.
- **RBFInterpolation**: Computes the operator :math:`\\hat{H}` once and applies it to
  any number of value fields.

The interpolation matrix is

.. math::

    A = \\begin{bmatrix}
            \\Phi & P \\\\
            P^T & 0
        \\end{bmatrix}

with :math:`\\Phi_{ij} = \\phi(\\| x_i - x_j \\|)`. Solving with the identity
on the first :math:`N` right-hand sides yields the operator that maps
control point values onto the interpolation points, as in Allen and
Rendall [1]_.

References
----------

.. [1] Rendall, T. C. S., & Allen, C. B. (2008). Unified fluid-structure interpolation and mesh motion
       using radial basis functions. *International Journal for Numerical Methods in Engineering*,
       74(10), 1519-1559. https://doi.org/10.1002/nme.2219

"""
from .a_matrix import a_matrix
from .phi_matrix import phi_matrix
from .p_matrix import p_matrix, unisolvent
from .interpolation import RBFInterpolation

__all__ = ["a_matrix", "phi_matrix", "p_matrix", "unisolvent", "RBFInterpolation"]
