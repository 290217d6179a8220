__version__ = "0.1.0"

from .kernel import get_function
from .core import RBFInterpolation
from .coarsening import CoarseningSettings, CoarseningError, RBFCoarsening
