"""
Greedy coarsening over control points partitioned in row blocks across the
processes of an MPI communicator (``mpi4py``).

- **rows**: :class:`DistributedRows` and the batched row exchange :func:`select_data`.
- **selection**: :func:`distributed_greedy_selection`.
- **coarsening**: :class:`UnitCoarsening` and :class:`AdaptiveCoarsening`.

``mpi4py`` is only imported when no communicator is given.
"""
from .rows import DistributedRows, select_data, fetch_rows
from .selection import distributed_greedy_selection, distributed_seed_points
from .coarsening import UnitCoarsening, AdaptiveCoarsening

__all__ = [
    "DistributedRows",
    "select_data",
    "fetch_rows",
    "distributed_greedy_selection",
    "distributed_seed_points",
    "UnitCoarsening",
    "AdaptiveCoarsening",
]
