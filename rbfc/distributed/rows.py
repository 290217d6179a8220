import numpy as np


def default_comm():
    from mpi4py import MPI
    return MPI.COMM_WORLD


class DistributedRows:
    """
    A dense matrix whose rows are partitioned in contiguous blocks over the
    processes of a communicator.

    Rows are requested from their owners in batches: the pulls are
    reserved and queued locally, exchanged in a single collective call by
    :meth:`process_pull_queue`, and the returned buffer is unpacked in queue
    order. Every method that communicates is collective and has to be
    called by all processes in the same order.

    Parameters
    ----------
    global_rows : int
        Number of rows of the full matrix.
    columns : int
        Number of columns.
    comm : mpi4py.MPI.Comm, optional
        Communicator. Default is ``MPI.COMM_WORLD``.
    local : ndarray, optional
        Rows owned by this process. Default is zeros.
    """

    def __init__(self, global_rows, columns, comm=None, local=None):
        if comm is None:
            comm = default_comm()
        self.comm = comm
        self.rank = comm.Get_rank()
        self.size = comm.Get_size()
        self.height = int(global_rows)
        self.width = int(columns)
        counts = [self.height // self.size + (1 if r < self.height % self.size else 0)
                  for r in range(self.size)]
        self.offsets = np.concatenate([[0], np.cumsum(counts)]).astype(int)
        self.row_range = (int(self.offsets[self.rank]), int(self.offsets[self.rank + 1]))
        nb_local = self.row_range[1] - self.row_range[0]
        if local is None:
            local = np.zeros((nb_local, self.width))
        local = np.asarray(local, dtype=float).reshape(nb_local, self.width)
        self.local = local
        self._pulls = []
        self._reserved = 0

    @classmethod
    def from_global(cls, data, comm=None):
        """Distribute an array known on every process."""
        data = np.asarray(data, dtype=float)
        if data.ndim == 1:
            data = data.reshape(-1, 1)
        rows = cls(data.shape[0], data.shape[1], comm=comm)
        start, end = rows.row_range
        rows.local = data[start:end, :].copy()
        return rows

    def like(self, local=None, columns=None):
        """A matrix with the same partition as this one."""
        if columns is None:
            columns = self.width
        return DistributedRows(self.height, columns, comm=self.comm, local=local)

    def owner(self, row):
        if row < 0 or row >= self.height:
            raise IndexError("Row {} out of range for a matrix with {} rows.".format(row, self.height))
        return int(np.searchsorted(self.offsets, row, side='right') - 1)

    def owns(self, row):
        return self.row_range[0] <= row < self.row_range[1]

    def global_rows(self):
        return np.arange(self.row_range[0], self.row_range[1])

    def get(self, row, column):
        if not self.owns(row):
            raise IndexError("Row {} is not owned by process {}.".format(row, self.rank))
        return float(self.local[row - self.row_range[0], column])

    def set(self, row, column, value):
        if not self.owns(row):
            raise IndexError("Row {} is not owned by process {}.".format(row, self.rank))
        self.local[row - self.row_range[0], column] = value

    def reserve_pulls(self, n):
        self._pulls = []
        self._reserved = int(n)

    def queue_pull(self, row, column):
        if len(self._pulls) >= self._reserved:
            raise RuntimeError("More pulls queued than reserved ({}).".format(self._reserved))
        self._pulls.append((int(row), int(column)))

    def process_pull_queue(self):
        """
        Exchange all queued pulls in one collective call.

        Returns
        -------
        buffer : list of float
            Pulled entries in the order they were queued.
        """
        requests = [[] for _ in range(self.size)]
        for row, column in self._pulls:
            requests[self.owner(row)].append((row, column))
        incoming = self.comm.alltoall(requests)
        replies = [[self.get(row, column) for row, column in request] for request in incoming]
        answers = self.comm.alltoall(replies)
        cursor = [0] * self.size
        buffer = []
        for row, column in self._pulls:
            source = self.owner(row)
            buffer.append(answers[source][cursor[source]])
            cursor[source] += 1
        self._pulls = []
        return buffer

    def row_two_norms(self):
        """Norms of the local rows."""
        return np.linalg.norm(self.local, axis=1)

    def norm(self):
        """Frobenius norm of the full matrix."""
        return float(np.sqrt(self.comm.allreduce(float(np.sum(self.local ** 2)))))

    def max_loc(self, local_vector):
        """
        Global maximum of a row-wise quantity and the row where it occurs.

        Ties are resolved towards the lowest row.

        Parameters
        ----------
        local_vector : ndarray of shape (local rows,)

        Returns
        -------
        row : int
        value : float
        """
        local_vector = np.asarray(local_vector, dtype=float)
        if local_vector.size > 0:
            i = int(np.argmax(local_vector))
            candidate = (float(local_vector[i]), self.row_range[0] + i)
        else:
            candidate = (-np.inf, -1)
        candidates = self.comm.allgather(candidate)
        value, row = max(candidates, key=lambda c: (c[0], -c[1]))
        return row, value

    def any(self, local_mask):
        return bool(self.comm.allreduce(int(np.any(local_mask))))

    def gather(self):
        """The full matrix on every process."""
        return np.vstack(self.comm.allgather(self.local)).reshape(self.height, self.width)


def select_data(data, selected, selection):
    """
    Copy the rows ``selected`` of ``data`` into ``selection``.

    Each process pulls the entries of the rows of ``selection`` it owns,
    from whichever process owns the corresponding row of ``data``, in one
    batched exchange.

    Parameters
    ----------
    data : DistributedRows
    selected : sequence of int
        Rows of ``data``; row ``j`` of ``selection`` receives row
        ``selected[j]``.
    selection : DistributedRows
        Matrix with ``len(selected)`` rows and the width of ``data``.
    """
    if selection.height != len(selected):
        raise ValueError("Selection has {} rows, expected {}.".format(selection.height, len(selected)))
    nb_pulls = 0
    for j in range(len(selected)):
        for column in range(data.width):
            if selection.owner(j) == selection.rank:
                nb_pulls += 1

    data.reserve_pulls(nb_pulls)

    for j in range(len(selected)):
        for column in range(data.width):
            if selection.owner(j) == selection.rank:
                data.queue_pull(selected[j], column)

    buffer = data.process_pull_queue()
    index = 0

    for j in range(len(selected)):
        for column in range(data.width):
            if selection.owner(j) == selection.rank:
                selection.set(j, column, buffer[index])
                index += 1
    return selection


def fetch_rows(data, selected):
    """The rows ``selected`` of ``data`` on every process."""
    selection = DistributedRows(len(selected), data.width, comm=data.comm)
    select_data(data, selected, selection)
    return selection.gather()
