"""Block views over sparse matrices and vectors, and additive scatter assembly."""

import numpy as np
from scipy.sparse import coo_matrix, csr_matrix


class ScatterAdd:
    """
    Collects (row, col, value) triples from cell-local matrices.

    Triples for the same entry are summed when the matrix is built, so
    contributions of several cells to one global entry accumulate.
    """

    def __init__(self, n_rows, n_cols=None):
        self.shape = (n_rows, n_rows if n_cols is None else n_cols)
        self._rows = []
        self._cols = []
        self._vals = []

    def add_local(self, indices, local_matrix):
        indices = np.asarray(indices)
        n = len(indices)
        vals = np.asarray(local_matrix, dtype=float).ravel()
        nonzero = vals != 0.0
        self._rows.append(np.repeat(indices, n)[nonzero])
        self._cols.append(np.tile(indices, n)[nonzero])
        self._vals.append(vals[nonzero])

    def tocsr(self):
        if not self._vals:
            return csr_matrix(self.shape)
        rows = np.concatenate(self._rows)
        cols = np.concatenate(self._cols)
        vals = np.concatenate(self._vals)
        return coo_matrix((vals, (rows, cols)), shape=self.shape).tocsr()


def _offsets(block_sizes):
    return np.concatenate([[0], np.cumsum(block_sizes)]).astype(int)


class BlockVector:
    """Dense vector partitioned into contiguous blocks."""

    def __init__(self, block_sizes, values=None):
        self.block_sizes = tuple(int(n) for n in block_sizes)
        self.offsets = _offsets(self.block_sizes)
        n = self.offsets[-1]
        self.values = np.zeros(n) if values is None else np.asarray(values, dtype=float)
        if self.values.shape != (n,):
            raise ValueError(f"Vector of shape {self.values.shape} does not match blocks {self.block_sizes}")

    def __len__(self):
        return len(self.values)

    @property
    def n_blocks(self):
        return len(self.block_sizes)

    def block(self, i):
        return self.values[self.offsets[i]:self.offsets[i+1]]

    def set_read_only(self):
        self.values.flags.writeable = False
        return self


class BlockSparseMatrix:
    """Sparse CSR matrix partitioned into blocks by contiguous row/column ranges."""

    def __init__(self, matrix, block_sizes):
        self.block_sizes = tuple(int(n) for n in block_sizes)
        self.offsets = _offsets(self.block_sizes)
        n = self.offsets[-1]
        if matrix.shape != (n, n):
            raise ValueError(f"Matrix of shape {matrix.shape} does not match blocks {self.block_sizes}")
        self.matrix = csr_matrix(matrix)

    @property
    def shape(self):
        return self.matrix.shape

    @property
    def nnz(self):
        return self.matrix.nnz

    def block(self, i, j):
        rows = slice(self.offsets[i], self.offsets[i+1])
        cols = slice(self.offsets[j], self.offsets[j+1])
        return self.matrix[rows, cols]
