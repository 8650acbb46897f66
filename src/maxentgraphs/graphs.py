"""
graphs.py

══════════
Extraction of the degree sequence from graph-like inputs.

The models only need the number of nodes and the degree of each node. They
can be given directly as a degree sequence, as a (dense or sparse) adjacency
matrix, or as any object exposing a ``degree_sequence()`` method.
"""

from __future__ import annotations

import warnings

import numpy as np
import scipy.sparse

from .errors import ArgumentError


def _degrees_from_sparse(adjacency) -> np.ndarray:
    a = scipy.sparse.csr_array(adjacency)
    if a.shape[0] != a.shape[1]:
        raise ArgumentError("The adjacency matrix must be square, got shape {}.".format(a.shape))
    a.eliminate_zeros()

    data = a.data
    if np.any(data != 1):
        warnings.warn("Your matrix is weighted. It is treated as a binary matrix.", UserWarning)
        a = (a != 0).astype(np.int8)
    if a.diagonal().any():
        warnings.warn("Self-loops are discarded.", UserWarning)
        a = scipy.sparse.csr_array(scipy.sparse.triu(a, k=1) + scipy.sparse.tril(a, k=-1))
    if (a != a.T).nnz > 0:
        warnings.warn("Your matrix is directed. Link directions are discarded.", UserWarning)
        a = ((a + a.T) != 0).astype(np.int8)
    return np.asarray(a.sum(axis=1)).reshape(-1).astype(np.int64)


def _degrees_from_dense(adjacency) -> np.ndarray:
    a = np.asarray(adjacency)
    if a.shape[0] != a.shape[1]:
        raise ArgumentError("The adjacency matrix must be square, got shape {}.".format(a.shape))

    continuous_weights = not np.all(np.equal(np.mod(a, 1), 0))
    if continuous_weights or np.any((a != 0) & (a != 1)):
        warnings.warn("Your matrix is weighted. It is treated as a binary matrix.", UserWarning)
    a = (a != 0).astype(np.int8)
    if np.any(np.diag(a)):
        warnings.warn("Self-loops are discarded.", UserWarning)
        np.fill_diagonal(a, 0)
    if np.any(a != a.T):
        warnings.warn("Your matrix is directed. Link directions are discarded.", UserWarning)
        a = ((a + a.T) != 0).astype(np.int8)
    return a.sum(axis=1).astype(np.int64)


def degree_sequence_from(data) -> np.ndarray:
    """
    Return the degree sequence of a graph-like input.

    :param data: degree sequence (1-D), square adjacency matrix (2-D numpy
        array, list of lists or scipy sparse matrix) or an object with a
        ``degree_sequence()`` method.
    :return: degree sequence, one entry per node.
    :rtype: numpy.ndarray
    """
    if hasattr(data, "degree_sequence") and callable(data.degree_sequence):
        return np.asarray(data.degree_sequence())
    if scipy.sparse.issparse(data):
        return _degrees_from_sparse(data)

    a = np.asarray(data)
    if a.ndim == 2:
        return _degrees_from_dense(a)
    if a.ndim == 1:
        return a
    raise ArgumentError("Cannot extract a degree sequence from an input with {} dimensions.".format(a.ndim))
