"""
matrices.py

══════════
Expected adjacency and standard-deviation matrices from fitted parameters.

Every entry depends only on its own node pair, so the kernels run the upper
triangle in parallel with numba and mirror each value into the lower one.
Pairs involving a pinned node (see ``reduction.pin_degenerate_classes``)
are decided by the node pinned first: probability 1 if it is full, 0 if it
is empty, with zero variance in both cases.
"""

from __future__ import annotations

import numpy as np
from numba import njit, prange
from scipy.special import expit

from .reduction import ACTIVE


def expand_parameters(x_r: np.ndarray, node_to_class: np.ndarray) -> np.ndarray:
    """Per-node values ``x_i = x_r[node_to_class[i]]``."""
    return np.asarray(x_r)[np.asarray(node_to_class)]


@njit(parallel=True)
def _expected_matrix_numba(x, order, out):
    n = x.size
    for i in prange(n):
        for j in range(i + 1, n):
            o = min(order[i], order[j])
            if o == ACTIVE:
                xx = x[i] * x[j]
                p = xx / (1.0 + xx)
            else:
                p = float(o % 2)
            out[i, j] = p
            out[j, i] = p
    return out


@njit(parallel=True)
def _std_matrix_numba(x, order, out):
    n = x.size
    for i in prange(n):
        for j in range(i + 1, n):
            if min(order[i], order[j]) == ACTIVE:
                xx = x[i] * x[j]
                s = np.sqrt(xx) / (1.0 + xx)
            else:
                s = 0.0
            out[i, j] = s
            out[j, i] = s
    return out


def expected_matrix_from_fitnesses(x, order, dtype=np.float64):
    """
    Return the n x n matrix of link probabilities

        p_ij = x_i x_j / (1 + x_i x_j),   p_ii = 0.

    Parameters
    ----------
    x : ndarray      per-node parameters, x = exp(-theta)
    order : ndarray  per-node order keys of the degree classes
    dtype :          floating type of the returned matrix
    """
    x = np.ascontiguousarray(x, dtype=dtype)
    order = np.ascontiguousarray(order, dtype=np.int64)
    out = np.zeros((x.size, x.size), dtype=dtype)
    return _expected_matrix_numba(x, order, out)


def std_matrix_from_fitnesses(x, order, dtype=np.float64):
    """
    Return the n x n matrix of Bernoulli standard deviations

        sigma_ij = sqrt(x_i x_j) / (1 + x_i x_j),   sigma_ii = 0,

    i.e. sqrt(p_ij (1 - p_ij)).
    """
    x = np.ascontiguousarray(x, dtype=dtype)
    order = np.ascontiguousarray(order, dtype=np.int64)
    out = np.zeros((x.size, x.size), dtype=dtype)
    return _std_matrix_numba(x, order, out)


def class_probability_matrix(theta_r, order):
    """Link probability between two nodes of classes k and k' (m x m).

    The diagonal holds the probability between two distinct nodes of the
    same class.
    """
    theta_r = np.asarray(theta_r, dtype=np.float64)
    order = np.asarray(order, dtype=np.int64)
    first = np.minimum.outer(order, order)
    active = first == ACTIVE

    p = (first % 2).astype(np.float64)
    theta_r = np.where(np.isfinite(theta_r), theta_r, 0.0)
    t = -theta_r[:, None] - theta_r[None, :]
    p[active] = expit(t[active])
    return p
