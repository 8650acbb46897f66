"""
reduction.py

══════════
Lossless compression of a degree sequence into degree classes.

Nodes sharing the same degree share the same maximum-likelihood parameter,
so the fit only needs one unknown per *distinct* degree. This module groups
the sequence into classes (unique degrees and their multiplicities), keeps
the index maps needed to go back to nodes, and pins the classes whose
parameter sits on the boundary of the domain (nodes of degree zero and
nodes linked to every other node).
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .errors import ArgumentError, DomainError

# Sentinel of ``DegreeReduction.order`` for classes left to the solver.
ACTIVE = 2 ** 62


def _readonly(a: np.ndarray) -> np.ndarray:
    a = np.array(a, copy=True)
    a.flags.writeable = False
    return a


@dataclass(frozen=True)
class DegreeReduction:
    """Immutable degree classes of a degree sequence.

    Attributes
    ----------
    degrees:
        Original degree sequence, one entry per node.
    reduced_degrees:
        Distinct degrees, strictly increasing.
    multiplicities:
        Number of nodes in each class.
    node_to_class:
        For each node, the index of its class in ``reduced_degrees``.
    class_to_node:
        One representative node per class.
    residual_degrees:
        Degrees left to reproduce once pinned classes are removed; only
        meaningful for active classes.
    order:
        ``2*stage + kind`` for pinned classes (kind 0 = empty, 1 = full),
        ``ACTIVE`` otherwise.
    """

    degrees: np.ndarray
    reduced_degrees: np.ndarray
    multiplicities: np.ndarray
    node_to_class: np.ndarray
    class_to_node: np.ndarray
    residual_degrees: np.ndarray
    order: np.ndarray

    @property
    def n_nodes(self) -> int:
        return int(self.degrees.size)

    @property
    def n_classes(self) -> int:
        return int(self.reduced_degrees.size)

    @property
    def n_edges(self) -> float:
        return float(self.degrees.sum()) / 2.0

    @property
    def compression_ratio(self) -> float:
        return self.n_classes / self.n_nodes

    @property
    def active(self) -> np.ndarray:
        return self.order == ACTIVE

    @property
    def empty(self) -> np.ndarray:
        return (self.order != ACTIVE) & (self.order % 2 == 0)

    @property
    def full(self) -> np.ndarray:
        return (self.order != ACTIVE) & (self.order % 2 == 1)

    def class_members(self, k: int) -> np.ndarray:
        """Return all nodes whose degree equals ``reduced_degrees[k]``."""
        return np.flatnonzero(self.node_to_class == k)


def _check_sequence(degrees) -> np.ndarray:
    d = np.asarray(degrees)
    if d.ndim != 1:
        raise ArgumentError("The degree sequence must be one-dimensional.")
    if d.size < 2:
        raise ArgumentError(
            "The degree sequence must contain at least two nodes, got {}.".format(d.size))
    if d.dtype == bool or not np.issubdtype(d.dtype, np.number):
        raise ArgumentError("The degree sequence must be numeric.")
    if not np.all(np.isfinite(d)) or not np.all(np.equal(np.mod(d, 1), 0)):
        raise ArgumentError("Degrees must be integers.")
    d = d.astype(np.int64)
    if np.any(d < 0):
        raise ArgumentError("Degrees must be non-negative.")
    if d.max() >= d.size:
        raise DomainError(
            "Maximum degree {} is not smaller than the number of nodes {}.".format(d.max(), d.size))
    return d


def pin_degenerate_classes(reduced_degrees, multiplicities):
    """Pin empty and fully connected classes, peeling them stage by stage.

    At each stage classes with no residual degree are pinned as empty, then
    the classes linked to every remaining node are pinned as full and
    their links are removed from the residual degree of the others.

    :param reduced_degrees: distinct degrees.
    :type reduced_degrees: numpy.ndarray
    :param multiplicities: number of nodes per class.
    :type multiplicities: numpy.ndarray
    :return: residual degrees and order keys, one per class.
    :rtype: (numpy.ndarray, numpy.ndarray)
    """
    residual = np.array(reduced_degrees, dtype=np.int64, copy=True)
    mult = np.asarray(multiplicities, dtype=np.int64)
    order = np.full(residual.size, ACTIVE, dtype=np.int64)

    stage = 0
    while True:
        empty = (order == ACTIVE) & (residual == 0)
        order[empty] = 2 * stage

        remaining = order == ACTIVE
        n_remaining = int(mult[remaining].sum())
        full = remaining & (residual == n_remaining - 1)
        if full.any():
            order[full] = 2 * stage + 1
            remaining = order == ACTIVE
            residual[remaining] -= int(mult[full].sum())
            if np.any(residual[remaining] < 0):
                raise DomainError("The degree sequence cannot be reproduced by any probability matrix.")

        if not empty.any() and not full.any():
            break
        stage += 1

    remaining = order == ACTIVE
    if np.any(residual[remaining] > mult[remaining].sum() - 1):
        raise DomainError("The degree sequence cannot be reproduced by any probability matrix.")

    return residual, order


def reduce_degrees(degrees) -> DegreeReduction:
    """Reduce a degree sequence to its distinct values and multiplicities.

    >>> r = reduce_degrees([4, 3, 3, 3, 2])
    >>> r.reduced_degrees.tolist(), r.multiplicities.tolist()
    ([2, 3, 4], [1, 3, 1])
    """
    d = _check_sequence(degrees)
    r_deg, r_ind, r_inv, mult = np.unique(d, return_index=True, return_inverse=True, return_counts=True)
    residual, order = pin_degenerate_classes(r_deg, mult)

    return DegreeReduction(
        degrees=_readonly(d),
        reduced_degrees=_readonly(r_deg),
        multiplicities=_readonly(mult),
        node_to_class=_readonly(r_inv.reshape(-1)),
        class_to_node=_readonly(r_ind),
        residual_degrees=_readonly(residual),
        order=_readonly(order),
    )
