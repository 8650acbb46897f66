"""
sampling.py

══════════
Independent-edge realizations of a fitted null model.
"""

from __future__ import annotations

import numpy as np
from tqdm.auto import tqdm


def _as_generator(rng) -> np.random.Generator:
    if isinstance(rng, np.random.Generator):
        return rng
    return np.random.default_rng(rng)


def sample_adjacency(P: np.ndarray, rng=None) -> np.ndarray:
    """
    Draw one undirected binary graph from a probability matrix.

    Every unordered pair i<j is linked independently with probability
    ``P[i, j]``; the diagonal is ignored (no self-loops).

    Parameters
    ----------
    P : ndarray      symmetric n x n matrix of link probabilities
    rng :            None, an int seed or a ``numpy.random.Generator``

    Returns
    -------
    ndarray[uint8]  symmetric adjacency matrix with zero diagonal
    """
    P = np.asarray(P)
    rng = _as_generator(rng)
    n = P.shape[0]

    A = np.triu(rng.random((n, n)) < P, k=1).astype(np.uint8)
    return A + A.T


def sample_ensemble(P: np.ndarray, n_samples: int, rng=None, progress: bool = False):
    """Yield ``n_samples`` independent realizations of ``P``."""
    rng = _as_generator(rng)
    for _ in tqdm(range(int(n_samples)), disable=not progress, desc="Sampling"):
        yield sample_adjacency(P, rng)
