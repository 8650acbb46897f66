"""Capabilities shared by every maximum-entropy model variant."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class MaxEntropyModel(Protocol):
    """A maximum-entropy null model fitted on structural constraints.

    A new variant (directed, weighted...) implements the same methods; it is
    registered in ``maxentgraphs.models.MODELS`` rather than subclassing an
    existing model.
    """

    name: str

    @property
    def degree_sequence(self) -> np.ndarray: ...

    def solve_tool(self, method=None, initial_guess=None, **kwargs): ...

    def loglikelihood(self) -> float: ...

    def gradient(self) -> np.ndarray: ...

    def expected_matrix(self) -> np.ndarray: ...

    def variance_matrix(self) -> np.ndarray: ...

    def sample(self, rng=None) -> np.ndarray: ...
