"""maxentgraphs

maxentgraphs fits maximum-entropy null models of undirected binary graphs:
given the observed degree sequence, it finds the least-informative
distribution over graphs reproducing it in expectation and returns the
fitted parameters, the expected adjacency matrix, the standard deviation of
each entry and random realizations of the ensemble.

The public API is intentionally small:

- `build`, `fit`, `expected_matrix`, `variance_matrix`, `sample`
- `ubcm_solver`, `probability_matrix_from_ubcm`
- `UBCM` and `reduce_degrees` for finer control
"""

from .api import (
    build,
    expected_matrix,
    fit,
    probability_matrix_from_ubcm,
    sample,
    ubcm_solver,
    variance_matrix,
)
from .errors import (
    ArgumentError,
    ConvergenceWarning,
    DimensionMismatch,
    DomainError,
    MaxEntropyError,
    PreconditionError,
)
from .models import MODELS, MaxEntropyModel, UBCM
from .reduction import DegreeReduction, reduce_degrees

__all__ = [
    "build",
    "fit",
    "expected_matrix",
    "variance_matrix",
    "sample",
    "ubcm_solver",
    "probability_matrix_from_ubcm",
    "UBCM",
    "MODELS",
    "MaxEntropyModel",
    "DegreeReduction",
    "reduce_degrees",
    "MaxEntropyError",
    "ArgumentError",
    "DomainError",
    "DimensionMismatch",
    "PreconditionError",
    "ConvergenceWarning",
]

__version__ = "0.1.0"
