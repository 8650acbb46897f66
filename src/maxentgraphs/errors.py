"""Exceptions and warnings raised by maxentgraphs."""

from __future__ import annotations


class MaxEntropyError(Exception):
    """Base class for all errors raised by the package."""


class ArgumentError(MaxEntropyError, ValueError):
    """Malformed or unsupported input (degree sequence, keyword, dtype...)."""


class DomainError(ArgumentError):
    """Degree sequence outside the domain where the model can be fitted."""


class DimensionMismatch(ArgumentError):
    """Two related inputs have incompatible lengths."""


class PreconditionError(MaxEntropyError, RuntimeError):
    """A derived quantity was requested before the model was fitted."""


class ConvergenceWarning(UserWarning):
    """The solver stopped at ``max_steps`` without reaching the tolerance.

    The last iterate is kept and remains usable as an approximate fit.
    """
