"""Undirected Binary Configuration Model."""

from .UBCM import UBCM, FitState

__all__ = ["UBCM", "FitState"]
