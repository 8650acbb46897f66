"""Model variants shipped with maxentgraphs."""

from .base import MaxEntropyModel
from .UBCM import UBCM

MODELS = {
    "UBCM": UBCM,
}

__all__ = ["MaxEntropyModel", "MODELS", "UBCM"]
