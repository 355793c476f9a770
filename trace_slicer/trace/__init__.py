"""
Debug trace model, call-frame matching and trace rebuilding.
"""

from .models import DebugTrace, StructLog, validate_depths
from .builder import build_trace
from .matcher import ChainCodeProvider, find_relevant_segment

__all__ = [
    "DebugTrace",
    "StructLog",
    "validate_depths",
    "build_trace",
    "ChainCodeProvider",
    "find_relevant_segment",
]
