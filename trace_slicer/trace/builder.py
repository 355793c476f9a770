from dataclasses import replace
from typing import Iterable

from .models import DebugTrace, StructLog


def build_trace(original: DebugTrace, selected_logs: Iterable[StructLog]) -> DebugTrace:
    """Copy of `original` whose struct logs are `selected_logs`, everything else kept."""
    return replace(original, struct_logs=tuple(selected_logs))
