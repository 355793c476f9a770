"""
Abstract interpretation primitives: symbolic words, machine state and
per-opcode executors.
"""

from .word import (
    Concrete,
    Symbol,
    Symbolic,
    Word,
    concrete_value,
    is_concrete,
    word_from_hex,
)
from .state import LogRecord, MachineState, Memory, Storage
from .executors import EXECUTORS, execute, execute_block

__all__ = [
    "Concrete",
    "Symbol",
    "Symbolic",
    "Word",
    "concrete_value",
    "is_concrete",
    "word_from_hex",
    "LogRecord",
    "MachineState",
    "Memory",
    "Storage",
    "EXECUTORS",
    "execute",
    "execute_block",
]
