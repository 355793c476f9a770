"""
Slice an EVM debug trace down to the steps executed by one contract.
"""

# Bytecode
from .bytecode import Opcode, Operation, disassemble, normalize, remove_metadata, same_code

# Symbolic execution
from .symbolic import Concrete, MachineState, Symbol, Symbolic, Word, execute, execute_block

# Traces
from .trace import ChainCodeProvider, DebugTrace, StructLog, build_trace, find_relevant_segment

# Errors
from .exceptions import (
    MalformedTrace,
    NoMatchingBytecode,
    StackUnderflow,
    TraceRequestError,
    TraceSlicerError,
    TransactionNotFound,
)

__all__ = [
    # Bytecode
    "Opcode",
    "Operation",
    "disassemble",
    "normalize",
    "remove_metadata",
    "same_code",
    # Symbolic
    "Concrete",
    "MachineState",
    "Symbol",
    "Symbolic",
    "Word",
    "execute",
    "execute_block",
    # Traces
    "ChainCodeProvider",
    "DebugTrace",
    "StructLog",
    "build_trace",
    "find_relevant_segment",
    # Errors
    "MalformedTrace",
    "NoMatchingBytecode",
    "StackUnderflow",
    "TraceRequestError",
    "TraceSlicerError",
    "TransactionNotFound",
]
