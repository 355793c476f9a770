"""
Bytecode vocabulary: opcodes, disassembly and metadata normalization.
"""

from .opcodes import (
    CALL_FAMILY,
    HALTING,
    OPCODE_NAMES,
    STACK_EFFECTS,
    Opcode,
    get_stack_effect,
    is_call,
    lookup_opcode,
)
from .disassembler import Operation, disassemble
from .metadata import (
    comparable_code,
    is_empty_code,
    is_metadata_blob,
    normalize,
    remove_metadata,
    same_code,
)

__all__ = [
    "CALL_FAMILY",
    "HALTING",
    "OPCODE_NAMES",
    "STACK_EFFECTS",
    "Opcode",
    "get_stack_effect",
    "is_call",
    "lookup_opcode",
    "Operation",
    "disassemble",
    "comparable_code",
    "is_empty_code",
    "is_metadata_blob",
    "normalize",
    "remove_metadata",
    "same_code",
]
