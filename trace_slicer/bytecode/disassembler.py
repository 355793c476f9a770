"""
Decode hex bytecode into Operation records for the executor set.
"""

from dataclasses import dataclass
from typing import List, Optional

from .metadata import remove_metadata
from .opcodes import OPCODE_NAMES, PUSH_BYTES, Opcode


@dataclass(frozen=True)
class Operation:
    """A single decoded instruction."""

    offset: int
    value: int
    argument: Optional[bytes] = None

    @property
    def opcode(self) -> Optional[Opcode]:
        """The Opcode member, or None for a byte outside the instruction set."""
        if self.value in OPCODE_NAMES:
            return Opcode(self.value)
        return None

    @property
    def name(self) -> str:
        return OPCODE_NAMES.get(self.value, f"UNKNOWN_{self.value:02x}")

    @property
    def size(self) -> int:
        """Encoded size in bytes, including the full PUSH immediate."""
        return 1 + PUSH_BYTES.get(self.value, 0)

    @property
    def next_offset(self) -> int:
        return self.offset + self.size

    def __str__(self) -> str:
        if self.argument:
            return f"{self.offset:#06x} {self.name} 0x{self.argument.hex()}"
        return f"{self.offset:#06x} {self.name}"


def disassemble(bytecode: str, strip_metadata: bool = False) -> List[Operation]:
    """
    Disassemble EVM bytecode into a list of operations.

    Args:
        bytecode: Hexadecimal string representing the bytecode
        strip_metadata: Drop the trailing compiler metadata blob first

    Returns:
        List of Operation in code order
    """
    if strip_metadata:
        bytecode = remove_metadata(bytecode)
    if bytecode.startswith("0x") or bytecode.startswith("0X"):
        bytecode = bytecode[2:]
    if len(bytecode) % 2:
        bytecode = bytecode[:-1]

    bytecode_bytes = bytes.fromhex(bytecode)
    operations = []
    i = 0

    while i < len(bytecode_bytes):
        opcode_value = bytecode_bytes[i]
        offset = i
        i += 1

        # Handle PUSH operations; data running past the end is kept truncated
        push_data = None
        push_bytes = PUSH_BYTES.get(opcode_value, 0)
        if push_bytes:
            push_data = bytecode_bytes[i : i + push_bytes]
            i += push_bytes

        operations.append(Operation(offset, opcode_value, push_data))

    return operations
