"""
Abstract machine state for the opcode executor set.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..exceptions import StackUnderflow
from .word import Concrete, Symbol, Symbolic, Word, concrete_value

# Writes beyond this offset are not materialized; the memory is clobbered instead
MAX_TRACKED_MEMORY = 1 << 20

# Label used in StackUnderflow when a helper is called outside an opcode
STACK_OPERATION = "stack operation"


class Memory:
    """
    Byte-addressed memory that remembers which bytes are unknown.

    Symbolic words stored with MSTORE are kept at their exact offset so that a
    matching MLOAD returns the same placeholder. Any other read touching an
    unknown byte yields Symbolic(MLOAD).
    """

    def __init__(self):
        self._data = bytearray()
        self._unknown = bytearray()
        self._words: Dict[int, Symbolic] = {}
        self.clobbered = False

    def clone(self) -> "Memory":
        new_memory = Memory()
        new_memory._data = bytearray(self._data)
        new_memory._unknown = bytearray(self._unknown)
        new_memory._words = dict(self._words)
        new_memory.clobbered = self.clobbered
        return new_memory

    def __len__(self) -> int:
        return len(self._data)

    def _expand(self, offset: int, size: int) -> bool:
        if size == 0:
            return True
        end = offset + size
        if end > MAX_TRACKED_MEMORY:
            self.clobbered = True
            return False
        if end > len(self._data):
            # Memory grows in 32-byte words
            new_size = (end + 31) // 32 * 32
            grow = new_size - len(self._data)
            self._data.extend(bytes(grow))
            self._unknown.extend(bytes(grow))
        return True

    def _forget_words(self, offset: int, size: int) -> None:
        end = offset + size
        for start in [k for k in self._words if k < end and offset < k + 32]:
            del self._words[start]

    def touch(self, offset: Word, size: Word) -> None:
        """Expand memory the way a read of [offset, offset+size) would."""
        start, length = concrete_value(offset), concrete_value(size)
        if start is None or length is None:
            self.clobbered = True
            return
        self._expand(start, length)

    def store_word(self, offset: Word, value: Word) -> None:
        start = concrete_value(offset)
        if start is None or not self._expand(start, 32):
            self.clobbered = True
            return
        self._forget_words(start, 32)
        if isinstance(value, Concrete):
            self._data[start : start + 32] = value.to_bytes()
            self._unknown[start : start + 32] = bytes(32)
        else:
            self._unknown[start : start + 32] = b"\x01" * 32
            self._words[start] = value

    def store_byte(self, offset: Word, value: Word) -> None:
        start = concrete_value(offset)
        if start is None or not self._expand(start, 1):
            self.clobbered = True
            return
        self._forget_words(start, 1)
        if isinstance(value, Concrete):
            self._data[start] = value.value & 0xFF
            self._unknown[start] = 0
        else:
            self._unknown[start] = 1

    def store_bytes(self, offset: int, data: bytes) -> None:
        if not self._expand(offset, len(data)):
            return
        self._forget_words(offset, len(data))
        end = offset + len(data)
        self._data[offset:end] = data
        self._unknown[offset:end] = bytes(len(data))

    def mark_unknown(self, offset: Word, size: Word) -> None:
        """Record that [offset, offset+size) now holds data from outside the pass."""
        start, length = concrete_value(offset), concrete_value(size)
        if start is None or length is None:
            self.clobbered = True
            return
        if length == 0 or not self._expand(start, length):
            return
        self._forget_words(start, length)
        self._unknown[start : start + length] = b"\x01" * length

    def load_word(self, offset: Word) -> Word:
        start = concrete_value(offset)
        if start is None or self.clobbered:
            return Symbolic(Symbol.MLOAD)
        if start in self._words:
            return self._words[start]
        data = self.load_bytes(start, 32)
        if data is None:
            return Symbolic(Symbol.MLOAD)
        return Concrete(int.from_bytes(data, "big"))

    def load_bytes(self, offset: int, size: int) -> Optional[bytes]:
        """Concrete contents of a region, or None if any byte is unknown."""
        if self.clobbered or not self._expand(offset, size):
            return None
        end = offset + size
        if 1 in self._unknown[offset:end]:
            return None
        return bytes(self._data[offset:end])

    def size(self) -> Word:
        if self.clobbered:
            return Symbolic(Symbol.MSIZE)
        return Concrete(len(self._data))


class Storage:
    """Key/value store for SLOAD/SSTORE (or TLOAD/TSTORE) with concrete keys."""

    def __init__(self, unknown: Symbol = Symbol.SLOAD, slots: Optional[Dict[int, Word]] = None):
        self.unknown = unknown
        self.slots: Dict[int, Word] = dict(slots) if slots else {}
        self.clobbered = False

    def clone(self) -> "Storage":
        new_storage = Storage(self.unknown, self.slots)
        new_storage.clobbered = self.clobbered
        return new_storage

    def load(self, key: Word) -> Word:
        slot = concrete_value(key)
        if slot is None or self.clobbered or slot not in self.slots:
            return Symbolic(self.unknown)
        return self.slots[slot]

    def store(self, key: Word, value: Word) -> None:
        slot = concrete_value(key)
        if slot is None:
            self.clobbered = True
            return
        self.slots[slot] = value


@dataclass(frozen=True)
class LogRecord:
    """A LOG0..LOG4 emitted during the pass."""

    pc: int
    offset: Word
    size: Word
    topics: Tuple[Word, ...]


class MachineState:
    """Represents the state during symbolic execution (stack, memory, storage)."""

    def __init__(self, pc: int = 0, stack: Optional[List[Word]] = None,
                 storage: Optional[Dict[int, Word]] = None):
        self.pc = pc
        self.stack: List[Word] = list(stack) if stack else []
        self.memory = Memory()
        self.storage = Storage(Symbol.SLOAD, storage)
        self.transient = Storage(Symbol.TLOAD)
        self.halted = False
        self.reverted = False
        self.jump_target: Optional[Word] = None
        self.jump_condition: Optional[Word] = None
        self.return_region: Optional[Tuple[Word, Word]] = None
        self.logs: List[LogRecord] = []

    def clone(self) -> "MachineState":
        """Create a copy that shares no mutable state with this one."""
        new_state = MachineState(self.pc, self.stack)
        new_state.memory = self.memory.clone()
        new_state.storage = self.storage.clone()
        new_state.transient = self.transient.clone()
        new_state.halted = self.halted
        new_state.reverted = self.reverted
        new_state.jump_target = self.jump_target
        new_state.jump_condition = self.jump_condition
        new_state.return_region = self.return_region
        new_state.logs = list(self.logs)
        return new_state

    def require(self, count: int, opcode: str) -> None:
        """Raise StackUnderflow unless at least `count` items are on the stack."""
        if len(self.stack) < count:
            raise StackUnderflow(opcode, count, len(self.stack))

    def push(self, value: Word) -> None:
        self.stack.append(value)

    def pop(self, opcode: str = STACK_OPERATION) -> Word:
        if not self.stack:
            raise StackUnderflow(opcode, 1, 0)
        return self.stack.pop()

    def pop_many(self, count: int, opcode: str = STACK_OPERATION) -> List[Word]:
        """Pop `count` words, top of stack first."""
        self.require(count, opcode)
        return [self.stack.pop() for _ in range(count)]

    def peek(self, index: int = 0, opcode: str = STACK_OPERATION) -> Word:
        """Access stack item without popping (0 is top)."""
        if index >= len(self.stack):
            raise StackUnderflow(opcode, index + 1, len(self.stack))
        return self.stack[-(index + 1)]

    def dup(self, position: int) -> None:
        self.push(self.peek(position - 1, f"DUP{position}"))

    def swap(self, position: int) -> None:
        self.require(position + 1, f"SWAP{position}")
        self.stack[-1], self.stack[-(position + 1)] = self.stack[-(position + 1)], self.stack[-1]

    def halt(self, reverted: bool = False) -> None:
        self.halted = True
        self.reverted = reverted

    def __repr__(self) -> str:
        stack = ", ".join(str(word) for word in self.stack)
        return f"MachineState(pc={self.pc:#x}, stack=[{stack}], halted={self.halted})"
