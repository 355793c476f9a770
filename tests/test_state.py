import pytest

from trace_slicer.exceptions import StackUnderflow
from trace_slicer.symbolic.state import MAX_TRACKED_MEMORY, STACK_OPERATION, MachineState, Memory, Storage
from trace_slicer.symbolic.word import Concrete, Symbol, Symbolic


def test_stack_operations():
    state = MachineState()
    state.push(Concrete(1))
    state.push(Concrete(2))
    state.push(Concrete(3))
    assert state.peek() == Concrete(3)
    assert state.peek(2) == Concrete(1)
    state.dup(3)
    assert state.stack[-1] == Concrete(1)
    state.swap(1)
    assert state.stack == [Concrete(1), Concrete(2), Concrete(1), Concrete(3)]
    assert state.pop_many(2) == [Concrete(3), Concrete(1)]


def test_pop_on_empty_stack_raises():
    state = MachineState()
    with pytest.raises(StackUnderflow) as excinfo:
        state.pop()
    assert excinfo.value.available == 0


def test_require_reports_counts():
    state = MachineState(stack=[Concrete(1)])
    with pytest.raises(StackUnderflow) as excinfo:
        state.require(3, "ADDMOD")
    assert excinfo.value.opcode == "ADDMOD"
    assert excinfo.value.required == 3
    assert excinfo.value.available == 1
    assert "ADDMOD" in str(excinfo.value)


def test_clone_is_independent():
    state = MachineState(stack=[Concrete(1)], storage={1: Concrete(5)})
    state.memory.store_word(Concrete(0), Concrete(9))
    copy = state.clone()
    copy.push(Concrete(2))
    copy.memory.store_word(Concrete(0), Concrete(10))
    copy.storage.store(Concrete(1), Concrete(6))
    assert state.stack == [Concrete(1)]
    assert state.memory.load_word(Concrete(0)) == Concrete(9)
    assert state.storage.load(Concrete(1)) == Concrete(5)


def test_memory_grows_in_words():
    memory = Memory()
    memory.store_byte(Concrete(40), Concrete(0xAB))
    assert len(memory) == 64
    assert memory.size() == Concrete(64)
    assert memory.load_bytes(40, 1) == b"\xab"


def test_memory_unknown_bytes_make_loads_symbolic():
    memory = Memory()
    memory.store_word(Concrete(0), Concrete(1))
    memory.mark_unknown(Concrete(16), Concrete(4))
    assert memory.load_word(Concrete(0)) == Symbolic(Symbol.MLOAD)
    assert memory.load_bytes(0, 16) == bytes(16)
    assert memory.load_bytes(0, 17) is None


def test_memory_keeps_symbolic_word_at_exact_offset():
    memory = Memory()
    memory.store_word(Concrete(32), Symbolic(Symbol.CALLER))
    assert memory.load_word(Concrete(32)) == Symbolic(Symbol.CALLER)
    assert memory.load_word(Concrete(16)) == Symbolic(Symbol.MLOAD)
    # Overwriting part of the word forgets it
    memory.store_byte(Concrete(40), Concrete(0))
    assert memory.load_word(Concrete(32)) == Symbolic(Symbol.MLOAD)


def test_memory_symbolic_offset_clobbers():
    memory = Memory()
    memory.store_word(Concrete(0), Concrete(1))
    memory.store_word(Symbolic(Symbol.CALLDATALOAD), Concrete(2))
    assert memory.clobbered
    assert memory.load_word(Concrete(0)) == Symbolic(Symbol.MLOAD)
    assert memory.size() == Symbolic(Symbol.MSIZE)


def test_memory_write_past_tracked_limit_clobbers():
    memory = Memory()
    memory.store_word(Concrete(MAX_TRACKED_MEMORY), Concrete(1))
    assert memory.clobbered
    assert len(memory) == 0


def test_storage_load_and_store():
    storage = Storage()
    assert storage.load(Concrete(1)) == Symbolic(Symbol.SLOAD)
    storage.store(Concrete(1), Concrete(7))
    assert storage.load(Concrete(1)) == Concrete(7)
    storage.store(Symbolic(Symbol.CALLER), Concrete(8))
    assert storage.load(Concrete(1)) == Symbolic(Symbol.SLOAD)


def test_transient_storage_uses_own_symbol():
    state = MachineState()
    assert state.transient.load(Concrete(0)) == Symbolic(Symbol.TLOAD)


def test_halt_and_repr():
    state = MachineState(pc=4, stack=[Concrete(1), Symbolic(Symbol.GAS)])
    state.halt(reverted=True)
    assert state.halted and state.reverted
    assert repr(state) == "MachineState(pc=0x4, stack=[0x1, <GAS>], halted=True)"


def test_stack_helpers_report_the_caller_label():
    state = MachineState()
    with pytest.raises(StackUnderflow) as excinfo:
        state.pop()
    assert excinfo.value.opcode == STACK_OPERATION
    with pytest.raises(StackUnderflow) as excinfo:
        state.pop_many(2, "MSTORE")
    assert excinfo.value.opcode == "MSTORE"
    with pytest.raises(StackUnderflow) as excinfo:
        state.peek(0, "JUMP")
    assert excinfo.value.opcode == "JUMP"


def test_dup_underflow_names_the_dup():
    state = MachineState(stack=[Concrete(1)])
    with pytest.raises(StackUnderflow) as excinfo:
        state.dup(3)
    assert excinfo.value.opcode == "DUP3"
    assert excinfo.value.required == 3
    assert state.stack == [Concrete(1)]
