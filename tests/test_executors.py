import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from web3 import Web3

from trace_slicer.bytecode.disassembler import Operation, disassemble
from trace_slicer.bytecode.opcodes import HALTING, STACK_EFFECTS, Opcode
from trace_slicer.exceptions import StackUnderflow
from trace_slicer.symbolic.executors import EXECUTORS, execute, execute_block
from trace_slicer.symbolic.state import MachineState
from trace_slicer.symbolic.word import DERIVED, UINT256_MAX, Concrete, Symbol, Symbolic


def run(bytecode, state=None):
    """Execute every instruction of `bytecode` in order on `state`."""
    state = state or MachineState()
    for op in disassemble(bytecode):
        execute(op, state)
    return state


def values(state):
    return [word.value if isinstance(word, Concrete) else word for word in state.stack]


def test_every_opcode_has_an_executor():
    assert set(EXECUTORS) == set(Opcode)


def test_push_and_add():
    state = run("6002600301")
    assert values(state) == [5]
    assert state.pc == 5


def test_sub_takes_top_of_stack_first():
    # PUSH1 1, PUSH1 2, SUB -> 2 - 1
    assert values(run("6001600203")) == [1]


def test_push0_and_truncated_push():
    assert values(run("5f")) == [0]
    assert values(run("61ff")) == [0xFF00]


def test_dup_and_swap():
    # PUSH1 1, PUSH1 2, DUP2, SWAP1
    assert values(run("600160028190")) == [1, 1, 2]


def test_codesize_pushes_symbolic_placeholder():
    state = run("38")
    assert state.stack == [Symbolic(Symbol.CODESIZE)]


@pytest.mark.parametrize(
    "code,symbol",
    [
        ("30", Symbol.ADDRESS),
        ("32", Symbol.ORIGIN),
        ("33", Symbol.CALLER),
        ("34", Symbol.CALLVALUE),
        ("36", Symbol.CALLDATASIZE),
        ("3a", Symbol.GASPRICE),
        ("3d", Symbol.RETURNDATASIZE),
        ("41", Symbol.COINBASE),
        ("42", Symbol.TIMESTAMP),
        ("43", Symbol.NUMBER),
        ("44", Symbol.PREVRANDAO),
        ("45", Symbol.GASLIMIT),
        ("46", Symbol.CHAINID),
        ("47", Symbol.SELFBALANCE),
        ("48", Symbol.BASEFEE),
        ("4a", Symbol.BLOBBASEFEE),
        ("5a", Symbol.GAS),
        ("600031", Symbol.BALANCE),
        ("600035", Symbol.CALLDATALOAD),
        ("60003b", Symbol.EXTCODESIZE),
        ("60003f", Symbol.EXTCODEHASH),
        ("600040", Symbol.BLOCKHASH),
        ("600049", Symbol.BLOBHASH),
    ],
)
def test_environment_queries_are_symbolic(code, symbol):
    assert run(code).stack == [Symbolic(symbol)]


def test_arithmetic_on_symbolic_operand_is_derived():
    # CALLER, PUSH1 1, ADD
    assert run("33600101").stack == [DERIVED]
    # CALLER, ISZERO
    assert run("3315").stack == [DERIVED]


def test_stack_underflow_leaves_state_untouched():
    state = MachineState(pc=7, stack=[Concrete(1)])
    with pytest.raises(StackUnderflow) as excinfo:
        execute(Operation(7, Opcode.ADD), state)
    assert excinfo.value.opcode == "ADD"
    assert excinfo.value.required == 2
    assert excinfo.value.available == 1
    assert state.stack == [Concrete(1)]
    assert state.pc == 7


@settings(max_examples=100, deadline=None)
@given(opcode=st.sampled_from([code for code in Opcode if STACK_EFFECTS[code][0] > 0]))
def test_any_opcode_on_empty_stack_underflows(opcode):
    state = MachineState()
    with pytest.raises(StackUnderflow):
        execute(Operation(0, opcode), state)
    assert state.stack == []
    assert state.pc == 0


@settings(max_examples=200, deadline=None)
@given(code=st.binary(max_size=64))
def test_random_code_only_raises_stack_underflow(code):
    state = MachineState()
    try:
        for op in disassemble(code.hex()):
            execute(op, state)
            if state.halted:
                break
    except StackUnderflow:
        pass


def test_undefined_instruction_halts():
    state = run("0c")
    assert state.halted
    assert state.reverted


def test_mstore_then_mload():
    state = run("602a600052600051")
    assert values(state) == [0x2A]
    state = run("59", state)
    assert values(state)[-1] == 32


def test_symbolic_word_survives_memory_round_trip():
    # CALLER, PUSH1 0, MSTORE, PUSH1 0, MLOAD
    assert run("336000526000 51".replace(" ", "")).stack == [Symbolic(Symbol.CALLER)]


def test_mstore8_writes_single_byte():
    assert values(run("60ff600053600051")) == [0xFF << 248]


def test_mstore_at_symbolic_offset_makes_msize_symbolic():
    # PUSH1 1, CALLER, MSTORE, MSIZE
    assert run("6001335259").stack == [Symbolic(Symbol.MSIZE)]


def test_sha3_of_concrete_memory():
    # PUSH1 0x20, PUSH1 0, SHA3 over 32 zero bytes
    state = run("6020600020")
    expected = int.from_bytes(Web3.keccak(b"\x00" * 32), "big")
    assert values(state) == [expected]
    assert expected == 0x290DECD9548B62A8D60345A988386FC84BA6BC95484008F6362F93160EF3E563


def test_sha3_over_copied_calldata_is_symbolic():
    # CALLDATACOPY(0, 0, 0x20), then SHA3(0, 0x20)
    assert run("602060006000376020600020").stack == [Symbolic(Symbol.SHA3)]


def test_mcopy_copies_known_bytes():
    # MSTORE(0, 7), MCOPY(0x20, 0, 0x20), MLOAD(0x20)
    assert values(run("6007600052602060006020" "5e" "602051")) == [7]


def test_sstore_then_sload():
    assert values(run("602a600155600154")) == [0x2A]
    assert run("600254").stack == [Symbolic(Symbol.SLOAD)]


def test_sstore_with_symbolic_key_forgets_storage():
    # PUSH1 0x2a, PUSH1 1, SSTORE, PUSH1 0x2b, CALLER, SSTORE, PUSH1 1, SLOAD
    assert run("602a600155602b3355600154").stack == [Symbolic(Symbol.SLOAD)]


def test_tstore_then_tload():
    assert values(run("602a60015d60015c")) == [0x2A]
    assert run("60015c").stack == [Symbolic(Symbol.TLOAD)]


def test_execute_block_stops_after_jump():
    # PUSH1 4, JUMP, STOP, JUMPDEST
    operations = disassemble("600456005b")
    initial = MachineState()
    state = execute_block(operations, initial)
    assert state.pc == 4
    assert state.jump_target == Concrete(4)
    assert state.jump_condition is None
    assert not state.halted
    assert initial.pc == 0 and initial.stack == []


def test_jumpi_with_symbolic_condition_falls_through():
    # CALLER, PUSH1 8, JUMPI
    state = execute_block(disassemble("33600857"), MachineState())
    assert state.pc == 4
    assert state.jump_target == Concrete(8)
    assert state.jump_condition == Symbolic(Symbol.CALLER)


def test_jumpi_with_concrete_condition():
    assert execute_block(disassemble("6001600857"), MachineState()).pc == 8
    assert execute_block(disassemble("6000600857"), MachineState()).pc == 5


def test_jump_to_symbolic_target_keeps_pc():
    state = execute_block(disassemble("3356"), MachineState())
    assert state.pc == 2
    assert state.jump_target == Symbolic(Symbol.CALLER)


def test_pc_pushes_own_offset():
    assert values(run("5b58")) == [1]


def test_call_marks_return_region_unknown():
    state = MachineState(
        stack=[
            Concrete(0x20),  # retSize
            Concrete(0),  # retOffset
            Concrete(0),  # argsSize
            Concrete(0),  # argsOffset
            Concrete(0),  # value
            Concrete(0xDEAD),  # address
            Concrete(50000),  # gas
        ]
    )
    state.memory.store_word(Concrete(0), Concrete(7))
    execute(Operation(0, Opcode.CALL), state)
    assert state.stack == [Symbolic(Symbol.CALL)]
    assert state.memory.load_word(Concrete(0)) == Symbolic(Symbol.MLOAD)


def test_staticcall_consumes_six_items():
    state = MachineState(stack=[Concrete(1)] + [Concrete(0)] * 6)
    execute(Operation(0, Opcode.STATICCALL), state)
    assert state.stack == [Concrete(1), Symbolic(Symbol.STATICCALL)]


def test_create2_pushes_placeholder():
    state = MachineState(stack=[Concrete(0)] * 4)
    execute(Operation(0, Opcode.CREATE2), state)
    assert state.stack == [Symbolic(Symbol.CREATE2)]


def test_log_records_topics():
    # LOG2 with offset 0, size 0, topics 1 and 2
    state = run("60026001600060 00a2".replace(" ", ""))
    assert len(state.logs) == 1
    record = state.logs[0]
    assert record.pc == 8
    assert record.topics == (Concrete(1), Concrete(2))


def test_return_and_revert_halt():
    state = run("60206000f3")
    assert state.halted and not state.reverted
    assert state.return_region == (Concrete(0), Concrete(0x20))
    state = run("60006000fd")
    assert state.halted and state.reverted


def test_execute_block_stops_at_halt():
    state = execute_block(disassemble("00600160"), MachineState())
    assert state.halted
    assert state.stack == []


def test_signed_arithmetic_through_executors():
    # PUSH1 2, PUSH32 -4, SDIV -> -2
    code = "6002" + "7f" + (UINT256_MAX - 3).to_bytes(32, "big").hex() + "05"
    assert values(run(code)) == [UINT256_MAX - 1]


@pytest.mark.parametrize("opcode", sorted(HALTING))
def test_halting_opcodes_halt(opcode):
    state = MachineState(stack=[Concrete(0)] * 2)
    execute(Operation(0, opcode), state)
    assert state.halted
