"""
One state transition per EVM opcode.

Every executor takes the decoded Operation and the MachineState it mutates.
Opcodes that need information only a live chain has (caller, code size, block
data, balances, sub-call results) push a Symbolic word naming that query, so an
analysis pass can keep going where the true value is unknowable.

`execute` checks the opcode's stack requirement before touching the state, so
a StackUnderflow leaves the state exactly as it was.
"""

from typing import Callable, Dict, List

from web3 import Web3

from ..bytecode.disassembler import Operation
from ..bytecode.opcodes import STACK_EFFECTS, Opcode
from . import evm_ops
from .state import LogRecord, MachineState
from .word import DERIVED, Concrete, Symbol, Symbolic, Word, concrete_value

Executor = Callable[[Operation, MachineState], None]


# --- Helpers ---

def _push_symbol(symbol: Symbol) -> Executor:
    def executor(op: Operation, state: MachineState) -> None:
        state.push(Symbolic(symbol))
    return executor


def _pop_push_symbol(symbol: Symbol) -> Executor:
    def executor(op: Operation, state: MachineState) -> None:
        state.pop()
        state.push(Symbolic(symbol))
    return executor


def _unary(func: Callable[[int], int]) -> Executor:
    def executor(op: Operation, state: MachineState) -> None:
        a = state.pop()
        if isinstance(a, Concrete):
            state.push(Concrete(func(a.value)))
        else:
            state.push(DERIVED)
    return executor


def _binary(func: Callable[[int, int], int]) -> Executor:
    def executor(op: Operation, state: MachineState) -> None:
        a = state.pop()
        b = state.pop()
        if isinstance(a, Concrete) and isinstance(b, Concrete):
            state.push(Concrete(func(a.value, b.value)))
        else:
            state.push(DERIVED)
    return executor


def _ternary(func: Callable[[int, int, int], int]) -> Executor:
    def executor(op: Operation, state: MachineState) -> None:
        a, b, c = state.pop_many(3)
        if isinstance(a, Concrete) and isinstance(b, Concrete) and isinstance(c, Concrete):
            state.push(Concrete(func(a.value, b.value, c.value)))
        else:
            state.push(DERIVED)
    return executor


# --- Stop, flow control ---

def _stop(op: Operation, state: MachineState) -> None:
    state.halt()


def _invalid(op: Operation, state: MachineState) -> None:
    state.halt(reverted=True)


def _jump(op: Operation, state: MachineState) -> None:
    target = state.pop()
    state.jump_target = target
    state.jump_condition = None
    destination = concrete_value(target)
    if destination is not None:
        state.pc = destination


def _jumpi(op: Operation, state: MachineState) -> None:
    target = state.pop()
    condition = state.pop()
    state.jump_target = target
    state.jump_condition = condition
    destination = concrete_value(target)
    taken = concrete_value(condition)
    # Fall through unless both the condition and the target are known
    if destination is not None and taken:
        state.pc = destination


def _jumpdest(op: Operation, state: MachineState) -> None:
    pass


def _pc(op: Operation, state: MachineState) -> None:
    state.push(Concrete(op.offset))


# --- Stack ---

def _pop(op: Operation, state: MachineState) -> None:
    state.pop()


def _push(op: Operation, state: MachineState) -> None:
    size = op.size - 1
    # Immediates cut off by the end of code read as zero bytes
    data = (op.argument or b"").ljust(size, b"\x00")
    state.push(Concrete(int.from_bytes(data, "big")))


def _dup(position: int) -> Executor:
    def executor(op: Operation, state: MachineState) -> None:
        state.dup(position)
    return executor


def _swap(position: int) -> Executor:
    def executor(op: Operation, state: MachineState) -> None:
        state.swap(position)
    return executor


# --- Hashing ---

def _sha3(op: Operation, state: MachineState) -> None:
    offset = state.pop()
    size = state.pop()
    start, length = concrete_value(offset), concrete_value(size)
    data = None
    if start is not None and length is not None:
        data = state.memory.load_bytes(start, length)
    else:
        state.memory.touch(offset, size)
    if data is None:
        state.push(Symbolic(Symbol.SHA3))
    else:
        state.push(Concrete(int.from_bytes(Web3.keccak(data), "big")))


# --- Memory and storage ---

def _mload(op: Operation, state: MachineState) -> None:
    offset = state.pop()
    state.push(state.memory.load_word(offset))


def _mstore(op: Operation, state: MachineState) -> None:
    offset = state.pop()
    value = state.pop()
    state.memory.store_word(offset, value)


def _mstore8(op: Operation, state: MachineState) -> None:
    offset = state.pop()
    value = state.pop()
    state.memory.store_byte(offset, value)


def _msize(op: Operation, state: MachineState) -> None:
    state.push(state.memory.size())


def _mcopy(op: Operation, state: MachineState) -> None:
    dest, src, size = state.pop_many(3)
    start, length = concrete_value(src), concrete_value(size)
    data = None
    if start is not None and length is not None:
        data = state.memory.load_bytes(start, length)
    destination = concrete_value(dest)
    if data is not None and destination is not None:
        state.memory.store_bytes(destination, data)
    else:
        state.memory.mark_unknown(dest, size)


def _sload(op: Operation, state: MachineState) -> None:
    key = state.pop()
    state.push(state.storage.load(key))


def _sstore(op: Operation, state: MachineState) -> None:
    key = state.pop()
    value = state.pop()
    state.storage.store(key, value)


def _tload(op: Operation, state: MachineState) -> None:
    key = state.pop()
    state.push(state.transient.load(key))


def _tstore(op: Operation, state: MachineState) -> None:
    key = state.pop()
    value = state.pop()
    state.transient.store(key, value)


# --- Copies from data outside the pass ---

def _copy_to_memory(op: Operation, state: MachineState) -> None:
    # CALLDATACOPY, CODECOPY, RETURNDATACOPY: destOffset, offset, size
    dest, _, size = state.pop_many(3)
    state.memory.mark_unknown(dest, size)


def _extcodecopy(op: Operation, state: MachineState) -> None:
    _, dest, _, size = state.pop_many(4)
    state.memory.mark_unknown(dest, size)


# --- Logging ---

def _log(topic_count: int) -> Executor:
    def executor(op: Operation, state: MachineState) -> None:
        offset = state.pop()
        size = state.pop()
        topics = tuple(state.pop_many(topic_count))
        state.memory.touch(offset, size)
        state.logs.append(LogRecord(op.offset, offset, size, topics))
    return executor


# --- System operations ---

def _create(symbol: Symbol, arg_count: int) -> Executor:
    def executor(op: Operation, state: MachineState) -> None:
        args = state.pop_many(arg_count)
        state.memory.touch(args[1], args[2])
        state.push(Symbolic(symbol))
    return executor


def _call(symbol: Symbol, has_value: bool) -> Executor:
    def executor(op: Operation, state: MachineState) -> None:
        args: List[Word] = state.pop_many(7 if has_value else 6)
        # gas, address, [value,] argsOffset, argsSize, retOffset, retSize
        args_offset, args_size, ret_offset, ret_size = args[-4:]
        state.memory.touch(args_offset, args_size)
        state.memory.mark_unknown(ret_offset, ret_size)
        state.push(Symbolic(symbol))
    return executor


def _return(op: Operation, state: MachineState) -> None:
    offset = state.pop()
    size = state.pop()
    state.return_region = (offset, size)
    state.halt()


def _revert(op: Operation, state: MachineState) -> None:
    offset = state.pop()
    size = state.pop()
    state.return_region = (offset, size)
    state.halt(reverted=True)


def _selfdestruct(op: Operation, state: MachineState) -> None:
    state.pop()
    state.halt()


EXECUTORS: Dict[Opcode, Executor] = {
    # Stop and arithmetic
    Opcode.STOP: _stop,
    Opcode.ADD: _binary(evm_ops.evm_add),
    Opcode.MUL: _binary(evm_ops.evm_mul),
    Opcode.SUB: _binary(evm_ops.evm_sub),
    Opcode.DIV: _binary(evm_ops.evm_div),
    Opcode.SDIV: _binary(evm_ops.evm_sdiv),
    Opcode.MOD: _binary(evm_ops.evm_mod),
    Opcode.SMOD: _binary(evm_ops.evm_smod),
    Opcode.ADDMOD: _ternary(evm_ops.evm_addmod),
    Opcode.MULMOD: _ternary(evm_ops.evm_mulmod),
    Opcode.EXP: _binary(evm_ops.evm_exp),
    Opcode.SIGNEXTEND: _binary(evm_ops.evm_signextend),
    # Comparison and bitwise
    Opcode.LT: _binary(evm_ops.evm_lt),
    Opcode.GT: _binary(evm_ops.evm_gt),
    Opcode.SLT: _binary(evm_ops.evm_slt),
    Opcode.SGT: _binary(evm_ops.evm_sgt),
    Opcode.EQ: _binary(evm_ops.evm_eq),
    Opcode.ISZERO: _unary(evm_ops.evm_iszero),
    Opcode.AND: _binary(evm_ops.evm_and),
    Opcode.OR: _binary(evm_ops.evm_or),
    Opcode.XOR: _binary(evm_ops.evm_xor),
    Opcode.NOT: _unary(evm_ops.evm_not),
    Opcode.BYTE: _binary(evm_ops.evm_byte),
    Opcode.SHL: _binary(evm_ops.evm_shl),
    Opcode.SHR: _binary(evm_ops.evm_shr),
    Opcode.SAR: _binary(evm_ops.evm_sar),
    Opcode.SHA3: _sha3,
    # Environment
    Opcode.ADDRESS: _push_symbol(Symbol.ADDRESS),
    Opcode.BALANCE: _pop_push_symbol(Symbol.BALANCE),
    Opcode.ORIGIN: _push_symbol(Symbol.ORIGIN),
    Opcode.CALLER: _push_symbol(Symbol.CALLER),
    Opcode.CALLVALUE: _push_symbol(Symbol.CALLVALUE),
    Opcode.CALLDATALOAD: _pop_push_symbol(Symbol.CALLDATALOAD),
    Opcode.CALLDATASIZE: _push_symbol(Symbol.CALLDATASIZE),
    Opcode.CALLDATACOPY: _copy_to_memory,
    Opcode.CODESIZE: _push_symbol(Symbol.CODESIZE),
    Opcode.CODECOPY: _copy_to_memory,
    Opcode.GASPRICE: _push_symbol(Symbol.GASPRICE),
    Opcode.EXTCODESIZE: _pop_push_symbol(Symbol.EXTCODESIZE),
    Opcode.EXTCODECOPY: _extcodecopy,
    Opcode.RETURNDATASIZE: _push_symbol(Symbol.RETURNDATASIZE),
    Opcode.RETURNDATACOPY: _copy_to_memory,
    Opcode.EXTCODEHASH: _pop_push_symbol(Symbol.EXTCODEHASH),
    # Block information
    Opcode.BLOCKHASH: _pop_push_symbol(Symbol.BLOCKHASH),
    Opcode.COINBASE: _push_symbol(Symbol.COINBASE),
    Opcode.TIMESTAMP: _push_symbol(Symbol.TIMESTAMP),
    Opcode.NUMBER: _push_symbol(Symbol.NUMBER),
    Opcode.DIFFICULTY: _push_symbol(Symbol.PREVRANDAO),
    Opcode.GASLIMIT: _push_symbol(Symbol.GASLIMIT),
    Opcode.CHAINID: _push_symbol(Symbol.CHAINID),
    Opcode.SELFBALANCE: _push_symbol(Symbol.SELFBALANCE),
    Opcode.BASEFEE: _push_symbol(Symbol.BASEFEE),
    Opcode.BLOBHASH: _pop_push_symbol(Symbol.BLOBHASH),
    Opcode.BLOBBASEFEE: _push_symbol(Symbol.BLOBBASEFEE),
    # Stack, memory, storage, flow
    Opcode.POP: _pop,
    Opcode.MLOAD: _mload,
    Opcode.MSTORE: _mstore,
    Opcode.MSTORE8: _mstore8,
    Opcode.SLOAD: _sload,
    Opcode.SSTORE: _sstore,
    Opcode.JUMP: _jump,
    Opcode.JUMPI: _jumpi,
    Opcode.PC: _pc,
    Opcode.MSIZE: _msize,
    Opcode.GAS: _push_symbol(Symbol.GAS),
    Opcode.JUMPDEST: _jumpdest,
    Opcode.TLOAD: _tload,
    Opcode.TSTORE: _tstore,
    Opcode.MCOPY: _mcopy,
    # System
    Opcode.CREATE: _create(Symbol.CREATE, 3),
    Opcode.CALL: _call(Symbol.CALL, has_value=True),
    Opcode.CALLCODE: _call(Symbol.CALLCODE, has_value=True),
    Opcode.RETURN: _return,
    Opcode.DELEGATECALL: _call(Symbol.DELEGATECALL, has_value=False),
    Opcode.CREATE2: _create(Symbol.CREATE2, 4),
    Opcode.STATICCALL: _call(Symbol.STATICCALL, has_value=False),
    Opcode.REVERT: _revert,
    Opcode.INVALID: _invalid,
    Opcode.SELFDESTRUCT: _selfdestruct,
}

for _n in range(0, 33):
    EXECUTORS[Opcode(Opcode.PUSH0 + _n)] = _push
for _n in range(1, 17):
    EXECUTORS[Opcode(Opcode.DUP1 + _n - 1)] = _dup(_n)
    EXECUTORS[Opcode(Opcode.SWAP1 + _n - 1)] = _swap(_n)
for _n in range(0, 5):
    EXECUTORS[Opcode(Opcode.LOG0 + _n)] = _log(_n)

_missing = [code.name for code in Opcode if code not in EXECUTORS]
if _missing:
    raise RuntimeError(f"Opcodes without an executor: {', '.join(_missing)}")


def execute(operation: Operation, state: MachineState) -> None:
    """
    Apply one instruction to `state`.

    Raises:
        StackUnderflow: the stack holds fewer items than the opcode consumes
    """
    opcode = operation.opcode
    if opcode is None:
        # Undefined instructions abort execution like INVALID
        state.pc = operation.offset
        state.halt(reverted=True)
        return
    required, _ = STACK_EFFECTS[opcode]
    state.require(required, operation.name)
    state.pc = operation.next_offset
    EXECUTORS[opcode](operation, state)


def execute_block(operations: List[Operation], initial_state: MachineState) -> MachineState:
    """
    Run a straight-line sequence of instructions on a copy of `initial_state`.

    Stops after the first jump or halting instruction; the caller decides where
    to continue from `jump_target` / `pc`.
    """
    state = initial_state.clone()
    for operation in operations:
        execute(operation, state)
        if state.halted or operation.opcode in (Opcode.JUMP, Opcode.JUMPI):
            break
    return state


__all__ = ["EXECUTORS", "Executor", "execute", "execute_block"]
