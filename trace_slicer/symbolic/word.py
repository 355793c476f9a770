"""
Machine words for abstract interpretation.

A Word is either Concrete (a known 256-bit integer) or Symbolic (a placeholder
tagged with the query whose answer needs a live chain). Symbolic words are never
turned back into integers here; consumers propagate them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import z3

WORD_BITS = 256
UINT256_CEILING = 1 << WORD_BITS
UINT256_MAX = UINT256_CEILING - 1


class Symbol(Enum):
    """Why a value is unknown during static analysis."""

    # Execution context
    ADDRESS = "address"
    ORIGIN = "origin"
    CALLER = "caller"
    CALLVALUE = "callvalue"
    CALLDATALOAD = "calldataload"
    CALLDATASIZE = "calldatasize"
    CODESIZE = "codesize"
    GASPRICE = "gasprice"
    RETURNDATASIZE = "returndatasize"
    GAS = "gas"

    # Other accounts
    BALANCE = "balance"
    SELFBALANCE = "selfbalance"
    EXTCODESIZE = "extcodesize"
    EXTCODEHASH = "extcodehash"

    # Block
    BLOCKHASH = "blockhash"
    COINBASE = "coinbase"
    TIMESTAMP = "timestamp"
    NUMBER = "number"
    PREVRANDAO = "prevrandao"
    GASLIMIT = "gaslimit"
    CHAINID = "chainid"
    BASEFEE = "basefee"
    BLOBHASH = "blobhash"
    BLOBBASEFEE = "blobbasefee"

    # Machine state that could not be tracked
    MSIZE = "msize"
    MLOAD = "mload"
    SLOAD = "sload"
    TLOAD = "tload"
    SHA3 = "sha3"

    # Results of sub-calls
    CREATE = "create"
    CREATE2 = "create2"
    CALL = "call"
    CALLCODE = "callcode"
    DELEGATECALL = "delegatecall"
    STATICCALL = "staticcall"

    # Computed from another symbolic word
    DERIVED = "derived"


@dataclass(frozen=True)
class Concrete:
    """A known 256-bit value, stored unsigned."""

    value: int

    def __post_init__(self):
        object.__setattr__(self, "value", self.value % UINT256_CEILING)

    @property
    def signed(self) -> int:
        if self.value >> (WORD_BITS - 1):
            return self.value - UINT256_CEILING
        return self.value

    def to_bytes(self) -> bytes:
        return self.value.to_bytes(32, "big")

    def to_z3(self) -> z3.BitVecRef:
        return z3.BitVecVal(self.value, WORD_BITS)

    def __str__(self) -> str:
        return hex(self.value)


@dataclass(frozen=True)
class Symbolic:
    """A value only a live chain could answer."""

    symbol: Symbol

    def to_z3(self) -> z3.BitVecRef:
        return z3.BitVec(f"sym_{self.symbol.name}", WORD_BITS)

    def __str__(self) -> str:
        return f"<{self.symbol.name}>"


Word = Union[Concrete, Symbolic]

DERIVED = Symbolic(Symbol.DERIVED)
ZERO = Concrete(0)
ONE = Concrete(1)


def is_concrete(word: Word) -> bool:
    return isinstance(word, Concrete)


def concrete_value(word: Word) -> Optional[int]:
    """The integer behind a Concrete word, None for a Symbolic one."""
    if isinstance(word, Concrete):
        return word.value
    return None


def word_from_hex(text: str) -> Concrete:
    """Parse a stack entry as reported by a step tracer ("0x2a" or bare hex)."""
    return Concrete(int(text, 16))
