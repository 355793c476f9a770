"""Utilities for EVM operation simulation on concrete 256-bit integers."""

from .word import UINT256_CEILING, UINT256_MAX, WORD_BITS

SIGN_BIT = 1 << (WORD_BITS - 1)


def to_signed(a: int) -> int:
    return a - UINT256_CEILING if a & SIGN_BIT else a


def to_unsigned(a: int) -> int:
    return a % UINT256_CEILING


def evm_add(a: int, b: int) -> int:
    """Perform EVM addition (wrapping at 2^256)."""
    return (a + b) % UINT256_CEILING


def evm_sub(a: int, b: int) -> int:
    """Perform EVM subtraction (wrapping at 2^256)."""
    return (a - b) % UINT256_CEILING


def evm_mul(a: int, b: int) -> int:
    """Perform EVM multiplication (wrapping at 2^256)."""
    return (a * b) % UINT256_CEILING


def evm_div(a: int, b: int) -> int:
    """Perform EVM division (x / 0 = 0)."""
    return a // b if b else 0


def evm_sdiv(a: int, b: int) -> int:
    """Perform EVM signed division, truncating toward zero (x / 0 = 0)."""
    if b == 0:
        return 0
    sa, sb = to_signed(a), to_signed(b)
    sign = -1 if (sa < 0) != (sb < 0) else 1
    return to_unsigned(sign * (abs(sa) // abs(sb)))


def evm_mod(a: int, b: int) -> int:
    """Perform EVM modulo (x % 0 = 0)."""
    return a % b if b else 0


def evm_smod(a: int, b: int) -> int:
    """Perform EVM signed modulo; the result takes the sign of a (x % 0 = 0)."""
    if b == 0:
        return 0
    sa, sb = to_signed(a), to_signed(b)
    sign = -1 if sa < 0 else 1
    return to_unsigned(sign * (abs(sa) % abs(sb)))


def evm_addmod(a: int, b: int, c: int) -> int:
    """Perform EVM add-modulo (a + b) % c without wrapping, (x % 0 = 0)."""
    return (a + b) % c if c else 0


def evm_mulmod(a: int, b: int, c: int) -> int:
    """Perform EVM mul-modulo (a * b) % c without wrapping, (x % 0 = 0)."""
    return (a * b) % c if c else 0


def evm_exp(a: int, b: int) -> int:
    """Perform EVM exponentiation a^b mod 2^256."""
    return pow(a, b, UINT256_CEILING)


def evm_signextend(b: int, x: int) -> int:
    """Sign-extend x from (b + 1) bytes."""
    if b >= 31:
        return x
    bit = b * 8 + 7
    mask = (1 << bit) - 1
    if x & (1 << bit):
        return x | (UINT256_MAX - mask)
    return x & mask


def evm_lt(a: int, b: int) -> int:
    """Unsigned less than comparison."""
    return int(a < b)


def evm_gt(a: int, b: int) -> int:
    """Unsigned greater than comparison."""
    return int(a > b)


def evm_slt(a: int, b: int) -> int:
    """Signed less than comparison."""
    return int(to_signed(a) < to_signed(b))


def evm_sgt(a: int, b: int) -> int:
    """Signed greater than comparison."""
    return int(to_signed(a) > to_signed(b))


def evm_eq(a: int, b: int) -> int:
    return int(a == b)


def evm_iszero(a: int) -> int:
    return int(a == 0)


def evm_and(a: int, b: int) -> int:
    return a & b


def evm_or(a: int, b: int) -> int:
    return a | b


def evm_xor(a: int, b: int) -> int:
    return a ^ b


def evm_not(a: int) -> int:
    return UINT256_MAX ^ a


def evm_byte(i: int, x: int) -> int:
    """Get the ith byte of x, counting from the most significant."""
    if i >= 32:
        return 0
    return (x >> (248 - i * 8)) & 0xFF


def evm_shl(shift: int, value: int) -> int:
    """Shift left."""
    if shift >= WORD_BITS:
        return 0
    return (value << shift) % UINT256_CEILING


def evm_shr(shift: int, value: int) -> int:
    """Logical shift right."""
    if shift >= WORD_BITS:
        return 0
    return value >> shift


def evm_sar(shift: int, value: int) -> int:
    """Arithmetic shift right."""
    signed_value = to_signed(value)
    if shift >= WORD_BITS:
        return UINT256_MAX if signed_value < 0 else 0
    return to_unsigned(signed_value >> shift)
