"""
Compiler metadata stripping and bytecode comparison.

solc appends a CBOR-encoded map (IPFS/swarm hash, compiler version) to the
runtime code, followed by the map's length as a big-endian uint16. Two builds
of the same source can differ only in that blob, so comparisons are made on
the executable prefix alone.
"""

from typing import Optional

import cbor2

_CBOR_MAP_MASK = 0xE0
_CBOR_MAP_MAJOR = 0xA0

# Keys solc has emitted in its metadata map
SOLC_METADATA_KEYS = frozenset({"ipfs", "bzzr0", "bzzr1", "solc", "experimental"})


def _split_prefix(bytecode: str):
    if bytecode[:2] in ("0x", "0X"):
        return bytecode[:2], bytecode[2:]
    return "", bytecode


def is_metadata_blob(blob: bytes) -> bool:
    """
    True when `blob` is exactly one CBOR map keyed by solc metadata names.

    The map must re-encode to the same bytes, so trailing data or a length
    that only happens to land on a map header byte is rejected.
    """
    if not blob or blob[0] & _CBOR_MAP_MASK != _CBOR_MAP_MAJOR:
        return False
    try:
        decoded = cbor2.loads(blob)
        if not isinstance(decoded, dict) or not decoded:
            return False
        if not all(isinstance(key, str) and key in SOLC_METADATA_KEYS for key in decoded):
            return False
        return cbor2.dumps(decoded) == blob
    except (cbor2.CBORError, ValueError, TypeError, RecursionError):
        return False


def remove_metadata(bytecode: str) -> str:
    """
    Remove one trailing compiler metadata blob.

    The final two bytes give the blob's length; the bytes before them must
    decode as a solc metadata map of exactly that length. Anything else,
    including non-hex text, is returned unchanged.
    """
    prefix, body = _split_prefix(bytecode)
    if len(body) < 6:
        return bytecode
    try:
        length = int.from_bytes(bytes.fromhex(body[-4:]), "big")
    except ValueError:
        return bytecode
    start = len(body) - 4 - 2 * length
    if length == 0 or start < 0:
        return bytecode
    try:
        tail = bytes.fromhex(body[start:])
    except ValueError:
        return bytecode
    if len(tail) != length + 2 or not is_metadata_blob(tail[:-2]):
        return bytecode
    return prefix + body[:start]


def _drop_odd_digit(bytecode: str) -> str:
    # Heuristic carried over from the debugger: a metadata length that is off
    # by one leaves half a byte behind. Not verified against the CBOR payload.
    prefix, body = _split_prefix(bytecode)
    if len(body) % 2:
        return prefix + body[:-1]
    return bytecode


def normalize(bytecode: str) -> str:
    """
    Return the executable prefix of `bytecode`.

    Applies metadata removal and the odd-length truncation until neither
    changes the text, so normalize(normalize(x)) == normalize(x).
    """
    current = bytecode
    while True:
        stripped = _drop_odd_digit(remove_metadata(current))
        if stripped == current:
            return current
        current = stripped


def is_empty_code(bytecode: Optional[str]) -> bool:
    """True for the "no code" markers a node returns for accounts without code."""
    return not bytecode or bytecode.lower() == "0x"


def comparable_code(bytecode: Optional[str]) -> str:
    """Normalized, lowercase form without the 0x prefix, used for every code comparison."""
    _, body = _split_prefix(normalize(bytecode or ""))
    return body.lower()


def same_code(left: str, right: str) -> bool:
    """Case-insensitive comparison of the normalized forms, ignoring any 0x prefix."""
    return comparable_code(left) == comparable_code(right)
