"""
Exception hierarchy for trace slicing and symbolic execution.

TransactionNotFound is web3's own exception; it is re-exported here so callers
can catch every failure of this package from one module.
"""

from web3.exceptions import TransactionNotFound


class TraceSlicerError(Exception):
    """Base class for errors raised by this package."""


class NoMatchingBytecode(TraceSlicerError):
    """No call frame in the trace runs the target contract's code."""

    DEFAULT_MESSAGE = (
        "No matching bytecode found in the chain for this transaction. "
        "Please check the contracts were not deployed with different "
        "optimizations than the debugger"
    )

    def __init__(self, message: str = DEFAULT_MESSAGE):
        super().__init__(message)


class MalformedTrace(TraceSlicerError):
    """The debug trace is missing structLogs or has inconsistent depths."""


class StackUnderflow(TraceSlicerError):
    """An opcode needs more stack items than the abstract machine holds."""

    def __init__(self, opcode: str, required: int, available: int):
        self.opcode = opcode
        self.required = required
        self.available = available
        super().__init__(
            f"Stack underflow executing {opcode}: "
            f"requires {required} items, stack holds {available}"
        )


class TraceRequestError(TraceSlicerError):
    """The node answered debug_traceTransaction with an error."""


__all__ = [
    "TraceSlicerError",
    "NoMatchingBytecode",
    "MalformedTrace",
    "StackUnderflow",
    "TraceRequestError",
    "TransactionNotFound",
]
