"""
Locate the call frame that runs a given contract's code inside a step trace.
"""

from typing import Protocol

import structlog

from ..bytecode.metadata import comparable_code, is_empty_code
from ..exceptions import NoMatchingBytecode
from .builder import build_trace
from .models import DebugTrace

logger = structlog.get_logger()


class ChainCodeProvider(Protocol):
    """Narrow capability the matcher needs from a chain client."""

    def get_code(self, address: str) -> str:
        """Deployed code at `address` as 0x-prefixed hex ("0x" when empty)."""
        ...


def find_relevant_segment(
    target_bytecode: str,
    root_deployed_bytecode: str,
    trace: DebugTrace,
    code_provider: ChainCodeProvider,
) -> DebugTrace:
    """
    Return a copy of `trace` holding only the steps executed by `target_bytecode`.

    The root frame is taken at the first struct log's depth rather than a
    fixed depth 0, so geth traces (which start at depth 1) are handled too.

    Args:
        target_bytecode: Locally compiled code of the contract of interest
        root_deployed_bytecode: Code at the transaction's `to` address, or
            empty for a contract creation
        trace: Parsed debug_traceTransaction response
        code_provider: Looks up deployed code for callee addresses

    Returns:
        DebugTrace with the same envelope and the matching frame's struct logs

    Raises:
        NoMatchingBytecode: neither the root frame nor any called frame runs
            the target code
    """
    clean_target = comparable_code(target_bytecode)
    clean_root = comparable_code(root_deployed_bytecode)

    if clean_target == clean_root or is_empty_code(clean_root):
        depth = trace.root_depth
        logger.info("Target code runs in the root frame", depth=depth)
        return build_trace(trace, trace.logs_at_depth(depth))

    lookups = 0
    for call in trace.calls():
        address = call.callee_address()
        if address is None:
            logger.debug("Skipping call without callee on stack", pc=call.pc, op=call.op)
            continue
        lookups += 1
        callee_code = code_provider.get_code(address)
        if comparable_code(callee_code) == clean_target:
            depth = call.depth + 1
            logger.info(
                "Matched call frame",
                address=address,
                op=call.op,
                pc=call.pc,
                depth=depth,
                lookups=lookups,
            )
            return build_trace(trace, trace.logs_at_depth(depth))

    logger.warning("No call frame matches target bytecode", lookups=lookups)
    raise NoMatchingBytecode()
