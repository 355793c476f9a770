# ethereum/code_provider.py
from typing import Dict, Hashable, Tuple

import structlog
from web3 import Web3
from web3.types import BlockIdentifier

from ..trace.matcher import ChainCodeProvider

logger = structlog.get_logger()


class Web3CodeProvider:
    """Reads deployed code through a web3 client at a fixed block."""

    def __init__(self, web3: Web3, block_identifier: BlockIdentifier = "latest"):
        self.web3 = web3
        self.block_identifier = block_identifier

    def get_code(self, address: str) -> str:
        checksum_address = Web3.to_checksum_address(address)
        logger.debug(
            "Fetching deployed code",
            address=checksum_address,
            block=self.block_identifier,
        )
        code = self.web3.eth.get_code(checksum_address, self.block_identifier)
        return Web3.to_hex(code)


class CachingCodeProvider:
    """
    Memoizes another provider's answers.

    Entries are keyed by (context, address), where `context` names the chain
    state the wrapped provider reads (typically a block number). Deployed code
    is only stable within one such view, so a cache must never be shared
    across providers reading different blocks.
    """

    def __init__(self, provider: ChainCodeProvider, context: Hashable):
        self.provider = provider
        self.context = context
        self._cache: Dict[Tuple[Hashable, str], str] = {}

    def get_code(self, address: str) -> str:
        key = (self.context, address.lower())
        if key not in self._cache:
            self._cache[key] = self.provider.get_code(address)
        else:
            logger.debug("Code cache hit", address=address, context=self.context)
        return self._cache[key]
