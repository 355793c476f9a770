# ethereum/transaction_service.py
from typing import Any, Dict, Optional

import structlog
from web3 import Web3
from web3.exceptions import TransactionNotFound

from ..config import Settings
from ..exceptions import TraceRequestError
from ..logging_config import configure_logging
from ..trace.matcher import find_relevant_segment
from ..trace.models import DebugTrace
from .code_provider import CachingCodeProvider, Web3CodeProvider

logger = structlog.get_logger()


class TransactionService:
    """
    Fetches transactions and step traces from a node and slices them down to
    one contract's execution.

    The web3 client is passed in; nothing here keeps a process-wide provider.
    """

    def __init__(self, web3: Web3, tracer_config: Optional[Dict[str, Any]] = None):
        self.web3 = web3
        self.tracer_config = tracer_config if tracer_config is not None else {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "TransactionService":
        """Configure logging from `settings` and build an HTTP-backed service."""
        configure_logging(settings.log_level, settings.log_format)
        web3 = Web3(
            Web3.HTTPProvider(
                settings.provider_url,
                request_kwargs={"timeout": settings.rpc_timeout},
            )
        )
        logger.info("Created web3 client", url=settings.provider_url)
        return cls(web3, settings.tracer_config())

    def find_transaction(self, tx_hash: str):
        """
        Raises:
            TransactionNotFound: the node does not know `tx_hash`
        """
        logger.debug("Fetching transaction", tx_hash=tx_hash)
        transaction = self.web3.eth.get_transaction(tx_hash)
        if not transaction:
            raise TransactionNotFound(f"Transaction {tx_hash} not found in node")
        return transaction

    def find_transaction_receipt(self, tx_hash: str):
        """
        Raises:
            TransactionNotFound: the node has no receipt for `tx_hash`
        """
        logger.debug("Fetching transaction receipt", tx_hash=tx_hash)
        receipt = self.web3.eth.get_transaction_receipt(tx_hash)
        if not receipt:
            raise TransactionNotFound(f"Receipt for transaction {tx_hash} not found in node")
        return receipt

    def get_trace(self, tx_hash: str) -> DebugTrace:
        """
        Collects the struct log trace for a transaction using debug_traceTransaction.

        Raises:
            TransactionNotFound: the node does not know `tx_hash`
            TraceRequestError: the node returned an error for the trace request
            MalformedTrace: the response has no usable structLogs
        """
        self.find_transaction(tx_hash)
        logger.info("Collecting trace", tx_hash=tx_hash)
        response = self.web3.provider.make_request(
            "debug_traceTransaction", [tx_hash, self.tracer_config]
        )

        if "error" in response:
            logger.error(
                "Error received from debug_traceTransaction",
                tx_hash=tx_hash,
                error=response["error"],
            )
            raise TraceRequestError(f"Trace error for {tx_hash}: {response['error']}")

        trace = DebugTrace.from_response(response)
        logger.debug(
            "Successfully collected trace",
            tx_hash=tx_hash,
            steps=len(trace.struct_logs),
        )
        return trace

    def find_transaction_trace(self, tx_hash: str, bytecode: str) -> DebugTrace:
        """
        Trace `tx_hash` and keep only the steps run by `bytecode`.

        The root frame's code is the code at the transaction's `to` address as
        of the transaction's block; for contract creations it is `bytecode`
        itself, so the root frame is selected.

        Raises:
            TransactionNotFound: the node does not know `tx_hash`
            NoMatchingBytecode: no frame in the trace runs `bytecode`
        """
        transaction = self.find_transaction(tx_hash)
        block = transaction.get("blockNumber")
        if block is None:
            block = "latest"
        code_provider = CachingCodeProvider(Web3CodeProvider(self.web3, block), block)

        to_address = transaction.get("to")
        deployed_bytecode = bytecode
        if to_address:
            deployed_bytecode = code_provider.get_code(to_address)

        trace = self.get_trace(tx_hash)
        return find_relevant_segment(bytecode, deployed_bytecode, trace, code_provider)
