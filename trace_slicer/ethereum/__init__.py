"""
web3-backed collaborators: code lookup and transaction/trace retrieval.
"""

from .code_provider import CachingCodeProvider, Web3CodeProvider
from .transaction_service import TransactionService

__all__ = ["CachingCodeProvider", "Web3CodeProvider", "TransactionService"]
