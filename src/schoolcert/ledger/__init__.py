"""Client for the ``StudentCertificate`` smart contract.

Public API::

    from schoolcert.ledger import LedgerClient

    ledger = LedgerClient(settings.ledger)
    if ledger.initialize():
        receipt = ledger.issue_certificate(...)
"""

from schoolcert.ledger.base import (
    EventNotFound,
    HashVerification,
    IssueReceipt,
    LedgerError,
    NotInitialized,
    RetrievalFailed,
    TransactionFailed,
    TransactionReceipt,
)
from schoolcert.ledger.client import LedgerClient
from schoolcert.ledger.networks import KNOWN_NETWORKS, resolve_rpc_url

__all__ = [
    "KNOWN_NETWORKS",
    "EventNotFound",
    "HashVerification",
    "IssueReceipt",
    "LedgerClient",
    "LedgerError",
    "NotInitialized",
    "RetrievalFailed",
    "TransactionFailed",
    "TransactionReceipt",
    "resolve_rpc_url",
]
