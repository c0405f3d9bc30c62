"""Errors and result types of the ledger client.

Every failure raised by :class:`~schoolcert.ledger.client.LedgerClient`
derives from :class:`LedgerError`.  Read-side calls that are documented
to soft-fail (verify, list, totals) never raise these for remote
errors; they return a neutral value and log instead.
"""

from __future__ import annotations

from dataclasses import dataclass


class LedgerError(Exception):
    """Base class for ledger failures.

    Parameters
    ----------
    detail:
        Human-readable description of the failure.

    """

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class NotInitialized(LedgerError):
    """The client is not connected to a contract."""

    def __init__(self, detail: str = "Blockchain service not initialized") -> None:
        super().__init__(detail)


class TransactionFailed(LedgerError):
    """A state-changing transaction could not be built, sent or confirmed."""


class EventNotFound(TransactionFailed):
    """A confirmed issuance receipt did not carry ``CertificateIssued``."""


class RetrievalFailed(LedgerError):
    """A read call for a specific record failed."""


@dataclass(frozen=True)
class TransactionReceipt:
    """Outcome of a confirmed state-changing transaction."""

    transaction_hash: str
    block_number: int


@dataclass(frozen=True)
class IssueReceipt:
    """Outcome of a confirmed certificate issuance.

    Attributes
    ----------
    certificate_id:
        Ledger-assigned identifier, decoded from the issuance event.
    transaction_hash:
        ``0x``-prefixed hash of the issuing transaction.
    block_number:
        Block the transaction was mined in.

    """

    certificate_id: int
    transaction_hash: str
    block_number: int


@dataclass(frozen=True)
class HashVerification:
    valid: bool
    certificate_id: int | None = None
